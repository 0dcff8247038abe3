"""Shared test fixtures for policy-distiller tests."""

from __future__ import annotations

import json

import pytest

from policy_distiller.models import LLMConfig, ProviderType

#: Text that only appears in the prompt of each section.
PROMPT_MARKERS: dict[str, str] = {
    "brief summary": "Provide a brief summary (4-6 sentences)",
    "detailed summary": "Provide a detailed summary in plain language",
    "full analysis": "comprehensive, in-depth analysis",
    "privacy risks": "Privacy Risks JSON:",
    "key terms": "Key Terms JSON:",
    "privacy scorecard": "Rate the privacy policy on these 7 categories",
    "take action": "Privacy Rights JSON:",
    "data_collection": "Data Collection Summary:",
    "data_sharing": "Data Sharing Summary:",
    "user_rights": "User Rights Summary:",
}


class StubProvider:
    """Scripted provider: answers each prompt by the section it belongs to.

    A response that is an exception instance is raised instead of returned.
    Every call is recorded in ``calls`` as the section name.
    """

    def __init__(self, responses: dict[str, object]) -> None:
        self.responses = responses
        self.calls: list[str] = []
        self.prompts: list[str] = []

    @staticmethod
    def section_of(prompt: str) -> str:
        for section, marker in PROMPT_MARKERS.items():
            if marker in prompt:
                return section
        raise AssertionError("prompt does not belong to any known section")

    async def complete(self, prompt: str) -> str:
        section = self.section_of(prompt)
        self.calls.append(section)
        self.prompts.append(prompt)
        response = self.responses.get(section, "")
        if isinstance(response, BaseException):
            raise response
        return response

    async def aclose(self) -> None:
        pass


@pytest.fixture
def sample_policy_text() -> str:
    """A short privacy policy for targeted tests."""
    return (
        "ACME PRIVACY POLICY\n\n"
        "1. INFORMATION WE COLLECT\n"
        "We collect your name, email address, precise location and browsing history "
        "when you use our services.\n\n\n\n"
        "2. HOW WE SHARE INFORMATION\n"
        "We share personal information with advertising partners and affiliates. "
        "We may sell aggregated data to third parties!!!\n\n"
        "3. YOUR RIGHTS\n"
        "You may request deletion of your data by emailing privacy@acme.example. "
        "Visit https://acme.example/privacy/settings to manage your preferences.\n\n"
        "4. RETENTION\n"
        "We retain data for as long as necessary to provide our services."
    )


@pytest.fixture
def risks_response() -> str:
    return (
        "Here are the risks I found:\n```json\n"
        + json.dumps(
            [
                {
                    "title": "Data sold to third parties",
                    "description": "Aggregated data may be sold.",
                    "severity": "High",
                    "location": "Section 2",
                    "recommendation": "Opt out of data sales.",
                },
                {
                    "title": "Precise location tracking",
                    "description": "Your exact location is collected.",
                    "severity": "severe",
                },
            ]
        )
        + "\n```"
    )


@pytest.fixture
def key_terms_response() -> str:
    return json.dumps(
        [
            {"term": "Affiliates", "definition": "Companies under common control.", "location": "Section 2"},
            {"term": "Personal information", "definition": "Data that identifies you."},
        ]
    )


@pytest.fixture
def scorecard_response() -> str:
    return json.dumps(
        {
            "thirdPartySharing": {"score": 3, "weight": 99, "summary": "Broad sharing."},
            "userRights": {"score": 6, "weight": 18, "summary": "Deletion by email."},
            "dataCollection": {"score": 4, "weight": 18, "summary": "Location and history."},
            "dataRetention": {"score": 4, "weight": 14, "summary": "As long as necessary."},
            "purposeClarity": {"score": 5, "weight": 12, "summary": "Vague purposes."},
            "securityMeasures": {"score": 5, "weight": 10, "summary": "Not described."},
            "policyTransparency": {"score": 7, "weight": 8, "summary": "Short and readable."},
            "topConcerns": ["Data sales", "Location tracking"],
            "positiveAspects": ["Deletion available"],
        }
    )


@pytest.fixture
def privacy_rights_response() -> str:
    return json.dumps(
        {
            "links": [
                {"label": "Privacy settings", "url": "https://acme.example/privacy/settings", "purpose": "settings"}
            ],
            "contacts": [{"type": "email", "value": "privacy@acme.example", "purpose": "Deletion requests"}],
            "procedures": [
                {"right": "deletion", "title": "Delete your data", "steps": ["Email the privacy team"]}
            ],
            "timeframes": ["Requests are answered within 30 days"],
        }
    )


@pytest.fixture
def section_responses(
    risks_response: str,
    key_terms_response: str,
    scorecard_response: str,
    privacy_rights_response: str,
) -> dict[str, object]:
    """A well-behaved answer for every section."""
    return {
        "brief summary": "Summary: ACME collects location data and shares it with advertisers.",
        "detailed summary": "## Data Collection\n- Name and email\n- Precise location\n",
        "full analysis": "Here is the full analysis: 1. Broad sharing with partners\n2. Data may be sold",
        "privacy risks": risks_response,
        "key terms": key_terms_response,
        "privacy scorecard": scorecard_response,
        "take action": privacy_rights_response,
    }


@pytest.fixture
def stub_provider(section_responses: dict[str, object]) -> StubProvider:
    return StubProvider(section_responses)


@pytest.fixture
def llm_config() -> LLMConfig:
    return LLMConfig(
        provider=ProviderType.OLLAMA,
        model="llama3.1",
        base_url="http://localhost:11434",
        max_tokens=1024,
        context_window=4096,
        timeout=5.0,
    )
