"""Data models for privacy policy analysis."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Iterator, Optional


class RiskLevel(str, Enum):
    """Privacy risk severity levels."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class SummaryType(str, Enum):
    """Detail level of a prose summary."""

    BRIEF = "brief"
    DETAILED = "detailed"
    FULL = "full"


class DocumentSource(str, Enum):
    """Where the analyzed text came from."""

    URL = "url"
    FILE = "file"
    PASTE = "paste"


class ProviderType(str, Enum):
    """Supported LLM backends."""

    OPENROUTER = "openrouter"
    OLLAMA = "ollama"
    LMSTUDIO = "lmstudio"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"


class LinkPurpose(str, Enum):
    """What a privacy link lets the user do."""

    SETTINGS = "settings"
    DATA_REQUEST = "data-request"
    OPT_OUT = "opt-out"
    DELETION = "deletion"
    GENERAL = "general"
    OTHER = "other"


class ContactType(str, Enum):
    """Channel of a privacy contact."""

    EMAIL = "email"
    ADDRESS = "address"
    PHONE = "phone"
    FORM = "form"
    DPO = "dpo"


class PrivacyRight(str, Enum):
    """Data-subject right a procedure exercises."""

    ACCESS = "access"
    DELETION = "deletion"
    PORTABILITY = "portability"
    OPT_OUT = "opt-out"
    CORRECTION = "correction"
    OBJECTION = "objection"
    OTHER = "other"


#: Fixed scorecard weights, in display order. They sum to 100.
SCORECARD_WEIGHTS: dict[str, int] = {
    "thirdPartySharing": 20,
    "userRights": 18,
    "dataCollection": 18,
    "dataRetention": 14,
    "purposeClarity": 12,
    "securityMeasures": 10,
    "policyTransparency": 8,
}

SCORECARD_LABELS: dict[str, str] = {
    "thirdPartySharing": "Third-Party Sharing",
    "userRights": "User Rights & Control",
    "dataCollection": "Data Collection",
    "dataRetention": "Data Retention",
    "purposeClarity": "Purpose Clarity",
    "securityMeasures": "Security Measures",
    "policyTransparency": "Policy Transparency",
}


@dataclass(frozen=True)
class DocumentInput:
    """Raw extracted policy text and the tag of its source."""

    text: str
    source: DocumentSource = DocumentSource.PASTE
    origin: Optional[str] = None


@dataclass(frozen=True)
class LLMConfig:
    """Settings used to build an LLM provider.

    Attributes:
        provider: Backend to talk to.
        model: Model identifier understood by the backend.
        api_key: Secret for cloud backends (empty for local servers).
        base_url: Root URL of the backend API.
        temperature: Sampling temperature (0-1).
        max_tokens: Upper bound on completion length.
        context_window: Context size hint for local backends.
        timeout: Per-request transport timeout in seconds.
    """

    provider: ProviderType
    model: str
    api_key: str = ""
    base_url: str = ""
    temperature: float = 0.7
    max_tokens: int = 4096
    context_window: Optional[int] = None
    timeout: float = 600.0

    def to_dict(self) -> dict:
        return {
            "provider": self.provider.value,
            "model": self.model,
            "base_url": self.base_url,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "context_window": self.context_window,
            "timeout": self.timeout,
            "has_api_key": bool(self.api_key),
        }


@dataclass
class Summary:
    """One prose summary with the key points derived from it."""

    type: SummaryType
    content: str
    key_points: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "content": self.content,
            "key_points": list(self.key_points),
        }


@dataclass
class PrivacyRisk:
    """A privacy risk reported by the model."""

    id: str
    title: str
    description: str
    severity: RiskLevel
    location: str = "General"
    recommendation: str = ""

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "severity": self.severity.value,
            "location": self.location,
            "recommendation": self.recommendation,
        }


@dataclass
class KeyTerm:
    """A glossary entry."""

    term: str
    definition: str
    location: str = "General"

    def to_dict(self) -> dict:
        return {"term": self.term, "definition": self.definition, "location": self.location}


@dataclass
class ScorecardCategory:
    """Score of a single scorecard category (1-10) and its fixed weight."""

    score: float
    weight: int
    summary: str = ""

    def to_dict(self) -> dict:
        return {"score": self.score, "weight": self.weight, "summary": self.summary}


@dataclass
class PrivacyScorecard:
    """Weighted seven-category privacy assessment.

    ``overall_score`` is the weighted sum of all categories on a 0-100
    scale and ``overall_grade`` its letter grade.
    """

    third_party_sharing: ScorecardCategory
    user_rights: ScorecardCategory
    data_collection: ScorecardCategory
    data_retention: ScorecardCategory
    purpose_clarity: ScorecardCategory
    security_measures: ScorecardCategory
    policy_transparency: ScorecardCategory
    overall_score: int = 0
    overall_grade: str = "F"
    top_concerns: list[str] = field(default_factory=list)
    positive_aspects: list[str] = field(default_factory=list)

    _ATTRIBUTES = {
        "thirdPartySharing": "third_party_sharing",
        "userRights": "user_rights",
        "dataCollection": "data_collection",
        "dataRetention": "data_retention",
        "purposeClarity": "purpose_clarity",
        "securityMeasures": "security_measures",
        "policyTransparency": "policy_transparency",
    }

    def categories(self) -> Iterator[tuple[str, ScorecardCategory]]:
        """Yield ``(key, category)`` pairs in fixed weight order."""
        for key in SCORECARD_WEIGHTS:
            yield key, getattr(self, self._ATTRIBUTES[key])

    def to_dict(self) -> dict:
        data: dict = {key: category.to_dict() for key, category in self.categories()}
        data.update(
            {
                "overall_score": self.overall_score,
                "overall_grade": self.overall_grade,
                "top_concerns": list(self.top_concerns),
                "positive_aspects": list(self.positive_aspects),
            }
        )
        return data


@dataclass
class PrivacyLink:
    label: str
    url: str
    purpose: LinkPurpose = LinkPurpose.OTHER

    def to_dict(self) -> dict:
        return {"label": self.label, "url": self.url, "purpose": self.purpose.value}


@dataclass
class PrivacyContact:
    type: ContactType
    value: str
    purpose: str = "Privacy inquiries"

    def to_dict(self) -> dict:
        return {"type": self.type.value, "value": self.value, "purpose": self.purpose}


@dataclass
class PrivacyProcedure:
    right: PrivacyRight
    title: str
    steps: list[str]
    requirements: Optional[list[str]] = None

    def to_dict(self) -> dict:
        data = {"right": self.right.value, "title": self.title, "steps": list(self.steps)}
        if self.requirements is not None:
            data["requirements"] = list(self.requirements)
        return data


@dataclass
class PrivacyRightsInfo:
    """Actionable information for exercising data-subject rights."""

    links: list[PrivacyLink] = field(default_factory=list)
    contacts: list[PrivacyContact] = field(default_factory=list)
    procedures: list[PrivacyProcedure] = field(default_factory=list)
    timeframes: list[str] = field(default_factory=list)

    @property
    def has_actionable_info(self) -> bool:
        """Timeframes alone are not actionable."""
        return bool(self.links or self.contacts or self.procedures)

    def to_dict(self) -> dict:
        return {
            "links": [link.to_dict() for link in self.links],
            "contacts": [contact.to_dict() for contact in self.contacts],
            "procedures": [proc.to_dict() for proc in self.procedures],
            "timeframes": list(self.timeframes),
            "has_actionable_info": self.has_actionable_info,
        }


@dataclass(frozen=True)
class PartialFailure:
    """A section whose completion request failed."""

    section: str
    error: str

    def to_dict(self) -> dict:
        return {"section": self.section, "error": self.error}


@dataclass(frozen=True)
class AnalysisResult:
    """Complete analysis result for one policy document."""

    id: str
    summaries: tuple[Summary, ...]
    risks: tuple[PrivacyRisk, ...] = ()
    key_terms: tuple[KeyTerm, ...] = ()
    scorecard: Optional[PrivacyScorecard] = None
    privacy_rights: Optional[PrivacyRightsInfo] = None
    llm_config: Optional[LLMConfig] = None
    partial_failures: tuple[PartialFailure, ...] = ()
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def has_partial_failures(self) -> bool:
        return len(self.partial_failures) > 0

    @property
    def failed_sections(self) -> list[str]:
        return [failure.section for failure in self.partial_failures]

    @property
    def risk_counts(self) -> dict[RiskLevel, int]:
        """Number of risks per severity, most severe first."""
        counts = Counter(risk.severity for risk in self.risks)
        return {level: counts.get(level, 0) for level in reversed(list(RiskLevel))}

    def summary(self, summary_type: SummaryType | str) -> Optional[Summary]:
        wanted = SummaryType(summary_type)
        for item in self.summaries:
            if item.type == wanted:
                return item
        return None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "summaries": [s.to_dict() for s in self.summaries],
            "risks": [r.to_dict() for r in self.risks],
            "key_terms": [t.to_dict() for t in self.key_terms],
            "scorecard": self.scorecard.to_dict() if self.scorecard else None,
            "privacy_rights": self.privacy_rights.to_dict() if self.privacy_rights else None,
            "timestamp": self.timestamp.isoformat(),
            "llm_config": self.llm_config.to_dict() if self.llm_config else None,
            "partial_failures": [f.to_dict() for f in self.partial_failures],
            "has_partial_failures": self.has_partial_failures,
        }
