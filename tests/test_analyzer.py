"""Tests for the analysis orchestrator."""

from __future__ import annotations

import asyncio

import pytest

from conftest import StubProvider
from policy_distiller.analyzer import PARALLEL_SETTLED, PARALLEL_START, SECTION_NAMES, PolicyAnalyzer
from policy_distiller.errors import AnalysisError, LLMTimeoutError, ProviderError, RateLimitError
from policy_distiller.models import DocumentInput, DocumentSource, RiskLevel, SummaryType
from policy_distiller.preprocessing import TextPreprocessor


class SlowProvider(StubProvider):
    """Stub that sleeps before answering."""

    def __init__(self, responses: dict[str, object], delay: float) -> None:
        super().__init__(responses)
        self.delay = delay

    async def complete(self, prompt: str) -> str:
        await asyncio.sleep(self.delay)
        return await super().complete(prompt)


class ExplodingPreprocessor(TextPreprocessor):
    def preprocess(self, text: str) -> str:
        raise ValueError("bad encoding")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def analyzer(stub_provider: StubProvider) -> PolicyAnalyzer:
    return PolicyAnalyzer.with_provider(stub_provider)


def _run(coro):
    return asyncio.run(coro)


# ---------------------------------------------------------------------------
# Parallel mode
# ---------------------------------------------------------------------------

class TestParallelAnalysis:
    """Default mode: concurrent requests with partial-failure tolerance."""

    def test_full_result(self, analyzer: PolicyAnalyzer, sample_policy_text: str):
        result = _run(analyzer.analyze(sample_policy_text))

        assert [s.type for s in result.summaries] == [SummaryType.BRIEF, SummaryType.DETAILED, SummaryType.FULL]
        assert result.summary(SummaryType.BRIEF).content.startswith("ACME collects")
        assert result.summary("full").content.startswith("1. Broad sharing")
        assert len(result.risks) == 2
        assert len(result.key_terms) == 2
        assert result.scorecard.overall_score == 46
        assert result.privacy_rights.has_actionable_info
        assert not result.has_partial_failures
        assert result.id

    def test_one_request_per_section(self, analyzer: PolicyAnalyzer, stub_provider: StubProvider,
                                     sample_policy_text: str):
        _run(analyzer.analyze(sample_policy_text))
        assert sorted(stub_provider.calls) == sorted(SECTION_NAMES)

    def test_prompts_carry_preprocessed_text(self, analyzer: PolicyAnalyzer, stub_provider: StubProvider,
                                             sample_policy_text: str):
        _run(analyzer.analyze(sample_policy_text))
        expected = TextPreprocessor().preprocess(sample_policy_text)
        assert all(f"<document>\n{expected}\n</document>" in prompt for prompt in stub_provider.prompts)

    def test_key_points_derived_from_summaries(self, analyzer: PolicyAnalyzer, sample_policy_text: str):
        result = _run(analyzer.analyze(sample_policy_text))
        assert result.summary(SummaryType.DETAILED).key_points == ["Name and email", "Precise location"]

    def test_single_failure_is_recorded(self, section_responses: dict[str, object], sample_policy_text: str):
        section_responses["key terms"] = RateLimitError("Rate limit exceeded")
        analyzer = PolicyAnalyzer.with_provider(StubProvider(section_responses))

        result = _run(analyzer.analyze(sample_policy_text))

        assert result.failed_sections == ["key terms"]
        assert result.partial_failures[0].error == "Rate limit exceeded"
        assert result.key_terms == ()
        assert len(result.risks) == 2
        assert result.scorecard is not None

    def test_failed_summaries_use_placeholders(self, section_responses: dict[str, object],
                                               sample_policy_text: str):
        section_responses["brief summary"] = ProviderError("boom")
        section_responses["full analysis"] = RuntimeError()
        analyzer = PolicyAnalyzer.with_provider(StubProvider(section_responses))

        result = _run(analyzer.analyze(sample_policy_text))

        assert result.summary("brief").content == "Brief summary unavailable due to an error."
        assert result.summary("full").content == "Full analysis unavailable due to an error."
        assert result.failed_sections == ["brief summary", "full analysis"]
        assert result.partial_failures[1].error == "Unknown error"

    def test_failed_structured_sections(self, section_responses: dict[str, object], sample_policy_text: str):
        section_responses["privacy scorecard"] = ProviderError("down")
        section_responses["take action"] = ProviderError("down")
        analyzer = PolicyAnalyzer.with_provider(StubProvider(section_responses))

        result = _run(analyzer.analyze(sample_policy_text))

        assert result.scorecard is None
        assert result.privacy_rights is None
        assert result.failed_sections == ["privacy scorecard", "take action"]

    def test_every_section_failing(self, sample_policy_text: str):
        provider = StubProvider({name: ProviderError("offline") for name in SECTION_NAMES})
        result = _run(PolicyAnalyzer.with_provider(provider).analyze(sample_policy_text))
        assert result.failed_sections == list(SECTION_NAMES)
        assert result.risks == ()

    def test_unparseable_response_is_not_a_failure(self, section_responses: dict[str, object],
                                                   sample_policy_text: str):
        section_responses["privacy risks"] = "I cannot produce JSON today."
        analyzer = PolicyAnalyzer.with_provider(StubProvider(section_responses))
        result = _run(analyzer.analyze(sample_policy_text))
        assert result.risks == ()
        assert not result.has_partial_failures

    def test_progress_checkpoints(self, analyzer: PolicyAnalyzer, sample_policy_text: str):
        updates: list[tuple[int, str]] = []
        _run(analyzer.analyze(sample_policy_text, lambda p, s: updates.append((p, s))))
        assert updates == [PARALLEL_START, PARALLEL_SETTLED]


# ---------------------------------------------------------------------------
# Sequential mode
# ---------------------------------------------------------------------------

class TestSequentialAnalysis:
    """Sequential mode: fixed order, first failure aborts."""

    def test_fixed_order(self, analyzer: PolicyAnalyzer, stub_provider: StubProvider, sample_policy_text: str):
        result = _run(analyzer.analyze(sample_policy_text, use_parallel=False))
        assert stub_provider.calls == list(SECTION_NAMES)
        assert not result.has_partial_failures
        assert result.risks[0].severity == RiskLevel.HIGH

    def test_progress_increases(self, analyzer: PolicyAnalyzer, sample_policy_text: str):
        updates: list[tuple[int, str]] = []
        _run(analyzer.analyze(sample_policy_text, lambda p, s: updates.append((p, s)), use_parallel=False))
        percents = [p for p, _ in updates]
        assert len(updates) == len(SECTION_NAMES)
        assert percents == sorted(percents)
        assert len(set(percents)) == len(percents)

    def test_failure_aborts(self, section_responses: dict[str, object], sample_policy_text: str):
        section_responses["key terms"] = RateLimitError("Rate limit exceeded")
        provider = StubProvider(section_responses)
        analyzer = PolicyAnalyzer.with_provider(provider)

        with pytest.raises(AnalysisError, match="Analysis failed: Rate limit exceeded") as exc_info:
            _run(analyzer.analyze(sample_policy_text, use_parallel=False))

        assert isinstance(exc_info.value.__cause__, RateLimitError)
        assert provider.calls == ["brief summary", "detailed summary", "full analysis", "privacy risks", "key terms"]

    def test_failure_without_message(self, section_responses: dict[str, object], sample_policy_text: str):
        section_responses["brief summary"] = RuntimeError()
        analyzer = PolicyAnalyzer.with_provider(StubProvider(section_responses))
        with pytest.raises(AnalysisError, match="Analysis failed: Unknown error"):
            _run(analyzer.analyze(sample_policy_text, use_parallel=False))


# ---------------------------------------------------------------------------
# Structural failures, timeouts and entry points
# ---------------------------------------------------------------------------

class TestAnalyzerBehaviour:
    """Preprocessing failures, deadlines and alternative entry points."""

    def test_preprocessing_failure_is_wrapped(self, stub_provider: StubProvider, sample_policy_text: str):
        analyzer = PolicyAnalyzer.with_provider(stub_provider, preprocessor=ExplodingPreprocessor())
        with pytest.raises(AnalysisError, match="Analysis failed: bad encoding"):
            _run(analyzer.analyze(sample_policy_text))
        assert stub_provider.calls == []

    def test_long_document_truncated_before_prompting(self, stub_provider: StubProvider):
        analyzer = PolicyAnalyzer.with_provider(stub_provider, preprocessor=TextPreprocessor(max_length=200))
        _run(analyzer.analyze("We collect data. " * 100))
        for prompt in stub_provider.prompts:
            body = prompt.rsplit("<document>\n", 1)[1].split("\n</document>")[0]
            assert len(body) <= 203

    def test_request_timeout_in_parallel_mode(self, section_responses: dict[str, object],
                                              sample_policy_text: str):
        provider = SlowProvider(section_responses, delay=0.5)
        analyzer = PolicyAnalyzer.with_provider(provider, request_timeout=0.01)

        result = _run(analyzer.analyze(sample_policy_text))

        assert result.failed_sections == list(SECTION_NAMES)
        assert result.partial_failures[0].error == "Request timed out after 0.01 seconds"

    def test_request_timeout_in_sequential_mode(self, section_responses: dict[str, object],
                                                sample_policy_text: str):
        provider = SlowProvider(section_responses, delay=0.5)
        analyzer = PolicyAnalyzer.with_provider(provider, request_timeout=0.01)

        with pytest.raises(AnalysisError) as exc_info:
            _run(analyzer.analyze(sample_policy_text, use_parallel=False))
        assert isinstance(exc_info.value.__cause__, LLMTimeoutError)

    def test_no_timeout_by_default(self, section_responses: dict[str, object], sample_policy_text: str):
        analyzer = PolicyAnalyzer.with_provider(SlowProvider(section_responses, delay=0.01))
        assert analyzer.request_timeout is None
        assert not _run(analyzer.analyze(sample_policy_text)).has_partial_failures

    def test_analyze_document(self, analyzer: PolicyAnalyzer, sample_policy_text: str):
        document = DocumentInput(text=sample_policy_text, source=DocumentSource.FILE, origin="policy.txt")
        result = _run(analyzer.analyze_document(document))
        assert len(result.summaries) == 3

    def test_analyze_sync(self, analyzer: PolicyAnalyzer, sample_policy_text: str):
        result = analyzer.analyze_sync(sample_policy_text, use_parallel=False)
        assert result.scorecard.overall_grade == "F"

    def test_config_taken_from_provider(self, llm_config, stub_provider: StubProvider):
        stub_provider.config = llm_config
        assert PolicyAnalyzer.with_provider(stub_provider).config is llm_config

    def test_result_config_has_no_api_key(self, llm_config, stub_provider: StubProvider,
                                          sample_policy_text: str):
        analyzer = PolicyAnalyzer(config=llm_config, provider=stub_provider)
        data = _run(analyzer.analyze(sample_policy_text)).to_dict()
        assert data["llm_config"]["model"] == "llama3.1"
        assert "api_key" not in data["llm_config"]


# ---------------------------------------------------------------------------
# Aspects
# ---------------------------------------------------------------------------

class TestAnalyzeAspects:
    """Targeted single-aspect requests."""

    @pytest.fixture
    def aspect_provider(self) -> StubProvider:
        return StubProvider({
            "data_collection": "Here is the summary: Name, email and location.",
            "data_sharing": "Shared with advertisers.",
            "user_rights": "Deletion on request.",
        })

    def test_selected_aspects(self, aspect_provider: StubProvider, sample_policy_text: str):
        analyzer = PolicyAnalyzer.with_provider(aspect_provider)
        results = _run(analyzer.analyze_aspects(sample_policy_text, ["data_collection", "user_rights"]))
        assert results == {
            "data_collection": "Name, email and location.",
            "user_rights": "Deletion on request.",
        }
        assert aspect_provider.calls == ["data_collection", "user_rights"]

    def test_unknown_and_duplicate_aspects_skipped(self, aspect_provider: StubProvider, sample_policy_text: str):
        analyzer = PolicyAnalyzer.with_provider(aspect_provider)
        results = _run(analyzer.analyze_aspects(
            sample_policy_text, ["cookies", "data_sharing", "data_sharing", "DATA_SHARING"]))
        assert list(results) == ["data_sharing"]
        assert aspect_provider.calls == ["data_sharing"]

    def test_no_aspects(self, aspect_provider: StubProvider, sample_policy_text: str):
        analyzer = PolicyAnalyzer.with_provider(aspect_provider)
        assert _run(analyzer.analyze_aspects(sample_policy_text, [])) == {}

    def test_provider_error_propagates(self, sample_policy_text: str):
        provider = StubProvider({"data_sharing": RateLimitError("slow down")})
        analyzer = PolicyAnalyzer.with_provider(provider)
        with pytest.raises(RateLimitError):
            _run(analyzer.analyze_aspects(sample_policy_text, ["data_sharing"]))
