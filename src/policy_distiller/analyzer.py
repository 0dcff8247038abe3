"""Policy analyzer orchestrating preprocessing, prompting and response parsing.

The ``PolicyAnalyzer`` class is the primary entry point. It preprocesses
the policy text once, builds one prompt per analysis section, sends them
to an injected LLM provider and assembles the parsed answers into an
``AnalysisResult``.

Two execution modes differ in how they treat failures:

* parallel (default): all seven requests run concurrently; a failed
  request degrades its own section and is recorded as a partial failure.
* sequential: requests run one at a time in a fixed order; the first
  failure aborts the whole analysis.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Optional

from . import prompts
from .config import load_config
from .errors import AnalysisError, LLMTimeoutError
from .models import (
    AnalysisResult,
    DocumentInput,
    LLMConfig,
    PartialFailure,
    Summary,
    SummaryType,
)
from .preprocessing import TextPreprocessor
from .providers import LLMProvider, create_provider
from .response_parser import (
    clean_response,
    extract_key_points,
    parse_key_terms,
    parse_privacy_rights,
    parse_risks,
    parse_scorecard,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, str], None]


@dataclass(frozen=True)
class _Section:
    """One analysis section: how to ask for it and how to read the answer."""

    name: str
    build_prompt: Callable[[str], str]
    parse: Callable[[str], Any]
    fallback: Any
    progress: int
    step: str


#: Fixed section order; outcomes are always mapped back by this index.
SECTIONS: tuple[_Section, ...] = (
    _Section("brief summary", prompts.brief_summary, clean_response,
             "Brief summary unavailable due to an error.", 35, "Generating brief summary..."),
    _Section("detailed summary", prompts.detailed_summary, clean_response,
             "Detailed summary unavailable due to an error.", 45, "Generating detailed summary..."),
    _Section("full analysis", prompts.full_analysis, clean_response,
             "Full analysis unavailable due to an error.", 55, "Generating comprehensive analysis..."),
    _Section("privacy risks", prompts.privacy_risks, parse_risks,
             [], 68, "Identifying privacy risks..."),
    _Section("key terms", prompts.key_terms, parse_key_terms,
             [], 78, "Extracting key terms..."),
    _Section("privacy scorecard", prompts.privacy_scorecard, parse_scorecard,
             None, 82, "Calculating privacy scorecard..."),
    _Section("take action", prompts.exercise_privacy_rights, parse_privacy_rights,
             None, 92, "Extracting actionable rights info..."),
)

SECTION_NAMES: tuple[str, ...] = tuple(section.name for section in SECTIONS)

PARALLEL_START = (40, "Analyzing policy in parallel...")
PARALLEL_SETTLED = (90, "Processing results...")


def _error_message(error: BaseException) -> str:
    return str(error) or "Unknown error"


class PolicyAnalyzer:
    """High-level privacy policy analyzer.

    Example::

        analyzer = PolicyAnalyzer(load_config("ollama", model="llama3.1"))
        result = analyzer.analyze_sync(policy_text)

        print(result.summary("brief").content)
        print(result.scorecard.overall_grade)

    Args:
        config: LLM configuration. Loaded from the environment when neither
            a config nor a provider is given.
        provider: Pre-built provider (dependency injection). Built from
            ``config`` when omitted.
        preprocessor: Custom TextPreprocessor instance (optional).
        request_timeout: Optional deadline in seconds for each completion.
            ``None`` waits indefinitely.
    """

    def __init__(
        self,
        config: LLMConfig | None = None,
        provider: LLMProvider | None = None,
        preprocessor: TextPreprocessor | None = None,
        request_timeout: float | None = None,
    ) -> None:
        if config is None and provider is None:
            config = load_config()
        self.config = config if config is not None else getattr(provider, "config", None)
        self.provider = provider if provider is not None else create_provider(config)
        self._preprocessor = preprocessor or TextPreprocessor()
        self.request_timeout = request_timeout

    @classmethod
    def with_provider(cls, provider: LLMProvider, config: LLMConfig | None = None, **kwargs) -> PolicyAnalyzer:
        """Create an analyzer around an externally built provider."""
        return cls(config=config, provider=provider, **kwargs)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def analyze(
        self,
        text: str,
        progress_callback: Optional[ProgressCallback] = None,
        use_parallel: bool = True,
    ) -> AnalysisResult:
        """Run the full seven-section analysis on policy text.

        Args:
            text: Raw policy text.
            progress_callback: Called with ``(percent, step description)``.
            use_parallel: Fan all requests out concurrently (tolerating
                per-section failures) instead of running them in order.

        Returns:
            Complete AnalysisResult.

        Raises:
            AnalysisError: If preprocessing fails, or if any request fails
                in sequential mode.
        """
        try:
            document = self._prepare(text)
            if use_parallel:
                return await self._analyze_parallel(document, progress_callback)
            return await self._analyze_sequential(document, progress_callback)
        except AnalysisError:
            raise
        except Exception as e:
            logger.error("Analysis failed: %s", _error_message(e))
            raise AnalysisError(f"Analysis failed: {_error_message(e)}") from e

    async def analyze_document(
        self,
        document: DocumentInput,
        progress_callback: Optional[ProgressCallback] = None,
        use_parallel: bool = True,
    ) -> AnalysisResult:
        return await self.analyze(document.text, progress_callback, use_parallel)

    def analyze_sync(
        self,
        text: str,
        progress_callback: Optional[ProgressCallback] = None,
        use_parallel: bool = True,
    ) -> AnalysisResult:
        """Blocking wrapper around :meth:`analyze` for synchronous callers."""
        return asyncio.run(self.analyze(text, progress_callback, use_parallel))

    async def analyze_aspects(self, text: str, aspects: list[str]) -> dict[str, str]:
        """Analyze selected aspects of a policy, one request per aspect.

        Recognized aspects are ``data_collection``, ``data_sharing`` and
        ``user_rights``; anything else is skipped. Requests run
        sequentially and a failed request propagates.

        Returns:
            Mapping of aspect name to cleaned prose.
        """
        document = self._prepare(text)
        results: dict[str, str] = {}
        for aspect in aspects:
            build_prompt = prompts.ASPECT_PROMPTS.get(aspect)
            if build_prompt is None:
                logger.debug("Skipping unknown aspect %r", aspect)
                continue
            if aspect in results:
                continue
            response = await self._complete(build_prompt(document))
            results[aspect] = clean_response(response)
        return results

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _prepare(self, text: str) -> str:
        return self._preprocessor.truncate(self._preprocessor.preprocess(text))

    async def _complete(self, prompt: str) -> str:
        if self.request_timeout is None:
            return await self.provider.complete(prompt)
        try:
            return await asyncio.wait_for(self.provider.complete(prompt), self.request_timeout)
        except asyncio.TimeoutError:
            raise LLMTimeoutError(f"Request timed out after {self.request_timeout:g} seconds") from None

    async def _analyze_parallel(
        self, document: str, progress_callback: Optional[ProgressCallback]
    ) -> AnalysisResult:
        _report(progress_callback, *PARALLEL_START)
        logger.info("Sending %d requests in parallel (%d chars)", len(SECTIONS), len(document))

        outcomes = await asyncio.gather(
            *(self._complete(section.build_prompt(document)) for section in SECTIONS),
            return_exceptions=True,
        )

        _report(progress_callback, *PARALLEL_SETTLED)

        values: list[Any] = []
        failures: list[PartialFailure] = []
        for section, outcome in zip(SECTIONS, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                logger.warning("Section %r failed: %s", section.name, _error_message(outcome))
                failures.append(PartialFailure(section=section.name, error=_error_message(outcome)))
                values.append(section.fallback)
            else:
                values.append(section.parse(outcome))

        return self._build_result(values, failures)

    async def _analyze_sequential(
        self, document: str, progress_callback: Optional[ProgressCallback]
    ) -> AnalysisResult:
        values: list[Any] = []
        for section in SECTIONS:
            _report(progress_callback, section.progress, section.step)
            response = await self._complete(section.build_prompt(document))
            values.append(section.parse(response))
        return self._build_result(values, [])

    def _build_result(self, values: list[Any], failures: list[PartialFailure]) -> AnalysisResult:
        brief, detailed, full, risks, key_terms, scorecard, privacy_rights = values
        summaries = tuple(
            Summary(type=summary_type, content=content, key_points=extract_key_points(content))
            for summary_type, content in (
                (SummaryType.BRIEF, brief),
                (SummaryType.DETAILED, detailed),
                (SummaryType.FULL, full),
            )
        )
        return AnalysisResult(
            id=uuid.uuid4().hex,
            summaries=summaries,
            risks=tuple(risks),
            key_terms=tuple(key_terms),
            scorecard=scorecard,
            privacy_rights=privacy_rights,
            llm_config=self.config,
            partial_failures=tuple(failures),
        )


def _report(callback: Optional[ProgressCallback], progress: int, step: str) -> None:
    if callback is not None:
        callback(progress, step)
