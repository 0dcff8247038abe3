"""Exception hierarchy for the privacy policy analyzer."""

from __future__ import annotations


class PolicyDistillerError(Exception):
    """Base class for all errors raised by this package."""


class ConfigError(PolicyDistillerError):
    """Invalid or incomplete configuration."""


class ProviderConfigError(ConfigError):
    """An LLM provider cannot be built from the given configuration."""


class ProviderError(PolicyDistillerError):
    """A completion request to the LLM backend failed."""


class LLMTimeoutError(ProviderError):
    """The LLM backend did not answer in time."""


class RateLimitError(ProviderError):
    """The LLM backend rejected the request with HTTP 429."""


class InvalidResponseError(ProviderError):
    """The LLM backend answered, but without any completion text."""


class AnalysisError(PolicyDistillerError):
    """Structural failure of a whole ``analyze()`` call."""
