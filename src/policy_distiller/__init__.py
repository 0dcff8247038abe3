"""Policy Distiller -- LLM-powered privacy policy analysis."""

__version__ = "0.3.0"

from .analyzer import SECTION_NAMES, PolicyAnalyzer
from .config import load_config
from .errors import (
    AnalysisError,
    ConfigError,
    InvalidResponseError,
    LLMTimeoutError,
    PolicyDistillerError,
    ProviderConfigError,
    ProviderError,
    RateLimitError,
)
from .models import (
    SCORECARD_WEIGHTS,
    AnalysisResult,
    ContactType,
    DocumentInput,
    DocumentSource,
    KeyTerm,
    LinkPurpose,
    LLMConfig,
    PartialFailure,
    PrivacyContact,
    PrivacyLink,
    PrivacyProcedure,
    PrivacyRight,
    PrivacyRightsInfo,
    PrivacyRisk,
    PrivacyScorecard,
    ProviderType,
    RiskLevel,
    ScorecardCategory,
    Summary,
    SummaryType,
)
from .preprocessing import TextPreprocessor
from .providers import (
    AnthropicProvider,
    LLMProvider,
    OllamaProvider,
    OpenAICompatibleProvider,
    create_provider,
)

__all__ = [
    # Core
    "PolicyAnalyzer",
    "SECTION_NAMES",
    "AnalysisResult",
    "TextPreprocessor",
    # Configuration
    "LLMConfig",
    "ProviderType",
    "load_config",
    # Providers
    "LLMProvider",
    "OpenAICompatibleProvider",
    "AnthropicProvider",
    "OllamaProvider",
    "create_provider",
    # Records
    "DocumentInput",
    "DocumentSource",
    "Summary",
    "SummaryType",
    "PrivacyRisk",
    "RiskLevel",
    "KeyTerm",
    "PrivacyScorecard",
    "ScorecardCategory",
    "SCORECARD_WEIGHTS",
    "PrivacyRightsInfo",
    "PrivacyLink",
    "LinkPurpose",
    "PrivacyContact",
    "ContactType",
    "PrivacyProcedure",
    "PrivacyRight",
    "PartialFailure",
    # Errors
    "PolicyDistillerError",
    "ConfigError",
    "ProviderConfigError",
    "ProviderError",
    "LLMTimeoutError",
    "RateLimitError",
    "InvalidResponseError",
    "AnalysisError",
]
