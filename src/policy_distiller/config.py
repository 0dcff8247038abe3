"""Configuration: provider presets, processing limits and ``LLMConfig`` loading.

Settings are resolved in this order (first wins):

1. Explicit arguments to :func:`load_config`.
2. Environment variables (a ``.env`` file is loaded first).
3. Provider presets below.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import find_dotenv, load_dotenv

from .errors import ConfigError
from .models import LLMConfig, ProviderType

# ---------------------------------------------------------------------------
# Text processing
# ---------------------------------------------------------------------------

MAX_DOCUMENT_LENGTH = 2_000_000  # ~500k tokens for large context windows
MIN_DOCUMENT_LENGTH = 100
CHUNK_SIZE = 4000
CHUNK_OVERLAP = 200
WORDS_PER_MINUTE = 200

# ---------------------------------------------------------------------------
# LLM defaults
# ---------------------------------------------------------------------------

DEFAULT_TEMPERATURE = 0.7
DEFAULT_TIMEOUT = 600.0  # local models may need minutes for large documents
DEFAULT_CONTEXT_WINDOW = 8192
RETRY_ATTEMPTS = 3

ENV_PREFIX = "POLICY_DISTILLER_"


@dataclass(frozen=True)
class ProviderPreset:
    """Static defaults for one LLM backend."""

    name: str
    base_url: str
    requires_api_key: bool
    default_model: str
    max_tokens: int
    api_key_env: Optional[str] = None


PROVIDER_PRESETS: dict[ProviderType, ProviderPreset] = {
    ProviderType.OPENROUTER: ProviderPreset(
        name="OpenRouter",
        base_url="https://openrouter.ai/api/v1",
        requires_api_key=True,
        default_model="anthropic/claude-3.5-sonnet",
        max_tokens=32000,
        api_key_env="OPENROUTER_API_KEY",
    ),
    ProviderType.OLLAMA: ProviderPreset(
        name="Ollama",
        base_url="http://localhost:11434",
        requires_api_key=False,
        default_model="llama3.1",
        max_tokens=4096,
    ),
    ProviderType.LMSTUDIO: ProviderPreset(
        name="LM Studio",
        base_url="http://localhost:1234/v1",
        requires_api_key=False,
        default_model="local-model",
        max_tokens=4096,
    ),
    ProviderType.OPENAI: ProviderPreset(
        name="OpenAI",
        base_url="https://api.openai.com/v1",
        requires_api_key=True,
        default_model="gpt-4-turbo",
        max_tokens=4096,
        api_key_env="OPENAI_API_KEY",
    ),
    ProviderType.ANTHROPIC: ProviderPreset(
        name="Anthropic",
        base_url="https://api.anthropic.com",
        requires_api_key=True,
        default_model="claude-3-5-sonnet-latest",
        max_tokens=4096,
        api_key_env="ANTHROPIC_API_KEY",
    ),
}


def _env(name: str) -> Optional[str]:
    value = os.getenv(ENV_PREFIX + name)
    return value.strip() if value and value.strip() else None


def _parse_provider(value: str | ProviderType) -> ProviderType:
    try:
        return ProviderType(str(getattr(value, "value", value)).lower().strip())
    except ValueError:
        choices = ", ".join(p.value for p in ProviderType)
        raise ConfigError(f"Unknown provider: {value} (expected one of {choices})") from None


def _parse_number(name: str, raw: str, kind: type) -> float | int:
    try:
        return kind(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}") from None


def load_config(
    provider: str | ProviderType | None = None,
    model: Optional[str] = None,
    api_key: Optional[str] = None,
    base_url: Optional[str] = None,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
    timeout: Optional[float] = None,
    dotenv: bool = True,
) -> LLMConfig:
    """Build an ``LLMConfig`` from arguments, the environment and presets.

    Args:
        provider: Backend name; defaults to ``$POLICY_DISTILLER_PROVIDER``
            or ``openrouter``.
        model: Model identifier; defaults to the preset's model.
        api_key: Secret; defaults to the provider's key variable.
        base_url: API root; defaults to the preset URL.
        temperature: Sampling temperature.
        max_tokens: Completion length bound.
        timeout: Per-request transport timeout in seconds.
        dotenv: Load the nearest ``.env`` file (searched upward from the
            working directory) before reading the environment.

    Returns:
        A frozen LLMConfig.

    Raises:
        ConfigError: On an unknown provider or malformed numeric value.
    """
    if dotenv:
        load_dotenv(find_dotenv(usecwd=True))

    provider_type = _parse_provider(provider or _env("PROVIDER") or ProviderType.OPENROUTER)
    preset = PROVIDER_PRESETS[provider_type]

    if api_key is None and preset.api_key_env:
        api_key = os.getenv(preset.api_key_env, "")

    if temperature is None:
        raw = _env("TEMPERATURE")
        temperature = _parse_number("TEMPERATURE", raw, float) if raw else DEFAULT_TEMPERATURE
    if max_tokens is None:
        raw = _env("MAX_TOKENS")
        max_tokens = _parse_number("MAX_TOKENS", raw, int) if raw else preset.max_tokens
    if timeout is None:
        raw = _env("TIMEOUT")
        timeout = _parse_number("TIMEOUT", raw, float) if raw else DEFAULT_TIMEOUT

    if not 0 <= temperature <= 2:
        raise ConfigError(f"temperature must be between 0 and 2, got {temperature}")
    if max_tokens <= 0:
        raise ConfigError(f"max_tokens must be positive, got {max_tokens}")

    return LLMConfig(
        provider=provider_type,
        model=model or _env("MODEL") or preset.default_model,
        api_key=api_key or "",
        base_url=(base_url or _env("BASE_URL") or preset.base_url).rstrip("/"),
        temperature=float(temperature),
        max_tokens=int(max_tokens),
        context_window=None if preset.requires_api_key else DEFAULT_CONTEXT_WINDOW,
        timeout=float(timeout),
    )
