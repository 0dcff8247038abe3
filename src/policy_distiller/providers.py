"""
LLM providers: the single ``complete(prompt)`` capability the analyzer needs.

OpenRouter, LM Studio and OpenAI speak the OpenAI chat-completions API and
share one provider built on the ``openai`` SDK. Anthropic uses the
``anthropic`` SDK and Ollama its native ``/api/generate`` endpoint over
``httpx``. Transport and rate-limit failures are retried with ``tenacity``;
once retries are exhausted, SDK errors surface as :class:`ProviderError`
subclasses.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

import anthropic
import httpx
import openai
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from .config import DEFAULT_CONTEXT_WINDOW, PROVIDER_PRESETS, RETRY_ATTEMPTS
from .errors import (
    InvalidResponseError,
    LLMTimeoutError,
    ProviderConfigError,
    ProviderError,
    RateLimitError,
)
from .models import LLMConfig, ProviderType

logger = logging.getLogger(__name__)

APP_TITLE = "Privacy Policy Distiller"

#: The Messages API rejects temperatures above 1.
ANTHROPIC_MAX_TEMPERATURE = 1.0

TIMEOUT_MESSAGE = "Analysis timed out. Please try again."
RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please wait a moment and try again."
INVALID_RESPONSE_MESSAGE = "Received invalid response from AI. Please try again."


def _is_retryable(exc: BaseException) -> bool:
    """Connection drops, 429s and 5xx responses are worth another attempt.
    Timeouts are not: the request already used its whole budget."""
    if isinstance(exc, (openai.APITimeoutError, anthropic.APITimeoutError, httpx.TimeoutException)):
        return False
    if isinstance(exc, (openai.APIConnectionError, anthropic.APIConnectionError, httpx.TransportError)):
        return True
    if isinstance(exc, (openai.RateLimitError, anthropic.RateLimitError)):
        return True
    if isinstance(exc, (openai.InternalServerError, anthropic.InternalServerError)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code == 429 or exc.response.status_code >= 500
    return False


_retry = retry(
    stop=stop_after_attempt(RETRY_ATTEMPTS),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception(_is_retryable),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)


class LLMProvider(ABC):
    """Interface for LLM completion backends.

    The analyzer only ever calls :meth:`complete`, so any object with a
    compatible coroutine can stand in for a provider (tests use stubs).
    """

    def __init__(self, config: LLMConfig) -> None:
        self.config = config

    @property
    def name(self) -> str:
        return PROVIDER_PRESETS[self.config.provider].name

    def validate_config(self) -> bool:
        """True when model, base URL and (for cloud backends) an API key are set."""
        preset = PROVIDER_PRESETS[self.config.provider]
        if preset.requires_api_key and not self.config.api_key:
            return False
        return bool(self.config.model and self.config.base_url)

    async def complete(self, prompt: str) -> str:
        """Send one prompt and return the completion text.

        Raises:
            ProviderConfigError: If the configuration is incomplete.
            LLMTimeoutError: If the backend did not answer in time.
            RateLimitError: If the backend kept answering HTTP 429.
            InvalidResponseError: If the answer carried no text.
            ProviderError: For any other backend failure.
        """
        if not self.validate_config():
            raise ProviderConfigError(f"Invalid {self.name} configuration")
        logger.debug("Requesting completion from %s (%s), prompt %d chars",
                     self.name, self.config.model, len(prompt))
        text = await self._complete(prompt)
        if not text or not text.strip():
            raise InvalidResponseError(INVALID_RESPONSE_MESSAGE)
        return text

    @abstractmethod
    async def _complete(self, prompt: str) -> str:
        """Backend-specific request; SDK errors are translated here."""

    async def aclose(self) -> None:
        """Release network resources held by the provider."""


class OpenAICompatibleProvider(LLMProvider):
    """OpenRouter, LM Studio and OpenAI through the ``openai`` SDK."""

    def __init__(self, config: LLMConfig, client: Optional[openai.AsyncOpenAI] = None) -> None:
        super().__init__(config)
        headers = {"X-Title": APP_TITLE} if config.provider == ProviderType.OPENROUTER else None
        # Local servers ignore the key, but the SDK insists on one
        self._client = client or openai.AsyncOpenAI(
            api_key=config.api_key or "not-needed",
            base_url=config.base_url,
            timeout=config.timeout,
            max_retries=0,
            default_headers=headers,
        )

    async def _complete(self, prompt: str) -> str:
        try:
            response = await self._request(prompt)
        except openai.APITimeoutError as e:
            raise LLMTimeoutError(TIMEOUT_MESSAGE) from e
        except openai.RateLimitError as e:
            raise RateLimitError(RATE_LIMIT_MESSAGE) from e
        except openai.APIStatusError as e:
            raise ProviderError(f"HTTP {e.status_code}: {e.message}") from e
        except openai.APIConnectionError as e:
            raise ProviderError(f"Could not reach {self.name}: {e}") from e

        if not response.choices or response.choices[0].message is None:
            raise InvalidResponseError(INVALID_RESPONSE_MESSAGE)
        return response.choices[0].message.content or ""

    @_retry
    async def _request(self, prompt: str):
        return await self._client.chat.completions.create(
            model=self.config.model,
            messages=[{"role": "user", "content": prompt}],
            temperature=self.config.temperature,
            max_tokens=self.config.max_tokens,
        )

    async def aclose(self) -> None:
        await self._client.close()


class AnthropicProvider(LLMProvider):
    """Claude models through the ``anthropic`` SDK."""

    def __init__(self, config: LLMConfig, client: Optional[anthropic.AsyncAnthropic] = None) -> None:
        super().__init__(config)
        self._client = client or anthropic.AsyncAnthropic(
            api_key=config.api_key,
            base_url=config.base_url,
            timeout=config.timeout,
            max_retries=0,
        )

    async def _complete(self, prompt: str) -> str:
        try:
            response = await self._request(prompt)
        except anthropic.APITimeoutError as e:
            raise LLMTimeoutError(TIMEOUT_MESSAGE) from e
        except anthropic.RateLimitError as e:
            raise RateLimitError(RATE_LIMIT_MESSAGE) from e
        except anthropic.APIStatusError as e:
            raise ProviderError(f"HTTP {e.status_code}: {e.message}") from e
        except anthropic.APIConnectionError as e:
            raise ProviderError(f"Could not reach {self.name}: {e}") from e

        return "".join(block.text for block in response.content if getattr(block, "type", None) == "text")

    @_retry
    async def _request(self, prompt: str):
        return await self._client.messages.create(
            model=self.config.model,
            max_tokens=self.config.max_tokens,
            temperature=min(self.config.temperature, ANTHROPIC_MAX_TEMPERATURE),
            messages=[{"role": "user", "content": prompt}],
        )

    async def aclose(self) -> None:
        await self._client.close()


class OllamaProvider(LLMProvider):
    """Local Ollama server via its native ``/api/generate`` endpoint."""

    def __init__(self, config: LLMConfig, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        super().__init__(config)
        self._transport = transport

    async def _complete(self, prompt: str) -> str:
        try:
            data = await self._request(prompt)
        except httpx.TimeoutException as e:
            raise LLMTimeoutError(TIMEOUT_MESSAGE) from e
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 429:
                raise RateLimitError(RATE_LIMIT_MESSAGE) from e
            raise ProviderError(f"HTTP {e.response.status_code}: {e.response.reason_phrase}") from e
        except httpx.TransportError as e:
            raise ProviderError(f"Could not reach {self.name} at {self.config.base_url}: {e}") from e
        except ValueError as e:
            raise InvalidResponseError(INVALID_RESPONSE_MESSAGE) from e

        if not isinstance(data, dict) or not isinstance(data.get("response"), str):
            raise InvalidResponseError(INVALID_RESPONSE_MESSAGE)
        return data["response"]

    @_retry
    async def _request(self, prompt: str):
        body = {
            "model": self.config.model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": self.config.temperature,
                "num_predict": self.config.max_tokens,
                "num_ctx": self.config.context_window or DEFAULT_CONTEXT_WINDOW,
            },
        }
        async with httpx.AsyncClient(timeout=self.config.timeout, transport=self._transport) as client:
            response = await client.post(f"{self.config.base_url}/api/generate", json=body)
            response.raise_for_status()
            return response.json()


_PROVIDER_CLASSES: dict[ProviderType, type[LLMProvider]] = {
    ProviderType.OPENROUTER: OpenAICompatibleProvider,
    ProviderType.LMSTUDIO: OpenAICompatibleProvider,
    ProviderType.OPENAI: OpenAICompatibleProvider,
    ProviderType.ANTHROPIC: AnthropicProvider,
    ProviderType.OLLAMA: OllamaProvider,
}


def create_provider(config: LLMConfig) -> LLMProvider:
    """Build the provider matching ``config.provider``.

    Raises:
        ProviderConfigError: If the provider is unknown.
    """
    try:
        provider_cls = _PROVIDER_CLASSES[ProviderType(config.provider)]
    except (KeyError, ValueError):
        raise ProviderConfigError(f"Unknown provider: {config.provider}") from None
    return provider_cls(config)
