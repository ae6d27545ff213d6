import asyncio
import logging
from collections.abc import AsyncGenerator
from typing import Any

import litellm

from src.ai.errors import (
    AIAuthenticationError,
    AIProviderError,
    AIRateLimitOrQuotaError,
    AIRuntimeError,
    AITimeoutError,
)
from src.ai.providers import AIConfig, completion_kwargs
from src.config.settings import get_settings


logger = logging.getLogger(__name__)


def _map_error(error: Exception) -> AIRuntimeError:
    if isinstance(error, AIRuntimeError):
        return error
    if isinstance(error, litellm.RateLimitError):
        return AIRateLimitOrQuotaError(str(error))
    if isinstance(error, (asyncio.TimeoutError, litellm.Timeout)):
        return AITimeoutError("Model completion timed out")
    if isinstance(error, litellm.AuthenticationError):
        return AIAuthenticationError("The AI provider rejected the configured API key")
    return AIProviderError(f"Model completion failed: {error}")


class LLMClient:
    """Streams chat completions from the user's own provider through LiteLLM."""

    def __init__(
        self,
        *,
        timeout: float,
        temperature: float,
        max_tokens: int | None = None,
        ollama_api_base: str | None = None,
    ) -> None:
        self._timeout = timeout
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._ollama_api_base = ollama_api_base

    @classmethod
    def from_settings(cls) -> "LLMClient":
        settings = get_settings()
        return cls(
            timeout=settings.AI_REQUEST_TIMEOUT,
            temperature=settings.AI_TEMPERATURE_DEFAULT,
            max_tokens=settings.AI_MAX_TOKENS_DEFAULT,
            ollama_api_base=settings.OLLAMA_API_BASE,
        )

    def _build_kwargs(self, config: AIConfig, messages: list[dict[str, Any]]) -> dict[str, Any]:
        kwargs = completion_kwargs(config, ollama_api_base=self._ollama_api_base)
        kwargs.update(
            messages=messages,
            temperature=self._temperature,
            timeout=self._timeout,
            stream=True,
        )
        if self._max_tokens is not None:
            kwargs["max_tokens"] = self._max_tokens
        return kwargs

    async def stream_chat(
        self,
        config: AIConfig,
        messages: list[dict[str, Any]],
        system_prompt: str | None = None,
    ) -> AsyncGenerator[str, None]:
        """Yield text deltas of the assistant reply.

        Provider failures are raised as ``AIRuntimeError`` subclasses.
        """
        request_messages = list(messages)
        if system_prompt:
            request_messages.insert(0, {"role": "system", "content": system_prompt})

        kwargs = self._build_kwargs(config, request_messages)
        try:
            response = await asyncio.wait_for(litellm.acompletion(**kwargs), timeout=self._timeout)
            async for chunk in response:
                if not chunk or not getattr(chunk, "choices", None):
                    continue
                delta = chunk.choices[0].delta
                content = getattr(delta, "content", None)
                if content:
                    yield content
        except Exception as e:
            mapped = _map_error(e)
            logger.warning("Chat completion failed for %s: %s", config.provider.value, mapped.category.value)
            raise mapped from e
