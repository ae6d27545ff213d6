"""Tests for the streaming LiteLLM client."""

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import litellm
import pytest

from src.ai.client import LLMClient, _map_error
from src.ai.errors import AIProviderError, AIRuntimeErrorCategory, AITimeoutError
from src.ai.providers import AIConfig, AIProvider


CONFIG = AIConfig(AIProvider.OPENAI, "gpt-4o-mini", "sk-test123")


def _chunk(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=content))])


class _Stream:
    """Minimal async iterator standing in for a LiteLLM stream."""

    def __init__(self, chunks: list, error: Exception | None = None) -> None:
        self._chunks = list(chunks)
        self._error = error

    def __aiter__(self) -> "_Stream":
        return self

    async def __anext__(self) -> SimpleNamespace:
        if self._chunks:
            return self._chunks.pop(0)
        if self._error is not None:
            raise self._error
        raise StopAsyncIteration


@pytest.fixture
def llm_client() -> LLMClient:
    return LLMClient(timeout=5, temperature=0.2, max_tokens=256, ollama_api_base="http://ollama:11434")


async def _collect(client: LLMClient, **kwargs) -> list[str]:
    return [delta async for delta in client.stream_chat(CONFIG, [{"role": "user", "content": "hi"}], **kwargs)]


class TestStreamChat:
    """Streaming deltas and request arguments."""

    @pytest.mark.asyncio
    async def test_yields_non_empty_deltas(self, llm_client: LLMClient) -> None:
        stream = _Stream([_chunk("Hel"), _chunk(None), SimpleNamespace(choices=[]), _chunk("lo")])
        with patch("src.ai.client.litellm.acompletion", new=AsyncMock(return_value=stream)):
            assert await _collect(llm_client) == ["Hel", "lo"]

    @pytest.mark.asyncio
    async def test_request_arguments(self, llm_client: LLMClient) -> None:
        mock_completion = AsyncMock(return_value=_Stream([_chunk("ok")]))
        with patch("src.ai.client.litellm.acompletion", new=mock_completion):
            await _collect(llm_client, system_prompt="Be brief.")

        kwargs = mock_completion.await_args.kwargs
        assert kwargs["model"] == "openai/gpt-4o-mini"
        assert kwargs["api_key"] == "sk-test123"
        assert kwargs["stream"] is True
        assert kwargs["max_tokens"] == 256
        assert kwargs["temperature"] == 0.2
        assert kwargs["messages"] == [
            {"role": "system", "content": "Be brief."},
            {"role": "user", "content": "hi"},
        ]

    @pytest.mark.asyncio
    async def test_error_mid_stream_is_mapped(self, llm_client: LLMClient) -> None:
        stream = _Stream([_chunk("partial")], error=RuntimeError("connection reset"))
        received: list[str] = []
        with patch("src.ai.client.litellm.acompletion", new=AsyncMock(return_value=stream)):
            with pytest.raises(AIProviderError):
                async for delta in llm_client.stream_chat(CONFIG, []):
                    received.append(delta)
        assert received == ["partial"]

    @pytest.mark.asyncio
    async def test_timeout_is_mapped(self, llm_client: LLMClient) -> None:
        with patch("src.ai.client.litellm.acompletion", new=AsyncMock(side_effect=asyncio.TimeoutError)):
            with pytest.raises(AITimeoutError):
                await _collect(llm_client)


class TestErrorMapping:
    """LiteLLM exceptions map onto the runtime error taxonomy."""

    def test_rate_limit(self) -> None:
        error = litellm.RateLimitError(message="slow down", llm_provider="openai", model="gpt-4o")
        assert _map_error(error).category is AIRuntimeErrorCategory.RATE_LIMIT_OR_QUOTA

    def test_authentication(self) -> None:
        error = litellm.AuthenticationError(message="bad key", llm_provider="openai", model="gpt-4o")
        assert _map_error(error).category is AIRuntimeErrorCategory.AUTHENTICATION

    def test_unknown_error_is_provider_failure(self) -> None:
        assert _map_error(ValueError("boom")).category is AIRuntimeErrorCategory.PROVIDER_FAILURE

    def test_already_mapped_error_passes_through(self) -> None:
        error = AITimeoutError("late")
        assert _map_error(error) is error
