"""Supported AI providers and the single mapping from provider to LiteLLM call."""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from src.ai.errors import AIConfigurationError


class AIProvider(str, Enum):
    """AI providers a user can bring a key for."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    OLLAMA = "ollama"


@dataclass(frozen=True)
class ModelOption:
    value: str
    label: str


@dataclass(frozen=True)
class ProviderSpec:
    """How one provider is addressed through LiteLLM."""

    litellm_prefix: str
    requires_api_key: bool
    api_key_prefix: str | None
    models: tuple[ModelOption, ...]


PROVIDERS: dict[AIProvider, ProviderSpec] = {
    AIProvider.OPENAI: ProviderSpec(
        litellm_prefix="openai",
        requires_api_key=True,
        api_key_prefix="sk-",
        models=(
            ModelOption("gpt-4o", "GPT-4o"),
            ModelOption("gpt-4o-mini", "GPT-4o Mini"),
            ModelOption("gpt-4-turbo", "GPT-4 Turbo"),
            ModelOption("gpt-3.5-turbo", "GPT-3.5 Turbo"),
        ),
    ),
    AIProvider.ANTHROPIC: ProviderSpec(
        litellm_prefix="anthropic",
        requires_api_key=True,
        api_key_prefix="sk-ant-",
        models=(
            ModelOption("claude-opus-4-5", "Claude Opus 4.5"),
            ModelOption("claude-sonnet-4-5", "Claude Sonnet 4.5"),
            ModelOption("claude-3-5-sonnet-20241022", "Claude 3.5 Sonnet"),
            ModelOption("claude-3-5-haiku-20241022", "Claude 3.5 Haiku"),
        ),
    ),
    AIProvider.OLLAMA: ProviderSpec(
        litellm_prefix="ollama",
        requires_api_key=False,
        api_key_prefix=None,
        models=(
            ModelOption("llama3.2", "Llama 3.2"),
            ModelOption("llama3.1", "Llama 3.1"),
            ModelOption("mistral", "Mistral"),
            ModelOption("codellama", "Code Llama"),
        ),
    ),
}


@dataclass(frozen=True)
class AIConfig:
    """A user's resolved provider, model and decrypted API key."""

    provider: AIProvider
    model: str
    api_key: str | None = None

    def __repr__(self) -> str:
        return f"AIConfig(provider={self.provider.value!r}, model={self.model!r}, api_key=***)"


def parse_provider(value: str) -> AIProvider:
    """Parse a provider name, raising a validation error for unknown names."""
    try:
        return AIProvider(value.strip().lower())
    except ValueError as e:
        supported = ", ".join(provider.value for provider in AIProvider)
        msg = f"Unsupported AI provider '{value}'. Supported providers: {supported}"
        raise AIConfigurationError(msg) from e


def validate_api_key(provider: AIProvider, api_key: str | None) -> None:
    """Check that ``api_key`` is present and shaped right for ``provider``."""
    provider_spec = PROVIDERS[provider]
    if not provider_spec.requires_api_key:
        return
    if not api_key:
        msg = f"An API key is required for {provider.value}"
        raise AIConfigurationError(msg)
    if provider_spec.api_key_prefix and not api_key.startswith(provider_spec.api_key_prefix):
        msg = f"{provider.value} API keys start with '{provider_spec.api_key_prefix}'"
        raise AIConfigurationError(msg)


def is_valid_config(config: AIConfig | None) -> bool:
    if config is None or not config.model:
        return False
    try:
        validate_api_key(config.provider, config.api_key)
    except AIConfigurationError:
        return False
    return True


def completion_kwargs(config: AIConfig, *, ollama_api_base: str | None = None) -> dict[str, Any]:
    """Build the LiteLLM arguments that select the user's model and credentials."""
    provider_spec = PROVIDERS[config.provider]
    kwargs: dict[str, Any] = {"model": f"{provider_spec.litellm_prefix}/{config.model}"}
    if provider_spec.requires_api_key:
        kwargs["api_key"] = config.api_key
    if config.provider is AIProvider.OLLAMA and ollama_api_base:
        kwargs["api_base"] = ollama_api_base
    return kwargs
