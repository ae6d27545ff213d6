"""Error taxonomy for AI tutor failures."""

from __future__ import annotations

from enum import Enum

from src.exceptions import ValidationError


class AIRuntimeErrorCategory(str, Enum):
    """Stable categories used across the LLM runtime path."""

    RATE_LIMIT_OR_QUOTA = "rate_limit_or_quota"
    TIMEOUT = "timeout"
    AUTHENTICATION = "authentication"
    PROVIDER_FAILURE = "provider_failure"


class AIRuntimeError(RuntimeError):
    """Base exception for runtime failures produced by the LLM client."""

    def __init__(self, message: str, *, category: AIRuntimeErrorCategory) -> None:
        super().__init__(message)
        self.category = category


class AIRateLimitOrQuotaError(AIRuntimeError):
    """Raised when the provider reports quota exhaustion or rate limiting."""

    def __init__(self, message: str) -> None:
        super().__init__(message, category=AIRuntimeErrorCategory.RATE_LIMIT_OR_QUOTA)


class AITimeoutError(AIRuntimeError):
    """Raised when a completion exceeds the configured timeout."""

    def __init__(self, message: str) -> None:
        super().__init__(message, category=AIRuntimeErrorCategory.TIMEOUT)


class AIAuthenticationError(AIRuntimeError):
    """Raised when the provider rejects the user's API key."""

    def __init__(self, message: str) -> None:
        super().__init__(message, category=AIRuntimeErrorCategory.AUTHENTICATION)


class AIProviderError(AIRuntimeError):
    """Raised for generic provider-side runtime failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message, category=AIRuntimeErrorCategory.PROVIDER_FAILURE)


class AIConfigurationError(ValidationError):
    """The user has no usable AI provider configuration."""

    def __init__(self, message: str = "AI configuration not found") -> None:
        super().__init__(message)
