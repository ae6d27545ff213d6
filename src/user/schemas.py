"""Schemas for user AI settings."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class AISettingsUpdate(BaseModel):
    """Partial update of a user's AI configuration.

    Omitted fields keep their stored value. An empty ``api_key`` is treated as
    omitted; use the delete endpoint to remove a stored key.
    """

    ai_provider: str | None = Field(None, description="openai, anthropic or ollama")
    ai_model: str | None = Field(None, max_length=128)
    api_key: str | None = Field(None, description="Provider API key, stored encrypted")

    @field_validator("ai_provider", "ai_model", "api_key")
    @classmethod
    def blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None


class AISettingsResponse(BaseModel):
    """A user's AI configuration without the plaintext key."""

    ai_provider: str | None = None
    ai_model: str | None = None
    has_api_key: bool = False
    api_key_preview: str | None = None
    is_configured: bool = False
    updated_at: datetime | None = None


class KeyRotationResponse(BaseModel):
    """Result of rotating a user's encryption key."""

    success: bool
    secrets_rotated: int = 0
    error: str | None = None


class ModelOptionSchema(BaseModel):
    value: str
    label: str


class ProviderCatalogEntry(BaseModel):
    """A provider and the models offered for it."""

    provider: str
    requires_api_key: bool
    models: list[ModelOptionSchema]
