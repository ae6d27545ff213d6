"""User AI settings service: provider choice and the encrypted API key."""

import logging
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.ai.errors import AIConfigurationError
from src.ai.providers import PROVIDERS, AIConfig, is_valid_config, parse_provider, validate_api_key
from src.credentials.envelope import CredentialCipher
from src.credentials.exceptions import CredentialIntegrityError
from src.credentials.rotation import rotate_user_key
from src.credentials.store import SqlAlchemySecretStore
from src.user.models import UserSettings
from src.user.schemas import (
    AISettingsResponse,
    AISettingsUpdate,
    KeyRotationResponse,
    ModelOptionSchema,
    ProviderCatalogEntry,
)


logger = logging.getLogger(__name__)


def mask_secret(secret: str) -> str:
    """Return a preview that identifies a key without revealing it."""
    if len(secret) <= 12:
        return "*" * len(secret)
    return f"{secret[:6]}...{secret[-4:]}"


def provider_catalog() -> list[ProviderCatalogEntry]:
    return [
        ProviderCatalogEntry(
            provider=provider.value,
            requires_api_key=provider_spec.requires_api_key,
            models=[ModelOptionSchema(value=option.value, label=option.label) for option in provider_spec.models],
        )
        for provider, provider_spec in PROVIDERS.items()
    ]


class UserSettingsService:
    """Reads and writes ``user_settings`` rows, encrypting the API key."""

    def __init__(self, session: AsyncSession, cipher: CredentialCipher) -> None:
        self.session = session
        self.cipher = cipher

    async def _get_row(self, user_id: UUID, *, for_update: bool = False) -> UserSettings | None:
        stmt = select(UserSettings).where(UserSettings.user_id == user_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    def _decrypt_api_key(self, row: UserSettings) -> str | None:
        if not row.encrypted_api_key or not row.key_encryption_key:
            return None
        user_key = self.cipher.unwrap_user_key(row.key_encryption_key)
        return self.cipher.unwrap_secret(row.encrypted_api_key, user_key)

    def _user_key_for_new_secret(self, user_id: UUID, row: UserSettings) -> bytes:
        """Return the key to wrap a newly supplied secret under.

        A stored key that no longer unwraps is replaced, since the secret it
        protected is being overwritten anyway.
        """
        if row.key_encryption_key:
            try:
                return self.cipher.unwrap_user_key(row.key_encryption_key)
            except CredentialIntegrityError:
                logger.warning("Replacing unreadable credential key for user %s", user_id)

        user_key = self.cipher.generate_user_key()
        row.key_encryption_key = self.cipher.wrap_user_key(user_key)
        logger.info("Created credential key for user %s", user_id)
        return user_key

    def _to_response(self, row: UserSettings | None) -> AISettingsResponse:
        if row is None:
            return AISettingsResponse()

        api_key = self._decrypt_api_key(row)
        config = None
        if row.ai_provider and row.ai_model:
            config = AIConfig(provider=parse_provider(row.ai_provider), model=row.ai_model, api_key=api_key)
        return AISettingsResponse(
            ai_provider=row.ai_provider,
            ai_model=row.ai_model,
            has_api_key=api_key is not None,
            api_key_preview=mask_secret(api_key) if api_key else None,
            is_configured=is_valid_config(config),
            updated_at=row.updated_at,
        )

    async def get_settings(self, user_id: UUID) -> AISettingsResponse:
        """Return the user's settings; a corrupted stored key raises instead of reading as absent."""
        return self._to_response(await self._get_row(user_id))

    async def update_settings(self, user_id: UUID, update: AISettingsUpdate) -> AISettingsResponse:
        """Apply a partial update, creating the per-user key on the first saved API key."""
        row = await self._get_row(user_id, for_update=True)

        provider_name = update.ai_provider or (row.ai_provider if row else None)
        provider = parse_provider(provider_name) if provider_name else None
        if update.api_key is not None:
            if provider is None:
                msg = "Choose an AI provider before saving an API key"
                raise AIConfigurationError(msg)
            validate_api_key(provider, update.api_key)

        if row is None:
            row = UserSettings(user_id=user_id)
            self.session.add(row)

        if provider is not None:
            row.ai_provider = provider.value
        if update.ai_model is not None:
            row.ai_model = update.ai_model

        try:
            if update.api_key is not None:
                user_key = self._user_key_for_new_secret(user_id, row)
                row.encrypted_api_key = self.cipher.wrap_secret(update.api_key, user_key)

            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        await self.session.refresh(row)
        logger.info("Updated AI settings for user %s", user_id)
        return self._to_response(row)

    async def delete_settings(self, user_id: UUID) -> None:
        """Delete the user's settings, including the wrapped key and secret."""
        await self.session.execute(delete(UserSettings).where(UserSettings.user_id == user_id))
        await self.session.commit()
        logger.info("Deleted AI settings for user %s", user_id)

    async def rotate_key(self, user_id: UUID) -> KeyRotationResponse:
        """Rotate the user's key inside one transaction holding the row lock."""
        store = SqlAlchemySecretStore(self.session)
        try:
            result = await rotate_user_key(user_id, store, self.cipher)
            if result.rotated:
                await self.session.commit()
            else:
                await self.session.rollback()
        except Exception:
            await self.session.rollback()
            raise

        return KeyRotationResponse(
            success=result.rotated,
            secrets_rotated=result.secrets_rotated,
            error=result.reason,
        )

    async def resolve_ai_config(self, user_id: UUID) -> AIConfig:
        """Return the user's provider, model and decrypted key for a chat request."""
        row = await self._get_row(user_id)
        if row is None or not row.ai_provider or not row.ai_model:
            raise AIConfigurationError

        config = AIConfig(
            provider=parse_provider(row.ai_provider),
            model=row.ai_model,
            api_key=self._decrypt_api_key(row),
        )
        validate_api_key(config.provider, config.api_key)
        return config
