"""Current user AI settings endpoints."""

import logging

from fastapi import APIRouter, status

from src.auth import UserId
from src.user.dependencies import SettingsServiceDep
from src.user.schemas import AISettingsResponse, AISettingsUpdate, KeyRotationResponse, ProviderCatalogEntry
from src.user.service import provider_catalog


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/user/settings", tags=["user-settings"])


@router.get("/providers")
async def list_providers() -> list[ProviderCatalogEntry]:
    """List supported AI providers and their models."""
    return provider_catalog()


@router.get("")
async def get_settings(user_id: UserId, service: SettingsServiceDep) -> AISettingsResponse:
    """Get the current user's AI configuration."""
    return await service.get_settings(user_id)


@router.put("")
async def update_settings(
    update: AISettingsUpdate,
    user_id: UserId,
    service: SettingsServiceDep,
) -> AISettingsResponse:
    """Update the provider, model and/or API key of the current user."""
    return await service.update_settings(user_id, update)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def delete_settings(user_id: UserId, service: SettingsServiceDep) -> None:
    """Remove the current user's AI configuration and stored key."""
    await service.delete_settings(user_id)


@router.post("/rotate-key")
async def rotate_key(user_id: UserId, service: SettingsServiceDep) -> KeyRotationResponse:
    """Re-encrypt the stored API key under a freshly generated user key."""
    return await service.rotate_key(user_id)
