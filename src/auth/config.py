"""User id resolution for incoming requests."""

import logging
from functools import lru_cache
from typing import Any
from uuid import UUID

from fastapi import Request
from fastapi.concurrency import run_in_threadpool
from supabase import create_client

from src.auth.exceptions import AuthProviderNotConfiguredError, InvalidTokenError, MissingTokenError
from src.config.settings import get_settings


logger = logging.getLogger(__name__)

# Owner of all data in single-user mode
DEFAULT_USER_ID = UUID("00000000-0000-0000-0000-000000000001")


@lru_cache
def get_supabase_client() -> Any:
    """Create the Supabase client once, on first multi-user request."""
    settings = get_settings()
    if not settings.SUPABASE_URL or not settings.SUPABASE_PUBLISHABLE_KEY:
        raise AuthProviderNotConfiguredError("supabase")
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_PUBLISHABLE_KEY)


def _extract_token_from_request(request: Request) -> str | None:
    """Extract the access token from the Authorization header or cookie."""
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        return auth_header.removeprefix("Bearer ")

    cookie_token = request.cookies.get("access_token")
    if cookie_token:
        return cookie_token.removeprefix("Bearer ")
    return None


async def _validate_supabase_token(token: str) -> UUID:
    client = get_supabase_client()
    try:
        response = await run_in_threadpool(client.auth.get_user, token)
    except Exception as e:
        logger.debug("Supabase token validation failed: %s", type(e).__name__)
        raise InvalidTokenError from e

    if response and response.user and response.user.id:
        return UUID(str(response.user.id))
    raise InvalidTokenError


async def get_user_id(request: Request) -> UUID:
    """Resolve the current user.

    Single-user mode always returns ``DEFAULT_USER_ID`` and is refused in
    production. Multi-user mode validates the Supabase token and never falls
    back to the default user.
    """
    settings = get_settings()
    provider = settings.AUTH_PROVIDER.lower()

    if provider == "none":
        if settings.ENVIRONMENT == "production":
            logger.error("AUTH_PROVIDER='none' is not allowed in production")
            raise AuthProviderNotConfiguredError(provider)
        return DEFAULT_USER_ID

    if provider == "supabase":
        token = _extract_token_from_request(request)
        if not token:
            raise MissingTokenError
        return await _validate_supabase_token(token)

    logger.error("Unknown auth provider: %s", settings.AUTH_PROVIDER)
    raise AuthProviderNotConfiguredError(settings.AUTH_PROVIDER)
