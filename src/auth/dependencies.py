"""FastAPI authentication dependencies."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, Request

from src.auth.config import get_user_id


async def _get_user_id(request: Request) -> UUID:
    """Resolve the user once per request and cache it on ``request.state``."""
    user_id = getattr(request.state, "user_id", None)
    if user_id is None:
        user_id = await get_user_id(request)
        request.state.user_id = user_id
    return user_id


# Usage: async def my_route(user_id: UserId) -> Response:
UserId = Annotated[UUID, Depends(_get_user_id)]
