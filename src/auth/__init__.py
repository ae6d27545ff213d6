"""Authentication module exports."""

from src.auth.config import DEFAULT_USER_ID, get_user_id
from src.auth.dependencies import UserId


__all__ = [
    "DEFAULT_USER_ID",
    "UserId",
    "get_user_id",
]
