"""Persistence contract for wrapped credentials.

The envelope layer never talks to the database directly; it reads and writes
wrapped values through a ``SecretStore``.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from sqlalchemy import select

from src.user.models import UserSettings


if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


@dataclass(frozen=True)
class StoredCredentials:
    """Wrapped forms persisted for one user."""

    wrapped_user_key: str | None
    wrapped_secrets: tuple[str, ...] = field(default_factory=tuple)


class SecretStore(Protocol):
    """Key-value store of wrapped credentials by user id."""

    async def get(self, user_id: UUID) -> StoredCredentials | None:
        """Return the user's wrapped key and secrets, or None if nothing is stored."""
        ...

    async def put(self, user_id: UUID, wrapped_user_key: str, wrapped_secrets: Sequence[str]) -> None:
        """Replace the user's wrapped key and secrets in one write."""
        ...


class InMemorySecretStore:
    """Dictionary-backed store for tests and single-process tooling."""

    def __init__(self) -> None:
        self._rows: dict[UUID, StoredCredentials] = {}

    async def get(self, user_id: UUID) -> StoredCredentials | None:
        return self._rows.get(user_id)

    async def put(self, user_id: UUID, wrapped_user_key: str, wrapped_secrets: Sequence[str]) -> None:
        self._rows[user_id] = StoredCredentials(wrapped_user_key, tuple(wrapped_secrets))


class SqlAlchemySecretStore:
    """Store backed by the ``user_settings`` row of each user.

    The row holds a single API key, so at most one secret is accepted. Reads
    lock the row (``SELECT ... FOR UPDATE``) to serialize concurrent writers
    for the same user; the caller owns the transaction and commits it.
    """

    def __init__(self, session: "AsyncSession", *, lock_rows: bool = True) -> None:
        self._session = session
        self._lock_rows = lock_rows

    async def _load(self, user_id: UUID) -> UserSettings | None:
        stmt = select(UserSettings).where(UserSettings.user_id == user_id)
        if self._lock_rows:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get(self, user_id: UUID) -> StoredCredentials | None:
        row = await self._load(user_id)
        if row is None:
            return None
        secrets = (row.encrypted_api_key,) if row.encrypted_api_key else ()
        return StoredCredentials(row.key_encryption_key, secrets)

    async def put(self, user_id: UUID, wrapped_user_key: str, wrapped_secrets: Sequence[str]) -> None:
        if len(wrapped_secrets) > 1:
            msg = "user_settings stores at most one secret per user"
            raise ValueError(msg)

        row = await self._load(user_id)
        if row is None:
            row = UserSettings(user_id=user_id)
            self._session.add(row)

        # Key and secret change together in a single row update
        row.key_encryption_key = wrapped_user_key
        row.encrypted_api_key = wrapped_secrets[0] if wrapped_secrets else None
        await self._session.flush()
