"""Per-user key rotation."""

import logging
from dataclasses import dataclass
from uuid import UUID

from src.credentials.envelope import CredentialCipher
from src.credentials.store import SecretStore


logger = logging.getLogger(__name__)

NOTHING_TO_ROTATE = "No API key to rotate"


@dataclass(frozen=True)
class RotationResult:
    """Outcome of a rotation request."""

    rotated: bool
    secrets_rotated: int = 0
    reason: str | None = None


async def rotate_user_key(user_id: UUID, store: SecretStore, cipher: CredentialCipher) -> RotationResult:
    """Replace a user's key and re-wrap all of their secrets under it.

    Everything is unwrapped before anything is written, and the new wrapped
    key is written together with the re-wrapped secrets, so a failure at any
    point leaves the previous wrapped forms intact. Callers must serialize
    rotations for the same user.
    """
    stored = await store.get(user_id)
    if stored is None or not stored.wrapped_user_key or not stored.wrapped_secrets:
        logger.info("Nothing to rotate for user %s", user_id)
        return RotationResult(rotated=False, reason=NOTHING_TO_ROTATE)

    old_key = cipher.unwrap_user_key(stored.wrapped_user_key)
    plaintexts = [cipher.unwrap_secret(wrapped, old_key) for wrapped in stored.wrapped_secrets]

    new_key = cipher.generate_user_key()
    new_wrapped_key = cipher.wrap_user_key(new_key)
    rewrapped = [cipher.wrap_secret(plaintext, new_key) for plaintext in plaintexts]

    await store.put(user_id, new_wrapped_key, rewrapped)
    logger.info("Rotated credential key for user %s (%d secrets)", user_id, len(rewrapped))
    return RotationResult(rotated=True, secrets_rotated=len(rewrapped))
