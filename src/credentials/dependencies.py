from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from src.config.settings import get_settings
from src.credentials.envelope import CredentialCipher


@lru_cache
def get_credential_cipher() -> CredentialCipher:
    """Return the process-wide cipher built from settings."""
    secret = get_settings().AUTH_SECRET_KEY
    return CredentialCipher(secret.get_secret_value() if secret else None)


async def get_ready_cipher() -> CredentialCipher:
    """Return the process-wide cipher with its master key already derived."""
    cipher = get_credential_cipher()
    await cipher.ensure_master_key()
    return cipher


Cipher = Annotated[CredentialCipher, Depends(get_ready_cipher)]
