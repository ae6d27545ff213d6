"""AES-256-GCM envelope encryption for user-supplied API keys.

Keys are layered in two tiers: a master key derived from the operator secret
wraps a random per-user key, and the per-user key wraps each stored secret.
Every wrapped value is persisted as ``<ivHex>:<authTagHex>:<ciphertextHex>``.
"""

import base64
import binascii
import logging
import os

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt
from fastapi.concurrency import run_in_threadpool

from src.credentials.exceptions import CredentialConfigurationError, CredentialIntegrityError


logger = logging.getLogger(__name__)

# Fixed so the master key is reproducible across restarts
MASTER_KEY_SALT = b"learn-code-master-salt"
KEY_LENGTH = 32
IV_LENGTH = 16
AUTH_TAG_LENGTH = 16

SCRYPT_N = 2**14
SCRYPT_R = 8
SCRYPT_P = 1

ENVELOPE_SEPARATOR = ":"


def derive_master_key(secret: str | None) -> bytes:
    """Derive the 32-byte master key from the operator secret with scrypt."""
    if not secret or not secret.strip():
        raise CredentialConfigurationError
    kdf = Scrypt(salt=MASTER_KEY_SALT, length=KEY_LENGTH, n=SCRYPT_N, r=SCRYPT_R, p=SCRYPT_P)
    return kdf.derive(secret.encode("utf-8"))


def seal(plaintext: bytes, key: bytes) -> str:
    """Encrypt ``plaintext`` under ``key`` with a fresh random IV."""
    iv = os.urandom(IV_LENGTH)
    sealed = AESGCM(key).encrypt(iv, plaintext, None)
    ciphertext, auth_tag = sealed[:-AUTH_TAG_LENGTH], sealed[-AUTH_TAG_LENGTH:]
    return ENVELOPE_SEPARATOR.join((iv.hex(), auth_tag.hex(), ciphertext.hex()))


def split_envelope(wrapped: str) -> tuple[bytes, bytes, bytes]:
    """Decode a wrapped value into ``(iv, auth_tag, ciphertext)``."""
    parts = wrapped.split(ENVELOPE_SEPARATOR)
    if len(parts) != 3:
        msg = f"Wrapped value must have 3 parts, found {len(parts)}"
        raise CredentialIntegrityError(msg)

    try:
        iv, auth_tag, ciphertext = (binascii.unhexlify(part) for part in parts)
    except (binascii.Error, ValueError) as e:
        msg = "Wrapped value is not valid hex"
        raise CredentialIntegrityError(msg) from e

    if len(iv) != IV_LENGTH or len(auth_tag) != AUTH_TAG_LENGTH:
        msg = "Wrapped value has an invalid IV or auth tag length"
        raise CredentialIntegrityError(msg)
    return iv, auth_tag, ciphertext


def open_envelope(wrapped: str, key: bytes) -> bytes:
    """Decrypt a wrapped value; raise ``CredentialIntegrityError`` on any mismatch."""
    iv, auth_tag, ciphertext = split_envelope(wrapped)
    try:
        return AESGCM(key).decrypt(iv, ciphertext + auth_tag, None)
    except InvalidTag as e:
        msg = "Wrapped value failed authentication"
        raise CredentialIntegrityError(msg) from e


class CredentialCipher:
    """Two-tier envelope cipher bound to one operator secret.

    Built once per process (see ``get_credential_cipher``) and passed to the
    services that store credentials. The master key is derived on first use,
    so a missing secret only fails requests that actually touch credentials.
    """

    def __init__(self, secret: str | None) -> None:
        self._secret = secret
        self._master_key: bytes | None = None

    @property
    def is_configured(self) -> bool:
        return bool(self._secret and self._secret.strip())

    def derive_master_key(self) -> bytes:
        """Return the master key, deriving it on first call."""
        if self._master_key is None:
            self._master_key = derive_master_key(self._secret)
            logger.info("Credential master key derived")
        return self._master_key

    async def ensure_master_key(self) -> None:
        """Derive the master key in a worker thread so scrypt never blocks the event loop."""
        if self._master_key is None and self.is_configured:
            await run_in_threadpool(self.derive_master_key)

    @staticmethod
    def generate_user_key() -> bytes:
        """Generate a random 32-byte per-user key."""
        return os.urandom(KEY_LENGTH)

    def wrap_user_key(self, user_key: bytes, master_key: bytes | None = None) -> str:
        """Encrypt a per-user key under the master key.

        The key is sealed as its base64 text, matching the representation
        already persisted by earlier deployments.
        """
        if len(user_key) != KEY_LENGTH:
            msg = f"User key must be {KEY_LENGTH} bytes"
            raise ValueError(msg)
        encoded = base64.b64encode(user_key)
        return seal(encoded, master_key or self.derive_master_key())

    def unwrap_user_key(self, wrapped: str, master_key: bytes | None = None) -> bytes:
        """Decrypt a wrapped per-user key."""
        encoded = open_envelope(wrapped, master_key or self.derive_master_key())
        try:
            user_key = base64.b64decode(encoded, validate=True)
        except binascii.Error as e:
            msg = "Unwrapped user key is not valid base64"
            raise CredentialIntegrityError(msg) from e
        if len(user_key) != KEY_LENGTH:
            msg = "Unwrapped user key has an invalid length"
            raise CredentialIntegrityError(msg)
        return user_key

    @staticmethod
    def wrap_secret(plaintext: str, user_key: bytes) -> str:
        """Encrypt a secret (e.g. an API key) under a per-user key."""
        return seal(plaintext.encode("utf-8"), user_key)

    @staticmethod
    def unwrap_secret(wrapped: str, user_key: bytes) -> str:
        """Decrypt a secret wrapped by ``wrap_secret``."""
        if len(user_key) != KEY_LENGTH:
            msg = f"User key must be {KEY_LENGTH} bytes"
            raise ValueError(msg)
        return open_envelope(wrapped, user_key).decode("utf-8")
