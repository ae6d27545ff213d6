"""Envelope encryption for user credentials."""

from src.credentials.envelope import CredentialCipher
from src.credentials.exceptions import (
    CredentialConfigurationError,
    CredentialError,
    CredentialIntegrityError,
)
from src.credentials.rotation import RotationResult, rotate_user_key
from src.credentials.store import InMemorySecretStore, SecretStore, SqlAlchemySecretStore, StoredCredentials


__all__ = [
    "CredentialCipher",
    "CredentialConfigurationError",
    "CredentialError",
    "CredentialIntegrityError",
    "InMemorySecretStore",
    "RotationResult",
    "SecretStore",
    "SqlAlchemySecretStore",
    "StoredCredentials",
    "rotate_user_key",
]
