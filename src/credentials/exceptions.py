"""Credential envelope exceptions."""

from src.exceptions import ConfigurationError, DomainError


class CredentialError(DomainError):
    """Base class for every credential envelope failure."""


class CredentialConfigurationError(CredentialError, ConfigurationError):
    """The operator secret used to derive the master key is not configured."""

    def __init__(self, message: str = "AUTH_SECRET_KEY environment variable is required") -> None:
        super().__init__(message)


class CredentialIntegrityError(CredentialError):
    """A wrapped value is malformed or failed authentication."""

    def __init__(self, message: str = "Stored credential could not be decrypted") -> None:
        super().__init__(message)
