"""Domain exceptions shared across feature packages."""


class DomainError(Exception):
    """Base exception class for all domain-specific exceptions."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)


class ResourceNotFoundError(DomainError):
    """Raised when a course, item, step or settings row does not exist."""

    def __init__(self, resource_type: str, resource_id: str) -> None:
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"{resource_type} with ID {resource_id} not found")


class ValidationError(DomainError):
    """Raised when user input is rejected by a service."""


class ConfigurationError(DomainError):
    """Raised when the server is missing required operator configuration."""
