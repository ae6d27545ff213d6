"""Centralized error handling with consistent categories and response shape.

Every handled failure is returned as::

    {"error": {"category": ..., "code": ..., "detail": ..., "suggestions": [...]}}
"""

import logging
from typing import Any
from uuid import UUID, uuid4

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from psycopg.errors import (
    CheckViolation as CheckViolationError,
    ForeignKeyViolation as ForeignKeyViolationError,
    NotNullViolation as NotNullViolationError,
    UniqueViolation as UniqueViolationError,
)
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import DatabaseError, IntegrityError, OperationalError

from src.ai.errors import AIRuntimeError, AIRuntimeErrorCategory
from src.auth.exceptions import AuthenticationError
from src.credentials.exceptions import CredentialIntegrityError
from src.exceptions import ConfigurationError, ResourceNotFoundError, ValidationError


logger = logging.getLogger(__name__)


# === Error Categories ===


class ErrorCategory:
    """Error category constants."""

    VALIDATION = "VALIDATION_ERROR"
    AUTHENTICATION = "AUTHENTICATION_ERROR"
    CONFIGURATION = "CONFIGURATION_ERROR"
    CREDENTIAL = "CREDENTIAL_ERROR"
    DATABASE = "DATABASE_ERROR"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    EXTERNAL_SERVICE = "EXTERNAL_SERVICE_ERROR"
    INTERNAL = "INTERNAL_ERROR"


class ErrorCode:
    """Specific error codes for better client handling."""

    INVALID_INPUT = "INVALID_INPUT"

    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"

    CONFIGURATION_MISSING = "CONFIGURATION_MISSING"
    CREDENTIAL_CORRUPTED = "CREDENTIAL_CORRUPTED"

    DB_CONNECTION_FAILED = "DB_CONNECTION_FAILED"
    DB_CONSTRAINT_VIOLATION = "DB_CONSTRAINT_VIOLATION"
    DB_UNIQUE_VIOLATION = "DB_UNIQUE_VIOLATION"
    DB_FOREIGN_KEY_VIOLATION = "DB_FOREIGN_KEY_VIOLATION"

    NOT_FOUND = "NOT_FOUND"

    RATE_LIMITED = "RATE_LIMITED"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    TIMEOUT = "TIMEOUT"
    PROVIDER_AUTH_FAILED = "PROVIDER_AUTH_FAILED"

    INTERNAL = "INTERNAL_ERROR"


# === Error Response Formatting ===


def format_error_response(
    category: str,
    code: str,
    detail: str,
    status_code: int,
    suggestions: list[str] | None = None,
    metadata: dict[str, Any] | None = None,
) -> JSONResponse:
    """Format a consistent error response."""
    content = {
        "error": {
            "category": category,
            "code": code,
            "detail": detail,
        }
    }

    if suggestions:
        content["error"]["suggestions"] = suggestions

    if metadata:
        content["error"]["metadata"] = metadata

    return JSONResponse(status_code=status_code, content=content)


async def handle_validation_errors(request: Request, exc: Exception) -> JSONResponse:
    """Handle request validation and service-level validation errors."""
    logger.info(f"Validation error on {request.method} {request.url.path}", extra={"error": str(exc)})

    if isinstance(exc, (PydanticValidationError, RequestValidationError)):
        errors = []
        for error in exc.errors():
            field = " -> ".join(str(loc) for loc in error["loc"])
            errors.append({"field": field, "message": error["msg"], "type": error["type"]})

        return format_error_response(
            category=ErrorCategory.VALIDATION,
            code=ErrorCode.INVALID_INPUT,
            detail="Invalid input data",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            metadata={"errors": errors},
        )
    return format_error_response(
        category=ErrorCategory.VALIDATION,
        code=ErrorCode.INVALID_INPUT,
        detail=str(exc),
        status_code=status.HTTP_400_BAD_REQUEST,
    )


async def handle_not_found_errors(request: Request, exc: ResourceNotFoundError) -> JSONResponse:
    logger.info(f"Not found on {request.method} {request.url.path}: {exc.message}")
    return format_error_response(
        category=ErrorCategory.RESOURCE_NOT_FOUND,
        code=ErrorCode.NOT_FOUND,
        detail=exc.message,
        status_code=status.HTTP_404_NOT_FOUND,
        metadata={"resource_type": exc.resource_type, "resource_id": exc.resource_id},
    )


async def handle_configuration_errors(request: Request, exc: ConfigurationError) -> JSONResponse:
    """Operator configuration is missing; the message is logged, never returned."""
    logger.error(f"Configuration error on {request.method} {request.url.path}: {exc.message}")
    return format_error_response(
        category=ErrorCategory.CONFIGURATION,
        code=ErrorCode.CONFIGURATION_MISSING,
        detail="Server configuration missing",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


async def handle_credential_errors(request: Request, exc: CredentialIntegrityError) -> JSONResponse:
    """A stored credential failed to decrypt; the user has to enter it again."""
    logger.warning(
        f"Credential integrity failure on {request.method} {request.url.path}",
        extra={"user_id": getattr(request.state, "user_id", None)},
    )
    return format_error_response(
        category=ErrorCategory.CREDENTIAL,
        code=ErrorCode.CREDENTIAL_CORRUPTED,
        detail="Stored credential is corrupted, please reconfigure",
        status_code=status.HTTP_409_CONFLICT,
        suggestions=["Save your API key again in settings"],
    )


async def handle_authentication_errors(request: Request, exc: AuthenticationError) -> JSONResponse:
    logger.info(f"Authentication failed on {request.method} {request.url.path}: {exc.detail}")
    return format_error_response(
        category=ErrorCategory.AUTHENTICATION,
        code=ErrorCode.NOT_AUTHENTICATED,
        detail=str(exc.detail),
        status_code=exc.status_code,
    )


_AI_ERROR_RESPONSES: dict[AIRuntimeErrorCategory, tuple[str, str, int]] = {
    AIRuntimeErrorCategory.RATE_LIMIT_OR_QUOTA: (
        ErrorCode.RATE_LIMITED,
        "The AI provider is rate limiting requests",
        status.HTTP_429_TOO_MANY_REQUESTS,
    ),
    AIRuntimeErrorCategory.TIMEOUT: (
        ErrorCode.TIMEOUT,
        "The AI provider timed out",
        status.HTTP_504_GATEWAY_TIMEOUT,
    ),
    AIRuntimeErrorCategory.AUTHENTICATION: (
        ErrorCode.PROVIDER_AUTH_FAILED,
        "The AI provider rejected the configured API key",
        status.HTTP_502_BAD_GATEWAY,
    ),
    AIRuntimeErrorCategory.PROVIDER_FAILURE: (
        ErrorCode.SERVICE_UNAVAILABLE,
        "The AI provider is unavailable",
        status.HTTP_503_SERVICE_UNAVAILABLE,
    ),
}


async def handle_ai_runtime_errors(request: Request, exc: AIRuntimeError) -> JSONResponse:
    """Handle provider failures raised before a stream has started."""
    logger.error(f"AI provider error on {request.method} {request.url.path}: {exc.category.value}")
    code, detail, status_code = _AI_ERROR_RESPONSES[exc.category]
    return format_error_response(
        category=ErrorCategory.EXTERNAL_SERVICE,
        code=code,
        detail=detail,
        status_code=status_code,
        suggestions=["Please try again later"],
    )


# Postgres constraint errors arrive wrapped; the driver error is on ``exc.orig``
_CONSTRAINT_RESPONSES: tuple[tuple[tuple[type[Exception], ...], str, str, int], ...] = (
    ((UniqueViolationError,), ErrorCode.DB_UNIQUE_VIOLATION, "This resource already exists", status.HTTP_409_CONFLICT),
    (
        (ForeignKeyViolationError,),
        ErrorCode.DB_FOREIGN_KEY_VIOLATION,
        "Referenced resource does not exist",
        status.HTTP_400_BAD_REQUEST,
    ),
    (
        (NotNullViolationError, CheckViolationError),
        ErrorCode.DB_CONSTRAINT_VIOLATION,
        "Required data is missing or invalid",
        status.HTTP_400_BAD_REQUEST,
    ),
)


async def handle_database_errors(request: Request, exc: Exception) -> JSONResponse:
    """Map SQLAlchemy and driver errors onto 400/409/503/500 responses."""
    logger.exception(
        f"Database error on {request.method} {request.url.path}: {type(exc).__name__}",
        exc_info=(type(exc), exc, exc.__traceback__),
    )

    driver_error = getattr(exc, "orig", None)
    for error_types, code, detail, status_code in _CONSTRAINT_RESPONSES:
        if isinstance(driver_error, error_types):
            return format_error_response(ErrorCategory.DATABASE, code, detail, status_code)

    if isinstance(exc, IntegrityError):
        return format_error_response(
            ErrorCategory.DATABASE,
            ErrorCode.DB_CONSTRAINT_VIOLATION,
            "The change conflicts with stored data",
            status.HTTP_409_CONFLICT,
        )

    if isinstance(exc, OperationalError):
        return format_error_response(
            ErrorCategory.DATABASE,
            ErrorCode.DB_CONNECTION_FAILED,
            "Database connection error",
            status.HTTP_503_SERVICE_UNAVAILABLE,
            suggestions=["Please try again later"],
        )

    return format_error_response(
        ErrorCategory.DATABASE,
        ErrorCode.INTERNAL,
        "A database error occurred",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


async def handle_unexpected_errors(request: Request, exc: Exception) -> JSONResponse:
    """Global handler for unhandled errors; internals are never exposed."""
    error_id = uuid4()
    log_error_context(request, exc, error_id)
    return format_error_response(
        category=ErrorCategory.INTERNAL,
        code=ErrorCode.INTERNAL,
        detail="An unexpected error occurred",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        metadata={"error_id": str(error_id)},
        suggestions=["Please try again later", "If the problem persists, contact support with the error ID"],
    )


# === Utility Functions ===

# Credentials and session tokens never reach the logs
REDACTED_HEADERS = frozenset({"authorization", "cookie", "x-api-key"})


def log_error_context(request: Request, exc: Exception, error_id: UUID | None = None) -> None:
    """Log comprehensive error context for debugging."""
    context = {
        "error_id": str(error_id) if error_id else None,
        "method": request.method,
        "path": request.url.path,
        "query_params": dict(request.query_params),
        "client_host": request.client.host if request.client else "unknown",
        "user_id": getattr(request.state, "user_id", None),
        "error_type": type(exc).__name__,
        "error_message": str(exc),
    }

    context["headers"] = {
        name: value for name, value in request.headers.items() if name.lower() not in REDACTED_HEADERS
    }

    logger.error("Request failed", extra=context, exc_info=exc)


def register_exception_handlers(app: FastAPI) -> None:
    """Attach every handler above to ``app``.

    Starlette resolves handlers by walking the exception's MRO, so the more
    specific credential and configuration handlers win over the generic ones.
    """
    app.add_exception_handler(RequestValidationError, handle_validation_errors)
    app.add_exception_handler(PydanticValidationError, handle_validation_errors)
    app.add_exception_handler(ValidationError, handle_validation_errors)
    app.add_exception_handler(ResourceNotFoundError, handle_not_found_errors)
    app.add_exception_handler(ConfigurationError, handle_configuration_errors)
    app.add_exception_handler(CredentialIntegrityError, handle_credential_errors)
    app.add_exception_handler(AuthenticationError, handle_authentication_errors)
    app.add_exception_handler(AIRuntimeError, handle_ai_runtime_errors)
    app.add_exception_handler(DatabaseError, handle_database_errors)
    app.add_exception_handler(OperationalError, handle_database_errors)
    app.add_exception_handler(Exception, handle_unexpected_errors)
