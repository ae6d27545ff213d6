"""Security middleware and rate limits."""

from collections.abc import Awaitable, Callable

from fastapi import Request
from fastapi.responses import Response
from slowapi import Limiter
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from src.config.settings import get_settings


limiter = Limiter(key_func=get_remote_address)


# Responses under these prefixes describe stored credentials
NO_STORE_PREFIXES = ("/api/v1/user/settings",)


class SimpleSecurityMiddleware(BaseHTTPMiddleware):
    """Adds standard security headers to every response.

    Settings responses are additionally marked ``no-store`` so key previews
    never land in a shared cache.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        if request.url.path.startswith(NO_STORE_PREFIXES):
            response.headers["Cache-Control"] = "no-store"

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-XSS-Protection"] = "1; mode=block"
        response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"

        return response


def create_rate_limit_dependency(
    limit_decorator: Callable[[Callable], Callable],
) -> Callable[[Request], Awaitable[None]]:
    """Create a router dependency from a slowapi limit decorator.

    This allows applying rate limits without touching the endpoint signature.
    """

    @limit_decorator
    async def rate_limited_dependency(request: Request) -> None:
        """Apply rate limiting to the calling endpoint."""

    return rate_limited_dependency


# Read lazily so tests and deployments can override CHAT_RATE_LIMIT
chat_rate_limit = create_rate_limit_dependency(limiter.limit(lambda: get_settings().CHAT_RATE_LIMIT))
