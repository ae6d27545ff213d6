import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv


# Load .env FIRST before any other imports that might need env vars
BACKEND_DIR = Path(__file__).parent.parent
ENV_PATH = BACKEND_DIR / ".env"
load_dotenv(ENV_PATH)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from .ai.chat.router import router as step_chat_router
from .config.logging import setup_logging
from .config.settings import get_settings
from .content.router import router as content_router
from .credentials.dependencies import get_credential_cipher
from .database.engine import engine
from .database.init import init_database_with_retry
from .middleware.error_handlers import register_exception_handlers
from .middleware.security import SimpleSecurityMiddleware, limiter
from .user.router import router as user_router


setup_logging("DEBUG" if get_settings().DEBUG else "INFO")
logger = logging.getLogger(__name__)


def _register_routers(app: FastAPI) -> None:
    """Register all application routers."""
    app.include_router(content_router)
    app.include_router(step_chat_router)
    app.include_router(user_router)


def _startup_validation() -> None:
    """Fail fast on configuration that can never work."""
    settings = get_settings()
    if settings.AUTH_PROVIDER not in ("none", "supabase"):
        msg = f"Unknown AUTH_PROVIDER '{settings.AUTH_PROVIDER}'. Use 'none' or 'supabase'"
        raise ValueError(msg)
    if settings.AUTH_PROVIDER == "none" and settings.ENVIRONMENT == "production":
        msg = "AUTH_PROVIDER=none is single-user mode and cannot run in production"
        raise ValueError(msg)
    if settings.AUTH_SECRET_KEY is None:
        # Not fatal: content browsing works, saving API keys will not
        logger.warning("AUTH_SECRET_KEY is not set; API keys cannot be stored or read")
    if not Path(settings.CONTENT_DIR).is_dir():
        logger.warning("Content directory %s does not exist; no courses will be listed", settings.CONTENT_DIR)


async def _shutdown_cleanup() -> None:
    """Clean up resources on shutdown."""
    logger.info("Starting graceful shutdown...")
    try:
        await engine.dispose()
        logger.info("Database engine disposed successfully")
    except Exception as e:
        logger.warning(f"Error disposing database engine: {e}")
    logger.info("Shutdown complete")


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan events."""
    _startup_validation()
    await init_database_with_retry(engine)
    await get_credential_cipher().ensure_master_key()

    yield

    await _shutdown_cleanup()


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    try:
        settings = get_settings()
    except Exception:
        logger.exception("Failed to load settings")
        raise

    app = FastAPI(
        title="LearnCode API",
        description="Course content, exercises and a per-step AI tutor",
        version="0.1.0",
        debug=settings.DEBUG,
        lifespan=lifespan if settings.ENVIRONMENT != "test" else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # SSE responses are excluded by GZip's content-type check
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    app.add_middleware(SimpleSecurityMiddleware)

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    register_exception_handlers(app)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """Check application health status."""
        return {"status": "healthy"}

    _register_routers(app)

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.API_HOST, port=settings.API_PORT)
