"""Database initialization - creates all tables from the registered models."""

import asyncio
import logging

from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncEngine

# Import all models to register them with Base metadata
from src.ai.chat.models import StepChat  # noqa: F401
from src.user.models import UserSettings  # noqa: F401

from .base import Base


logger = logging.getLogger(__name__)


async def init_database(db_engine: AsyncEngine) -> None:
    """Create every table that does not exist yet."""
    async with db_engine.begin() as conn:
        logger.info("Creating database tables from models...")
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database initialization completed successfully")


async def init_database_with_retry(db_engine: AsyncEngine, max_retries: int = 5, retry_delay: float = 1) -> None:
    """Initialize the database, backing off while Postgres comes up."""
    for attempt in range(max_retries):
        try:
            await init_database(db_engine)
            return
        except OperationalError:
            if attempt == max_retries - 1:
                logger.exception("Database initialization failed after %d attempts", max_retries)
                raise
            logger.warning(
                "Database connection attempt %d failed, retrying in %ss...",
                attempt + 1,
                retry_delay,
            )
            await asyncio.sleep(retry_delay)
            retry_delay *= 2
