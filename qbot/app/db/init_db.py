"""Schema creation and connectivity checks run at startup."""

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from qbot.app.core.logging import get_logger
from qbot.app.db.async_session import get_async_engine
from qbot.app.db.base import Base

# Register every table on Base.metadata
from qbot.app.db import models  # noqa: F401

logger = get_logger(__name__)


async def create_all_tables(engine: AsyncEngine | None = None) -> None:
    """Create every table that does not exist yet."""
    if engine is None:
        engine = get_async_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured")


async def verify_connection(engine: AsyncEngine | None = None) -> bool:
    """Return True when the database answers a trivial query."""
    if engine is None:
        engine = get_async_engine()
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False
