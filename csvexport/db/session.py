"""
Async database engine management.

Uses the SQLAlchemy 2.0 asyncio extension; exports stream rows through
server-side cursors opened on connections from this engine.
"""

from typing import Any, Optional

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from csvexport.core.config import settings
from csvexport.core.logging import get_logger

logger = get_logger(__name__)

_engine: Optional[AsyncEngine] = None


def create_engine_from_settings(database_url: Optional[str] = None) -> AsyncEngine:
    """
    Create an async engine for the configured database.

    Args:
        database_url: Overrides DATABASE_URL from settings

    Returns:
        New AsyncEngine instance
    """
    url = make_url(database_url or settings.database_url)
    options: dict[str, Any] = {"echo": settings.is_development and settings.debug}

    # SQLite pools don't take sizing arguments
    if url.get_backend_name() != "sqlite":
        options.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_timeout=settings.db_pool_timeout,
            pool_recycle=settings.db_pool_recycle,
            pool_pre_ping=True,
        )

    return create_async_engine(url, **options)


def get_engine() -> AsyncEngine:
    """Return the process-wide engine, creating it on first use."""
    global _engine
    if _engine is None:
        _engine = create_engine_from_settings()
        logger.info("Database engine created", extra={"dialect": _engine.dialect.name})
    return _engine


async def dispose_engine() -> None:
    """Close all pooled connections of the process-wide engine."""
    global _engine
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        logger.info("Database engine disposed")
