"""Async database session management for SQLAlchemy 2.0+.

The work request tables belong to the video-archiving application; crosslink
only reads them. PostgreSQL through asyncpg.
"""

from functools import lru_cache
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from crosslink.app.core.config import settings
from crosslink.app.core.logging import get_logger

logger = get_logger(__name__)

_AsyncSessionLocal: async_sessionmaker[AsyncSession] | None = None


@lru_cache(maxsize=1)
def get_async_engine(database_url: str | None = None) -> AsyncEngine:
    """Get or create the async database engine.

    Cached with lru_cache so the whole process shares one pool.

    Args:
        database_url: Optional database URL. Uses settings if not provided.
    """
    url = database_url or settings.database_url

    if url.startswith("sqlite"):
        engine = create_async_engine(url, echo=False)
        logger.info("Created SQLite async engine")
        return engine

    engine = create_async_engine(
        url,
        echo=False,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=settings.db_pool_pre_ping,
        connect_args={"command_timeout": settings.db_command_timeout},
    )
    logger.info(
        f"Created PostgreSQL async engine (pool_size={settings.db_pool_size}, "
        f"max_overflow={settings.db_max_overflow})"
    )
    return engine


def get_async_session_maker() -> async_sessionmaker[AsyncSession]:
    """Get the async session maker bound to the shared engine."""
    global _AsyncSessionLocal
    if _AsyncSessionLocal is None:
        _AsyncSessionLocal = async_sessionmaker(
            bind=get_async_engine(),
            expire_on_commit=False,
        )
    return _AsyncSessionLocal


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a read-only session."""
    async with get_async_session_maker()() as session:
        yield session


async def close_async_engine() -> None:
    """Dispose of the engine if one was created."""
    global _AsyncSessionLocal
    if get_async_engine.cache_info().currsize:
        await get_async_engine().dispose()
        get_async_engine.cache_clear()
        logger.info("Database engine disposed")
    _AsyncSessionLocal = None
