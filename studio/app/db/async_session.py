"""Async database session management for SQLAlchemy 2.0+.

PostgreSQL with asyncpg in production; SQLite (aiosqlite) works for local
development and tests.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from studio.app.core.config import Settings, settings
from studio.app.core.logging import get_logger

logger = get_logger(__name__)

# Global engine and session maker, built on first use
_engine: AsyncEngine | None = None
_AsyncSessionLocal = None


def _create_engine(app_settings: Settings) -> AsyncEngine:
    url = app_settings.database_url

    if "sqlite" in url.lower():
        engine = create_async_engine(url, echo=False)
        logger.info("Created SQLite async engine")
    else:
        engine = create_async_engine(
            url,
            echo=False,
            pool_size=app_settings.db_pool_size,
            max_overflow=app_settings.db_max_overflow,
            pool_timeout=app_settings.db_pool_timeout,
            pool_recycle=app_settings.db_pool_recycle,
            pool_pre_ping=app_settings.db_pool_pre_ping,
        )
        logger.info(
            f"Created PostgreSQL async engine (pool_size={app_settings.db_pool_size}, "
            f"max_overflow={app_settings.db_max_overflow})"
        )
    return engine


def get_async_engine(app_settings: Settings | None = None) -> AsyncEngine:
    """Get or create the async database engine.

    Args:
        app_settings: Settings the engine is built from on first call.
            Uses the module settings if not provided.

    Returns:
        AsyncEngine instance
    """
    global _engine
    if _engine is None:
        _engine = _create_engine(app_settings or settings)
    return _engine


def get_async_session_maker() -> async_sessionmaker[AsyncSession]:
    """Get the async session maker bound to the async engine."""
    global _AsyncSessionLocal
    if _AsyncSessionLocal is None:
        _AsyncSessionLocal = async_sessionmaker(
            bind=get_async_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _AsyncSessionLocal


@asynccontextmanager
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Async context manager for database sessions.

    Usage:
        async with get_async_session() as session:
            result = await session.execute(...)
    """
    session_maker = get_async_session_maker()
    async with session_maker() as session:
        yield session


async def init_async_db(app_settings: Settings | None = None) -> None:
    """Create all tables. Called during application startup."""
    from studio.app.db.base import Base
    from studio.app.db import models  # noqa: F401 - register models

    engine = get_async_engine(app_settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_async_engine() -> None:
    """Dispose the async engine. Call on application shutdown."""
    global _engine, _AsyncSessionLocal

    if _engine is not None:
        await _engine.dispose()
        logger.debug("Async engine disposed")

    # Allow recreation on next startup
    _engine = None
    _AsyncSessionLocal = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for database sessions.

    Transaction handling:
    - Successful requests: changes are committed
    - Exceptions: changes are rolled back, exception is re-raised

    Usage:
        @app.get("/items")
        async def get_items(session: SessionDep):
            result = await session.execute(select(Item))
            return result.scalars().all()
    """
    async with get_async_session() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
