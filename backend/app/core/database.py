"""Async database engine and session management.

One engine per process, built from DATABASE_URL_OVERRIDE or the individual
DATABASE_* settings. PostgreSQL (asyncpg) in deployed environments;
SQLite (aiosqlite) is accepted for local runs and the test suite.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from app.core.config import settings


def build_engine(url: str, *, echo: bool = False) -> AsyncEngine:
    """Create an async engine with driver-appropriate pool settings.

    In-memory SQLite lives inside a single connection, so every session
    must share it through StaticPool.

    Args:
        url: SQLAlchemy async database URL.
        echo: Log emitted SQL.

    Returns:
        Configured AsyncEngine (no connection is opened yet).
    """
    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url:
            kwargs["poolclass"] = StaticPool
        return create_async_engine(url, echo=echo, **kwargs)
    return create_async_engine(url, echo=echo, pool_pre_ping=True)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory with expire_on_commit disabled.

    Repository writes commit immediately, and callers keep reading the
    returned User rows afterwards.
    """
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(
    settings.database_url,
    echo=settings.environment == "development",
)

async_session_factory = build_session_factory(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency that provides a database session."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
