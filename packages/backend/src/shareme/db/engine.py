"""Async SQLAlchemy engine and session factory.

Learn: SQLAlchemy 2.0 async mode — create_async_engine for connection pooling,
AsyncSession for per-request database access, dependency injection via FastAPI.
PostgreSQL (asyncpg) in production; SQLite (aiosqlite) works for local runs.
"""

from typing import AsyncIterator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from shareme.config import settings
from shareme.db.models import Base


def _pool_options(url: str) -> dict:
    # SQLite connections are not pooled the same way; only size real pools
    if url.startswith("sqlite"):
        return {}
    return {"pool_size": 5, "max_overflow": 15, "pool_pre_ping": True}


# echo=True in dev to see SQL queries.
engine = create_async_engine(
    settings.database_url,
    echo=settings.debug,
    **_pool_options(settings.database_url),
)

# Session factory — each request gets its own session.
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


async def get_db() -> AsyncIterator[AsyncSession]:
    """FastAPI dependency — one session per request.

    Work left uncommitted by a failing handler is rolled back before the
    connection returns to the pool.
    """
    async with async_session_factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


async def create_all(target: AsyncEngine = engine) -> None:
    """Create every table that does not exist yet (development shortcut)."""
    async with target.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
