"""Database engine and sessions.

One engine per process. Request handlers receive a session through the
``get_session`` dependency; work that runs outside a request (outbox
delivery, startup seeding, the worker) opens one with ``session_scope``.
"""

from collections.abc import AsyncGenerator, AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from devwars.db.base import Base

_engine: AsyncEngine | None = None
_sessions: async_sessionmaker[AsyncSession] | None = None


def _engine_options(url: str) -> dict[str, Any]:
    if url.startswith("sqlite"):
        return {}
    return {
        "pool_size": 20,
        "max_overflow": 10,
        "pool_pre_ping": True,
        "connect_args": {"statement_cache_size": 0},
    }


async def init_db(url: str) -> None:
    global _engine, _sessions  # noqa: PLW0603
    _engine = create_async_engine(url, **_engine_options(url))
    _sessions = async_sessionmaker(_engine, expire_on_commit=False)


async def close_db() -> None:
    global _engine, _sessions  # noqa: PLW0603
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _sessions = None


def get_engine() -> AsyncEngine:
    if _engine is None:
        msg = "Database not initialized. Call init_db() first."
        raise RuntimeError(msg)
    return _engine


async def create_schema() -> None:
    """Create all tables from the ORM metadata (local development and tests)."""
    from devwars.db import models  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """A session for work outside a request."""
    if _sessions is None:
        msg = "Database not initialized. Call init_db() first."
        raise RuntimeError(msg)
    async with _sessions() as session:
        yield session


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency; shared by every dependency of the same request."""
    async with session_scope() as session:
        yield session
