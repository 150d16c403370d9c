"""Engine and session handling for the contribution store.

One lazily built engine per process, configured from ``DATABASE_URL``.
SQLite gets foreign keys switched on (deleting a repository removes its
contributions) and no connection pool, so every ``asyncio.run`` in the
CLI opens its own connections.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from sqlalchemy import event, pool
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from contribution_tracker.config import get_settings
from contribution_tracker.db.models import Base

_engine: AsyncEngine | None = None
_async_session_factory: async_sessionmaker[AsyncSession] | None = None


def _sqlite_pragmas(dbapi_connection: Any, _record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(database_url: str, *, echo: bool = False) -> AsyncEngine:
    if not database_url.startswith("sqlite"):
        return create_async_engine(database_url, echo=echo, pool_pre_ping=True)

    engine = create_async_engine(database_url, echo=echo, poolclass=pool.NullPool)
    event.listen(engine.sync_engine, "connect", _sqlite_pragmas)
    return engine


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        settings = get_settings()
        # SQL echo only for local debugging; logging.py routes it through loguru
        echo = settings.environment == "development" and settings.log_level == "DEBUG"
        _engine = build_engine(settings.database_url, echo=echo)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _async_session_factory
    if _async_session_factory is None:
        # Synced rows are read back after their phase commits
        _async_session_factory = async_sessionmaker(
            bind=get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
    return _async_session_factory


@asynccontextmanager
async def get_session(*, auto_commit: bool = True) -> AsyncGenerator[AsyncSession, None]:
    """Open a session, rolling back on error.

    CLI commands use the default and commit once on exit. The sync engine
    passes ``auto_commit=False`` and commits per batch itself, so anything
    still pending when the block ends is discarded with the session.

    Usage:
        async with get_session() as session:
            student = await StudentRepository(session).create("alice")
    """
    async with get_session_factory()() as session:
        try:
            yield session
            if auto_commit:
                await session.commit()
        except Exception:
            await session.rollback()
            raise


async def create_tables() -> None:
    """Create every table that does not exist yet (``contribtrack db init``).

    Deployments that track schema history should run ``alembic upgrade head``
    instead.
    """
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_tables() -> None:
    """Drop every table. Destroys all synced data."""
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def dispose_engine() -> None:
    """Close pooled connections and forget the engine."""
    global _engine, _async_session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _async_session_factory = None
