"""Pytest configuration and shared fixtures.

Usage Guide:
- For ORM model tests: import factories from tests.factories
- For schema validation tests: use the GitHub API dict factories
- For sync tests: use the `fake_client` fixture (tests.fixtures.fake_client)
"""

from datetime import UTC, datetime

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from contribution_tracker.config import SyncConfig
from contribution_tracker.db.models import Base

# -----------------------------------------------------------------------------
# Test Timeline Constants
#
# Define a consistent "test epoch" for deterministic date matching across tests.
# All hardcoded dates should reference these constants for consistency.
# -----------------------------------------------------------------------------

# Base dates (datetime objects for Pydantic/ORM)
JAN_10 = datetime(2024, 1, 10, 9, 0, 0, tzinfo=UTC)   # Issue opened
JAN_12 = datetime(2024, 1, 12, 16, 0, 0, tzinfo=UTC)  # PR merged
JAN_15 = datetime(2024, 1, 15, 10, 0, 0, tzinfo=UTC)  # PR opened, first commit
JAN_16 = datetime(2024, 1, 16, 14, 0, 0, tzinfo=UTC)  # PR updated
JAN_20 = datetime(2024, 1, 20, 16, 0, 0, tzinfo=UTC)  # Alternate merge date

# ISO 8601 strings (for GitHub API mocks)
JAN_10_ISO = "2024-01-10T09:00:00Z"
JAN_12_ISO = "2024-01-12T16:00:00Z"
JAN_15_ISO = "2024-01-15T10:00:00Z"
JAN_15_AFTERNOON_ISO = "2024-01-15T14:00:00Z"  # Second commit same day
JAN_16_ISO = "2024-01-16T14:00:00Z"
JAN_20_ISO = "2024-01-20T16:00:00Z"


# -----------------------------------------------------------------------------
# Database Fixtures
# -----------------------------------------------------------------------------
def _enable_foreign_keys(dbapi_connection, _connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture
async def test_engine():
    """Create an in-memory SQLite engine for tests.

    Each test gets a fresh database with all tables created.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )
    event.listen(engine.sync_engine, "connect", _enable_foreign_keys)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(test_engine):
    """Create an async session with auto-rollback.

    Sync code under test commits on this session; whatever is left
    uncommitted is rolled back after each test.
    """
    session_factory = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    async with session_factory() as session:
        yield session
        await session.rollback()


# -----------------------------------------------------------------------------
# Sync Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def sync_config() -> SyncConfig:
    """Small pages and no pauses so pagination paths are exercised quickly."""
    return SyncConfig(
        page_size=2,
        search_max_pages=3,
        detail_batch_size=2,
        detail_batch_pause_ms=0,
        commit_batch_size=2,
        phase_timeout_seconds=5.0,
    )


@pytest.fixture
def fake_client():
    """Fake upstream client driven by per-category fixture lists."""
    from tests.fixtures.fake_client import FakeGitHubClient

    return FakeGitHubClient()


# -----------------------------------------------------------------------------
# Utility Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def utc_now() -> datetime:
    """Current UTC datetime for tests."""
    return datetime.now(UTC)
