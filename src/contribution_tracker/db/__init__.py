"""Database module for Contribution Tracker."""

from contribution_tracker.db.engine import (
    build_engine,
    create_tables,
    dispose_engine,
    drop_tables,
    get_engine,
    get_session,
    get_session_factory,
)
from contribution_tracker.db.models import (
    Base,
    Contribution,
    ContributionState,
    ContributionType,
    Repository,
    Student,
    SyncLog,
    SyncStatus,
)
from contribution_tracker.db.repositories import (
    BaseRepository,
    ContributionRepository,
    RepositoryRepository,
    StudentRepository,
    SyncLogRepository,
)

__all__ = [
    # Models
    "Base",
    "Contribution",
    "ContributionState",
    "ContributionType",
    "Repository",
    "Student",
    "SyncLog",
    "SyncStatus",
    # Engine
    "build_engine",
    "create_tables",
    "dispose_engine",
    "drop_tables",
    "get_engine",
    "get_session",
    "get_session_factory",
    # Repositories
    "BaseRepository",
    "ContributionRepository",
    "RepositoryRepository",
    "StudentRepository",
    "SyncLogRepository",
]
