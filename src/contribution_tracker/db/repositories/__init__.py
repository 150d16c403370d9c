"""Repository pattern implementation for database access.

This module provides repository classes that encapsulate all database
access logic, providing a clean abstraction over SQLAlchemy models.
"""

from .base import BaseRepository
from .contribution import ContributionRepository
from .repository import RepositoryRepository
from .student import StudentRepository
from .sync_log import SyncLogRepository

__all__ = [
    "BaseRepository",
    "ContributionRepository",
    "RepositoryRepository",
    "StudentRepository",
    "SyncLogRepository",
]
