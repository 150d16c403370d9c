"""Contribution sync - GitHub to database synchronization.

This module provides the services that sync a student's commits, pull
requests and issues from GitHub into the local database.

Services:
- BatchCoordinator: Entry points (one repository, one student, everything)
- SyncOrchestrator: One repository, three fault-isolated phases
- PullRequestRetrievalStrategy: Search with list-all fallback
- Reconciler: Idempotent contribution upsert
- IdentityResolver: Repository rows to sync targets
- CommitManager: Batch commit boundaries for database resilience
"""

from .attribution import filter_issues, filter_pull_requests, is_attributable
from .commit_manager import CommitManager
from .coordinator import BatchCoordinator
from .enums import OutputFormat, RetrievalKind, SyncPhase
from .exceptions import IdentityResolutionError, PullRequestRetrievalError, SyncError
from .identity import IdentityResolver, RepositoryIdentity
from .orchestrator import RepositoryLocks, SyncOrchestrator, repository_locks
from .pagination import fetch_all, paginate
from .pull_requests import PRRetrievalResult, PullRequestRetrievalStrategy
from .reconciler import ReconcileOutcome, Reconciler
from .results import BatchSyncResult, PhaseResult, RepoSyncResult, derive_status
from .runtime import sync_context

__all__ = [
    # Entry points
    "BatchCoordinator",
    "SyncOrchestrator",
    "sync_context",
    # Components
    "CommitManager",
    "IdentityResolver",
    "PullRequestRetrievalStrategy",
    "Reconciler",
    "RepositoryIdentity",
    "RepositoryLocks",
    "repository_locks",
    # Pagination & attribution
    "fetch_all",
    "filter_issues",
    "filter_pull_requests",
    "is_attributable",
    "paginate",
    # Results
    "BatchSyncResult",
    "PRRetrievalResult",
    "PhaseResult",
    "ReconcileOutcome",
    "RepoSyncResult",
    "derive_status",
    # Enums
    "OutputFormat",
    "RetrievalKind",
    "SyncPhase",
    # Exceptions
    "IdentityResolutionError",
    "PullRequestRetrievalError",
    "SyncError",
]
