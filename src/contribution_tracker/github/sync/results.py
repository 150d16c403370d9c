"""Result objects for sync operations.

Structured results provide consistent interfaces for monitoring,
error handling, and CLI output.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from contribution_tracker.db.models import SyncStatus

from .enums import RetrievalKind, SyncPhase


@dataclass
class PhaseResult:
    """Outcome of one phase (commits, PRs or issues) of a repository sync."""

    phase: SyncPhase
    """Which phase this is."""

    contributions_count: int = 0
    """Contributions reconciled and committed in this phase."""

    created: int = 0
    """New contributions among them."""

    updated: int = 0
    """Existing contributions updated in place."""

    error: str | None = None
    """Error message if the phase failed."""

    retrieval: RetrievalKind | None = None
    """PR phase only: how the pull request set was obtained."""

    possibly_truncated: bool = False
    """PR phase only: the search cap was reached."""

    skipped: int = 0
    """PR phase only: search hits dropped because the PR was gone or inaccessible."""

    @property
    def success(self) -> bool:
        """Check if the phase completed without errors."""
        return self.error is None

    @property
    def labelled_error(self) -> str | None:
        """Error prefixed with the phase label, e.g. 'Commits: boom'."""
        if self.error is None:
            return None
        return f"{self.phase.value}: {self.error}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "phase": self.phase.value,
            "success": self.success,
            "contributions_count": self.contributions_count,
            "created": self.created,
            "updated": self.updated,
        }
        if self.retrieval is not None:
            result["retrieval"] = self.retrieval.value
            result["possibly_truncated"] = self.possibly_truncated
            result["skipped"] = self.skipped
        if self.error is not None:
            result["error"] = self.error
        return result


def derive_status(phases: list[PhaseResult]) -> SyncStatus:
    """Success if no phase failed, error if every phase failed, else partial."""
    failed = sum(1 for phase in phases if not phase.success)
    if failed == 0:
        return SyncStatus.SUCCESS
    if failed == len(phases):
        return SyncStatus.ERROR
    return SyncStatus.PARTIAL


@dataclass
class RepoSyncResult:
    """Result of syncing a single repository for one username.

    `success` is True unless the sync failed outright (every phase failed,
    or the repository could not be resolved).
    """

    repository_id: int
    """ID of the synced repository."""

    repository: str
    """Full repository name (owner/name), empty if unresolved."""

    username: str
    """GitHub username the contributions were attributed to."""

    status: SyncStatus
    """Derived sync status."""

    contributions_count: int = 0
    """Sum of contributions reconciled across all phases."""

    phases: list[PhaseResult] = field(default_factory=list)
    """Per-phase outcomes (empty if the sync never started)."""

    error: str | None = None
    """Combined, phase-labelled error message."""

    sync_log_id: int | None = None
    """ID of the SyncLog row describing this sync."""

    @property
    def success(self) -> bool:
        """Check if at least part of the sync worked."""
        return self.status != SyncStatus.ERROR

    @classmethod
    def from_phases(
        cls,
        repository_id: int,
        repository: str,
        username: str,
        phases: list[PhaseResult],
        sync_log_id: int | None = None,
    ) -> RepoSyncResult:
        """Create a result from completed phases.

        Args:
            repository_id: Repository ID
            repository: Full repository name
            username: Attributed username
            phases: Results of all phases
            sync_log_id: SyncLog row ID

        Returns:
            RepoSyncResult with status, count and error derived from phases
        """
        errors = [phase.labelled_error for phase in phases if phase.labelled_error]
        return cls(
            repository_id=repository_id,
            repository=repository,
            username=username,
            status=derive_status(phases),
            contributions_count=sum(phase.contributions_count for phase in phases),
            phases=phases,
            error="; ".join(errors) if errors else None,
            sync_log_id=sync_log_id,
        )

    @classmethod
    def from_error(
        cls,
        repository_id: int,
        error: Exception | str,
        *,
        repository: str = "",
        username: str = "",
    ) -> RepoSyncResult:
        """Create a result for a sync that could not run.

        Args:
            repository_id: Repository ID
            error: The exception (or message) that stopped the sync
            repository: Full repository name, if known
            username: Attributed username, if known

        Returns:
            RepoSyncResult with status=error
        """
        return cls(
            repository_id=repository_id,
            repository=repository,
            username=username,
            status=SyncStatus.ERROR,
            error=str(error),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "repository_id": self.repository_id,
            "repository": self.repository,
            "username": self.username,
            "success": self.success,
            "status": self.status.value,
            "contributions_count": self.contributions_count,
            "phases": [phase.to_dict() for phase in self.phases],
        }
        if self.error is not None:
            result["error"] = self.error
        if self.sync_log_id is not None:
            result["sync_log_id"] = self.sync_log_id
        return result


@dataclass
class BatchSyncResult:
    """Aggregate result of syncing several repositories sequentially."""

    results: list[RepoSyncResult] = field(default_factory=list)
    """Per-repository results, in processing order."""

    error: str | None = None
    """Set when the batch itself could not be resolved (e.g. unknown student)."""

    @property
    def total(self) -> int:
        """Number of repositories attempted."""
        return len(self.results)

    @property
    def succeeded(self) -> int:
        """Number of repositories whose sync succeeded (fully or partially)."""
        return sum(1 for r in self.results if r.success)

    @property
    def failed(self) -> int:
        """Number of repositories whose sync failed."""
        return self.total - self.succeeded

    @property
    def contributions_count(self) -> int:
        """Contributions reconciled across all repositories."""
        return sum(r.contributions_count for r in self.results)

    @property
    def all_succeeded(self) -> bool:
        """Whether the batch resolved and every repository succeeded."""
        return self.error is None and self.failed == 0

    @property
    def tally(self) -> str:
        """Succeeded/total, e.g. '3/4'."""
        return f"{self.succeeded}/{self.total}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "summary": {
                "total": self.total,
                "succeeded": self.succeeded,
                "failed": self.failed,
                "contributions_count": self.contributions_count,
            },
            "repositories": [r.to_dict() for r in self.results],
        }
        if self.error is not None:
            result["error"] = self.error
        return result
