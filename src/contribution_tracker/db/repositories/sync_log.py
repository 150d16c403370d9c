"""Repository for SyncLog model operations."""

from datetime import UTC, datetime

from sqlalchemy.ext.asyncio import AsyncSession

from contribution_tracker.db.models import SyncLog, SyncStatus

from .base import BaseRepository


class SyncLogRepository(BaseRepository[SyncLog]):
    """Repository for per-repository sync attempt records.

    Lifecycle:
    - `start` creates the record before any fetching happens
    - `finalize` sets status, count, error and completed_at exactly once

    A record left unfinalized (completed_at is NULL) marks a sync that
    crashed or was cancelled.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, SyncLog)

    # -------------------------------------------------------------------------
    # Lifecycle Methods
    # -------------------------------------------------------------------------

    async def start(
        self,
        repository_id: int,
        student_id: int | None,
    ) -> SyncLog:
        """Create the record for a sync that is about to run.

        The status is "error" until finalized, so a crashed sync never
        reads as successful.

        Args:
            repository_id: Repository being synced
            student_id: Student resolved from the username, if any

        Returns:
            The new SyncLog (flushed, not committed)
        """
        log = SyncLog(
            repository_id=repository_id,
            student_id=student_id,
            status=SyncStatus.ERROR.value,
            contributions_count=0,
            started_at=datetime.now(UTC).replace(tzinfo=None),
        )
        self.add(log)
        await self.flush()
        return log

    async def finalize(
        self,
        log_id: int,
        status: SyncStatus,
        contributions_count: int,
        error_message: str | None = None,
    ) -> SyncLog | None:
        """Record the outcome of a sync.

        Args:
            log_id: SyncLog ID returned by `start`
            status: Final status
            contributions_count: Contributions reconciled and committed
            error_message: Combined phase errors, if any

        Returns:
            Updated SyncLog or None if not found
        """
        log = await self.get_by_id(log_id)
        if log is None:
            return None

        log.status = status.value
        log.contributions_count = contributions_count
        log.error_message = error_message
        log.completed_at = datetime.now(UTC).replace(tzinfo=None)
        await self.flush()
        return log
