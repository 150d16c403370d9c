"""Batch commit boundaries for a sync phase.

A phase reconciles contributions one at a time. Committing every
``batch_size`` records bounds what a crash or rollback can lose to the
current batch, and the created/updated tally only counts rows that
actually reached the database.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from contribution_tracker.logging import get_logger

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


class CommitManager:
    """Counts reconciled contributions and commits them in batches.

    Usage:
        manager = CommitManager(session, batch_size=25)
        for record in records:
            outcome = await reconciler.reconcile(...)
            await manager.record(created=outcome.created)
        await manager.finalize()
    """

    def __init__(self, session: AsyncSession, batch_size: int = 25) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._session = session
        self._batch_size = batch_size
        # [created, updated] for the open batch and for everything committed
        self._pending = [0, 0]
        self._committed = [0, 0]

    @property
    def batch_size(self) -> int:
        return self._batch_size

    @property
    def uncommitted_count(self) -> int:
        return sum(self._pending)

    @property
    def total_committed(self) -> int:
        return sum(self._committed)

    @property
    def created(self) -> int:
        """New contributions that have been committed."""
        return self._committed[0]

    @property
    def updated(self) -> int:
        """Existing contributions whose update has been committed."""
        return self._committed[1]

    async def record(self, *, created: bool) -> int:
        """Count one reconciled contribution and commit if the batch is full.

        Returns:
            Items committed by this call (0 unless the batch filled up).
        """
        self._pending[0 if created else 1] += 1
        if self.uncommitted_count >= self._batch_size:
            return await self.commit()
        return 0

    async def commit(self) -> int:
        """Commit the open batch. Returns how many items it held."""
        count = self.uncommitted_count
        if count == 0:
            return 0

        await self._session.commit()

        self._committed = [c + p for c, p in zip(self._committed, self._pending, strict=True)]
        self._pending = [0, 0]
        logger.debug("Committed {} contributions ({} so far)", count, self.total_committed)
        return count

    async def finalize(self) -> int:
        """Commit whatever the last, partial batch holds."""
        return await self.commit()

    async def rollback(self) -> int:
        """Discard the open batch. Returns how many items were lost."""
        discarded = self.uncommitted_count
        await self._session.rollback()
        self._pending = [0, 0]
        if discarded:
            logger.warning("Rolled back {} uncommitted contributions", discarded)
        return discarded
