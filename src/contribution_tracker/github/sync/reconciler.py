"""Reconciler - normalized records to stored contributions.

Category-agnostic: every upstream record is converted to a
ContributionRecord before it gets here, and the write is always the same
idempotent upsert keyed on (repository_id, type, external_id).
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from contribution_tracker.db.repositories import ContributionRepository
from contribution_tracker.schemas.contribution import ContributionRecord


@dataclass(frozen=True)
class ReconcileOutcome:
    """Result of reconciling one record."""

    contribution_id: int
    created: bool


class Reconciler:
    """Creates a contribution on first sight and updates it in place afterwards."""

    def __init__(self, session: AsyncSession) -> None:
        self._contributions = ContributionRepository(session)

    async def reconcile(
        self,
        repository_id: int,
        student_id: int,
        record: ContributionRecord,
    ) -> ReconcileOutcome:
        """Upsert one record.

        Args:
            repository_id: Repository the contribution belongs to
            student_id: Student the contribution is stored under
            record: Normalized upstream record

        Returns:
            ReconcileOutcome with the row ID and whether it was new

        Raises:
            ValueError: If an identifier is missing
        """
        if not repository_id:
            raise ValueError("repository_id is required")
        if not student_id:
            raise ValueError("student_id is required")

        contribution_id, created = await self._contributions.upsert(
            repository_id, student_id, record
        )
        return ReconcileOutcome(contribution_id=contribution_id, created=created)
