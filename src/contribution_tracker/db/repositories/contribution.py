"""Repository for Contribution model operations."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from contribution_tracker.db.models import Contribution, ContributionType

from .base import BaseRepository

if TYPE_CHECKING:
    from contribution_tracker.schemas.contribution import ContributionRecord

# Columns overwritten when an existing contribution is seen again.
# created_at, the key columns and the primary key are never touched.
_UPDATABLE_COLUMNS = ("title", "url", "state", "updated_at", "details", "synced_at")

_CONFLICT_KEY = ("repository_id", "type", "external_id")


def _column_name(attribute: str) -> str:
    """Map an ORM attribute to its column name (details is stored as "metadata")."""
    return "metadata" if attribute == "details" else attribute


def _naive_utc(value: datetime) -> datetime:
    """Store timestamps as naive UTC (the DateTime columns carry no tz)."""
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


class ContributionRepository(BaseRepository[Contribution]):
    """Repository for Contribution entities.

    The only write path is `upsert`, keyed on
    (repository_id, type, external_id). Sync never deletes contributions;
    rows disappear only when their repository is deleted.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Contribution)

    # -------------------------------------------------------------------------
    # Upsert
    # -------------------------------------------------------------------------

    async def upsert(
        self,
        repository_id: int,
        student_id: int,
        record: ContributionRecord,
    ) -> tuple[int, bool]:
        """Insert a contribution or update it in place.

        On conflict, title/url/state/updated_at/metadata are overwritten and
        synced_at refreshed; created_at and identity are left untouched.
        SQLite and PostgreSQL use a single INSERT ... ON CONFLICT statement,
        so concurrent writers cannot create duplicates. Other dialects fall
        back to select-then-write.

        Args:
            repository_id: Owning repository ID
            student_id: Student the contribution is credited to
            record: Normalized upstream record

        Returns:
            Tuple of (contribution_id, created) where created=True if new
        """
        values = self._to_row(repository_id, student_id, record)
        existing_id = await self._get_id(repository_id, record.type, record.external_id)

        insert_fn = self._dialect_insert()
        if insert_fn is None:
            return await self._select_then_write(existing_id, values)

        table = Contribution.__table__
        row = {_column_name(key): value for key, value in values.items()}
        stmt = insert_fn(table).values(row)
        stmt = stmt.on_conflict_do_update(
            index_elements=list(_CONFLICT_KEY),
            set_={
                _column_name(key): stmt.excluded[_column_name(key)]
                for key in _UPDATABLE_COLUMNS
            },
        ).returning(table.c.id)

        result = await self._session.execute(stmt)
        contribution_id = result.scalar_one()
        return contribution_id, existing_id is None

    def _dialect_insert(self) -> Any:
        """Return the dialect-specific insert() supporting ON CONFLICT, if any."""
        if self.dialect_name == "sqlite":
            return sqlite.insert
        if self.dialect_name == "postgresql":
            return postgresql.insert
        return None

    async def _get_id(
        self,
        repository_id: int,
        contribution_type: ContributionType,
        external_id: str,
    ) -> int | None:
        stmt = select(Contribution.id).where(
            Contribution.repository_id == repository_id,
            Contribution.type == contribution_type.value,
            Contribution.external_id == external_id,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def _select_then_write(
        self,
        existing_id: int | None,
        values: dict[str, Any],
    ) -> tuple[int, bool]:
        if existing_id is None:
            contribution = Contribution(**values)
            self.add(contribution)
            await self.flush()
            return contribution.id, True

        contribution = await self._session.get(Contribution, existing_id)
        assert contribution is not None, "Contribution vanished between select and update"
        for column in _UPDATABLE_COLUMNS:
            setattr(contribution, column, values[column])
        await self.flush()
        return contribution.id, False

    @staticmethod
    def _to_row(
        repository_id: int,
        student_id: int,
        record: ContributionRecord,
    ) -> dict[str, Any]:
        """Convert a ContributionRecord to column values."""
        return {
            "repository_id": repository_id,
            "student_id": student_id,
            "type": record.type.value,
            "external_id": record.external_id,
            "title": record.title,
            "url": record.url,
            "state": record.state,
            "created_at": _naive_utc(record.created_at),
            "updated_at": _naive_utc(record.updated_at),
            "details": record.metadata,
            "synced_at": datetime.now(UTC).replace(tzinfo=None),
        }
