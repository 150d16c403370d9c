"""Generic async repository shared by the store's tables."""

from typing import Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from contribution_tracker.db.models import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Primary-key lookups and staging for one model class.

    Repositories add and flush but never commit: the sync engine decides
    commit boundaries per phase, and CLI commands commit on session exit.
    """

    def __init__(self, session: AsyncSession, model_class: type[ModelT]) -> None:
        self._session = session
        self._model_class = model_class

    @property
    def dialect_name(self) -> str:
        """SQL dialect behind the session ("sqlite", "postgresql", ...)."""
        bind = self._session.bind
        return bind.dialect.name if bind is not None else ""

    async def get_by_id(self, id: int) -> ModelT | None:
        return await self._session.get(self._model_class, id)

    async def get_all(self) -> list[ModelT]:
        """All rows in primary key order."""
        stmt = select(self._model_class).order_by(self._model_class.id)  # type: ignore[attr-defined]
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    def add(self, entity: ModelT) -> ModelT:
        """Stage an entity in the session without flushing."""
        self._session.add(entity)
        return entity

    async def flush(self) -> None:
        await self._session.flush()
