"""Repository for GitHub Repository model operations."""

from sqlalchemy import select, union
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from contribution_tracker.db.models import Contribution, Repository

from .base import BaseRepository


class RepositoryRepository(BaseRepository[Repository]):
    """Repository for tracked GitHub repositories.

    A repository row belongs to exactly one student; the same owner/name
    may appear once per student.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize the repository.

        Args:
            session: Async SQLAlchemy session
        """
        super().__init__(session, Repository)

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------

    async def get_with_student(self, repository_id: int) -> Repository | None:
        """Get a repository with its owning student loaded.

        Args:
            repository_id: Repository ID

        Returns:
            Repository (student eagerly loaded) or None if not found
        """
        stmt = (
            select(Repository)
            .options(selectinload(Repository.student))
            .where(Repository.id == repository_id)
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_for_student_by_name(
        self,
        student_id: int,
        owner: str,
        name: str,
    ) -> Repository | None:
        """Get a student's repository by owner and name."""
        stmt = select(Repository).where(
            Repository.student_id == student_id,
            Repository.owner == owner,
            Repository.name == name,
        )
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_for_student(self, student_id: int) -> list[Repository]:
        """Get repositories to sync for a student.

        This is the union of repositories the student owns and repositories
        referenced by contributions already attributed to the student (work
        in repositories tracked under another student).

        Args:
            student_id: Student ID

        Returns:
            Distinct repositories ordered by ID
        """
        owned = select(Repository.id.label("repository_id")).where(
            Repository.student_id == student_id
        )
        contributed = (
            select(Contribution.repository_id)
            .where(Contribution.student_id == student_id)
            .distinct()
        )
        repo_ids = union(owned, contributed).subquery()

        stmt = (
            select(Repository)
            .options(selectinload(Repository.student))
            .where(Repository.id.in_(select(repo_ids.c.repository_id)))
            .order_by(Repository.id)
        )
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    # -------------------------------------------------------------------------
    # Create Methods
    # -------------------------------------------------------------------------

    async def create(self, student_id: int, owner: str, name: str) -> Repository:
        """Create a new repository for a student.

        Args:
            student_id: Owning student ID
            owner: Repository owner
            name: Repository name

        Returns:
            Created repository (flushed, not committed)
        """
        repo = Repository(
            student_id=student_id,
            owner=owner,
            name=name,
            full_name=f"{owner}/{name}",
        )
        self.add(repo)
        await self.flush()
        return repo

    async def get_or_create(
        self,
        student_id: int,
        owner: str,
        name: str,
    ) -> tuple[Repository, bool]:
        """Get a student's repository or create it.

        Returns:
            Tuple of (repository, created) where created is True if new
        """
        existing = await self.get_for_student_by_name(student_id, owner, name)
        if existing is not None:
            return existing, False

        repo = await self.create(student_id, owner, name)
        return repo, True
