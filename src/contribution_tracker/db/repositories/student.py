"""Repository for Student model operations."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from contribution_tracker.db.models import Student

from .base import BaseRepository


class StudentRepository(BaseRepository[Student]):
    """Repository for Student entities.

    The sync engine only reads students; creation is an administrative
    action (see the `roster` CLI).
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Student)

    async def get_by_username(self, username: str) -> Student | None:
        """Get a student by GitHub username (case-insensitive).

        Args:
            username: GitHub username

        Returns:
            Student or None if not found
        """
        stmt = select(Student).where(func.lower(Student.github_username) == username.lower())
        result = await self._session.execute(stmt)
        return result.scalars().first()

    async def create(
        self,
        github_username: str,
        *,
        student_name: str | None = None,
        email: str | None = None,
    ) -> Student:
        """Create a new student (flushed, not committed)."""
        student = Student(
            github_username=github_username,
            student_name=student_name,
            email=email,
        )
        self.add(student)
        await self.flush()
        return student
