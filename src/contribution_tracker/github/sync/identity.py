"""Identity resolution: repository rows to sync targets.

A sync target pairs a repository (id, owner, name) with the student who
owns it (contributions are stored under that student) and the username
whose work is being attributed.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession

from contribution_tracker.db.models import Repository
from contribution_tracker.db.repositories import RepositoryRepository, StudentRepository

from .exceptions import IdentityResolutionError


@dataclass(frozen=True)
class RepositoryIdentity:
    """Durable identifiers needed to attribute and store contributions."""

    repository_id: int
    student_id: int
    """Owning student; contributions are stored under this ID."""
    owner: str
    name: str
    username: str
    """GitHub username whose contributions are fetched."""

    @property
    def full_name(self) -> str:
        """Full repository name (owner/name)."""
        return f"{self.owner}/{self.name}"


class IdentityResolver:
    """Resolves repositories into RepositoryIdentity sync targets."""

    def __init__(self, session: AsyncSession) -> None:
        self._repositories = RepositoryRepository(session)
        self._students = StudentRepository(session)

    async def resolve(self, repository_id: int) -> RepositoryIdentity:
        """Resolve one repository, attributing to its owning student.

        Args:
            repository_id: Repository ID

        Returns:
            RepositoryIdentity for the owning student's username

        Raises:
            IdentityResolutionError: If the repository or its student is missing
        """
        repo = await self._repositories.get_with_student(repository_id)
        if repo is None:
            raise IdentityResolutionError(
                f"Repository {repository_id} not found", repository_id=repository_id
            )
        return self._identity(repo)

    async def list_repository_ids(self) -> list[int]:
        """IDs of every tracked repository, in ID order."""
        return [repo.id for repo in await self._repositories.get_all()]

    async def resolve_for_student(self, student_id: int) -> list[RepositoryIdentity]:
        """Resolve every repository to sync for one student.

        Covers repositories the student owns plus repositories that already
        hold contributions attributed to the student. The student's own
        username is used for all of them.

        Args:
            student_id: Student ID

        Returns:
            Identities ordered by repository ID

        Raises:
            IdentityResolutionError: If the student does not exist
        """
        student = await self._students.get_by_id(student_id)
        if student is None:
            raise IdentityResolutionError(f"Student {student_id} not found")

        identities = []
        for repo in await self._repositories.get_for_student(student_id):
            identities.append(
                RepositoryIdentity(
                    repository_id=repo.id,
                    student_id=repo.student_id,
                    owner=repo.owner,
                    name=repo.name,
                    username=student.github_username,
                )
            )
        return identities

    @staticmethod
    def _identity(repo: Repository) -> RepositoryIdentity:
        if repo.student is None:
            raise IdentityResolutionError(
                f"Repository {repo.full_name} has no owning student",
                repository_id=repo.id,
            )
        return RepositoryIdentity(
            repository_id=repo.id,
            student_id=repo.student.id,
            owner=repo.owner,
            name=repo.name,
            username=repo.student.github_username,
        )
