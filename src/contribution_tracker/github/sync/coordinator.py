"""Batch Coordinator - entry points for syncing one or many repositories.

Repositories are synced strictly one after another to keep upstream
request volume and database connections bounded. A failing repository
never stops the batch and nothing is raised to the caller: every outcome
is reported in the returned results.
"""

from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from contribution_tracker.logging import LogContext, get_logger

from .exceptions import IdentityResolutionError
from .identity import IdentityResolver, RepositoryIdentity
from .orchestrator import SyncOrchestrator
from .results import BatchSyncResult, RepoSyncResult

logger = get_logger(__name__)


class BatchCoordinator:
    """Resolves which repositories to sync and runs the orchestrator for each.

    Usage:
        async with sync_context() as coordinator:
            result = await coordinator.sync_all()
            print(f"{result.tally} repositories synced")
    """

    def __init__(
        self,
        session: AsyncSession,
        orchestrator: SyncOrchestrator,
        resolver: IdentityResolver | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            session: Async SQLAlchemy session shared with the orchestrator
            orchestrator: Orchestrator used for every repository
            resolver: Identity resolver (built from the session if not provided)
        """
        self._session = session
        self._orchestrator = orchestrator
        self._resolver = resolver or IdentityResolver(session)

    async def sync_repository_by_id(self, repository_id: int) -> RepoSyncResult:
        """Sync one repository for its owning student.

        Args:
            repository_id: Repository ID

        Returns:
            RepoSyncResult (status=error if the repository cannot be resolved)
        """
        try:
            identity = await self._resolver.resolve(repository_id)
        except IdentityResolutionError as e:
            logger.error("Cannot sync repository {}: {}", repository_id, e)
            return RepoSyncResult.from_error(repository_id, e)
        return await self._sync_identity(identity)

    async def sync_for_student(self, student_id: int) -> BatchSyncResult:
        """Sync every repository relevant to one student.

        Covers the student's own repositories and repositories already
        holding the student's contributions, all attributed to the
        student's username.

        Args:
            student_id: Student ID

        Returns:
            BatchSyncResult (with `error` set if the student does not exist)
        """
        try:
            identities = await self._resolver.resolve_for_student(student_id)
        except IdentityResolutionError as e:
            logger.error("Cannot sync student {}: {}", student_id, e)
            return BatchSyncResult(error=str(e))

        logger.info("Syncing {} repositories for student {}", len(identities), student_id)
        batch = BatchSyncResult()
        for identity in identities:
            batch.results.append(await self._sync_identity(identity))

        logger.info("Student {} sync complete: {} succeeded", student_id, batch.tally)
        return batch

    async def sync_all(self) -> BatchSyncResult:
        """Sync every tracked repository, each for its owning student.

        Returns:
            BatchSyncResult with one result per repository and the
            succeeded/total tally
        """
        repository_ids = await self._resolver.list_repository_ids()
        logger.info("Syncing all {} tracked repositories", len(repository_ids))

        batch = BatchSyncResult()
        for repository_id in repository_ids:
            batch.results.append(await self.sync_repository_by_id(repository_id))

        logger.info(
            "Sync of all repositories complete: {} succeeded, {} contributions",
            batch.tally,
            batch.contributions_count,
        )
        return batch

    async def _sync_identity(self, identity: RepositoryIdentity) -> RepoSyncResult:
        """Run the orchestrator for one target, containing any failure."""
        with LogContext(repo=identity.full_name, student=identity.username):
            try:
                return await self._orchestrator.sync_repository(
                    identity.repository_id,
                    identity.username,
                    identity.owner,
                    identity.name,
                )
            except Exception as e:
                logger.exception("Sync of {} failed", identity.full_name)
                await self._session.rollback()
                return RepoSyncResult.from_error(
                    identity.repository_id,
                    e,
                    repository=identity.full_name,
                    username=identity.username,
                )
