"""Sync Orchestrator - one repository, three fault-isolated phases.

A repository sync runs the commits, pull requests and issues phases in
that order. Each phase is isolated: its failure is recorded as a
phase-scoped error and the remaining phases still run. Work reconciled
by a phase is committed in batches and at the end of the phase, so a
later failure never loses it.

Every sync is recorded in a SyncLog row that is committed before any
fetching starts and finalized with the outcome at the end.
"""

from __future__ import annotations

import asyncio
import dataclasses
import weakref
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from contribution_tracker.config import SyncConfig, get_settings
from contribution_tracker.db.models import ContributionType, SyncStatus
from contribution_tracker.db.repositories import StudentRepository, SyncLogRepository
from contribution_tracker.github.exceptions import GitHubClientError
from contribution_tracker.logging import bind_student
from contribution_tracker.schemas.contribution import ContributionRecord

from .attribution import is_attributable
from .commit_manager import CommitManager
from .enums import RetrievalKind, SyncPhase
from .exceptions import IdentityResolutionError, PullRequestRetrievalError, SyncError
from .identity import IdentityResolver, RepositoryIdentity
from .pagination import paginate
from .pull_requests import PullRequestRetrievalStrategy
from .reconciler import Reconciler
from .results import PhaseResult, RepoSyncResult

if TYPE_CHECKING:
    from contribution_tracker.github.client import GitHubClient
    from contribution_tracker.schemas.github_api import GitHubCommit, GitHubIssue

PhaseHandler = Callable[[RepositoryIdentity, PhaseResult, CommitManager], Awaitable[None]]


class RepositoryLocks:
    """In-process locks serializing overlapping syncs of the same repository.

    Locks are kept per event loop. Syncs running in other processes are
    not serialized; the conflict-safe upsert keeps that race to redundant
    work and overlapping SyncLog counts.
    """

    def __init__(self) -> None:
        self._locks: weakref.WeakKeyDictionary[
            asyncio.AbstractEventLoop, dict[int, asyncio.Lock]
        ] = weakref.WeakKeyDictionary()

    def lock_for(self, repository_id: int) -> asyncio.Lock:
        """Get the lock for a repository in the running event loop."""
        loop = asyncio.get_running_loop()
        locks = self._locks.setdefault(loop, {})
        if repository_id not in locks:
            locks[repository_id] = asyncio.Lock()
        return locks[repository_id]


repository_locks = RepositoryLocks()


class SyncOrchestrator:
    """Syncs one repository's contributions for one username.

    Usage:
        async with GitHubClient() as client, get_session(auto_commit=False) as session:
            orchestrator = SyncOrchestrator(session, client)
            result = await orchestrator.sync_repository(1, "alice", "acme", "widgets")
            print(result.status, result.contributions_count)

    The orchestrator owns commit boundaries on the session it is given.
    """

    def __init__(
        self,
        session: AsyncSession,
        client: GitHubClient,
        config: SyncConfig | None = None,
        *,
        strategy: PullRequestRetrievalStrategy | None = None,
        locks: RepositoryLocks | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            session: Async SQLAlchemy session (committed by the orchestrator)
            client: GitHub API client
            config: Sync configuration (uses settings if not provided)
            strategy: PR retrieval strategy (built from client and config if not provided)
            locks: Repository lock registry (process-wide registry if not provided)
        """
        self._session = session
        self._client = client
        self._config = config or get_settings().sync
        self._strategy = strategy or PullRequestRetrievalStrategy(client, self._config)
        self._locks = locks or repository_locks
        self._resolver = IdentityResolver(session)
        self._reconciler = Reconciler(session)
        self._students = StudentRepository(session)
        self._sync_logs = SyncLogRepository(session)

    async def sync_repository(
        self,
        repository_id: int,
        username: str,
        owner: str,
        name: str,
    ) -> RepoSyncResult:
        """Sync commits, pull requests and issues of one user in one repository.

        Upstream and database failures never escape: they become phase
        errors, or an error result when the repository cannot be resolved.

        Args:
            repository_id: Repository ID (contributions are stored under it)
            username: GitHub username whose contributions are fetched
            owner: Repository owner on GitHub
            name: Repository name on GitHub

        Returns:
            RepoSyncResult with status, contribution count and phase errors

        Raises:
            ValueError: If any identifier is missing
        """
        if not repository_id:
            raise ValueError("repository_id is required")
        for label, value in (("username", username), ("owner", owner), ("name", name)):
            if not value or not value.strip():
                raise ValueError(f"{label} is required")

        lock = self._locks.lock_for(repository_id)
        if lock.locked():
            bind_student(owner, name, username).info(
                "Waiting for in-flight sync of repository {}", repository_id
            )
        async with lock:
            return await self._sync(repository_id, username, owner, name)

    async def _sync(
        self,
        repository_id: int,
        username: str,
        owner: str,
        name: str,
    ) -> RepoSyncResult:
        log = bind_student(owner, name, username)
        full_name = f"{owner}/{name}"

        try:
            owning = await self._resolver.resolve(repository_id)
        except IdentityResolutionError as e:
            log.error("Cannot sync repository {}: {}", repository_id, e)
            return RepoSyncResult.from_error(
                repository_id, e, repository=full_name, username=username
            )
        target = dataclasses.replace(owning, owner=owner, name=name, username=username)

        student = await self._students.get_by_username(username)
        sync_log = await self._sync_logs.start(repository_id, student.id if student else None)
        sync_log_id = sync_log.id
        await self._session.commit()

        log.info("Sync started (log {})", sync_log_id)

        handlers: list[tuple[SyncPhase, PhaseHandler]] = [
            (SyncPhase.COMMITS, self._sync_commits),
            (SyncPhase.PULL_REQUESTS, self._sync_pull_requests),
            (SyncPhase.ISSUES, self._sync_issues),
        ]
        phases = [await self._run_phase(phase, handler, target) for phase, handler in handlers]

        result = RepoSyncResult.from_phases(
            repository_id, full_name, username, phases, sync_log_id=sync_log_id
        )
        await self._sync_logs.finalize(
            sync_log_id,
            result.status,
            result.contributions_count,
            result.error,
        )
        await self._session.commit()

        if result.status == SyncStatus.SUCCESS:
            log.info("Sync succeeded: {} contributions", result.contributions_count)
        else:
            log.warning(
                "Sync finished with status {}: {} contributions, errors: {}",
                result.status.value,
                result.contributions_count,
                result.error,
            )
        return result

    # -------------------------------------------------------------------------
    # Phase Execution
    # -------------------------------------------------------------------------
    async def _run_phase(
        self,
        phase: SyncPhase,
        handler: PhaseHandler,
        target: RepositoryIdentity,
    ) -> PhaseResult:
        """Run one phase, converting any failure into a phase error."""
        log = bind_student(target.owner, target.name, target.username)
        result = PhaseResult(phase=phase)
        manager = CommitManager(self._session, batch_size=self._config.commit_batch_size)
        timeout = self._config.phase_timeout_seconds

        log.debug("{} phase started", phase.value)
        try:
            async with asyncio.timeout(timeout):
                await handler(target, result, manager)
            await manager.finalize()
        except (GitHubClientError, SyncError) as e:
            # Upstream failure: rows reconciled so far are valid, keep them
            result.error = str(e)
            await self._keep_reconciled(manager)
        except TimeoutError:
            result.error = f"timed out after {timeout:g}s"
            await manager.rollback()
        except SQLAlchemyError as e:
            result.error = f"database error: {e}"
            await manager.rollback()
        except Exception as e:
            result.error = str(e) or type(e).__name__
            log.exception("{} phase failed unexpectedly", phase.value)
            await manager.rollback()

        result.contributions_count = manager.total_committed
        result.created = manager.created
        result.updated = manager.updated
        if result.success:
            log.info("{} phase done: {} contributions", phase.value, result.contributions_count)
        else:
            log.warning(
                "{} phase failed after {} contributions: {}",
                phase.value,
                result.contributions_count,
                result.error,
            )
        return result

    async def _keep_reconciled(self, manager: CommitManager) -> None:
        """Commit what a failed phase already reconciled."""
        try:
            await manager.finalize()
        except SQLAlchemyError:
            await manager.rollback()

    async def _reconcile(
        self,
        target: RepositoryIdentity,
        record: ContributionRecord,
        manager: CommitManager,
    ) -> None:
        outcome = await self._reconciler.reconcile(target.repository_id, target.student_id, record)
        await manager.record(created=outcome.created)

    # -------------------------------------------------------------------------
    # Phases
    # -------------------------------------------------------------------------
    async def _sync_commits(
        self,
        target: RepositoryIdentity,
        result: PhaseResult,
        manager: CommitManager,
    ) -> None:
        page_size = self._config.page_size

        async def fetch_page(page: int) -> list[GitHubCommit]:
            return await self._client.list_commits(
                target.owner, target.name, author=target.username, page=page, per_page=page_size
            )

        async for commit in paginate(fetch_page, page_size=page_size):
            if is_attributable(ContributionType.COMMIT, commit, target.username):
                await self._reconcile(target, commit.to_contribution(), manager)

    async def _sync_pull_requests(
        self,
        target: RepositoryIdentity,
        result: PhaseResult,
        manager: CommitManager,
    ) -> None:
        retrieval = await self._strategy.retrieve(target.owner, target.name, target.username)
        result.retrieval = retrieval.kind
        result.possibly_truncated = retrieval.possibly_truncated
        result.skipped = retrieval.skipped

        if retrieval.kind == RetrievalKind.FAILED:
            raise PullRequestRetrievalError(retrieval.reason or "pull request retrieval failed")
        if retrieval.kind == RetrievalKind.DEGRADED:
            bind_student(target.owner, target.name, target.username).warning(
                "PRs retrieved via fallback listing: {}", retrieval.reason
            )

        for pr in retrieval.pull_requests:
            await self._reconcile(target, pr.to_contribution(), manager)

    async def _sync_issues(
        self,
        target: RepositoryIdentity,
        result: PhaseResult,
        manager: CommitManager,
    ) -> None:
        page_size = self._config.page_size

        async def fetch_page(page: int) -> list[GitHubIssue]:
            return await self._client.list_issues(
                target.owner, target.name, creator=target.username, page=page, per_page=page_size
            )

        async for issue in paginate(fetch_page, page_size=page_size):
            if is_attributable(ContributionType.ISSUE, issue, target.username):
                await self._reconcile(target, issue.to_contribution(), manager)
