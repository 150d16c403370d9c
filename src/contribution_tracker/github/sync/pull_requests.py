"""Pull request retrieval: indexed search with a list-all fallback.

Search (`repo:<owner>/<name> author:<username> type:pr`) is cheap but
returns abbreviated records and is capped upstream at 1000 hits, so every
hit is re-fetched in full and its author re-checked. A hit whose detail
fetch answers 404 or a plain 403 is skipped and counted; any other detail
failure fails the search path. If the search path fails for any reason,
every pull request in the repository is listed and filtered locally
instead.

Known incompleteness: when the search cap is reached the result is
flagged `possibly_truncated` and a warning is logged, but no fallback is
attempted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from contribution_tracker.config import SyncConfig, get_settings
from contribution_tracker.github.batch import BatchExecutor
from contribution_tracker.github.exceptions import (
    GitHubForbiddenError,
    GitHubNotFoundError,
    GitHubRateLimitError,
)
from contribution_tracker.github.rate_limit import RateLimitPool
from contribution_tracker.logging import get_logger
from contribution_tracker.schemas.github_api import GitHubPullRequest, GitHubSearchItem

from .attribution import filter_pull_requests
from .enums import RetrievalKind
from .pagination import fetch_all

if TYPE_CHECKING:
    from contribution_tracker.github.client import GitHubClient

logger = get_logger(__name__)


@dataclass(frozen=True)
class PRRetrievalResult:
    """Tagged outcome of a pull request retrieval.

    - ok: the search path produced the set
    - degraded: the fallback produced the set; `reason` says why
    - failed: nothing was retrieved; `reason` holds both errors
    """

    kind: RetrievalKind
    pull_requests: list[GitHubPullRequest] = field(default_factory=list)
    reason: str | None = None
    possibly_truncated: bool = False
    skipped: int = 0
    """Search hits dropped because the PR was gone or inaccessible."""

    @property
    def succeeded(self) -> bool:
        """Whether a pull request set was obtained (fast or slow path)."""
        return self.kind != RetrievalKind.FAILED

    @classmethod
    def ok(
        cls,
        pull_requests: list[GitHubPullRequest],
        *,
        possibly_truncated: bool = False,
        skipped: int = 0,
    ) -> PRRetrievalResult:
        return cls(
            kind=RetrievalKind.OK,
            pull_requests=pull_requests,
            possibly_truncated=possibly_truncated,
            skipped=skipped,
        )

    @classmethod
    def degraded(cls, pull_requests: list[GitHubPullRequest], reason: str) -> PRRetrievalResult:
        return cls(kind=RetrievalKind.DEGRADED, pull_requests=pull_requests, reason=reason)

    @classmethod
    def failed(cls, reason: str) -> PRRetrievalResult:
        return cls(kind=RetrievalKind.FAILED, reason=reason)


@dataclass
class _SearchOutcome:
    pull_requests: list[GitHubPullRequest]
    candidates: int
    skipped: int


class PullRequestRetrievalStrategy:
    """Finds every pull request a user authored in one repository.

    Usage:
        strategy = PullRequestRetrievalStrategy(client)
        result = await strategy.retrieve("acme", "widgets", "alice")
        if result.kind == RetrievalKind.DEGRADED:
            logger.warning("Search unavailable: {}", result.reason)
    """

    def __init__(
        self,
        client: GitHubClient,
        config: SyncConfig | None = None,
        executor: BatchExecutor[GitHubSearchItem, GitHubPullRequest] | None = None,
    ) -> None:
        """Initialize the strategy.

        Args:
            client: GitHub API client
            config: Sync configuration (uses settings if not provided)
            executor: Batch executor for detail fetches (built from config if not provided)
        """
        self._client = client
        self._config = config or get_settings().sync
        self._executor = executor or BatchExecutor(
            batch_size=self._config.detail_batch_size,
            pause=self._config.detail_batch_pause,
        )

    async def retrieve(self, owner: str, name: str, username: str) -> PRRetrievalResult:
        """Retrieve the user's pull requests, falling back to a full listing.

        Never raises for upstream failures; they are reported in the result.

        Args:
            owner: Repository owner
            name: Repository name
            username: PR author to match (case-insensitive)

        Returns:
            PRRetrievalResult tagged ok, degraded or failed
        """
        try:
            outcome = await self._search(owner, name, username)
        except Exception as search_error:
            reason = f"search failed: {search_error}"
            logger.warning(
                "PR search failed for {}/{}, falling back to listing all PRs: {}",
                owner,
                name,
                search_error,
            )
            return await self._fallback(owner, name, username, reason)

        cap = self._config.search_result_cap
        possibly_truncated = outcome.candidates >= cap
        if possibly_truncated:
            logger.warning(
                "PR search for {} in {}/{} hit the {} result cap; results may be truncated",
                username,
                owner,
                name,
                cap,
            )
        return PRRetrievalResult.ok(
            outcome.pull_requests,
            possibly_truncated=possibly_truncated,
            skipped=outcome.skipped,
        )

    # -------------------------------------------------------------------------
    # Search Path
    # -------------------------------------------------------------------------
    async def _search(self, owner: str, name: str, username: str) -> _SearchOutcome:
        """Search for candidates, then fetch and re-verify each one."""
        monitor = self._client.rate_monitor
        if monitor.is_exhausted(RateLimitPool.SEARCH):
            raise GitHubRateLimitError(
                "search rate limit exhausted",
                reset_at=monitor.reset_at(RateLimitPool.SEARCH),
            )

        candidates = await self._search_candidates(owner, name, username)
        logger.debug(
            "PR search found {} candidates for {} in {}/{}",
            len(candidates),
            username,
            owner,
            name,
        )

        async def fetch_detail(item: GitHubSearchItem) -> GitHubPullRequest:
            return await self._client.get_pull_request(owner, name, item.number)

        batch = await self._executor.execute(candidates, fetch_detail)
        skipped = 0
        for item, error in batch.failed:
            # Only a gone or forbidden PR is skipped; transient failures fail the search
            if not isinstance(error, (GitHubNotFoundError, GitHubForbiddenError)):
                raise error
            logger.warning(
                "Skipping PR #{} in {}/{}: {}",
                item.number,
                owner,
                name,
                error,
            )
            skipped += 1

        return _SearchOutcome(
            pull_requests=filter_pull_requests(batch.succeeded, username),
            candidates=len(candidates),
            skipped=skipped,
        )

    async def _search_candidates(
        self,
        owner: str,
        name: str,
        username: str,
    ) -> list[GitHubSearchItem]:
        """Page through search hits, most recently updated first."""
        query = f"repo:{owner}/{name} author:{username} type:pr"
        page_size = self._config.page_size
        total_count: int | None = None

        async def fetch_page(page: int) -> list[GitHubSearchItem]:
            nonlocal total_count
            # Stop once earlier pages already covered every hit
            if total_count is not None and total_count <= (page - 1) * page_size:
                return []
            result = await self._client.search_pull_requests(query, page=page, per_page=page_size)
            total_count = result.total_count
            if result.incomplete_results:
                logger.warning("PR search for {}/{} returned incomplete results", owner, name)
            return result.items

        candidates = await fetch_all(
            fetch_page,
            page_size=page_size,
            max_pages=self._config.search_max_pages,
        )

        # Search pages can shift while paging; keep the first sighting of each number
        seen: set[int] = set()
        unique: list[GitHubSearchItem] = []
        for item in candidates:
            if item.number not in seen:
                seen.add(item.number)
                unique.append(item)
        return unique

    # -------------------------------------------------------------------------
    # Fallback Path
    # -------------------------------------------------------------------------
    async def _fallback(
        self,
        owner: str,
        name: str,
        username: str,
        reason: str,
    ) -> PRRetrievalResult:
        """List every PR in the repository and filter by author locally."""
        page_size = self._config.page_size

        async def fetch_page(page: int) -> list[GitHubPullRequest]:
            return await self._client.list_pull_requests(owner, name, page=page, per_page=page_size)

        try:
            all_prs = await fetch_all(fetch_page, page_size=page_size)
        except Exception as fallback_error:
            logger.error(
                "PR listing fallback failed for {}/{}: {}",
                owner,
                name,
                fallback_error,
            )
            return PRRetrievalResult.failed(f"{reason}; fallback failed: {fallback_error}")

        pull_requests = filter_pull_requests(all_prs, username)
        logger.info(
            "PR fallback for {} in {}/{}: {} of {} PRs attributed",
            username,
            owner,
            name,
            len(pull_requests),
            len(all_prs),
        )
        return PRRetrievalResult.degraded(pull_requests, reason)
