"""Async GitHub API client wrapper using githubkit.

This module provides a typed async interface to the GitHub REST API
endpoints the sync engine needs. Every method fetches exactly one page;
pagination policy lives in the sync layer. Transient failures are
retried a bounded number of times and rate limit state is tracked from
response headers.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Iterable, Mapping
from datetime import UTC, datetime, timedelta
from typing import Any, TypeVar

from githubkit import GitHub
from githubkit.exception import RequestError, RequestFailed, RequestTimeout
from pydantic import BaseModel, ValidationError

from contribution_tracker.config import GitHubConfig, get_settings
from contribution_tracker.logging import get_logger
from contribution_tracker.schemas.github_api import (
    GitHubCommit,
    GitHubIssue,
    GitHubPullRequest,
    GitHubSearchPage,
)

from .exceptions import (
    GitHubAuthenticationError,
    GitHubClientError,
    GitHubForbiddenError,
    GitHubNotFoundError,
    GitHubRateLimitError,
    GitHubRetryableError,
    GitHubServerError,
    GitHubTransportError,
)
from .rate_limit import RateLimitMonitor, RateLimitPool

logger = get_logger(__name__)

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def _dump(data: Any) -> Any:
    """Convert a githubkit model into plain data for our schemas."""
    if hasattr(data, "model_dump"):
        return data.model_dump(by_alias=True, exclude_unset=True)
    return data


class ListPage(list[SchemaT]):
    """Parsed items of one listing page.

    ``raw_count`` is how many items GitHub returned before malformed ones
    were dropped. Pagination uses it to recognise the last page.
    """

    def __init__(self, items: Iterable[SchemaT], *, raw_count: int) -> None:
        super().__init__(items)
        self.raw_count = raw_count


class GitHubClient:
    """Async GitHub API client for contribution retrieval.

    Usage:
        async with GitHubClient() as client:
            commits = await client.list_commits("acme", "widgets", author="alice", page=1)
            for commit in commits:
                print(commit.title)

    Or without context manager:
        client = GitHubClient()
        issues = await client.list_issues("acme", "widgets", creator="alice", page=1)
        await client.close()
    """

    def __init__(
        self,
        token: str | None = None,
        *,
        config: GitHubConfig | None = None,
        rate_monitor: RateLimitMonitor | None = None,
    ) -> None:
        """Initialize the GitHub client.

        Args:
            token: GitHub PAT. If not provided, uses GITHUB_TOKEN from settings.
                   An empty token means anonymous access (60 requests/hour).
            config: Timeout and retry configuration (uses settings if not provided)
            rate_monitor: Rate limit tracker (a fresh one is created if not provided)
        """
        settings = get_settings()
        self._token = token if token is not None else settings.github_token
        self._config = config or settings.github
        self._rate_monitor = rate_monitor or RateLimitMonitor()
        self._client: GitHub[Any] | None = None

        if not self._token:
            logger.warning(
                "No GitHub token configured; using anonymous access (60 requests/hour)"
            )

    @property
    def _github(self) -> GitHub[Any]:
        """Get or create the githubkit client instance."""
        if self._client is None:
            # Retries are handled here, not by githubkit
            if self._token:
                self._client = GitHub(
                    self._token,
                    timeout=self._config.request_timeout_seconds,
                    auto_retry=False,
                )
            else:
                self._client = GitHub(
                    timeout=self._config.request_timeout_seconds,
                    auto_retry=False,
                )
        return self._client

    @property
    def rate_monitor(self) -> RateLimitMonitor:
        """Access the rate limit monitor."""
        return self._rate_monitor

    @property
    def is_authenticated(self) -> bool:
        """Whether requests carry a token."""
        return bool(self._token)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            self._client = None

    async def __aenter__(self) -> GitHubClient:
        """Async context manager entry."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Async context manager exit."""
        await self.close()

    # -------------------------------------------------------------------------
    # Commits
    # -------------------------------------------------------------------------
    async def list_commits(
        self,
        owner: str,
        repo: str,
        *,
        author: str,
        page: int,
        per_page: int = 100,
    ) -> ListPage[GitHubCommit]:
        """List one page of commits by an author.

        Args:
            owner: Repository owner (org or user)
            repo: Repository name
            author: GitHub username to filter by
            page: 1-based page number
            per_page: Results per page (max 100)

        Returns:
            List of GitHubCommit objects (may be shorter than per_page)
        """
        resp = await self._request(
            self._github.rest.repos.async_list_commits,
            owner=owner,
            repo=repo,
            author=author,
            page=page,
            per_page=per_page,
        )
        return self._parse_list(resp.parsed_data, GitHubCommit, f"{owner}/{repo} commits")

    # -------------------------------------------------------------------------
    # Issues
    # -------------------------------------------------------------------------
    async def list_issues(
        self,
        owner: str,
        repo: str,
        *,
        creator: str,
        page: int,
        per_page: int = 100,
    ) -> ListPage[GitHubIssue]:
        """List one page of issues (any state) created by a user.

        Note: This endpoint also returns pull requests; callers must
        exclude items where `is_pull_request` is True.

        Args:
            owner: Repository owner
            repo: Repository name
            creator: GitHub username of the issue author
            page: 1-based page number
            per_page: Results per page (max 100)

        Returns:
            List of GitHubIssue objects
        """
        resp = await self._request(
            self._github.rest.issues.async_list_for_repo,
            owner=owner,
            repo=repo,
            state="all",
            creator=creator,
            page=page,
            per_page=per_page,
        )
        return self._parse_list(resp.parsed_data, GitHubIssue, f"{owner}/{repo} issues")

    # -------------------------------------------------------------------------
    # Pull Requests
    # -------------------------------------------------------------------------
    async def search_pull_requests(
        self,
        query: str,
        *,
        page: int,
        per_page: int = 100,
    ) -> GitHubSearchPage:
        """Run one page of an issue/PR search, most recently updated first.

        Uses the separate 'search' rate limit pool.

        Args:
            query: Search query (e.g. "repo:acme/widgets author:alice type:pr")
            page: 1-based page number
            per_page: Results per page (max 100)

        Returns:
            GitHubSearchPage with total_count and abbreviated items
        """
        resp = await self._request(
            self._github.rest.search.async_issues_and_pull_requests,
            pool=RateLimitPool.SEARCH,
            q=query,
            sort="updated",
            order="desc",
            page=page,
            per_page=per_page,
        )
        return GitHubSearchPage.model_validate(_dump(resp.parsed_data))

    async def get_pull_request(
        self,
        owner: str,
        repo: str,
        number: int,
    ) -> GitHubPullRequest:
        """Get full details for a single pull request.

        Args:
            owner: Repository owner
            repo: Repository name
            number: PR number

        Returns:
            GitHubPullRequest with full details

        Raises:
            GitHubNotFoundError: If PR doesn't exist
        """
        try:
            resp = await self._request(
                self._github.rest.pulls.async_get,
                owner=owner,
                repo=repo,
                pull_number=number,
            )
        except GitHubNotFoundError as e:
            raise GitHubNotFoundError(f"PR #{number} not found in {owner}/{repo}") from e
        return GitHubPullRequest.model_validate(_dump(resp.parsed_data))

    async def list_pull_requests(
        self,
        owner: str,
        repo: str,
        *,
        page: int,
        per_page: int = 100,
    ) -> ListPage[GitHubPullRequest]:
        """List one page of all pull requests (any state, any author).

        Args:
            owner: Repository owner
            repo: Repository name
            page: 1-based page number
            per_page: Results per page (max 100)

        Returns:
            List of GitHubPullRequest objects
        """
        resp = await self._request(
            self._github.rest.pulls.async_list,
            owner=owner,
            repo=repo,
            state="all",
            page=page,
            per_page=per_page,
        )
        return self._parse_list(resp.parsed_data, GitHubPullRequest, f"{owner}/{repo} pulls")

    # -------------------------------------------------------------------------
    # Request Execution
    # -------------------------------------------------------------------------
    async def _request(
        self,
        call: Callable[..., Awaitable[Any]],
        *,
        pool: RateLimitPool = RateLimitPool.CORE,
        **kwargs: Any,
    ) -> Any:
        """Execute a githubkit call, retrying transient failures.

        Rate limit errors wait until the reset time, other transient errors
        back off exponentially; both waits are capped by max_backoff_seconds.

        Raises:
            GitHubClientError: Non-retryable failure, or the last transient
                failure once max_retries is exhausted
        """
        attempt = 0
        while True:
            try:
                resp = await call(**kwargs)
            except RequestFailed as e:
                error = self._handle_error(e, pool)
                cause: BaseException = e
            except RequestTimeout as e:
                error = GitHubTransportError(f"GitHub request timed out: {e}")
                cause = e
            except RequestError as e:
                error = GitHubTransportError(f"GitHub request failed: {e}")
                cause = e
            else:
                self._track_rate_limit(resp, pool)
                return resp

            if not isinstance(error, GitHubRetryableError) or attempt >= self._config.max_retries:
                raise error from cause

            attempt += 1
            delay = self._retry_delay(error, attempt)
            logger.warning(
                "GitHub request failed ({}), retry {}/{} in {:.1f}s",
                error,
                attempt,
                self._config.max_retries,
                delay,
            )
            await asyncio.sleep(delay)

    def _retry_delay(self, error: GitHubRetryableError, attempt: int) -> float:
        """Seconds to wait before the next attempt."""
        cap = self._config.max_backoff_seconds
        if isinstance(error, GitHubRateLimitError) and error.reset_at is not None:
            wait = (error.reset_at - datetime.now(UTC)).total_seconds()
            return max(0.0, min(wait, cap))
        return float(min(2**attempt, cap))

    def _track_rate_limit(self, response: Any, pool: RateLimitPool) -> None:
        """Feed response headers to the rate limit monitor."""
        headers = getattr(response, "headers", None)
        if not isinstance(headers, Mapping):
            return
        self._rate_monitor.update_from_headers(headers, pool)

    @staticmethod
    def _parse_list(
        items: list[Any],
        schema: type[SchemaT],
        context: str,
    ) -> ListPage[SchemaT]:
        """Validate each item, skipping ones that don't fit the schema.

        The page keeps the upstream item count so a dropped item cannot
        make a full page look like the last one.
        """
        parsed: list[SchemaT] = []
        for item in items:
            try:
                parsed.append(schema.model_validate(_dump(item)))
            except ValidationError as e:
                logger.warning("Skipping malformed item in {}: {}", context, e)
        return ListPage(parsed, raw_count=len(items))

    # -------------------------------------------------------------------------
    # Error Handling
    # -------------------------------------------------------------------------
    def _handle_error(
        self,
        error: RequestFailed,
        pool: RateLimitPool = RateLimitPool.CORE,
    ) -> GitHubClientError:
        """Convert githubkit exceptions to our custom exceptions."""
        # Error responses still carry (and consume) rate limit quota
        self._track_rate_limit(error.response, pool)

        status = error.response.status_code
        headers = error.response.headers

        if status == 401:
            return GitHubAuthenticationError("Invalid GitHub token")
        if status in (403, 429):
            retry_after = headers.get("retry-after")
            if retry_after is not None and retry_after.isdigit():
                return GitHubRateLimitError(
                    "GitHub secondary rate limit exceeded",
                    reset_at=datetime.now(UTC) + timedelta(seconds=int(retry_after)),
                )
            if headers.get("x-ratelimit-remaining") == "0":
                reset_ts = int(headers.get("x-ratelimit-reset", "0"))
                reset_at = datetime.fromtimestamp(reset_ts, tz=UTC) if reset_ts else None
                return GitHubRateLimitError("GitHub rate limit exceeded", reset_at=reset_at)
            if status == 429:
                return GitHubRateLimitError("GitHub rate limit exceeded")
            return GitHubForbiddenError(f"Access forbidden: {error}")
        if status == 404:
            return GitHubNotFoundError(str(error))
        if status >= 500:
            return GitHubServerError(f"GitHub server error ({status}): {error}", status)
        return GitHubClientError(f"GitHub API error ({status}): {error}")
