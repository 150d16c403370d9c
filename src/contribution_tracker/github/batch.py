"""Batch executor for bounded-concurrency API requests.

Items are processed in fixed-size batches: every item in a batch runs
concurrently, batches run one after another with a short pause in
between. This is the only place the sync engine runs upstream requests
in parallel.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Generic, TypeVar

from contribution_tracker.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class BatchResult(Generic[T, R]):
    """Result of a batch operation."""

    succeeded: list[R] = field(default_factory=list)
    failed: list[tuple[T, Exception]] = field(default_factory=list)

    @property
    def total_count(self) -> int:
        """Total number of items processed."""
        return len(self.succeeded) + len(self.failed)

    @property
    def success_count(self) -> int:
        """Number of successful items."""
        return len(self.succeeded)

    @property
    def failure_count(self) -> int:
        """Number of failed items."""
        return len(self.failed)

    @property
    def all_succeeded(self) -> bool:
        """Whether all items succeeded."""
        return len(self.failed) == 0


class BatchExecutor(Generic[T, R]):
    """Runs an async processor over items in paced, concurrent batches.

    A failing item never fails the batch: its exception is collected in
    `BatchResult.failed` and processing continues. Cancellation is not
    collected; it propagates.

    Usage:
        executor = BatchExecutor(batch_size=10, pause=timedelta(milliseconds=100))

        async def fetch_pr(number: int) -> GitHubPullRequest:
            return await client.get_pull_request("acme", "widgets", number)

        result = await executor.execute([1, 2, 3], fetch_pr)
        for pr in result.succeeded:
            print(pr.title)
    """

    def __init__(
        self,
        batch_size: int = 10,
        pause: timedelta = timedelta(milliseconds=100),
    ) -> None:
        """Initialize the batch executor.

        Args:
            batch_size: Items processed concurrently per batch
            pause: Wait between consecutive batches
        """
        if batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self._batch_size = batch_size
        self._pause = pause

    @property
    def batch_size(self) -> int:
        """Items processed concurrently per batch."""
        return self._batch_size

    async def execute(
        self,
        items: Sequence[T],
        processor: Callable[[T], Awaitable[R]],
    ) -> BatchResult[T, R]:
        """Execute a batch operation on all items.

        Args:
            items: Sequence of items to process
            processor: Async function to process each item

        Returns:
            BatchResult containing succeeded results (in input order)
            and failed items with their exceptions
        """
        result: BatchResult[T, R] = BatchResult()

        for batch_start in range(0, len(items), self._batch_size):
            if batch_start > 0 and self._pause > timedelta(0):
                await asyncio.sleep(self._pause.total_seconds())

            batch = items[batch_start : batch_start + self._batch_size]
            outcomes = await asyncio.gather(
                *(processor(item) for item in batch),
                return_exceptions=True,
            )

            for item, outcome in zip(batch, outcomes, strict=True):
                if isinstance(outcome, Exception):
                    result.failed.append((item, outcome))
                elif isinstance(outcome, BaseException):
                    # CancelledError and friends are not item failures
                    raise outcome
                else:
                    result.succeeded.append(outcome)

        if result.failed:
            logger.debug(
                "Batch finished with {}/{} failures",
                result.failure_count,
                result.total_count,
            )
        return result
