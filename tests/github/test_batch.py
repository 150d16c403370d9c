"""Tests for BatchExecutor."""

import asyncio
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from contribution_tracker.github.batch import BatchExecutor, BatchResult


class TestBatchResult:
    """Tests for BatchResult counters."""

    def test_counts(self):
        result: BatchResult[int, str] = BatchResult(
            succeeded=["a", "b"],
            failed=[(3, ValueError("x"))],
        )

        assert result.total_count == 3
        assert result.success_count == 2
        assert result.failure_count == 1
        assert result.all_succeeded is False


class TestBatchExecutor:
    """Tests for batched execution."""

    def test_rejects_invalid_batch_size(self):
        with pytest.raises(ValueError):
            BatchExecutor(batch_size=0)

    async def test_results_in_input_order(self):
        executor: BatchExecutor[int, int] = BatchExecutor(batch_size=3, pause=timedelta(0))

        async def double(n: int) -> int:
            await asyncio.sleep(0.001 * (5 - n))
            return n * 2

        result = await executor.execute([1, 2, 3, 4, 5], double)

        assert result.succeeded == [2, 4, 6, 8, 10]
        assert result.all_succeeded

    async def test_failures_collected_not_raised(self):
        executor: BatchExecutor[int, int] = BatchExecutor(batch_size=2, pause=timedelta(0))

        async def process(n: int) -> int:
            if n == 2:
                raise RuntimeError("boom")
            return n

        result = await executor.execute([1, 2, 3], process)

        assert result.succeeded == [1, 3]
        assert len(result.failed) == 1
        item, error = result.failed[0]
        assert item == 2
        assert str(error) == "boom"

    async def test_concurrency_bounded_by_batch_size(self):
        executor: BatchExecutor[int, int] = BatchExecutor(batch_size=2, pause=timedelta(0))
        in_flight = 0
        peak = 0

        async def process(n: int) -> int:
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.001)
            in_flight -= 1
            return n

        await executor.execute(list(range(7)), process)

        assert peak == 2

    async def test_pause_between_batches(self):
        executor: BatchExecutor[int, int] = BatchExecutor(
            batch_size=2, pause=timedelta(milliseconds=50)
        )

        async def process(n: int) -> int:
            return n

        with patch(
            "contribution_tracker.github.batch.asyncio.sleep", new_callable=AsyncMock
        ) as mock_sleep:
            await executor.execute([1, 2, 3, 4, 5], process)

        # Three batches, two pauses
        assert mock_sleep.await_count == 2
        mock_sleep.assert_awaited_with(0.05)

    async def test_cancellation_propagates(self):
        executor: BatchExecutor[int, int] = BatchExecutor(batch_size=2, pause=timedelta(0))

        async def process(n: int) -> int:
            raise asyncio.CancelledError()

        with pytest.raises(asyncio.CancelledError):
            await executor.execute([1], process)

    async def test_empty_input(self):
        executor: BatchExecutor[int, int] = BatchExecutor()

        result = await executor.execute([], AsyncMock())

        assert result.total_count == 0
