"""Passive rate limit tracking for the GitHub client.

The client feeds the monitor the headers of every response, error
responses included. The PR retrieval strategy asks it whether the search
quota is gone before spending a request on it. The monitor never calls
the API itself.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime

from contribution_tracker.logging import get_logger

from .schemas import PoolRateLimit, RateLimitPool

logger = get_logger(__name__)


class RateLimitMonitor:
    """Holds the most recent quota seen for each pool."""

    def __init__(self) -> None:
        self._pools: dict[RateLimitPool, PoolRateLimit] = {}

    def update_from_headers(
        self,
        headers: Mapping[str, str],
        pool: RateLimitPool = RateLimitPool.CORE,
    ) -> PoolRateLimit | None:
        """Record the quota carried by a response, if any.

        ``pool`` is used when the response does not name its resource.
        Malformed headers are ignored.
        """
        normalized = {key.lower(): value for key, value in headers.items()}
        try:
            state = PoolRateLimit.from_response_headers(normalized, pool)
        except ValueError as e:
            logger.debug("Ignoring malformed rate limit headers: {}", e)
            return None
        if state is not None:
            self.record(state)
        return state

    def record(self, state: PoolRateLimit) -> None:
        """Store a pool's quota, warning when it first runs out."""
        previous = self._pools.get(state.pool)
        self._pools[state.pool] = state
        if state.is_exhausted and not (previous is not None and previous.is_exhausted):
            logger.warning(
                "GitHub {} rate limit exhausted, resets in {}s",
                state.pool.value,
                state.seconds_until_reset,
            )

    def get_pool_limit(self, pool: RateLimitPool = RateLimitPool.CORE) -> PoolRateLimit | None:
        return self._pools.get(pool)

    def is_exhausted(self, pool: RateLimitPool = RateLimitPool.CORE) -> bool:
        state = self._pools.get(pool)
        return state is not None and state.is_exhausted

    def reset_at(self, pool: RateLimitPool = RateLimitPool.CORE) -> datetime | None:
        """When an exhausted pool becomes usable again (None if it isn't exhausted)."""
        state = self._pools.get(pool)
        if state is None or not state.is_exhausted:
            return None
        return state.reset_at
