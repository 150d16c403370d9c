"""Rate limit state parsed from GitHub's x-ratelimit-* response headers."""

from collections.abc import Mapping
from datetime import UTC, datetime
from enum import StrEnum
from typing import Self

from pydantic import BaseModel, Field


class RateLimitPool(StrEnum):
    """Quota pools that matter to a contribution sync.

    Listing and PR detail calls draw from ``core``. The issue/PR search
    endpoint has its own, much smaller ``search`` quota.
    """

    CORE = "core"
    SEARCH = "search"


class PoolRateLimit(BaseModel):
    """Last known quota of one pool."""

    pool: RateLimitPool
    limit: int = Field(ge=0)
    remaining: int = Field(ge=0)
    used: int = Field(ge=0)
    reset_at: datetime = Field(description="UTC time the window resets")

    @property
    def seconds_until_reset(self) -> int:
        return max(0, int((self.reset_at - datetime.now(UTC)).total_seconds()))

    @property
    def is_exhausted(self) -> bool:
        """No requests left and the window has not rolled over yet."""
        return self.remaining == 0 and self.seconds_until_reset > 0

    @classmethod
    def from_response_headers(
        cls,
        headers: Mapping[str, str],
        default_pool: RateLimitPool = RateLimitPool.CORE,
    ) -> Self | None:
        """Parse lower-cased response headers.

        Returns None when the response carries no quota information.
        Raises ValueError for non-numeric header values.
        """
        if "x-ratelimit-remaining" not in headers:
            return None

        try:
            pool = RateLimitPool(headers.get("x-ratelimit-resource", default_pool.value))
        except ValueError:
            # Pools we don't track (graphql, code_search, ...) are counted as the default
            pool = default_pool

        remaining = int(headers["x-ratelimit-remaining"])
        limit = int(headers.get("x-ratelimit-limit", remaining))
        reset_ts = int(headers.get("x-ratelimit-reset", 0))

        return cls(
            pool=pool,
            limit=limit,
            remaining=remaining,
            used=int(headers.get("x-ratelimit-used", max(0, limit - remaining))),
            reset_at=datetime.fromtimestamp(reset_ts, tz=UTC) if reset_ts else datetime.now(UTC),
        )
