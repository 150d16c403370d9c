"""GitHub API client module.

This module provides:
- GitHubClient: Async GitHub API client with bounded retries
- Rate limit tracking: RateLimitMonitor, RateLimitPool, etc.
- Batching: BatchExecutor for paced concurrent requests

Contribution sync lives in `contribution_tracker.github.sync`.
"""

from .batch import BatchExecutor, BatchResult
from .client import GitHubClient
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
from .rate_limit import (
    PoolRateLimit,
    RateLimitMonitor,
    RateLimitPool,
)

__all__ = [
    # Client
    "GitHubClient",
    # Batching
    "BatchExecutor",
    "BatchResult",
    # Exceptions
    "GitHubAuthenticationError",
    "GitHubClientError",
    "GitHubForbiddenError",
    "GitHubNotFoundError",
    "GitHubRateLimitError",
    "GitHubRetryableError",
    "GitHubServerError",
    "GitHubTransportError",
    # Rate limit tracking
    "PoolRateLimit",
    "RateLimitMonitor",
    "RateLimitPool",
]
