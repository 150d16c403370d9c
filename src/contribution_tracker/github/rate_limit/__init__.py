"""Rate limit tracking for GitHub API.

State is gathered passively from response headers and used to size
retry waits and to skip the search path while its quota is exhausted.
"""

from .monitor import RateLimitMonitor
from .schemas import PoolRateLimit, RateLimitPool

__all__ = [
    "PoolRateLimit",
    "RateLimitMonitor",
    "RateLimitPool",
]
