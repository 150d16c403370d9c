"""GitHub client exceptions."""

from datetime import datetime


class GitHubClientError(Exception):
    """Base exception for GitHub client errors."""

    pass


class GitHubAuthenticationError(GitHubClientError):
    """Raised when authentication fails (401)."""

    pass


class GitHubNotFoundError(GitHubClientError):
    """Raised when a resource is not found (404)."""

    pass


class GitHubForbiddenError(GitHubClientError):
    """Raised on a 403 that is not a rate limit (no access to the resource)."""

    pass


class GitHubRetryableError(GitHubClientError):
    """Base class for transient errors.

    The client retries these a bounded number of times; once retries are
    exhausted the error propagates and becomes a phase error.
    """

    pass


class GitHubRateLimitError(GitHubRetryableError):
    """Raised when a rate limit is hit (403 with exhausted quota, 429, retry-after)."""

    def __init__(self, message: str, reset_at: datetime | None = None) -> None:
        super().__init__(message)
        self.reset_at = reset_at


class GitHubServerError(GitHubRetryableError):
    """Raised on 5xx responses."""

    def __init__(self, message: str, status_code: int) -> None:
        super().__init__(message)
        self.status_code = status_code


class GitHubTransportError(GitHubRetryableError):
    """Raised when the request never got a response (network error, timeout)."""

    pass
