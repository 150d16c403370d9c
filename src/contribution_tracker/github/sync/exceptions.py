"""Sync-level exceptions."""


class SyncError(Exception):
    """Base exception for contribution sync errors."""

    pass


class IdentityResolutionError(SyncError):
    """Raised when a repository cannot be mapped to its owning student.

    Fatal to that repository's sync only.
    """

    def __init__(self, message: str, repository_id: int | None = None) -> None:
        super().__init__(message)
        self.repository_id = repository_id


class PullRequestRetrievalError(SyncError):
    """Raised when both the search path and the list fallback failed."""

    pass
