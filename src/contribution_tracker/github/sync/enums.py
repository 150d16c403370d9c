"""Enums for sync operations."""

from enum import Enum


class SyncPhase(str, Enum):
    """The three independent fetch-and-reconcile passes of a repository sync.

    Values double as the labels used in combined error messages.
    """

    COMMITS = "Commits"
    PULL_REQUESTS = "PRs"
    ISSUES = "Issues"


class RetrievalKind(str, Enum):
    """How the pull request set for a student was obtained."""

    OK = "ok"
    """Search path succeeded."""

    DEGRADED = "degraded"
    """Search path failed or was skipped; the list fallback succeeded."""

    FAILED = "failed"
    """Both paths failed; no pull requests were retrieved."""


class OutputFormat(str, Enum):
    """Output format for CLI commands."""

    TEXT = "text"
    """Human-readable text output."""

    JSON = "json"
    """Machine-readable JSON output."""
