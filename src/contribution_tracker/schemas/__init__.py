"""Pydantic schemas for Contribution Tracker.

This module provides input validation and output serialization models.
"""

from .base import SchemaBase
from .contribution import ContributionRecord
from .github_api import (
    GitHubCommit,
    GitHubCommitAuthor,
    GitHubCommitDetail,
    GitHubIssue,
    GitHubPullRequest,
    GitHubSearchItem,
    GitHubSearchPage,
    GitHubUser,
)
from .repository import (
    RepositoryCreate,
    RepositoryRead,
    StudentCreate,
    is_valid_username,
    parse_repo_url,
)

__all__ = [
    # Contributions
    "ContributionRecord",
    # GitHub API
    "GitHubCommit",
    "GitHubCommitAuthor",
    "GitHubCommitDetail",
    "GitHubIssue",
    "GitHubPullRequest",
    "GitHubSearchItem",
    "GitHubSearchPage",
    "GitHubUser",
    # Repository / Student
    "RepositoryCreate",
    "RepositoryRead",
    "StudentCreate",
    "is_valid_username",
    "parse_repo_url",
    # Base
    "SchemaBase",
]
