"""Pydantic schemas for Repository and Student input."""

import re
from datetime import datetime
from urllib.parse import urlparse

from pydantic import Field, field_validator

from .base import SchemaBase

# Alphanumerics and single hyphens, 1-39 chars, no leading/trailing hyphen
_USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9]([a-zA-Z0-9-]{0,37}[a-zA-Z0-9])?$")

_GITHUB_HOSTS = {"github.com", "www.github.com"}


def is_valid_username(username: str) -> bool:
    """Check that a string is a well-formed GitHub username."""
    return bool(_USERNAME_PATTERN.match(username))


def _strip_git_suffix(name: str) -> str:
    return name[: -len(".git")] if name.endswith(".git") else name


def parse_repo_url(repo: str) -> tuple[str, str]:
    """
    Parse a repository reference into (owner, name).

    Accepts 'owner/name' or a github.com URL
    ('https://github.com/owner/name(.git)', extra path segments ignored).

    Args:
        repo: Repository reference

    Returns:
        Tuple of (owner, name)

    Raises:
        ValueError: If the reference cannot be parsed
    """
    value = repo.strip()
    if not value:
        raise ValueError("Repository reference is empty")

    if "://" not in value:
        parts = [part for part in value.split("/") if part]
        if len(parts) != 2:
            raise ValueError(f"Invalid repository format: '{repo}'. Expected 'owner/name'")
        return parts[0], _strip_git_suffix(parts[1])

    url = urlparse(value)
    if url.hostname not in _GITHUB_HOSTS:
        raise ValueError(f"Not a GitHub repository URL: '{repo}'")

    segments = [part for part in url.path.split("/") if part]
    if len(segments) < 2:
        raise ValueError(f"Repository URL is missing owner or name: '{repo}'")
    return segments[0], _strip_git_suffix(segments[1])


class StudentCreate(SchemaBase):
    """Schema for registering a new student."""

    github_username: str = Field(max_length=39, description="GitHub username")
    student_name: str | None = Field(default=None, max_length=255)
    email: str | None = Field(default=None, max_length=255)

    @field_validator("github_username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        """Reject malformed usernames before they reach the search query."""
        if not is_valid_username(v):
            raise ValueError(f"Invalid GitHub username: '{v}'")
        return v


class RepositoryCreate(SchemaBase):
    """Schema for adding a repository to a student."""

    student_id: int = Field(description="Owning student ID")
    owner: str = Field(max_length=255, description="GitHub org or user (e.g., 'acme')")
    name: str = Field(max_length=255, description="Repository name (e.g., 'widgets')")

    @property
    def full_name(self) -> str:
        """Full repository path (e.g., 'acme/widgets')."""
        return f"{self.owner}/{self.name}"

    @classmethod
    def from_reference(cls, student_id: int, repo: str) -> "RepositoryCreate":
        """
        Factory method to create from 'owner/name' or a GitHub URL.

        Args:
            student_id: Owning student ID
            repo: Repository reference

        Returns:
            RepositoryCreate instance with owner and name extracted
        """
        owner, name = parse_repo_url(repo)
        return cls(student_id=student_id, owner=owner, name=name)


class RepositoryRead(SchemaBase):
    """Schema for reading repository data."""

    id: int
    student_id: int
    owner: str
    name: str
    full_name: str
    created_at: datetime
