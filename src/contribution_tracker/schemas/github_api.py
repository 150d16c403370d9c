"""Pydantic schemas for parsing GitHub API responses.

These schemas map directly to the GitHub REST API response structure and
convert each item into a category-agnostic ContributionRecord.
See: https://docs.github.com/en/rest
"""

from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from contribution_tracker.db.models import ContributionState, ContributionType

from .contribution import ContributionRecord


class GitHubUser(BaseModel):
    """GitHub user object from API responses."""

    login: str = Field(description="GitHub username")
    id: int | None = Field(default=None, description="GitHub user ID")
    type: str = Field(default="User", description="User type")


# ------------------------------------------------------------------------------
# Commits
# ------------------------------------------------------------------------------
class GitHubCommitAuthor(BaseModel):
    """Commit author/committer info (from git, not GitHub user)."""

    name: str | None = Field(default=None, description="Author name")
    email: str | None = Field(default=None, description="Author email")
    date: datetime | None = Field(default=None, description="Commit date (UTC)")


class GitHubCommitDetail(BaseModel):
    """Nested commit detail object."""

    author: GitHubCommitAuthor | None = Field(default=None, description="Git author")
    committer: GitHubCommitAuthor | None = Field(default=None, description="Git committer")
    message: str = Field(default="", description="Commit message")


class GitHubCommit(BaseModel):
    """GitHub commit object from the list-commits endpoint.

    Maps to: GET /repos/{owner}/{repo}/commits
    """

    sha: str = Field(description="Commit SHA")
    html_url: str = Field(description="GitHub commit URL")
    commit: GitHubCommitDetail = Field(description="Commit details")
    author: GitHubUser | None = Field(default=None, description="Linked GitHub account")

    @property
    def title(self) -> str:
        """First line of the commit message."""
        return self.commit.message.split("\n", 1)[0]

    @property
    def timestamp(self) -> datetime:
        """Author date, else committer date, else now."""
        for person in (self.commit.author, self.commit.committer):
            if person is not None and person.date is not None:
                return person.date
        return datetime.now(UTC)

    def to_contribution(self) -> ContributionRecord:
        """
        Factory method to convert to a ContributionRecord.

        Commits carry no state; created_at and updated_at are both the
        commit timestamp.
        """
        author = self.commit.author
        timestamp = self.timestamp
        return ContributionRecord(
            type=ContributionType.COMMIT,
            external_id=self.sha,
            title=self.title,
            url=self.html_url,
            state=None,
            created_at=timestamp,
            updated_at=timestamp,
            metadata={
                "sha": self.sha,
                "message": self.commit.message,
                "author_name": author.name if author else None,
                "author_email": author.email if author else None,
            },
        )


# ------------------------------------------------------------------------------
# Issues
# ------------------------------------------------------------------------------
class GitHubIssue(BaseModel):
    """GitHub issue object from the list-issues endpoint.

    Maps to: GET /repos/{owner}/{repo}/issues

    The endpoint also returns pull requests; those carry a
    `pull_request` link object and must be excluded by the caller.
    """

    number: int = Field(description="Issue number")
    title: str = Field(description="Issue title")
    html_url: str = Field(description="GitHub issue URL")
    state: str = Field(description="Issue state (open, closed)")
    body: str | None = Field(default=None, description="Issue description")
    user: GitHubUser | None = Field(default=None, description="Issue author")
    pull_request: dict[str, Any] | None = Field(
        default=None, description="Present only when the item is a pull request"
    )
    labels: list[str] = Field(default_factory=list, description="Label names")
    created_at: datetime = Field(description="When the issue was created")
    updated_at: datetime = Field(description="Last update timestamp")

    @field_validator("labels", mode="before")
    @classmethod
    def normalize_labels(cls, v: Any) -> Any:
        """Labels arrive as objects or bare strings; keep only names."""
        if not isinstance(v, list):
            return v
        names = []
        for label in v:
            if isinstance(label, str):
                names.append(label)
            elif isinstance(label, dict) and label.get("name"):
                names.append(label["name"])
        return names

    @property
    def is_pull_request(self) -> bool:
        """Check if this item is a pull request rather than an issue."""
        return self.pull_request is not None

    def to_contribution(self) -> ContributionRecord:
        """Factory method to convert to a ContributionRecord."""
        return ContributionRecord(
            type=ContributionType.ISSUE,
            external_id=str(self.number),
            title=self.title,
            url=self.html_url,
            state=self.state,
            created_at=self.created_at,
            updated_at=self.updated_at,
            metadata={
                "number": self.number,
                "body": self.body,
                "labels": self.labels,
            },
        )


# ------------------------------------------------------------------------------
# Pull requests
# ------------------------------------------------------------------------------
class GitHubPullRequest(BaseModel):
    """GitHub Pull Request object from API.

    Maps to: GET /repos/{owner}/{repo}/pulls/{number}
    and the items of GET /repos/{owner}/{repo}/pulls
    """

    number: int = Field(description="PR number")
    html_url: str = Field(description="GitHub PR URL")
    state: str = Field(description="PR state (open, closed)")
    title: str = Field(description="PR title")
    body: str | None = Field(default=None, description="PR description")
    user: GitHubUser | None = Field(default=None, description="PR author")
    draft: bool = Field(default=False, description="Whether PR is a draft")

    created_at: datetime = Field(description="When PR was created")
    updated_at: datetime = Field(description="Last update timestamp")
    merged_at: datetime | None = Field(default=None, description="When PR was merged")

    @property
    def effective_state(self) -> str:
        """Merged if merged_at is set, otherwise the raw upstream state."""
        if self.merged_at is not None:
            return ContributionState.MERGED.value
        return self.state

    def is_authored_by(self, username: str) -> bool:
        """Check authorship (GitHub usernames are case-insensitive)."""
        return self.user is not None and self.user.login.lower() == username.lower()

    def to_contribution(self) -> ContributionRecord:
        """Factory method to convert to a ContributionRecord."""
        return ContributionRecord(
            type=ContributionType.PULL_REQUEST,
            external_id=str(self.number),
            title=self.title,
            url=self.html_url,
            state=self.effective_state,
            created_at=self.created_at,
            updated_at=self.updated_at,
            metadata={
                "number": self.number,
                "merged_at": self.merged_at.isoformat() if self.merged_at else None,
                "body": self.body,
                "draft": self.draft,
            },
        )


# ------------------------------------------------------------------------------
# Search
# ------------------------------------------------------------------------------
class GitHubSearchItem(BaseModel):
    """One hit from the issue/PR search endpoint.

    Only the number is trusted; details are re-fetched from the
    pull request endpoint.
    """

    number: int = Field(description="PR number")
    title: str | None = Field(default=None, description="PR title")
    html_url: str | None = Field(default=None, description="GitHub PR URL")
    user: GitHubUser | None = Field(default=None, description="PR author")


class GitHubSearchPage(BaseModel):
    """One page of search results.

    Maps to: GET /search/issues
    """

    total_count: int = Field(default=0, description="Total hits (capped upstream)")
    incomplete_results: bool = Field(default=False, description="Upstream timed out")
    items: list[GitHubSearchItem] = Field(default_factory=list, description="Hits on this page")
