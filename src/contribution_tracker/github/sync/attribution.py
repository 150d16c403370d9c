"""Attribution rules: which upstream records are credited to a student.

Each contribution category has its own rule. Commits and issues are
narrowed upstream by the listing parameters (author / creator); pull
requests are matched locally against the exact username. GitHub
usernames are case-insensitive.
"""

from __future__ import annotations

from collections.abc import Iterable

from contribution_tracker.db.models import ContributionType
from contribution_tracker.schemas.github_api import GitHubCommit, GitHubIssue, GitHubPullRequest

UpstreamRecord = GitHubCommit | GitHubIssue | GitHubPullRequest


def same_user(login: str | None, username: str) -> bool:
    """Case-insensitive username comparison."""
    return login is not None and login.lower() == username.lower()


def is_attributable_commit(commit: GitHubCommit, username: str) -> bool:
    """Commits come from an author-filtered listing; every one counts."""
    return True


def is_attributable_issue(issue: GitHubIssue, username: str) -> bool:
    """Keep issues (not PRs) with an author matching the username."""
    if issue.is_pull_request or issue.user is None:
        return False
    return same_user(issue.user.login, username)


def is_attributable_pull_request(pr: GitHubPullRequest, username: str) -> bool:
    """Keep pull requests whose author matches the username."""
    return pr.is_authored_by(username)


def is_attributable(
    contribution_type: ContributionType,
    record: UpstreamRecord,
    username: str,
) -> bool:
    """Apply the attribution rule for a category.

    Raises:
        TypeError: If the record does not belong to the category
    """
    if contribution_type == ContributionType.COMMIT and isinstance(record, GitHubCommit):
        return is_attributable_commit(record, username)
    if contribution_type == ContributionType.ISSUE and isinstance(record, GitHubIssue):
        return is_attributable_issue(record, username)
    if contribution_type == ContributionType.PULL_REQUEST and isinstance(record, GitHubPullRequest):
        return is_attributable_pull_request(record, username)
    raise TypeError(f"{type(record).__name__} is not a {contribution_type.value} record")


def filter_issues(issues: Iterable[GitHubIssue], username: str) -> list[GitHubIssue]:
    """Filter an issue listing down to the student's own issues."""
    return [issue for issue in issues if is_attributable_issue(issue, username)]


def filter_pull_requests(
    pull_requests: Iterable[GitHubPullRequest],
    username: str,
) -> list[GitHubPullRequest]:
    """Filter a pull request listing down to the student's own PRs."""
    return [pr for pr in pull_requests if is_attributable_pull_request(pr, username)]
