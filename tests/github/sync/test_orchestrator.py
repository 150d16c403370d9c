"""Tests for SyncOrchestrator.

Tests cover:
- Full sync of one repository across the three phases
- Per-phase fault isolation and status derivation
- Idempotent re-sync and in-place updates
- SyncLog lifecycle
- Argument validation, unknown repositories, timeouts and locking
"""

import asyncio

import pytest
from sqlalchemy.exc import SQLAlchemyError

from contribution_tracker.config import SyncConfig
from contribution_tracker.db.models import ContributionType, SyncStatus
from contribution_tracker.github.exceptions import GitHubNotFoundError, GitHubServerError
from contribution_tracker.github.sync.enums import RetrievalKind, SyncPhase
from contribution_tracker.github.sync.orchestrator import RepositoryLocks, SyncOrchestrator
from tests.factories import (
    create_student_with_repo,
    make_github_commit,
    make_github_issue,
    make_github_merged_pr,
    make_github_pr,
)
from tests.fixtures import FakeGitHubClient
from tests.queries import (
    contribution_by_key,
    contribution_counts,
    contributions_for,
    latest_sync_log,
    sync_logs_for,
)


# -----------------------------------------------------------------------------
# Test Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def upstream() -> FakeGitHubClient:
    """acme/widgets with work by alice and by another contributor."""
    return FakeGitHubClient(
        commits=[
            make_github_commit("a1"),
            make_github_commit("b2", author_login="bob"),
        ],
        pulls=[
            make_github_pr(1),
            make_github_pr(2, user="bob"),
            make_github_merged_pr(3),
        ],
        issues=[
            make_github_issue(7),
            make_github_issue(8, is_pull_request=True),
            make_github_issue(9, user="bob"),
        ],
    )


@pytest.fixture
async def target(db_session) -> tuple[int, int]:
    """(student_id, repository_id) for alice owning acme/widgets."""
    return await create_student_with_repo(db_session)


@pytest.fixture
def locks() -> RepositoryLocks:
    return RepositoryLocks()


def make_orchestrator(session, client, config, locks) -> SyncOrchestrator:
    return SyncOrchestrator(session, client, config, locks=locks)


async def stored(session, repository_id: int) -> dict[ContributionType, int]:
    return await contribution_counts(session, repository_id)


# -----------------------------------------------------------------------------
# Test: Full Sync
# -----------------------------------------------------------------------------
class TestFullSync:
    async def test_syncs_all_categories(self, db_session, upstream, sync_config, locks, target):
        student_id, repo_id = target
        orchestrator = make_orchestrator(db_session, upstream, sync_config, locks)

        result = await orchestrator.sync_repository(repo_id, "alice", "acme", "widgets")

        assert result.status == SyncStatus.SUCCESS
        assert result.success
        assert result.error is None
        assert result.contributions_count == 4
        assert result.repository == "acme/widgets"
        assert [p.phase for p in result.phases] == [
            SyncPhase.COMMITS,
            SyncPhase.PULL_REQUESTS,
            SyncPhase.ISSUES,
        ]
        assert [p.contributions_count for p in result.phases] == [1, 2, 1]
        assert await stored(db_session, repo_id) == {
            ContributionType.COMMIT: 1,
            ContributionType.PULL_REQUEST: 2,
            ContributionType.ISSUE: 1,
        }

    async def test_alice_in_acme_widgets(self, db_session, sync_config, locks, target):
        """Two commits, one merged PR, one issue; other authors and PR-issues excluded."""
        _, repo_id = target
        client = FakeGitHubClient(
            commits=[make_github_commit("a1"), make_github_commit("a2")],
            pulls=[make_github_merged_pr(10), make_github_pr(11, user="bob")],
            issues=[make_github_issue(20), make_github_issue(10, is_pull_request=True)],
        )
        orchestrator = make_orchestrator(db_session, client, sync_config, locks)

        result = await orchestrator.sync_repository(repo_id, "alice", "acme", "widgets")

        assert result.contributions_count == 4
        assert result.status == SyncStatus.SUCCESS
        assert [c["number"] for c in client.calls_to("get_pull_request")] == [10]
        log = await latest_sync_log(db_session, repo_id)
        assert log is not None
        assert log.status == SyncStatus.SUCCESS.value
        assert log.contributions_count == 4

    async def test_contributions_stored_under_owner(
        self, db_session, upstream, sync_config, locks, target
    ):
        student_id, repo_id = target
        orchestrator = make_orchestrator(db_session, upstream, sync_config, locks)

        await orchestrator.sync_repository(repo_id, "alice", "acme", "widgets")

        contributions = await contributions_for(db_session, repo_id)
        assert {c.student_id for c in contributions} == {student_id}
        issue = next(c for c in contributions if c.type == ContributionType.ISSUE.value)
        assert issue.external_id == "7"

    async def test_merged_state_recorded(self, db_session, upstream, sync_config, locks, target):
        _, repo_id = target
        orchestrator = make_orchestrator(db_session, upstream, sync_config, locks)

        await orchestrator.sync_repository(repo_id, "alice", "acme", "widgets")

        pr = await contribution_by_key(
            db_session, repo_id, ContributionType.PULL_REQUEST, "3"
        )
        assert pr is not None
        assert pr.state == "merged"

    async def test_sync_log_finalized(self, db_session, upstream, sync_config, locks, target):
        student_id, repo_id = target
        orchestrator = make_orchestrator(db_session, upstream, sync_config, locks)

        result = await orchestrator.sync_repository(repo_id, "alice", "acme", "widgets")

        log = await latest_sync_log(db_session, repo_id)
        assert log is not None
        assert log.id == result.sync_log_id
        assert log.status == SyncStatus.SUCCESS.value
        assert log.contributions_count == 4
        assert log.student_id == student_id
        assert log.error_message is None
        assert log.is_finalized

    async def test_unregistered_username_has_no_log_student(
        self, db_session, upstream, sync_config, locks, target
    ):
        """Work by an unregistered username is still stored under the owner."""
        student_id, repo_id = target
        orchestrator = make_orchestrator(db_session, upstream, sync_config, locks)

        result = await orchestrator.sync_repository(repo_id, "bob", "acme", "widgets")

        assert result.username == "bob"
        assert result.contributions_count == 3
        log = await latest_sync_log(db_session, repo_id)
        assert log is not None
        assert log.student_id is None
        contributions = await contributions_for(db_session, repo_id)
        assert {c.student_id for c in contributions} == {student_id}

    async def test_degraded_pr_retrieval_still_succeeds(
        self, db_session, upstream, sync_config, locks, target
    ):
        _, repo_id = target
        upstream.errors["search_pull_requests"] = GitHubServerError("search down", 502)
        orchestrator = make_orchestrator(db_session, upstream, sync_config, locks)

        result = await orchestrator.sync_repository(repo_id, "alice", "acme", "widgets")

        assert result.status == SyncStatus.SUCCESS
        pr_phase = result.phases[1]
        assert pr_phase.retrieval == RetrievalKind.DEGRADED
        assert pr_phase.contributions_count == 2

    async def test_skipped_pr_hits_reported_on_phase(
        self, db_session, upstream, sync_config, locks, target
    ):
        _, repo_id = target
        upstream.detail_errors[3] = GitHubNotFoundError("PR #3 not found in acme/widgets")
        orchestrator = make_orchestrator(db_session, upstream, sync_config, locks)

        result = await orchestrator.sync_repository(repo_id, "alice", "acme", "widgets")

        pr_phase = result.phases[1]
        assert pr_phase.retrieval == RetrievalKind.OK
        assert pr_phase.skipped == 1
        assert pr_phase.contributions_count == 1
        assert pr_phase.to_dict()["skipped"] == 1

    async def test_transient_detail_failure_uses_fallback(
        self, db_session, upstream, sync_config, locks, target
    ):
        _, repo_id = target
        upstream.detail_errors[1] = GitHubServerError("bad gateway", 502)
        upstream.detail_errors[3] = GitHubServerError("bad gateway", 502)
        orchestrator = make_orchestrator(db_session, upstream, sync_config, locks)

        result = await orchestrator.sync_repository(repo_id, "alice", "acme", "widgets")

        assert result.status == SyncStatus.SUCCESS
        pr_phase = result.phases[1]
        assert pr_phase.retrieval == RetrievalKind.DEGRADED
        assert pr_phase.skipped == 0
        assert pr_phase.contributions_count == 2


# -----------------------------------------------------------------------------
# Test: Idempotency
# -----------------------------------------------------------------------------
class TestResync:
    async def test_resync_is_idempotent(self, db_session, upstream, sync_config, locks, target):
        _, repo_id = target
        orchestrator = make_orchestrator(db_session, upstream, sync_config, locks)

        first = await orchestrator.sync_repository(repo_id, "alice", "acme", "widgets")
        before = await stored(db_session, repo_id)
        second = await orchestrator.sync_repository(repo_id, "alice", "acme", "widgets")

        assert await stored(db_session, repo_id) == before
        assert second.contributions_count == first.contributions_count == 4
        assert sum(p.created for p in second.phases) == 0
        assert sum(p.updated for p in second.phases) == 4
        assert len(await sync_logs_for(db_session, repo_id)) == 2

    async def test_resync_overwrites_state(self, db_session, upstream, sync_config, locks, target):
        _, repo_id = target
        orchestrator = make_orchestrator(db_session, upstream, sync_config, locks)
        await orchestrator.sync_repository(repo_id, "alice", "acme", "widgets")

        upstream.pulls[0] = make_github_merged_pr(1)
        await orchestrator.sync_repository(repo_id, "alice", "acme", "widgets")

        db_session.expire_all()
        pr = await contribution_by_key(
            db_session, repo_id, ContributionType.PULL_REQUEST, "1"
        )
        assert pr is not None
        assert pr.state == "merged"
        assert (await stored(db_session, repo_id))[ContributionType.PULL_REQUEST] == 2


# -----------------------------------------------------------------------------
# Test: Fault Isolation
# -----------------------------------------------------------------------------
class TestPhaseFailures:
    async def test_failed_phase_gives_partial(
        self, db_session, upstream, sync_config, locks, target
    ):
        _, repo_id = target
        upstream.errors["list_commits"] = GitHubServerError("bad gateway", 502)
        orchestrator = make_orchestrator(db_session, upstream, sync_config, locks)

        result = await orchestrator.sync_repository(repo_id, "alice", "acme", "widgets")

        assert result.status == SyncStatus.PARTIAL
        assert result.success
        assert result.error == "Commits: bad gateway"
        assert result.contributions_count == 3
        # Later phases still ran
        assert upstream.calls_to("list_issues")

        log = await latest_sync_log(db_session, repo_id)
        assert log is not None
        assert log.status == SyncStatus.PARTIAL.value
        assert log.error_message == "Commits: bad gateway"

    async def test_upstream_failure_keeps_reconciled_rows(
        self, db_session, sync_config, locks, target, monkeypatch
    ):
        """Commits reconciled before a mid-listing failure are kept."""
        _, repo_id = target
        client = FakeGitHubClient(commits=[make_github_commit(sha) for sha in ("a1", "a2", "a3")])
        original = client.list_commits

        async def list_commits(owner, repo, *, author, page, per_page=100):
            if page == 2:
                raise GitHubServerError("bad gateway", 502)
            return await original(owner, repo, author=author, page=page, per_page=per_page)

        monkeypatch.setattr(client, "list_commits", list_commits)
        orchestrator = make_orchestrator(db_session, client, sync_config, locks)

        result = await orchestrator.sync_repository(repo_id, "alice", "acme", "widgets")

        commits = result.phases[0]
        assert commits.error == "bad gateway"
        assert commits.contributions_count == 2
        assert (await stored(db_session, repo_id))[ContributionType.COMMIT] == 2

    async def test_combined_error_message(self, db_session, upstream, sync_config, locks, target):
        _, repo_id = target
        upstream.errors["list_commits"] = GitHubServerError("commits down", 502)
        upstream.errors["list_issues"] = GitHubServerError("issues down", 503)
        orchestrator = make_orchestrator(db_session, upstream, sync_config, locks)

        result = await orchestrator.sync_repository(repo_id, "alice", "acme", "widgets")

        assert result.status == SyncStatus.PARTIAL
        assert result.error == "Commits: commits down; Issues: issues down"
        assert result.contributions_count == 2

    async def test_all_phases_fail(self, db_session, upstream, sync_config, locks, target):
        _, repo_id = target
        for operation in (
            "list_commits",
            "search_pull_requests",
            "list_pull_requests",
            "list_issues",
        ):
            upstream.errors[operation] = GitHubServerError(f"{operation} down", 502)
        orchestrator = make_orchestrator(db_session, upstream, sync_config, locks)

        result = await orchestrator.sync_repository(repo_id, "alice", "acme", "widgets")

        assert result.status == SyncStatus.ERROR
        assert not result.success
        assert result.contributions_count == 0
        assert result.error is not None
        assert result.error.startswith("Commits: ")
        assert "; PRs: search failed: " in result.error
        assert "fallback failed: list_pull_requests down" in result.error
        assert "; Issues: list_issues down" in result.error
        assert result.phases[1].retrieval == RetrievalKind.FAILED

        log = await latest_sync_log(db_session, repo_id)
        assert log is not None
        assert log.status == SyncStatus.ERROR.value
        assert log.is_finalized

    async def test_database_error_rolls_back_phase(
        self, db_session, upstream, sync_config, locks, target, monkeypatch
    ):
        _, repo_id = target
        orchestrator = make_orchestrator(db_session, upstream, sync_config, locks)
        original = orchestrator._reconciler.reconcile

        async def reconcile(repository_id, student_id, record):
            if record.type == ContributionType.ISSUE:
                raise SQLAlchemyError("disk full")
            return await original(repository_id, student_id, record)

        monkeypatch.setattr(orchestrator._reconciler, "reconcile", reconcile)

        result = await orchestrator.sync_repository(repo_id, "alice", "acme", "widgets")

        assert result.status == SyncStatus.PARTIAL
        assert result.phases[2].error == "database error: disk full"
        assert result.phases[2].contributions_count == 0
        assert (await stored(db_session, repo_id))[ContributionType.ISSUE] == 0
        assert result.contributions_count == 3

    async def test_unexpected_error_contained(
        self, db_session, upstream, sync_config, locks, target, monkeypatch
    ):
        _, repo_id = target
        orchestrator = make_orchestrator(db_session, upstream, sync_config, locks)

        async def retrieve(owner, name, username):
            raise RuntimeError("kaboom")

        monkeypatch.setattr(orchestrator._strategy, "retrieve", retrieve)

        result = await orchestrator.sync_repository(repo_id, "alice", "acme", "widgets")

        assert result.status == SyncStatus.PARTIAL
        assert result.error == "PRs: kaboom"

    async def test_phase_timeout(self, db_session, upstream, locks, target, monkeypatch):
        _, repo_id = target
        config = SyncConfig(page_size=2, detail_batch_pause_ms=0, phase_timeout_seconds=0.05)

        async def list_issues(owner, repo, *, creator, page, per_page=100):
            await asyncio.sleep(5)
            return []

        monkeypatch.setattr(upstream, "list_issues", list_issues)
        orchestrator = make_orchestrator(db_session, upstream, config, locks)

        result = await orchestrator.sync_repository(repo_id, "alice", "acme", "widgets")

        assert result.status == SyncStatus.PARTIAL
        assert result.error == "Issues: timed out after 0.05s"


# -----------------------------------------------------------------------------
# Test: Validation and Resolution
# -----------------------------------------------------------------------------
class TestValidation:
    @pytest.mark.parametrize(
        ("repository_id", "username", "owner", "name"),
        [
            (0, "alice", "acme", "widgets"),
            (1, "", "acme", "widgets"),
            (1, "alice", "  ", "widgets"),
            (1, "alice", "acme", ""),
        ],
    )
    async def test_missing_identifier(
        self, db_session, upstream, sync_config, locks, repository_id, username, owner, name
    ):
        orchestrator = make_orchestrator(db_session, upstream, sync_config, locks)

        with pytest.raises(ValueError, match="required"):
            await orchestrator.sync_repository(repository_id, username, owner, name)

        assert upstream.calls == []

    async def test_unknown_repository(self, db_session, upstream, sync_config, locks):
        orchestrator = make_orchestrator(db_session, upstream, sync_config, locks)

        result = await orchestrator.sync_repository(999, "alice", "acme", "widgets")

        assert result.status == SyncStatus.ERROR
        assert result.sync_log_id is None
        assert "999" in (result.error or "")
        assert upstream.calls == []
        assert await sync_logs_for(db_session, 999) == []


# -----------------------------------------------------------------------------
# Test: Locking
# -----------------------------------------------------------------------------
class TestRepositoryLocks:
    async def test_same_repository_same_lock(self):
        locks = RepositoryLocks()

        assert locks.lock_for(1) is locks.lock_for(1)
        assert locks.lock_for(1) is not locks.lock_for(2)

    async def test_overlapping_syncs_serialized(
        self, db_session, upstream, sync_config, locks, target, monkeypatch
    ):
        _, repo_id = target
        active = 0
        peak = 0
        original = upstream.list_commits

        async def list_commits(owner, repo, *, author, page, per_page=100):
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.01)
            active -= 1
            return await original(owner, repo, author=author, page=page, per_page=per_page)

        monkeypatch.setattr(upstream, "list_commits", list_commits)
        orchestrator = make_orchestrator(db_session, upstream, sync_config, locks)

        results = await asyncio.gather(
            orchestrator.sync_repository(repo_id, "alice", "acme", "widgets"),
            orchestrator.sync_repository(repo_id, "alice", "acme", "widgets"),
        )

        assert peak == 1
        assert [r.status for r in results] == [SyncStatus.SUCCESS, SyncStatus.SUCCESS]
        assert (await stored(db_session, repo_id))[ContributionType.COMMIT] == 1
