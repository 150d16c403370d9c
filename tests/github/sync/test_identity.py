"""Tests for IdentityResolver."""

import pytest

from contribution_tracker.db.models import ContributionType
from contribution_tracker.github.sync.exceptions import IdentityResolutionError
from contribution_tracker.github.sync.identity import IdentityResolver, RepositoryIdentity
from tests.factories import make_contribution, make_repository, make_student


class TestResolve:
    async def test_resolves_owning_student(self, db_session):
        student = make_student(db_session, github_username="Alice")
        repo = make_repository(db_session, student, owner="acme", name="widgets")
        await db_session.flush()

        identity = await IdentityResolver(db_session).resolve(repo.id)

        assert identity == RepositoryIdentity(
            repository_id=repo.id,
            student_id=student.id,
            owner="acme",
            name="widgets",
            username="Alice",
        )
        assert identity.full_name == "acme/widgets"

    async def test_unknown_repository(self, db_session):
        with pytest.raises(IdentityResolutionError) as exc_info:
            await IdentityResolver(db_session).resolve(42)

        assert exc_info.value.repository_id == 42
        assert str(exc_info.value) == "Repository 42 not found"


class TestResolveForStudent:
    async def test_owned_and_contributed(self, db_session):
        alice = make_student(db_session, github_username="alice")
        bob = make_student(db_session, github_username="bob")
        owned = make_repository(db_session, alice, owner="acme", name="widgets")
        other = make_repository(db_session, bob, owner="bobco", name="tools")
        make_repository(db_session, bob, owner="bobco", name="untouched")
        await db_session.flush()
        make_contribution(db_session, other, alice, type=ContributionType.COMMIT, external_id="a1")
        make_contribution(db_session, other, alice, type=ContributionType.ISSUE, external_id="7")
        await db_session.flush()

        identities = await IdentityResolver(db_session).resolve_for_student(alice.id)

        assert [i.full_name for i in identities] == ["acme/widgets", "bobco/tools"]
        assert [i.username for i in identities] == ["alice", "alice"]
        assert [i.student_id for i in identities] == [alice.id, bob.id]
        assert identities[0].repository_id == owned.id

    async def test_no_repositories(self, db_session):
        student = make_student(db_session)
        await db_session.flush()

        assert await IdentityResolver(db_session).resolve_for_student(student.id) == []

    async def test_unknown_student(self, db_session):
        with pytest.raises(IdentityResolutionError, match="Student 5 not found"):
            await IdentityResolver(db_session).resolve_for_student(5)


async def test_list_repository_ids(db_session):
    student = make_student(db_session)
    first = make_repository(db_session, student, name="one")
    second = make_repository(db_session, student, name="two")
    await db_session.flush()

    assert await IdentityResolver(db_session).list_repository_ids() == [first.id, second.id]
