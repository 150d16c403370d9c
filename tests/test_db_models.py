"""Tests for SQLAlchemy ORM models."""

import pytest
from sqlalchemy import select, text
from sqlalchemy.exc import IntegrityError

from contribution_tracker.db.models import Contribution, ContributionType, SyncLog, SyncStatus

from tests.factories import make_contribution, make_repository, make_student


class TestStudentModel:
    """Tests for Student model."""

    async def test_create_student(self, db_session):
        student = make_student(db_session, github_username="alice")
        await db_session.flush()

        assert student.id is not None
        assert repr(student) == f"<Student(id={student.id}, github_username='alice')>"

    async def test_student_unique_username(self, db_session):
        """Test that duplicate usernames are rejected."""
        make_student(db_session, github_username="alice")
        await db_session.flush()

        make_student(db_session, github_username="alice")

        with pytest.raises(IntegrityError):
            await db_session.flush()


class TestRepositoryModel:
    """Tests for Repository model."""

    async def test_same_repository_for_two_students(self, db_session):
        """The same owner/name may be tracked once per student."""
        alice = make_student(db_session, github_username="alice")
        bob = make_student(db_session, github_username="bob")
        make_repository(db_session, alice)
        make_repository(db_session, bob)

        await db_session.flush()

    async def test_repository_unique_per_student(self, db_session):
        student = make_student(db_session)
        make_repository(db_session, student)
        await db_session.flush()

        make_repository(db_session, student)

        with pytest.raises(IntegrityError):
            await db_session.flush()


class TestContributionModel:
    """Tests for Contribution model."""

    async def test_create_contribution(self, db_session):
        student = make_student(db_session)
        repo = make_repository(db_session, student)
        await db_session.flush()

        contribution = make_contribution(
            db_session, repo, student, details={"number": 1, "draft": False}
        )
        await db_session.flush()

        assert contribution.id is not None
        assert contribution.repository_id == repo.id
        assert contribution.details == {"number": 1, "draft": False}

    async def test_details_stored_in_metadata_column(self, db_session):
        """The payload lives in a column named 'metadata'."""
        student = make_student(db_session)
        repo = make_repository(db_session, student)
        await db_session.flush()
        make_contribution(db_session, repo, student, details={"labels": ["bug"]})
        await db_session.flush()

        result = await db_session.execute(text("SELECT metadata FROM contributions"))
        assert "bug" in result.scalar_one()

    async def test_contribution_unique_key(self, db_session):
        """Test that duplicate (repository, type, external_id) is rejected."""
        student = make_student(db_session)
        repo = make_repository(db_session, student)
        await db_session.flush()

        make_contribution(db_session, repo, student, external_id="5")
        await db_session.flush()
        make_contribution(db_session, repo, student, external_id="5")

        with pytest.raises(IntegrityError):
            await db_session.flush()

    async def test_same_number_different_types(self, db_session):
        """PR #5 and issue #5 are distinct contributions."""
        student = make_student(db_session)
        repo = make_repository(db_session, student)
        await db_session.flush()

        make_contribution(db_session, repo, student, external_id="5")
        make_contribution(
            db_session, repo, student, type=ContributionType.ISSUE, external_id="5"
        )
        await db_session.flush()

        result = await db_session.execute(select(Contribution))
        assert len(result.scalars().all()) == 2

    async def test_repository_delete_cascades(self, db_session):
        """Deleting a repository removes its contributions."""
        student = make_student(db_session)
        repo = make_repository(db_session, student)
        await db_session.flush()
        make_contribution(db_session, repo, student)
        await db_session.flush()

        await db_session.delete(repo)
        await db_session.flush()

        result = await db_session.execute(select(Contribution))
        assert result.scalars().all() == []


class TestSyncLogModel:
    """Tests for SyncLog model."""

    async def test_is_finalized(self, db_session):
        log = SyncLog(status=SyncStatus.ERROR.value, contributions_count=0)
        db_session.add(log)
        await db_session.flush()

        assert log.is_finalized is False
        assert log.student_id is None
        assert log.repository_id is None
