"""SQLAlchemy ORM models for Contribution Tracker."""

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import (
    DateTime,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
)
from sqlalchemy.types import JSON


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class ContributionType(str, Enum):
    """Contribution category.

    The categories share one stored shape but differ in how they are
    attributed to a student and in what their state means.
    """

    COMMIT = "commit"
    PULL_REQUEST = "pull_request"
    ISSUE = "issue"


class ContributionState(str, Enum):
    """Stored state for pull requests and issues (commits have no state)."""

    OPEN = "open"
    CLOSED = "closed"
    MERGED = "merged"  # pull requests only


class SyncStatus(str, Enum):
    """Outcome of one repository sync."""

    SUCCESS = "success"  # every phase succeeded
    PARTIAL = "partial"  # at least one phase succeeded and one failed
    ERROR = "error"  # every phase failed, or the sync could not run


# ------------------------------------------------------------------------------
# Student model
# ------------------------------------------------------------------------------
class Student(Base):
    """A tracked student, identified by their GitHub username."""

    __tablename__ = "students"

    id: Mapped[int] = mapped_column(primary_key=True)
    github_username: Mapped[str] = mapped_column(String(255), unique=True)
    student_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    repositories: Mapped[list["Repository"]] = relationship(
        back_populates="student",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Student(id={self.id}, github_username='{self.github_username}')>"


# ------------------------------------------------------------------------------
# Repository model
# ------------------------------------------------------------------------------
class Repository(Base):
    """GitHub repository tracked on behalf of one student.

    The same owner/name may be tracked several times, once per student.
    """

    __tablename__ = "repositories"

    id: Mapped[int] = mapped_column(primary_key=True)
    student_id: Mapped[int] = mapped_column(ForeignKey("students.id", ondelete="CASCADE"))
    owner: Mapped[str] = mapped_column(String(255))  # e.g., "acme"
    name: Mapped[str] = mapped_column(String(255))  # e.g., "widgets"
    full_name: Mapped[str] = mapped_column(String(500))  # "acme/widgets"
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=func.now(), onupdate=func.now())

    # Relationships
    student: Mapped["Student"] = relationship(back_populates="repositories")
    contributions: Mapped[list["Contribution"]] = relationship(
        back_populates="repository",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        UniqueConstraint("student_id", "owner", "name", name="uq_student_repo"),
    )

    def __repr__(self) -> str:
        return f"<Repository(id={self.id}, full_name='{self.full_name}')>"


# ------------------------------------------------------------------------------
# Contribution model
# ------------------------------------------------------------------------------
class Contribution(Base):
    """A commit, pull request or issue credited to a student.

    (repository_id, type, external_id) is the idempotency key: sync creates
    a row on first sight and updates it in place afterwards.
    """

    __tablename__ = "contributions"

    id: Mapped[int] = mapped_column(primary_key=True)
    repository_id: Mapped[int] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE")
    )
    student_id: Mapped[int] = mapped_column(ForeignKey("students.id", ondelete="CASCADE"))

    type: Mapped[str] = mapped_column(String(50))  # ContributionType value
    external_id: Mapped[str] = mapped_column(String(255))  # commit SHA or PR/issue number

    title: Mapped[str | None] = mapped_column(Text, nullable=True)
    url: Mapped[str] = mapped_column(Text)
    state: Mapped[str | None] = mapped_column(String(50), nullable=True)

    # Upstream timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime)
    updated_at: Mapped[datetime] = mapped_column(DateTime)

    # Category-specific payload ("metadata" is reserved on declarative classes)
    details: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, default=dict)

    synced_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    # Relationships
    repository: Mapped["Repository"] = relationship(back_populates="contributions")

    __table_args__ = (
        UniqueConstraint("repository_id", "type", "external_id", name="uq_repo_type_external_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<Contribution(id={self.id}, repo={self.repository_id}, "
            f"type='{self.type}', external_id='{self.external_id}')>"
        )


# ------------------------------------------------------------------------------
# SyncLog model
# ------------------------------------------------------------------------------
class SyncLog(Base):
    """One record per repository sync attempt (observability only).

    Created when a sync starts and finalized once with the status and
    contribution count. Never consulted to decide what to sync.
    """

    __tablename__ = "sync_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    student_id: Mapped[int | None] = mapped_column(
        ForeignKey("students.id", ondelete="CASCADE"), nullable=True
    )
    repository_id: Mapped[int | None] = mapped_column(
        ForeignKey("repositories.id", ondelete="CASCADE"), nullable=True
    )
    status: Mapped[str] = mapped_column(String(50))  # SyncStatus value
    contributions_count: Mapped[int] = mapped_column(default=0)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())
    completed_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    def __repr__(self) -> str:
        return (
            f"<SyncLog(id={self.id}, repo={self.repository_id}, "
            f"status='{self.status}', count={self.contributions_count})>"
        )

    @property
    def is_finalized(self) -> bool:
        """Check if the sync this log describes has completed."""
        return self.completed_at is not None
