"""Pydantic schemas for Contribution data."""

from datetime import datetime
from typing import Any

from pydantic import Field, field_validator

from contribution_tracker.db.models import ContributionType

from .base import SchemaBase


class ContributionRecord(SchemaBase):
    """A normalized upstream record, ready to be reconciled.

    Category-agnostic: the category-specific parts live in `state`
    semantics and the `metadata` payload.
    """

    type: ContributionType = Field(description="Contribution category")
    external_id: str = Field(
        min_length=1,
        max_length=255,
        description="Commit SHA or PR/issue number (unique per repository and type)",
    )
    title: str | None = Field(default=None, description="Title or first commit message line")
    url: str = Field(min_length=1, description="Canonical GitHub URL")
    state: str | None = Field(
        default=None,
        max_length=50,
        description="open/closed/merged for PRs and issues, None for commits",
    )
    created_at: datetime = Field(description="Upstream creation timestamp")
    updated_at: datetime = Field(description="Upstream last update timestamp")
    metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Category-specific payload stored as JSON",
    )

    @field_validator("external_id", mode="before")
    @classmethod
    def coerce_external_id(cls, v: Any) -> Any:
        """Accept PR/issue numbers as ints."""
        if isinstance(v, int):
            return str(v)
        return v

