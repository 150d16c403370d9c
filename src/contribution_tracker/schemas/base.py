"""Shared pydantic base for schemas built from ORM rows."""

from typing import Any, Self

from pydantic import BaseModel, ConfigDict


class SchemaBase(BaseModel):
    """Schema that validates from SQLAlchemy rows and dumps to JSON-safe dicts."""

    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
    )

    @classmethod
    def from_orm(cls, obj: Any) -> Self:
        """Build from a single ORM row (attributes are read, not copied)."""
        return cls.model_validate(obj)

    def to_payload(self, **fields: Any) -> dict[str, Any]:
        """Dump to JSON-compatible primitives, merging extra ``fields`` on top.

        Datetimes become ISO strings and enums their values, so the result
        can go straight to ``print_json``.
        """
        return {**self.model_dump(mode="json"), **fields}
