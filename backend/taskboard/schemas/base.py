"""Shared schema configuration, mixins and field types."""

from datetime import datetime
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

# Names of boards, columns, users; tags are shorter
Name = Annotated[str, Field(min_length=1, max_length=255)]
TagName = Annotated[str, Field(min_length=1, max_length=100)]
HexColor = Annotated[str, Field(pattern=r"^#[0-9A-Fa-f]{6}$")]
# Out-of-range positions are clamped by PositionIndex, not rejected
Position = Annotated[int, Field(description="Target index in its ordering scope")]


class BaseSchema(BaseModel):
    """Reads ORM rows directly and trims surrounding whitespace from strings."""

    model_config = ConfigDict(
        from_attributes=True,
        str_strip_whitespace=True,
        validate_assignment=True,
    )


class IDMixin(BaseModel):
    id: UUID


class CreatedMixin(BaseModel):
    """For append-only rows (placements, tags, chat messages)."""

    created_at: datetime


class TimestampMixin(CreatedMixin):
    updated_at: datetime
