"""Comment schemas."""

from uuid import UUID

from pydantic import Field

from taskboard.schemas.base import BaseSchema, IDMixin, TimestampMixin


class CommentCreate(BaseSchema):
    body: str = Field(..., min_length=1, max_length=10000)


class CommentUpdate(CommentCreate):
    pass


class CommentRead(BaseSchema, IDMixin, TimestampMixin):
    card_id: UUID
    user_id: UUID
    body: str
