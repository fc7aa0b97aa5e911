"""Board, permission and column schemas."""

from typing import Literal
from uuid import UUID

from pydantic import EmailStr, Field

from taskboard.schemas.base import BaseSchema, IDMixin, Name, Position, TimestampMixin
from taskboard.schemas.cards import BoardCardRead
from taskboard.schemas.tags import TagRead

BoardRoleValue = Literal["owner", "editor", "reader"]


class BoardCreate(BaseSchema):
    """Schema for creating a board, optionally with initial columns."""

    name: Name
    description: str | None = None
    columns: list[Name] = Field(default_factory=list)


class BoardUpdate(BaseSchema):
    """Schema for updating a board. All fields optional."""

    name: Name | None = None
    description: str | None = None


class BoardRead(BaseSchema, IDMixin, TimestampMixin):
    """Schema for reading a board."""

    owner_id: UUID
    name: str
    description: str | None
    role: str | None = None


class ColumnCreate(BaseSchema):
    name: Name
    position: Position | None = None


class ColumnUpdate(BaseSchema):
    name: Name


class ColumnMove(BaseSchema):
    position: Position


class ColumnRead(BaseSchema, IDMixin, TimestampMixin):
    board_id: UUID
    name: str
    position: Position


class ColumnWithCards(ColumnRead):
    cards: list[BoardCardRead] = Field(default_factory=list)


class BoardDetail(BoardRead):
    """A board with its columns, the cards the caller may see, and its tags."""

    columns: list[ColumnWithCards]
    unfiled: list[BoardCardRead]
    tags: list[TagRead]


class PermissionGrant(BaseSchema):
    user_email: EmailStr
    role: Literal["editor", "reader"] = "reader"


class PermissionRead(BaseSchema):
    user_id: UUID
    email: str
    name: str
    role: BoardRoleValue
