"""Card and card placement schemas."""

from datetime import date
from typing import Literal
from uuid import UUID

from pydantic import Field

from taskboard.schemas.base import BaseSchema, CreatedMixin, IDMixin, Position, TimestampMixin
from taskboard.schemas.tags import TagRead

VisibilityValue = Literal["private", "restricted", "public"]
CardStatusValue = Literal["open", "in_progress", "done", "closed"]


class CardBase(BaseSchema):
    """Base card schema."""

    title: str = Field(..., min_length=1, max_length=500)
    body: str | None = None
    status: CardStatusValue | None = None
    start_date: date | None = None
    end_date: date | None = None
    due_date: date | None = None


class CardCreate(CardBase):
    """Schema for creating a standalone card (private unless stated)."""

    visibility: VisibilityValue | None = None


class BoardCardCreate(CardBase):
    """Schema for creating a card directly on a board (restricted unless stated)."""

    visibility: VisibilityValue | None = None
    column_id: UUID | None = None
    position: Position | None = None


class CardUpdate(BaseSchema):
    """Schema for updating a card. All fields optional."""

    title: str | None = Field(None, min_length=1, max_length=500)
    body: str | None = None
    visibility: VisibilityValue | None = None
    status: CardStatusValue | None = None
    start_date: date | None = None
    end_date: date | None = None
    due_date: date | None = None


class CardRead(BaseSchema, IDMixin, TimestampMixin):
    """Schema for reading card data."""

    title: str
    body: str | None
    visibility: str
    status: str
    start_date: date | None
    end_date: date | None
    due_date: date | None
    owner_id: UUID | None
    created_by: UUID
    tags: list[TagRead] = Field(default_factory=list)


class BoardCardRead(CardRead):
    """A card as placed on one board."""

    column_id: UUID | None
    position: Position


class PlacementRequest(BaseSchema):
    """Target of an assign or move. For a move, an explicit null column_id means unfiled."""

    column_id: UUID | None = None
    position: Position | None = None


class PlacementRead(BaseSchema, IDMixin, CreatedMixin):
    card_id: UUID
    board_id: UUID
    column_id: UUID | None
    position: Position


class CardDetail(CardRead):
    """A card with every board placement the caller can see."""

    placements: list[PlacementRead] = Field(default_factory=list)
