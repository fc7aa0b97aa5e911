"""Pydantic schemas for chat operations."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from taskboard.schemas.actions import ActionOutcome
from taskboard.schemas.base import BaseSchema, IDMixin


class ChatMessageRequest(BaseModel):
    """Request to send a chat message."""

    message: str = Field(..., min_length=1, max_length=10000)


class ChatResponse(BaseModel):
    """The assistant's reply and what each requested action did."""

    response: str
    actions_taken: list[ActionOutcome]


class ChatMessageRead(BaseSchema, IDMixin):
    """One recorded exchange."""

    board_id: UUID | None
    user_id: UUID
    message: str
    response: str
    actions_taken: list[ActionOutcome]
    created_at: datetime
