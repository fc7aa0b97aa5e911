"""User schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import EmailStr, Field

from taskboard.schemas.base import BaseSchema, Name


class UserCreate(BaseSchema):
    """Schema for registering a user."""

    email: EmailStr
    password: str = Field(..., min_length=1, max_length=255)
    name: Name


class UserRead(BaseSchema):
    """Schema for reading user data."""

    id: UUID
    email: str
    name: str
    created_at: datetime
    updated_at: datetime
