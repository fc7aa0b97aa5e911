"""Authentication schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import EmailStr, Field

from taskboard.schemas.base import BaseSchema


class LoginRequest(BaseSchema):
    """Request schema for email/password login."""

    email: EmailStr
    password: str = Field(..., min_length=1)


class TokenResponse(BaseSchema):
    """Response schema for successful authentication."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(..., description="Token expiry in seconds")


class ApiTokenCreate(BaseSchema):
    """Request schema for issuing an API token."""

    name: str = Field(..., min_length=1, max_length=255)
    scope: Literal["read", "write", "admin"] = "read"
    expires_in_days: int | None = Field(None, ge=1, le=3650)


class ApiTokenRead(BaseSchema):
    """API token metadata. The secret itself is never returned again."""

    id: UUID
    name: str
    scope: str
    created_at: datetime
    expires_at: datetime | None
    last_used_at: datetime | None


class ApiTokenCreated(ApiTokenRead):
    """Returned once, at creation, with the plaintext token."""

    token: str
