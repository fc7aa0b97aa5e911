"""Pydantic schemas for API request/response validation."""

from taskboard.schemas.user import UserCreate, UserRead
from taskboard.schemas.auth import (
    ApiTokenCreate,
    ApiTokenCreated,
    ApiTokenRead,
    LoginRequest,
    TokenResponse,
)
from taskboard.schemas.tags import TagCreate, TagRead, TagUpdate
from taskboard.schemas.cards import (
    BoardCardCreate,
    BoardCardRead,
    CardCreate,
    CardDetail,
    CardRead,
    CardUpdate,
    PlacementRead,
    PlacementRequest,
)
from taskboard.schemas.boards import (
    BoardCreate,
    BoardDetail,
    BoardRead,
    BoardUpdate,
    ColumnCreate,
    ColumnMove,
    ColumnRead,
    ColumnUpdate,
    ColumnWithCards,
    PermissionGrant,
    PermissionRead,
)
from taskboard.schemas.comments import CommentCreate, CommentRead, CommentUpdate
from taskboard.schemas.actions import ActionOutcome
from taskboard.schemas.chat import ChatMessageRead, ChatMessageRequest, ChatResponse

__all__ = [
    # User
    "UserCreate",
    "UserRead",
    # Auth
    "ApiTokenCreate",
    "ApiTokenCreated",
    "ApiTokenRead",
    "LoginRequest",
    "TokenResponse",
    # Tags
    "TagCreate",
    "TagRead",
    "TagUpdate",
    # Cards
    "BoardCardCreate",
    "BoardCardRead",
    "CardCreate",
    "CardDetail",
    "CardRead",
    "CardUpdate",
    "PlacementRead",
    "PlacementRequest",
    # Boards & columns
    "BoardCreate",
    "BoardDetail",
    "BoardRead",
    "BoardUpdate",
    "ColumnCreate",
    "ColumnMove",
    "ColumnRead",
    "ColumnUpdate",
    "ColumnWithCards",
    "PermissionGrant",
    "PermissionRead",
    # Comments
    "CommentCreate",
    "CommentRead",
    "CommentUpdate",
    # Chat
    "ActionOutcome",
    "ChatMessageRead",
    "ChatMessageRequest",
    "ChatResponse",
]
