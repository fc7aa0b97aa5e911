"""
SQLAlchemy 2.0 Models for Taskboard.

Uses modern declarative syntax with Mapped[] type annotations.
All models use UUID primary keys. Column types are the portable SQLAlchemy
ones (Uuid, JSON with a JSONB variant, timezone-aware DateTime) so the same
metadata runs on PostgreSQL in production and SQLite in tests.

Cards are standalone: a card's placement on a board lives in CardBoard, one
row per (card, board) pair, each with its own column and position.
"""

from datetime import date, datetime, timezone
from enum import Enum as PyEnum
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    event,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from taskboard.db.base import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS
# =============================================================================


class Visibility(str, PyEnum):
    """Who may see a card on a board it is assigned to."""

    PRIVATE = "private"
    RESTRICTED = "restricted"
    PUBLIC = "public"


class CardStatus(str, PyEnum):
    """Workflow status of a card."""

    OPEN = "open"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    CLOSED = "closed"


class TokenScope(str, PyEnum):
    """Scope granted to an API token."""

    READ = "read"
    WRITE = "write"
    ADMIN = "admin"


def _values(enum_cls: type[PyEnum]) -> str:
    return ", ".join(f"'{member.value}'" for member in enum_cls)


# Roles stored on board_permissions; "none" is never persisted
PERMISSION_ROLES = ("owner", "editor", "reader")

JSONType = JSON().with_variant(JSONB(), "postgresql")


# =============================================================================
# MODELS
# =============================================================================


class User(Base):
    """Core user account. Email is stored lower-cased."""

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False
    )


class Session(Base):
    """
    Login session backing a JWT.

    The JWT carries the session id as its ``sid`` claim; deleting the row
    revokes the token before it expires.
    """

    __tablename__ = "sessions"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class ApiToken(Base):
    """Long-lived bearer token for scripts and integrations. Only the hash is stored."""

    __tablename__ = "api_tokens"
    __table_args__ = (
        CheckConstraint(f"scope IN ({_values(TokenScope)})", name="valid_token_scope"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    token_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    scope: Mapped[str] = mapped_column(String(20), nullable=False, default=TokenScope.READ.value)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    expires_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_used_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)


class Board(Base):
    """Top-level container of columns and card assignments."""

    __tablename__ = "boards"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    owner_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False
    )


class BoardPermission(Base):
    """A user's role on a board. The board owner always has an 'owner' row."""

    __tablename__ = "board_permissions"
    __table_args__ = (
        UniqueConstraint("board_id", "user_id", name="unique_board_permission"),
        CheckConstraint(
            "role IN (" + ", ".join(f"'{r}'" for r in PERMISSION_ROLES) + ")",
            name="valid_board_role",
        ),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    board_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("boards.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="reader")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )


class BoardColumn(Base):
    """An ordered column on a board. Ordering scope: the board."""

    __tablename__ = "columns"
    __table_args__ = (
        Index("idx_columns_board_position", "board_id", "position"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    board_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("boards.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False
    )


class Card(Base):
    """
    A standalone work item.

    A card does not belong to a column directly; see CardBoard. The creator
    is permanent, the owner may be reassigned or cleared.
    """

    __tablename__ = "cards"
    __table_args__ = (
        CheckConstraint(f"visibility IN ({_values(Visibility)})", name="valid_visibility"),
        CheckConstraint(f"status IN ({_values(CardStatus)})", name="valid_card_status"),
        Index("idx_cards_owner", "owner_id"),
        Index("idx_cards_created_by", "created_by"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    body: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    visibility: Mapped[str] = mapped_column(
        String(20), nullable=False, default=Visibility.RESTRICTED.value
    )
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=CardStatus.OPEN.value)
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    due_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    owner_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_by: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False
    )


class CardBoard(Base):
    """
    Placement of a card on one board.

    column_id is optional; without a column the card sits in the board's
    unfiled bucket. Ordering scope is (board, column) with NULL column being
    its own scope. The column, when set, must belong to board_id.
    """

    __tablename__ = "card_boards"
    __table_args__ = (
        UniqueConstraint("card_id", "board_id", name="unique_card_board"),
        Index("idx_card_boards_scope", "board_id", "column_id", "position"),
        Index("idx_card_boards_card", "card_id"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    card_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("cards.id", ondelete="CASCADE"), nullable=False
    )
    board_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("boards.id", ondelete="CASCADE"), nullable=False
    )
    column_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("columns.id", ondelete="SET NULL"), nullable=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )


class Tag(Base):
    """Board-scoped tag (board_id set) or a user's global tag (owner_id set)."""

    __tablename__ = "tags"
    __table_args__ = (
        CheckConstraint("(board_id IS NULL) <> (owner_id IS NULL)", name="tag_scope_exclusive"),
        Index("idx_tags_board", "board_id"),
        Index("idx_tags_owner", "owner_id"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    board_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("boards.id", ondelete="CASCADE"), nullable=True
    )
    owner_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    color: Mapped[str] = mapped_column(String(7), nullable=False, default="#6c757d")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )


class CardTag(Base):
    """Tag applied to a card, independent of board assignment."""

    __tablename__ = "card_tags"

    card_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("cards.id", ondelete="CASCADE"), primary_key=True
    )
    tag_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True, index=True
    )


class Comment(Base):
    """Discussion comment on a card."""

    __tablename__ = "comments"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    card_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("cards.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    body: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False
    )


class ChatMessage(Base):
    """
    One chat exchange: the user's message, the model's reply and the
    ordered outcomes of every action that ran. Append-only.

    board_id is NULL for the global (cross-board) conversation.
    """

    __tablename__ = "chat_messages"
    __table_args__ = (
        Index("idx_chat_messages_user_board", "user_id", "board_id", "created_at"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    board_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid, ForeignKey("boards.id", ondelete="CASCADE"), nullable=True
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    response: Mapped[str] = mapped_column(Text, nullable=False)
    actions_taken: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False
    )


@event.listens_for(ChatMessage, "before_update")
def _chat_message_is_immutable(mapper, connection, target: ChatMessage) -> None:
    raise ValueError("chat_messages rows are append-only")
