"""
Read-only queries: board listings, filtered card listings, tags.

Nothing here mutates state. Card listings are filtered by visibility in SQL
using the viewer's resolved role.
"""

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.db.models import Board, BoardColumn, BoardPermission, Card, CardBoard, CardTag, Tag
from taskboard.services.authorization import BoardRole, resolve_role, visible_visibilities


@dataclass
class CardFilter:
    """Optional filters for card listings. Date bounds are inclusive."""

    q: str | None = None
    tag_ids: list[UUID] | None = None
    status: str | None = None
    column_id: UUID | None = None
    start_from: date | None = None
    start_to: date | None = None
    end_from: date | None = None
    end_to: date | None = None
    due_from: date | None = None
    due_to: date | None = None
    updated_from: datetime | None = None
    updated_to: datetime | None = None

    def apply(self, query):
        if self.q:
            pattern = f"%{self.q}%"
            query = query.where(or_(Card.title.ilike(pattern), Card.body.ilike(pattern)))
        if self.tag_ids:
            query = query.where(Card.id.in_(select(CardTag.card_id).where(CardTag.tag_id.in_(self.tag_ids))))
        if self.status:
            query = query.where(Card.status == self.status)
        if self.column_id:
            query = query.where(CardBoard.column_id == self.column_id)
        for column, lower, upper in (
            (Card.start_date, self.start_from, self.start_to),
            (Card.end_date, self.end_from, self.end_to),
            (Card.due_date, self.due_from, self.due_to),
            (Card.updated_at, self.updated_from, self.updated_to),
        ):
            if lower is not None:
                query = query.where(column >= lower)
            if upper is not None:
                query = query.where(column <= upper)
        return query


async def list_boards_for_user(db: AsyncSession, user_id: UUID) -> list[tuple[Board, BoardRole]]:
    """Boards the user owns or holds a permission on, with the resolved role."""
    result = await db.execute(
        select(Board, BoardPermission)
        .outerjoin(
            BoardPermission,
            and_(BoardPermission.board_id == Board.id, BoardPermission.user_id == user_id),
        )
        .where(or_(Board.owner_id == user_id, BoardPermission.id.is_not(None)))
        .order_by(Board.created_at, Board.id)
    )
    return [
        (board, resolve_role(board, user_id, [permission] if permission else []))
        for board, permission in result.all()
    ]


async def list_columns(db: AsyncSession, board_id: UUID) -> list[BoardColumn]:
    result = await db.execute(
        select(BoardColumn)
        .where(BoardColumn.board_id == board_id)
        .order_by(BoardColumn.position, BoardColumn.id)
    )
    return list(result.scalars())


async def list_board_cards(
    db: AsyncSession,
    board_id: UUID,
    user_id: UUID,
    role: BoardRole,
    filters: CardFilter | None = None,
    *,
    public_enabled: bool = False,
) -> list[tuple[Card, CardBoard]]:
    """
    Cards placed on a board that ``user_id`` may see, with their placement.

    Ordered by column position (unfiled cards last), then card position,
    then placement id.
    """
    query = (
        select(Card, CardBoard)
        .join(CardBoard, CardBoard.card_id == Card.id)
        .outerjoin(BoardColumn, BoardColumn.id == CardBoard.column_id)
        .where(CardBoard.board_id == board_id)
        .where(
            or_(
                Card.visibility.in_(visible_visibilities(role, public_enabled)),
                Card.owner_id == user_id,
                Card.created_by == user_id,
            )
        )
    )
    if filters is not None:
        query = filters.apply(query)
    query = query.order_by(
        BoardColumn.position.is_(None),
        BoardColumn.position,
        CardBoard.position,
        CardBoard.id,
    )
    result = await db.execute(query)
    return [(card, placement) for card, placement in result.all()]


async def list_user_cards(
    db: AsyncSession,
    user_id: UUID,
    *,
    status: str | None = None,
    unassigned: bool = False,
) -> list[Card]:
    """The user's inbox: cards they own or created, newest first."""
    query = select(Card).where(or_(Card.owner_id == user_id, Card.created_by == user_id))
    if status:
        query = query.where(Card.status == status)
    if unassigned:
        query = query.where(~select(CardBoard.id).where(CardBoard.card_id == Card.id).exists())
    result = await db.execute(query.order_by(Card.updated_at.desc(), Card.id))
    return list(result.scalars())


async def count_cards_per_board(db: AsyncSession, board_ids: list[UUID]) -> dict[UUID, int]:
    if not board_ids:
        return {}
    result = await db.execute(
        select(CardBoard.board_id, func.count())
        .where(CardBoard.board_id.in_(board_ids))
        .group_by(CardBoard.board_id)
    )
    return {board_id: count for board_id, count in result.all()}


async def list_board_tags(db: AsyncSession, board_id: UUID) -> list[Tag]:
    result = await db.execute(select(Tag).where(Tag.board_id == board_id).order_by(Tag.name, Tag.id))
    return list(result.scalars())


async def list_user_tags(db: AsyncSession, user_id: UUID) -> list[Tag]:
    result = await db.execute(select(Tag).where(Tag.owner_id == user_id).order_by(Tag.name, Tag.id))
    return list(result.scalars())


async def tags_for_cards(db: AsyncSession, card_ids: list[UUID]) -> dict[UUID, list[Tag]]:
    if not card_ids:
        return {}
    result = await db.execute(
        select(CardTag.card_id, Tag)
        .join(Tag, Tag.id == CardTag.tag_id)
        .where(CardTag.card_id.in_(card_ids))
        .order_by(Tag.name, Tag.id)
    )
    tags: dict[UUID, list[Tag]] = defaultdict(list)
    for card_id, tag in result.all():
        tags[card_id].append(tag)
    return dict(tags)
