"""
Card routes: board listings, the inbox, card CRUD and board placements.

Listings are read-only queries; every mutation goes through the
ActionExecutor so the REST API and the chat share one rule set.
"""

from datetime import date, datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from taskboard.api.deps import CurrentUser, DbSession, apply_action
from taskboard.config import get_settings
from taskboard.db.models import Card, CardBoard
from taskboard.schemas.cards import (
    BoardCardCreate,
    BoardCardRead,
    CardCreate,
    CardDetail,
    CardRead,
    CardStatusValue,
    CardUpdate,
    PlacementRead,
    PlacementRequest,
)
from taskboard.schemas.tags import TagRead
from taskboard.services import queries
from taskboard.services.assignments import CardBoardAssignment
from taskboard.services.authorization import (
    BoardRole,
    get_visible_card,
    is_card_assignee,
    require_board_role,
)

router = APIRouter(tags=["cards"])
settings = get_settings()


# =============================================================================
# HELPERS
# =============================================================================


async def card_reads(db, cards: list[Card]) -> list[CardRead]:
    tag_map = await queries.tags_for_cards(db, [card.id for card in cards])
    reads = []
    for card in cards:
        read = CardRead.model_validate(card)
        read.tags = [TagRead.model_validate(t) for t in tag_map.get(card.id, [])]
        reads.append(read)
    return reads


async def board_card_reads(db, rows: list[tuple[Card, CardBoard]]) -> list[BoardCardRead]:
    reads = await card_reads(db, [card for card, _ in rows])
    return [
        BoardCardRead(
            **read.model_dump(exclude={"tags"}),
            tags=read.tags,
            column_id=placement.column_id,
            position=placement.position,
        )
        for read, (_, placement) in zip(reads, rows)
    ]


# =============================================================================
# BOARD CARDS
# =============================================================================


@router.get("/boards/{board_id}/cards", response_model=list[BoardCardRead])
async def list_board_cards(
    board_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
    q: str | None = None,
    tag_ids: Annotated[list[UUID] | None, Query()] = None,
    status: CardStatusValue | None = None,
    column_id: UUID | None = None,
    start_from: date | None = None,
    start_to: date | None = None,
    end_from: date | None = None,
    end_to: date | None = None,
    due_from: date | None = None,
    due_to: date | None = None,
    updated_from: datetime | None = None,
    updated_to: datetime | None = None,
) -> list[BoardCardRead]:
    """
    List the cards on a board that the caller may see.

    Filters:
    - q: Search in title and body (case-insensitive)
    - tag_ids: Cards carrying any of these tags
    - status: Card status
    - column_id: Cards in this column
    - start_/end_/due_from|to: Inclusive date ranges
    - updated_from|to: Inclusive last-modified range
    """
    _, role = await require_board_role(db, board_id, current_user.id, BoardRole.READER)
    filters = queries.CardFilter(
        q=q,
        tag_ids=tag_ids,
        status=status,
        column_id=column_id,
        start_from=start_from,
        start_to=start_to,
        end_from=end_from,
        end_to=end_to,
        due_from=due_from,
        due_to=due_to,
        updated_from=updated_from,
        updated_to=updated_to,
    )
    rows = await queries.list_board_cards(
        db,
        board_id,
        current_user.id,
        role,
        filters,
        public_enabled=settings.public_visibility_enabled,
    )
    return await board_card_reads(db, rows)


@router.post(
    "/boards/{board_id}/cards",
    response_model=BoardCardRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_board_card(
    board_id: UUID,
    data: BoardCardCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> BoardCardRead:
    """Create a card and place it on the board (unfiled when no column is given)."""
    payload = data.model_dump(exclude_none=True, exclude={"column_id"})
    if data.column_id is not None:
        payload["column"] = str(data.column_id)
    result = await apply_action(
        db, current_user, {"action": "create_card", "board": str(board_id), **payload}
    )
    card = result.entity
    placement = await CardBoardAssignment(db).get(card.id, board_id)
    return (await board_card_reads(db, [(card, placement)]))[0]


@router.post(
    "/boards/{board_id}/cards/{card_id}/assign",
    response_model=PlacementRead,
    status_code=status.HTTP_201_CREATED,
)
async def assign_card(
    board_id: UUID,
    card_id: UUID,
    data: PlacementRequest,
    current_user: CurrentUser,
    db: DbSession,
) -> PlacementRead:
    """Add an existing card to a board. Assigning it twice is a 409."""
    payload = {"action": "assign_card_to_board", "board": str(board_id), "card": str(card_id)}
    if data.column_id is not None:
        payload["column"] = str(data.column_id)
    if data.position is not None:
        payload["position"] = data.position
    result = await apply_action(db, current_user, payload)
    return PlacementRead.model_validate(result.entity)


@router.post("/boards/{board_id}/cards/{card_id}/move", response_model=PlacementRead)
async def move_card(
    board_id: UUID,
    card_id: UUID,
    data: PlacementRequest,
    current_user: CurrentUser,
    db: DbSession,
) -> PlacementRead:
    """
    Move a card within a board.

    Omitting column_id keeps the card's column; an explicit null sends it to
    the unfiled bucket. Omitting position appends.
    """
    payload = {"action": "move_card", "board": str(board_id), "card": str(card_id)}
    if data.column_id is not None:
        payload["column"] = str(data.column_id)
    elif "column_id" in data.model_fields_set:
        payload["to_unfiled"] = True
    if data.position is not None:
        payload["position"] = data.position
    result = await apply_action(db, current_user, payload)
    return PlacementRead.model_validate(result.entity)


@router.delete("/boards/{board_id}/cards/{card_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unassign_card(
    board_id: UUID,
    card_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> None:
    """Take a card off a board. The card itself survives."""
    await apply_action(
        db,
        current_user,
        {"action": "unassign_card_from_board", "board": str(board_id), "card": str(card_id)},
    )


# =============================================================================
# INBOX
# =============================================================================


@router.get("/cards", response_model=list[CardRead])
async def list_my_cards(
    current_user: CurrentUser,
    db: DbSession,
    status: CardStatusValue | None = None,
    unassigned: bool = False,
) -> list[CardRead]:
    """
    List cards the caller owns or created, most recently changed first.

    Filters:
    - status: Card status
    - unassigned: If true, only cards not on any board
    """
    cards = await queries.list_user_cards(db, current_user.id, status=status, unassigned=unassigned)
    return await card_reads(db, cards)


@router.post("/cards", response_model=CardRead, status_code=status.HTTP_201_CREATED)
async def create_card(data: CardCreate, current_user: CurrentUser, db: DbSession) -> CardRead:
    """Create a standalone card. It stays private unless a visibility is given."""
    result = await apply_action(
        db, current_user, {"action": "create_card", **data.model_dump(exclude_none=True)}
    )
    return (await card_reads(db, [result.entity]))[0]


# =============================================================================
# SINGLE CARD
# =============================================================================


@router.get("/cards/{card_id}", response_model=CardDetail)
async def get_card(card_id: UUID, current_user: CurrentUser, db: DbSession) -> CardDetail:
    """Get a card and the placements on boards where the caller holds a role."""
    card, roles = await get_visible_card(
        db, card_id, current_user.id, settings.public_visibility_enabled
    )
    read = (await card_reads(db, [card]))[0]
    placements = await CardBoardAssignment(db).placements_for_card(card.id)
    if not is_card_assignee(card, current_user.id):
        placements = [p for p in placements if roles.get(p.board_id, BoardRole.NONE) is not BoardRole.NONE]
    return CardDetail(
        **read.model_dump(exclude={"tags"}),
        tags=read.tags,
        placements=[PlacementRead.model_validate(p) for p in placements],
    )


@router.patch("/cards/{card_id}", response_model=CardRead)
async def update_card(
    card_id: UUID,
    data: CardUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> CardRead:
    """Update a card. Fields left out are unchanged; dates and body may be cleared with null."""
    result = await apply_action(
        db,
        current_user,
        {"action": "update_card", "card": str(card_id), **data.model_dump(exclude_unset=True)},
    )
    return (await card_reads(db, [result.entity]))[0]


@router.delete("/cards/{card_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_card(card_id: UUID, current_user: CurrentUser, db: DbSession) -> None:
    """Delete a card everywhere it is placed."""
    await apply_action(db, current_user, {"action": "delete_card", "card": str(card_id)})
