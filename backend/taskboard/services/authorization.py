"""
Authorization guard: board roles and card visibility.

The guard functions are pure: they look only at the rows handed to them and
never touch the session, so they can run as pre-flight checks anywhere inside
a transaction. The loaders at the bottom fetch those rows.

Role order is owner > editor > reader > none. A check for a role is
satisfied by that role or any stronger one.
"""

from collections.abc import Iterable, Mapping
from enum import Enum as PyEnum
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.db.models import Board, BoardPermission, Card, CardBoard, Visibility
from taskboard.errors import AuthorizationError, NotFoundError


class BoardRole(str, PyEnum):
    """A user's effective role on a board."""

    OWNER = "owner"
    EDITOR = "editor"
    READER = "reader"
    NONE = "none"


ROLE_RANK: dict[BoardRole, int] = {
    BoardRole.OWNER: 3,
    BoardRole.EDITOR: 2,
    BoardRole.READER: 1,
    BoardRole.NONE: 0,
}

# Weakest role that may see a card of each visibility
VISIBILITY_MIN_ROLE: dict[Visibility, BoardRole] = {
    Visibility.PRIVATE: BoardRole.EDITOR,
    Visibility.RESTRICTED: BoardRole.READER,
    Visibility.PUBLIC: BoardRole.NONE,
}


# =============================================================================
# PURE CHECKS
# =============================================================================


def role_satisfies(role: BoardRole, required: BoardRole) -> bool:
    return ROLE_RANK[role] >= ROLE_RANK[required]


def resolve_role(
    board: Board,
    user_id: UUID,
    permissions: Iterable[BoardPermission],
) -> BoardRole:
    """
    Resolve ``user_id``'s role on ``board`` from its permission rows.

    The board's owner is always OWNER, whatever the rows say. Rows for other
    boards or other users are ignored.
    """
    if board.owner_id == user_id:
        return BoardRole.OWNER
    for permission in permissions:
        if permission.board_id == board.id and permission.user_id == user_id:
            return BoardRole(permission.role)
    return BoardRole.NONE


def effective_visibility(visibility: Visibility | str, public_enabled: bool) -> Visibility:
    """PUBLIC degrades to RESTRICTED while the public-visibility feature is off."""
    visibility = Visibility(visibility)
    if visibility is Visibility.PUBLIC and not public_enabled:
        return Visibility.RESTRICTED
    return visibility


def can_view(
    visibility: Visibility | str,
    viewer_role: BoardRole,
    is_assignee: bool = False,
    public_enabled: bool = False,
) -> bool:
    """Whether a viewer holding ``viewer_role`` on a board may see a card there."""
    if is_assignee:
        return True
    required = VISIBILITY_MIN_ROLE[effective_visibility(visibility, public_enabled)]
    return role_satisfies(viewer_role, required)


def visible_visibilities(viewer_role: BoardRole, public_enabled: bool = False) -> list[str]:
    """Visibility values ``viewer_role`` may list, for use in SQL filters."""
    return [v.value for v in Visibility if can_view(v, viewer_role, public_enabled=public_enabled)]


def can_mutate(
    board: Board,
    user_id: UUID,
    permissions: Iterable[BoardPermission],
    required_role: BoardRole,
) -> BoardRole:
    """Return the resolved role, or raise AuthorizationError if it is weaker than required."""
    role = resolve_role(board, user_id, permissions)
    if not role_satisfies(role, required_role):
        if role is BoardRole.NONE:
            raise AuthorizationError(f"You do not have access to board '{board.name}'")
        raise AuthorizationError(
            f"{required_role.value.capitalize()} role required on board '{board.name}' "
            f"(you are {role.value})"
        )
    return role


def is_card_assignee(card: Card, user_id: UUID) -> bool:
    """The card's owner or creator."""
    return card.owner_id == user_id or card.created_by == user_id


def card_role(card: Card, user_id: UUID, board_roles: Mapping[UUID, BoardRole]) -> BoardRole:
    """
    Strongest authority ``user_id`` holds over ``card``.

    The owner/creator holds OWNER; otherwise the best role among the boards
    the card is assigned to.
    """
    if is_card_assignee(card, user_id):
        return BoardRole.OWNER
    return max(board_roles.values(), key=ROLE_RANK.__getitem__, default=BoardRole.NONE)


def can_view_card(
    card: Card,
    user_id: UUID,
    board_roles: Mapping[UUID, BoardRole],
    public_enabled: bool = False,
) -> bool:
    if is_card_assignee(card, user_id):
        return True
    if effective_visibility(card.visibility, public_enabled) is Visibility.PUBLIC:
        return True
    return any(can_view(card.visibility, role, public_enabled=public_enabled) for role in board_roles.values())


def can_delete_card(card: Card, user_id: UUID, board_roles: Mapping[UUID, BoardRole]) -> bool:
    """Owner/creator, or editor on every board the card is assigned to."""
    if is_card_assignee(card, user_id):
        return True
    return bool(board_roles) and all(
        role_satisfies(role, BoardRole.EDITOR) for role in board_roles.values()
    )


# =============================================================================
# LOADERS
# =============================================================================


async def get_board_or_404(db: AsyncSession, board_id: UUID) -> Board:
    board = await db.get(Board, board_id)
    if board is None:
        raise NotFoundError("Board not found")
    return board


async def load_permissions(db: AsyncSession, board_id: UUID, user_id: UUID) -> list[BoardPermission]:
    result = await db.execute(
        select(BoardPermission).where(
            BoardPermission.board_id == board_id,
            BoardPermission.user_id == user_id,
        )
    )
    return list(result.scalars())


async def get_board_role(db: AsyncSession, board: Board, user_id: UUID) -> BoardRole:
    return resolve_role(board, user_id, await load_permissions(db, board.id, user_id))


async def require_board_role(
    db: AsyncSession,
    board_id: UUID,
    user_id: UUID,
    required_role: BoardRole,
) -> tuple[Board, BoardRole]:
    """Load a board and check ``user_id`` holds at least ``required_role`` on it."""
    board = await get_board_or_404(db, board_id)
    role = can_mutate(board, user_id, await load_permissions(db, board.id, user_id), required_role)
    return board, role


async def load_card_board_roles(db: AsyncSession, card_id: UUID, user_id: UUID) -> dict[UUID, BoardRole]:
    """Roles ``user_id`` holds on each board the card is assigned to (NONE included)."""
    result = await db.execute(
        select(Board, BoardPermission)
        .join(CardBoard, CardBoard.board_id == Board.id)
        .outerjoin(
            BoardPermission,
            (BoardPermission.board_id == Board.id) & (BoardPermission.user_id == user_id),
        )
        .where(CardBoard.card_id == card_id)
    )
    roles: dict[UUID, BoardRole] = {}
    for board, permission in result.all():
        roles[board.id] = resolve_role(board, user_id, [permission] if permission else [])
    return roles


async def get_visible_card(
    db: AsyncSession,
    card_id: UUID,
    user_id: UUID,
    public_enabled: bool = False,
) -> tuple[Card, dict[UUID, BoardRole]]:
    """Load a card ``user_id`` may see, with their role on each of its boards."""
    card = await db.get(Card, card_id)
    if card is None:
        raise NotFoundError("Card not found")
    roles = await load_card_board_roles(db, card.id, user_id)
    if not can_view_card(card, user_id, roles, public_enabled):
        raise AuthorizationError("You do not have access to this card")
    return card, roles
