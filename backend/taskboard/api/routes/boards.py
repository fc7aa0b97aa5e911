"""Board and board permission routes."""

from uuid import UUID

from fastapi import APIRouter, status
from sqlalchemy import select

from taskboard.api.deps import CurrentUser, DbSession, apply_action
from taskboard.api.routes.cards import board_card_reads
from taskboard.config import get_settings
from taskboard.db.models import BoardPermission, User
from taskboard.schemas.boards import (
    BoardCreate,
    BoardDetail,
    BoardRead,
    BoardUpdate,
    ColumnWithCards,
    PermissionGrant,
    PermissionRead,
)
from taskboard.schemas.tags import TagRead
from taskboard.services import queries
from taskboard.services.authorization import BoardRole, require_board_role

router = APIRouter(prefix="/boards", tags=["boards"])
settings = get_settings()


def _board_read(board, role: BoardRole | str) -> BoardRead:
    read = BoardRead.model_validate(board)
    read.role = BoardRole(role).value
    return read


@router.get("/", response_model=list[BoardRead])
async def list_boards(current_user: CurrentUser, db: DbSession) -> list[BoardRead]:
    """List every board the caller owns or holds a permission on, with their role."""
    boards = await queries.list_boards_for_user(db, current_user.id)
    return [_board_read(board, role) for board, role in boards]


@router.post("/", response_model=BoardRead, status_code=status.HTTP_201_CREATED)
async def create_board(data: BoardCreate, current_user: CurrentUser, db: DbSession) -> BoardRead:
    """Create a board owned by the caller, optionally with initial columns."""
    result = await apply_action(db, current_user, {"action": "create_board", **data.model_dump()})
    return _board_read(result.entity, BoardRole.OWNER)


@router.get("/{board_id}", response_model=BoardDetail)
async def get_board(board_id: UUID, current_user: CurrentUser, db: DbSession) -> BoardDetail:
    """
    Get a board with its columns, tags and the cards the caller may see.

    Cards not in any column are listed under ``unfiled``.
    """
    board, role = await require_board_role(db, board_id, current_user.id, BoardRole.READER)
    columns = await queries.list_columns(db, board.id)
    rows = await queries.list_board_cards(
        db, board.id, current_user.id, role, public_enabled=settings.public_visibility_enabled
    )
    cards = await board_card_reads(db, rows)
    tags = await queries.list_board_tags(db, board.id)

    return BoardDetail(
        **_board_read(board, role).model_dump(),
        columns=[
            ColumnWithCards(
                id=column.id,
                board_id=column.board_id,
                name=column.name,
                position=column.position,
                created_at=column.created_at,
                updated_at=column.updated_at,
                cards=[c for c in cards if c.column_id == column.id],
            )
            for column in columns
        ],
        unfiled=[c for c in cards if c.column_id is None],
        tags=[TagRead.model_validate(t) for t in tags],
    )


@router.patch("/{board_id}", response_model=BoardRead)
async def update_board(
    board_id: UUID,
    data: BoardUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> BoardRead:
    """Rename a board or change its description. Requires editor."""
    result = await apply_action(
        db,
        current_user,
        {"action": "update_board", "board": str(board_id), **data.model_dump(exclude_unset=True)},
    )
    _, role = await require_board_role(db, board_id, current_user.id, BoardRole.EDITOR)
    return _board_read(result.entity, role)


@router.delete("/{board_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_board(board_id: UUID, current_user: CurrentUser, db: DbSession) -> None:
    """
    Delete a board. Owner only.

    Its columns, board tags, placements and chat history go with it; the
    cards themselves survive (and stay on any other boards they are on).
    """
    await apply_action(db, current_user, {"action": "delete_board", "board": str(board_id)})


# =============================================================================
# PERMISSIONS
# =============================================================================


@router.get("/{board_id}/permissions", response_model=list[PermissionRead])
async def list_permissions(board_id: UUID, current_user: CurrentUser, db: DbSession) -> list[PermissionRead]:
    """List who can reach a board and in which role."""
    await require_board_role(db, board_id, current_user.id, BoardRole.READER)
    result = await db.execute(
        select(BoardPermission, User)
        .join(User, User.id == BoardPermission.user_id)
        .where(BoardPermission.board_id == board_id)
        .order_by(BoardPermission.created_at, User.email)
    )
    return [
        PermissionRead(user_id=user.id, email=user.email, name=user.name, role=permission.role)
        for permission, user in result.all()
    ]


@router.post("/{board_id}/permissions", response_model=PermissionRead, status_code=status.HTTP_201_CREATED)
async def grant_permission(
    board_id: UUID,
    data: PermissionGrant,
    current_user: CurrentUser,
    db: DbSession,
) -> PermissionRead:
    """Grant (or change) a user's role on a board. Owner only."""
    result = await apply_action(
        db,
        current_user,
        {
            "action": "grant_permission",
            "board": str(board_id),
            "user": data.user_email.lower(),
            "role": data.role,
        },
    )
    permission = result.entity
    user = await db.get(User, permission.user_id)
    return PermissionRead(user_id=user.id, email=user.email, name=user.name, role=permission.role)


@router.delete("/{board_id}/permissions/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_permission(
    board_id: UUID,
    user_id: UUID,
    current_user: CurrentUser,
    db: DbSession,
) -> None:
    """Remove a user's access to a board. Owner only."""
    await apply_action(
        db,
        current_user,
        {"action": "revoke_permission", "board": str(board_id), "user": str(user_id)},
    )
