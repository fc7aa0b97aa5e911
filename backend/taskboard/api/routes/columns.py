"""Column routes. Positions are dense and 0-based within a board."""

from uuid import UUID

from fastapi import APIRouter, status

from taskboard.api.deps import CurrentUser, DbSession, apply_action
from taskboard.db.models import BoardColumn
from taskboard.errors import NotFoundError
from taskboard.schemas.boards import ColumnCreate, ColumnMove, ColumnRead, ColumnUpdate
from taskboard.services import queries
from taskboard.services.authorization import BoardRole, require_board_role

router = APIRouter(tags=["columns"])


async def _get_column_or_404(db, column_id: UUID) -> BoardColumn:
    column = await db.get(BoardColumn, column_id)
    if column is None:
        raise NotFoundError("Column not found")
    return column


@router.get("/boards/{board_id}/columns", response_model=list[ColumnRead])
async def list_columns(board_id: UUID, current_user: CurrentUser, db: DbSession) -> list[ColumnRead]:
    await require_board_role(db, board_id, current_user.id, BoardRole.READER)
    return [ColumnRead.model_validate(c) for c in await queries.list_columns(db, board_id)]


@router.post(
    "/boards/{board_id}/columns",
    response_model=ColumnRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_column(
    board_id: UUID,
    data: ColumnCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> ColumnRead:
    """
    Create a column.

    With a position, the columns at and after it shift right; without one
    (or past the end) the column is appended.
    """
    result = await apply_action(
        db,
        current_user,
        {"action": "create_column", "board": str(board_id), **data.model_dump(exclude_none=True)},
    )
    return ColumnRead.model_validate(result.entity)


@router.patch("/columns/{column_id}", response_model=ColumnRead)
async def rename_column(
    column_id: UUID,
    data: ColumnUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> ColumnRead:
    column = await _get_column_or_404(db, column_id)
    result = await apply_action(
        db,
        current_user,
        {
            "action": "update_column",
            "board": str(column.board_id),
            "column": str(column.id),
            "name": data.name,
        },
    )
    return ColumnRead.model_validate(result.entity)


@router.post("/columns/{column_id}/move", response_model=ColumnRead)
async def move_column(
    column_id: UUID,
    data: ColumnMove,
    current_user: CurrentUser,
    db: DbSession,
) -> ColumnRead:
    """Move a column to a new position; out-of-range positions are clamped."""
    column = await _get_column_or_404(db, column_id)
    result = await apply_action(
        db,
        current_user,
        {
            "action": "move_column",
            "board": str(column.board_id),
            "column": str(column.id),
            "position": data.position,
        },
    )
    return ColumnRead.model_validate(result.entity)


@router.delete("/columns/{column_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_column(column_id: UUID, current_user: CurrentUser, db: DbSession) -> None:
    """Delete a column. Its cards stay on the board, in the unfiled bucket."""
    column = await _get_column_or_404(db, column_id)
    await apply_action(
        db,
        current_user,
        {"action": "delete_column", "board": str(column.board_id), "column": str(column.id)},
    )
