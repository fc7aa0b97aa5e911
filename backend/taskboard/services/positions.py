"""
Ordered positions for columns and card placements.

Two kinds of ordering scope exist:

- ColumnScope(board): the columns of a board.
- CardScope(board, column): the card placements in one column of a board,
  or in the board's unfiled bucket when column is None.

Positions are plain integers. Inserting at k shifts every item at k or above
up by one and leaves items below k untouched; omitting k appends after the
current maximum. Reads order by (position, id) so ties stay stable.

Every operation locks the scope's parent row first (the column for a column
scope, otherwise the board) so concurrent writers on one scope serialize,
and fails with ConflictError if that parent is gone. Nothing here commits;
the caller's transaction decides.
"""

from dataclasses import dataclass
from typing import Union
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.db.models import Board, BoardColumn, CardBoard
from taskboard.errors import ConflictError


@dataclass(frozen=True)
class ColumnScope:
    """The columns of one board."""

    board_id: UUID


@dataclass(frozen=True)
class CardScope:
    """Card placements in one column, or in the unfiled bucket when column_id is None."""

    board_id: UUID
    column_id: UUID | None = None


Scope = Union[ColumnScope, CardScope]
Positioned = Union[BoardColumn, CardBoard]


def _model(scope: Scope) -> type[Positioned]:
    return BoardColumn if isinstance(scope, ColumnScope) else CardBoard


def _criteria(scope: Scope) -> list:
    if isinstance(scope, ColumnScope):
        return [BoardColumn.board_id == scope.board_id]
    if scope.column_id is None:
        return [CardBoard.board_id == scope.board_id, CardBoard.column_id.is_(None)]
    return [CardBoard.board_id == scope.board_id, CardBoard.column_id == scope.column_id]


def _lock_key(scope: Scope) -> tuple[int, str]:
    # Boards before columns, then by id, so two-scope moves never deadlock
    if isinstance(scope, CardScope) and scope.column_id is not None:
        return (1, str(scope.column_id))
    return (0, str(scope.board_id))


def clamp(position: int, upper: int) -> int:
    return max(0, min(position, upper))


class PositionIndex:
    """Insert, move and remove items while keeping each scope ordered."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def count(self, scope: Scope, exclude: UUID | None = None) -> int:
        model = _model(scope)
        stmt = select(func.count()).select_from(model).where(*_criteria(scope))
        if exclude is not None:
            stmt = stmt.where(model.id != exclude)
        return (await self.db.execute(stmt)).scalar_one()

    async def max_position(self, scope: Scope, exclude: UUID | None = None) -> int | None:
        model = _model(scope)
        stmt = select(func.max(model.position)).where(*_criteria(scope))
        if exclude is not None:
            stmt = stmt.where(model.id != exclude)
        return (await self.db.execute(stmt)).scalar_one_or_none()

    async def items(self, scope: Scope) -> list[Positioned]:
        """Items of a scope in display order."""
        model = _model(scope)
        result = await self.db.execute(
            select(model).where(*_criteria(scope)).order_by(model.position, model.id)
        )
        return list(result.scalars())

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def lock(self, scope: Scope) -> None:
        """Row-lock the scope's parent; ConflictError if it no longer exists."""
        if isinstance(scope, CardScope) and scope.column_id is not None:
            stmt = select(BoardColumn.id).where(
                BoardColumn.id == scope.column_id,
                BoardColumn.board_id == scope.board_id,
            )
            missing = "Column no longer exists on this board"
        else:
            stmt = select(Board.id).where(Board.id == scope.board_id)
            missing = "Board no longer exists"
        found = (await self.db.execute(stmt.with_for_update())).scalar_one_or_none()
        if found is None:
            raise ConflictError(missing)

    async def insert(self, scope: Scope, desired_position: int | None = None) -> int:
        """
        Make room for a new item and return the position it should take.

        The caller creates the row with the returned position in the same
        transaction.
        """
        await self.db.flush()
        await self.lock(scope)
        return await self._make_room(scope, desired_position)

    async def move(
        self,
        item: Positioned,
        source: Scope,
        destination: Scope,
        new_position: int | None = None,
    ) -> int:
        """
        Move ``item`` from ``source`` to ``destination`` (which may be the same scope).

        Closes the gap left in the source, opens one in the destination and
        returns the item's new position; the caller assigns it along with
        the new scope fields. Targeting the item's current place changes
        nothing and returns its current position.
        """
        await self.db.flush()
        for scope in sorted({source, destination}, key=_lock_key):
            await self.lock(scope)

        if source == destination:
            if new_position is None:
                top = await self.max_position(destination, exclude=item.id)
                if top is None or top < item.position:
                    return item.position
            else:
                upper = await self.count(destination, exclude=item.id)
                if clamp(new_position, upper) == item.position:
                    return item.position

        await self._shift(source, above=item.position, delta=-1, exclude=item.id)
        return await self._make_room(destination, new_position, exclude=item.id)

    async def remove(self, scope: Scope, item: Positioned) -> None:
        """Close the gap ``item`` leaves behind. The caller deletes or re-homes the row."""
        await self.db.flush()
        await self.lock(scope)
        await self._shift(scope, above=item.position, delta=-1, exclude=item.id)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _make_room(self, scope: Scope, desired: int | None, exclude: UUID | None = None) -> int:
        if desired is None:
            top = await self.max_position(scope, exclude=exclude)
            return 0 if top is None else top + 1
        position = clamp(desired, await self.count(scope, exclude=exclude))
        await self._shift(scope, at_or_above=position, delta=1, exclude=exclude)
        return position

    async def _shift(
        self,
        scope: Scope,
        *,
        delta: int,
        at_or_above: int | None = None,
        above: int | None = None,
        exclude: UUID | None = None,
    ) -> None:
        model = _model(scope)
        stmt = update(model).where(*_criteria(scope))
        if at_or_above is not None:
            stmt = stmt.where(model.position >= at_or_above)
        if above is not None:
            stmt = stmt.where(model.position > above)
        if exclude is not None:
            stmt = stmt.where(model.id != exclude)
        await self.db.execute(
            stmt.values(position=model.position + delta).execution_options(synchronize_session="fetch")
        )
