"""Placement of standalone cards on boards (the card_boards junction)."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.db.models import BoardColumn, CardBoard
from taskboard.errors import ConflictError, NotFoundError, ValidationError
from taskboard.services.positions import CardScope, PositionIndex


class CardBoardAssignment:
    """
    Assign, move and unassign cards on boards.

    Each (card, board) pair has at most one placement, with an optional
    column and a position ordered by PositionIndex. Removing a placement
    never deletes the card itself.
    """

    def __init__(self, db: AsyncSession):
        self.db = db
        self.positions = PositionIndex(db)

    async def get(self, card_id: UUID, board_id: UUID) -> CardBoard | None:
        result = await self.db.execute(
            select(CardBoard).where(CardBoard.card_id == card_id, CardBoard.board_id == board_id)
        )
        return result.scalar_one_or_none()

    async def placements_for_card(self, card_id: UUID) -> list[CardBoard]:
        result = await self.db.execute(
            select(CardBoard).where(CardBoard.card_id == card_id).order_by(CardBoard.board_id)
        )
        return list(result.scalars())

    async def check_column(self, board_id: UUID, column_id: UUID | None) -> None:
        """The target column, if any, must exist and belong to the target board."""
        if column_id is None:
            return
        column = await self.db.get(BoardColumn, column_id)
        if column is None:
            raise NotFoundError("Column not found")
        if column.board_id != board_id:
            raise ValidationError(f"Column '{column.name}' does not belong to this board")

    async def assign(
        self,
        card_id: UUID,
        board_id: UUID,
        column_id: UUID | None = None,
        position: int | None = None,
    ) -> CardBoard:
        """Place a card on a board. ConflictError if it is already there."""
        if await self.get(card_id, board_id) is not None:
            raise ConflictError("Card is already on this board; move it instead")
        await self.check_column(board_id, column_id)

        new_position = await self.positions.insert(CardScope(board_id, column_id), position)
        placement = CardBoard(
            card_id=card_id,
            board_id=board_id,
            column_id=column_id,
            position=new_position,
        )
        self.db.add(placement)
        await self.db.flush()
        return placement

    async def move(
        self,
        card_id: UUID,
        board_id: UUID,
        column_id: UUID | None,
        position: int | None = None,
    ) -> CardBoard:
        """Re-home a card within a board. Moving onto its current place is a no-op."""
        placement = await self.get(card_id, board_id)
        if placement is None:
            raise NotFoundError("Card is not on this board")
        await self.check_column(board_id, column_id)

        new_position = await self.positions.move(
            placement,
            CardScope(board_id, placement.column_id),
            CardScope(board_id, column_id),
            position,
        )
        if placement.column_id != column_id or placement.position != new_position:
            placement.column_id = column_id
            placement.position = new_position
            await self.db.flush()
        return placement

    async def unassign(self, card_id: UUID, board_id: UUID) -> bool:
        """Remove a card from a board. Returns False (and succeeds) if it was not there."""
        placement = await self.get(card_id, board_id)
        if placement is None:
            return False
        await self.positions.remove(CardScope(board_id, placement.column_id), placement)
        await self.db.delete(placement)
        await self.db.flush()
        return True

    async def unassign_everywhere(self, card_id: UUID) -> int:
        """Remove every placement of a card, closing the gap in each scope."""
        placements = await self.placements_for_card(card_id)
        for placement in placements:
            await self.positions.remove(CardScope(placement.board_id, placement.column_id), placement)
            await self.db.delete(placement)
        await self.db.flush()
        return len(placements)

    async def release_column(self, column: BoardColumn) -> int:
        """
        Move every placement in ``column`` to the end of the board's unfiled
        bucket, keeping their relative order. Used before deleting a column.

        Both scopes are locked (board first, then column) before the column's
        placements are read, so an insert into the column cannot land between
        the read and the column's deletion.
        """
        unfiled = CardScope(column.board_id, None)
        source = CardScope(column.board_id, column.id)
        await self.db.flush()
        await self.positions.lock(unfiled)
        await self.positions.lock(source)
        placements = await self.positions.items(source)
        if not placements:
            return 0
        top = await self.positions.max_position(unfiled)
        start = 0 if top is None else top + 1
        for offset, placement in enumerate(placements):
            placement.column_id = None
            placement.position = start + offset
        await self.db.flush()
        return len(placements)
