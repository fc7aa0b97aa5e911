"""
Context snapshots handed to the model.

A snapshot is taken once, before the model is called, and is never touched
again: the executor re-resolves everything it needs afterwards.
"""

from dataclasses import dataclass
from datetime import date
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.db.models import Board
from taskboard.services import queries
from taskboard.services.authorization import BoardRole

INBOX_LIMIT = 50


@dataclass(frozen=True)
class CardLine:
    title: str
    status: str
    due_date: date | None = None
    tags: tuple[str, ...] = ()

    def render(self) -> str:
        line = f"  - {self.title} [{self.status}]"
        if self.due_date:
            line += f" (due {self.due_date.isoformat()})"
        if self.tags:
            line += f" #{' #'.join(self.tags)}"
        return line


@dataclass(frozen=True)
class ColumnSnapshot:
    name: str
    cards: tuple[CardLine, ...]


@dataclass(frozen=True)
class BoardSnapshot:
    """One board as the user can see it."""

    board_id: UUID
    name: str
    description: str | None
    role: str
    columns: tuple[ColumnSnapshot, ...]
    unfiled: tuple[CardLine, ...]
    tags: tuple[str, ...]
    inbox: tuple[CardLine, ...]

    def render(self, max_chars: int) -> str:
        parts = [f"Board: {self.name} (your role: {self.role})"]
        if self.description:
            parts.append(f"Description: {self.description}")
        parts.append(f"Tags: {', '.join(self.tags) if self.tags else 'none'}")
        if not self.columns:
            parts.append("Columns: none yet")
        for column in self.columns:
            parts.append(
                f"Column '{column.name}' ({len(column.cards)} cards):\n"
                + "\n".join(card.render() for card in column.cards)
            )
        if self.unfiled:
            parts.append("Unfiled cards:\n" + "\n".join(card.render() for card in self.unfiled))
        if self.inbox:
            parts.append(
                "Your cards not on any board (move_card or assign_card_to_board adds them):\n"
                + "\n".join(card.render() for card in self.inbox)
            )
        return _fit(parts, max_chars)


@dataclass(frozen=True)
class BoardSummary:
    name: str
    role: str
    columns: tuple[str, ...]
    card_count: int
    tags: tuple[str, ...]

    def render(self) -> str:
        return (
            f"- {self.name} (role: {self.role}, {len(self.columns)} columns: "
            f"[{', '.join(self.columns)}], {self.card_count} cards, "
            f"tags: [{', '.join(self.tags)}])"
        )


@dataclass(frozen=True)
class GlobalSnapshot:
    """Every board the user can reach, summarised, plus their inbox."""

    boards: tuple[BoardSummary, ...]
    global_tags: tuple[str, ...]
    inbox: tuple[CardLine, ...]

    def render(self, max_chars: int) -> str:
        parts = []
        if self.boards:
            parts.append("Your boards:\n" + "\n".join(board.render() for board in self.boards))
        else:
            parts.append("You have no boards yet. Use create_board to make one.")
        parts.append(f"Global tags: {', '.join(self.global_tags) if self.global_tags else 'none'}")
        if self.inbox:
            parts.append("Your cards not on any board:\n" + "\n".join(card.render() for card in self.inbox))
        return _fit(parts, max_chars)


def _fit(parts: list[str], max_chars: int) -> str:
    """Join context parts, stopping once the character budget is spent."""
    kept = []
    total = 0
    for part in parts:
        if total + len(part) > max_chars:
            kept.append("[... additional context omitted due to size limits ...]")
            break
        kept.append(part)
        total += len(part)
    return "\n\n".join(kept)


async def _inbox(db: AsyncSession, user_id: UUID) -> tuple[CardLine, ...]:
    cards = await queries.list_user_cards(db, user_id, unassigned=True)
    return tuple(
        CardLine(title=card.title, status=card.status, due_date=card.due_date)
        for card in cards[:INBOX_LIMIT]
    )


async def snapshot_board(
    db: AsyncSession,
    board: Board,
    user_id: UUID,
    role: BoardRole,
    *,
    public_enabled: bool = False,
) -> BoardSnapshot:
    columns = await queries.list_columns(db, board.id)
    rows = await queries.list_board_cards(db, board.id, user_id, role, public_enabled=public_enabled)
    tag_map = await queries.tags_for_cards(db, [card.id for card, _ in rows])

    by_column: dict[UUID | None, list[CardLine]] = {}
    for card, placement in rows:
        line = CardLine(
            title=card.title,
            status=card.status,
            due_date=card.due_date,
            tags=tuple(tag.name for tag in tag_map.get(card.id, [])),
        )
        by_column.setdefault(placement.column_id, []).append(line)

    tags = await queries.list_board_tags(db, board.id) + await queries.list_user_tags(db, user_id)
    return BoardSnapshot(
        board_id=board.id,
        name=board.name,
        description=board.description,
        role=role.value,
        columns=tuple(
            ColumnSnapshot(name=column.name, cards=tuple(by_column.get(column.id, [])))
            for column in columns
        ),
        unfiled=tuple(by_column.get(None, [])),
        tags=tuple(tag.name for tag in tags),
        inbox=await _inbox(db, user_id),
    )


async def snapshot_global(db: AsyncSession, user_id: UUID) -> GlobalSnapshot:
    boards = await queries.list_boards_for_user(db, user_id)
    counts = await queries.count_cards_per_board(db, [board.id for board, _ in boards])
    summaries = []
    for board, role in boards:
        columns = await queries.list_columns(db, board.id)
        tags = await queries.list_board_tags(db, board.id)
        summaries.append(
            BoardSummary(
                name=board.name,
                role=role.value,
                columns=tuple(column.name for column in columns),
                card_count=counts.get(board.id, 0),
                tags=tuple(tag.name for tag in tags),
            )
        )
    global_tags = await queries.list_user_tags(db, user_id)
    return GlobalSnapshot(
        boards=tuple(summaries),
        global_tags=tuple(tag.name for tag in global_tags),
        inbox=await _inbox(db, user_id),
    )
