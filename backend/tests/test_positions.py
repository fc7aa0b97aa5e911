"""Dense ordering of columns and card placements."""

from uuid import uuid4

import pytest

from taskboard.db.models import Board, BoardColumn, Card
from taskboard.errors import ConflictError
from taskboard.services.assignments import CardBoardAssignment
from taskboard.services.positions import CardScope, ColumnScope, PositionIndex, clamp


async def _board(db, owner, columns=("Todo", "Doing")) -> tuple[Board, list[BoardColumn]]:
    board = Board(owner_id=owner.id, name="Roadmap")
    db.add(board)
    await db.flush()
    created = []
    for position, name in enumerate(columns):
        column = BoardColumn(board_id=board.id, name=name, position=position)
        db.add(column)
        created.append(column)
    await db.commit()
    return board, created


async def _cards(db, owner, board, column, titles) -> list[Card]:
    assignments = CardBoardAssignment(db)
    cards = []
    for title in titles:
        card = Card(title=title, owner_id=owner.id, created_by=owner.id)
        db.add(card)
        await db.flush()
        await assignments.assign(card.id, board.id, column.id if column else None)
        cards.append(card)
    await db.commit()
    return cards


async def _titles(db, board, column) -> list[tuple[str, int]]:
    placements = await PositionIndex(db).items(CardScope(board.id, column.id if column else None))
    titles = {}
    for placement in placements:
        titles[placement.card_id] = (await db.get(Card, placement.card_id)).title
    return [(titles[p.card_id], p.position) for p in placements]


def test_clamp():
    assert clamp(-3, 4) == 0
    assert clamp(2, 4) == 2
    assert clamp(99, 4) == 4


async def test_insert_column_in_the_middle_shifts_the_rest(db, owner):
    board, _ = await _board(db, owner)
    positions = PositionIndex(db)

    position = await positions.insert(ColumnScope(board.id), 1)
    db.add(BoardColumn(board_id=board.id, name="Done", position=position))
    await db.commit()

    columns = await positions.items(ColumnScope(board.id))
    assert [(c.name, c.position) for c in columns] == [("Todo", 0), ("Done", 1), ("Doing", 2)]


async def test_insert_without_position_appends(db, owner):
    board, _ = await _board(db, owner)
    assert await PositionIndex(db).insert(ColumnScope(board.id)) == 2


async def test_moves_keep_positions_dense_and_relative_order(db, owner):
    board, (todo, _) = await _board(db, owner)
    cards = await _cards(db, owner, board, todo, ["a", "b", "c", "d", "e"])
    assignments = CardBoardAssignment(db)

    expected = ["a", "b", "c", "d", "e"]
    for index, target in [(0, 4), (3, 1), (2, 2), (4, 0), (1, 3)]:
        title = expected[index]
        card = next(c for c in cards if c.title == title)
        await assignments.move(card.id, board.id, todo.id, target)
        await db.commit()

        expected.remove(title)
        expected.insert(target, title)
        assert await _titles(db, board, todo) == [(t, i) for i, t in enumerate(expected)]


async def test_move_to_current_position_is_a_no_op(db, owner):
    board, (todo, _) = await _board(db, owner)
    cards = await _cards(db, owner, board, todo, ["a", "b", "c"])
    assignments = CardBoardAssignment(db)
    before = await _titles(db, board, todo)

    await assignments.move(cards[1].id, board.id, todo.id, 1)
    # no position on the last card: already at the end
    await assignments.move(cards[2].id, board.id, todo.id)
    await db.commit()

    assert await _titles(db, board, todo) == before


async def test_out_of_range_positions_are_clamped(db, owner):
    board, (todo, _) = await _board(db, owner)
    cards = await _cards(db, owner, board, todo, ["a", "b", "c"])
    assignments = CardBoardAssignment(db)

    await assignments.move(cards[0].id, board.id, todo.id, 99)
    await assignments.move(cards[2].id, board.id, todo.id, -5)
    await db.commit()

    assert await _titles(db, board, todo) == [("c", 0), ("b", 1), ("a", 2)]


async def test_cross_column_move_closes_and_opens_gaps(db, owner):
    board, (todo, doing) = await _board(db, owner)
    todo_cards = await _cards(db, owner, board, todo, ["a", "b", "c"])
    await _cards(db, owner, board, doing, ["x", "y"])

    await CardBoardAssignment(db).move(todo_cards[1].id, board.id, doing.id, 1)
    await db.commit()

    assert await _titles(db, board, todo) == [("a", 0), ("c", 1)]
    assert await _titles(db, board, doing) == [("x", 0), ("b", 1), ("y", 2)]


async def test_move_to_unfiled_appends_to_the_bucket(db, owner):
    board, (todo, _) = await _board(db, owner)
    cards = await _cards(db, owner, board, todo, ["a", "b"])
    await _cards(db, owner, board, None, ["loose"])

    await CardBoardAssignment(db).move(cards[0].id, board.id, None)
    await db.commit()

    assert await _titles(db, board, None) == [("loose", 0), ("a", 1)]
    assert await _titles(db, board, todo) == [("b", 0)]


async def test_missing_column_scope_is_a_conflict(db, owner):
    board, _ = await _board(db, owner)
    with pytest.raises(ConflictError):
        await PositionIndex(db).insert(CardScope(board.id, uuid4()))


async def test_remove_closes_the_gap(db, owner):
    board, columns = await _board(db, owner, ("A", "B", "C"))
    positions = PositionIndex(db)

    await positions.remove(ColumnScope(board.id), columns[0])
    await db.delete(columns[0])
    await db.commit()

    remaining = await positions.items(ColumnScope(board.id))
    assert [(c.name, c.position) for c in remaining] == [("B", 0), ("C", 1)]
