"""Card placements across boards."""

from uuid import uuid4

import pytest

from taskboard.db.models import Board, BoardColumn, Card
from taskboard.errors import ConflictError, NotFoundError, ValidationError
from taskboard.services.assignments import CardBoardAssignment
from taskboard.services.positions import CardScope


@pytest.fixture
async def setup(db, owner):
    first = Board(owner_id=owner.id, name="First")
    second = Board(owner_id=owner.id, name="Second")
    db.add_all([first, second])
    await db.flush()
    todo = BoardColumn(board_id=first.id, name="Todo", position=0)
    elsewhere = BoardColumn(board_id=second.id, name="Elsewhere", position=0)
    card = Card(title="Shared", owner_id=owner.id, created_by=owner.id)
    db.add_all([todo, elsewhere, card])
    await db.commit()
    return first, second, todo, elsewhere, card


async def test_card_can_sit_on_two_boards_with_separate_placements(db, setup):
    first, second, todo, elsewhere, card = setup
    assignments = CardBoardAssignment(db)

    on_first = await assignments.assign(card.id, first.id, todo.id)
    on_second = await assignments.assign(card.id, second.id)
    await db.commit()

    assert (on_first.column_id, on_first.position) == (todo.id, 0)
    assert (on_second.column_id, on_second.position) == (None, 0)
    assert len(await assignments.placements_for_card(card.id)) == 2


async def test_assigning_twice_is_a_conflict(db, setup):
    first, _, _, _, card = setup
    assignments = CardBoardAssignment(db)
    await assignments.assign(card.id, first.id)

    with pytest.raises(ConflictError):
        await assignments.assign(card.id, first.id)


async def test_column_from_another_board_is_rejected(db, setup):
    first, _, _, elsewhere, card = setup
    with pytest.raises(ValidationError):
        await CardBoardAssignment(db).assign(card.id, first.id, elsewhere.id)


async def test_unassigning_a_missing_pair_is_a_no_op(db, setup):
    first, _, _, _, card = setup
    assert await CardBoardAssignment(db).unassign(card.id, first.id) is False


async def test_unassign_keeps_the_card(db, setup):
    first, _, todo, _, card = setup
    assignments = CardBoardAssignment(db)
    await assignments.assign(card.id, first.id, todo.id)
    await db.commit()

    assert await assignments.unassign(card.id, first.id) is True
    await db.commit()

    assert await db.get(Card, card.id) is not None
    assert await assignments.get(card.id, first.id) is None


async def test_moving_a_card_that_is_not_on_the_board(db, setup):
    first, _, todo, _, card = setup
    with pytest.raises(NotFoundError):
        await CardBoardAssignment(db).move(card.id, first.id, todo.id)


async def test_release_column_appends_cards_to_unfiled_in_order(db, owner, setup):
    first, _, todo, _, card = setup
    assignments = CardBoardAssignment(db)
    loose = Card(title="Loose", owner_id=owner.id, created_by=owner.id)
    second_card = Card(title="Second", owner_id=owner.id, created_by=owner.id)
    db.add_all([loose, second_card])
    await db.flush()
    await assignments.assign(loose.id, first.id)
    await assignments.assign(card.id, first.id, todo.id)
    await assignments.assign(second_card.id, first.id, todo.id)

    assert await assignments.release_column(todo) == 2
    await db.commit()

    placements = {
        p.card_id: (p.column_id, p.position)
        for p in [await assignments.get(c.id, first.id) for c in (loose, card, second_card)]
    }
    assert placements[loose.id] == (None, 0)
    assert placements[card.id] == (None, 1)
    assert placements[second_card.id] == (None, 2)


async def test_release_column_locks_both_scopes_before_reading(db, setup, monkeypatch):
    first, _, todo, _, card = setup
    assignments = CardBoardAssignment(db)
    await assignments.assign(card.id, first.id, todo.id)
    await db.commit()

    calls = []
    index = assignments.positions
    real_lock, real_items = index.lock, index.items

    async def lock(scope):
        calls.append(("lock", scope))
        await real_lock(scope)

    async def items(scope):
        calls.append(("items", scope))
        return await real_items(scope)

    monkeypatch.setattr(index, "lock", lock)
    monkeypatch.setattr(index, "items", items)

    assert await assignments.release_column(todo) == 1

    assert calls[:3] == [
        ("lock", CardScope(first.id, None)),
        ("lock", CardScope(first.id, todo.id)),
        ("items", CardScope(first.id, todo.id)),
    ]


async def test_release_column_fails_once_the_column_is_gone(db, setup):
    first, _, todo, _, _ = setup
    ghost = BoardColumn(id=uuid4(), board_id=first.id, name="Ghost", position=1)

    with pytest.raises(ConflictError):
        await CardBoardAssignment(db).release_column(ghost)
