"""One chat turn end to end, with a scripted model."""

import asyncio

import pytest
from sqlalchemy import func, select

from taskboard.db.models import Board, BoardColumn, Card, CardBoard
from taskboard.errors import AuthorizationError, LLMUnavailableError
from taskboard.services.actions import ActionExecutor
from taskboard.services.chat_orchestrator import ChatOrchestrator, recent_messages


@pytest.fixture
async def board(db, owner):
    board = Board(owner_id=owner.id, name="Sprint")
    db.add(board)
    await db.flush()
    todo = BoardColumn(board_id=board.id, name="Todo", position=0)
    doing = BoardColumn(board_id=board.id, name="Doing", position=1)
    db.add_all([todo, doing])
    await db.flush()
    existing = Card(title="Y", owner_id=owner.id, created_by=owner.id)
    inbox = Card(title="X", visibility="private", owner_id=owner.id, created_by=owner.id)
    db.add_all([existing, inbox])
    await db.flush()
    db.add(CardBoard(card_id=existing.id, board_id=board.id, column_id=doing.id, position=0))
    await db.commit()
    return {"id": board.id, "doing": doing.id, "x": inbox.id, "owner": owner.id}


async def test_move_unassigned_card_to_doing(db, board, session_factory, fake_llm):
    fake_llm.script(
        '{"action": "move_card", "params": {"card": "X", "column": "Doing"}, "message": "Moved X to Doing."}'
    )
    turn = await ChatOrchestrator(db, fake_llm, board["owner"], board["id"], session_factory).run(
        "move card X to Doing"
    )

    assert turn.response == "Moved X to Doing."
    assert len(turn.actions_taken) == 1
    outcome = turn.actions_taken[0]
    assert outcome.action == "assign_card_to_board"
    assert outcome.success

    placement = (
        await db.execute(select(CardBoard).where(CardBoard.card_id == board["x"]))
    ).scalar_one()
    assert (placement.column_id, placement.position) == (board["doing"], 1)

    records = await recent_messages(db, board["owner"], board["id"], 10)
    assert len(records) == 1
    assert records[0].actions_taken[0]["action"] == "assign_card_to_board"


async def test_prompt_carries_the_board_snapshot(db, board, fake_llm):
    await ChatOrchestrator(db, fake_llm, board["owner"], board["id"]).run("what's on the board?")

    prompt = fake_llm.calls[0]["system_prompt"]
    assert 'board "Sprint"' in prompt
    assert "Column 'Doing' (1 cards)" in prompt
    assert "  - X [open]" in prompt


async def test_llm_timeout_records_a_failed_turn_and_runs_nothing(db, board, fake_llm):
    fake_llm.script(LLMUnavailableError("The assistant did not answer in time.", timed_out=True))
    cards_before = (await db.execute(select(func.count()).select_from(Card))).scalar_one()

    turn = await ChatOrchestrator(db, fake_llm, board["owner"], board["id"]).run("make a card")

    assert [(o.action, o.success, o.error) for o in turn.actions_taken] == [
        ("llm_request", False, "llm_unavailable")
    ]
    assert (await db.execute(select(func.count()).select_from(Card))).scalar_one() == cards_before
    records = await recent_messages(db, board["owner"], board["id"], 10)
    assert len(records) == 1
    assert records[0].actions_taken[0]["action"] == "llm_request"


async def test_parse_errors_and_failures_are_reported_per_action(db, board, fake_llm):
    fake_llm.script(
        '{"actions": ['
        '{"action": "create_card", "params": {"title": "Fresh", "column": "Todo"}},'
        '{"action": "move_card", "params": {"card": "Ghost", "column": "Doing"}},'
        '"garbage",'
        '{"action": "no_action", "params": {}}'
        '], "message": "Working on it."}'
    )
    turn = await ChatOrchestrator(db, fake_llm, board["owner"], board["id"]).run("tidy up")

    assert [(o.action, o.success, o.error) for o in turn.actions_taken] == [
        ("create_card", True, None),
        ("move_card", False, "not_found"),
        ("parse", False, "parse_error"),
    ]


async def test_history_is_sent_on_the_next_turn(db, board, fake_llm):
    fake_llm.script("First answer.", "Second answer.")
    orchestrator = ChatOrchestrator(db, fake_llm, board["owner"], board["id"])
    await orchestrator.run("first")
    await orchestrator.run("second")

    assert fake_llm.calls[1]["history"] == [
        {"role": "user", "content": "first"},
        {"role": "assistant", "content": "First answer."},
    ]


async def test_board_chat_needs_access(db, board, make_user, fake_llm):
    stranger = await make_user("stranger@example.com", "Stranger")
    with pytest.raises(AuthorizationError):
        await ChatOrchestrator(db, fake_llm, stranger.id, board["id"]).run("hello")


async def test_turn_that_deletes_its_board_is_kept_as_global(db, board, fake_llm):
    fake_llm.script('{"action": "delete_board", "params": {}, "message": "Gone."}')
    turn = await ChatOrchestrator(db, fake_llm, board["owner"], board["id"]).run("delete this board")

    assert turn.actions_taken[0].success
    assert turn.record.board_id is None
    assert await db.get(Board, board["id"]) is None
    assert len(await recent_messages(db, board["owner"], None, 10)) == 1


async def test_global_chat_sees_every_board(db, board, fake_llm):
    fake_llm.script(
        '{"action": "create_board", "params": {"name": "Home", "columns": ["Chores"]}, "message": "Made it."}'
    )
    turn = await ChatOrchestrator(db, fake_llm, board["owner"]).run("make a Home board")

    assert "- Sprint (role: owner" in fake_llm.calls[0]["system_prompt"]
    assert turn.actions_taken[0].success
    boards = (await db.execute(select(func.count()).select_from(Board))).scalar_one()
    assert boards == 2


async def test_chat_messages_are_append_only(db, board, fake_llm):
    turn = await ChatOrchestrator(db, fake_llm, board["owner"], board["id"]).run("hi")
    turn.record.response = "rewritten"
    with pytest.raises(ValueError):
        await db.flush()
    await db.rollback()


async def test_cancelled_turn_records_only_the_actions_that_ran(db, board, session_factory, fake_llm, monkeypatch):
    fake_llm.script(
        '{"actions": ['
        '{"action": "create_column", "params": {"name": "Review"}},'
        '{"action": "create_card", "params": {"title": "Never made", "column": "Todo"}}'
        '], "message": "Working on it."}'
    )
    real_execute = ActionExecutor.execute
    calls = []

    async def execute_then_disconnect(self, action):
        calls.append(action)
        if len(calls) == 2:
            raise asyncio.CancelledError()
        return await real_execute(self, action)

    monkeypatch.setattr(ActionExecutor, "execute", execute_then_disconnect)

    with pytest.raises(asyncio.CancelledError):
        await ChatOrchestrator(db, fake_llm, board["owner"], board["id"], session_factory).run("add a review step")

    columns = (await db.execute(select(BoardColumn.name).where(BoardColumn.board_id == board["id"]))).scalars().all()
    assert "Review" in columns
    assert (await db.execute(select(func.count()).select_from(Card).where(Card.title == "Never made"))).scalar_one() == 0
    records = await recent_messages(db, board["owner"], board["id"], 10)
    assert len(records) == 1
    assert records[0].response == "Working on it."
    assert [(o["action"], o["success"]) for o in records[0].actions_taken] == [("create_column", True)]
