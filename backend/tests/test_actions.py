"""ActionExecutor: authorization, batches, cascades and card visibility."""

import pytest
from sqlalchemy import func, select

from taskboard.db.models import BoardColumn, BoardPermission, Card, CardBoard, ChatMessage, Tag
from taskboard.errors import AuthorizationError, ValidationError
from taskboard.schemas.actions import parse_action
from taskboard.services import queries
from taskboard.services.authorization import BoardRole


async def _count(db, model, *criteria) -> int:
    return (await db.execute(select(func.count()).select_from(model).where(*criteria))).scalar_one()


async def _apply(executor, **data):
    return await executor.apply(parse_action(data))


@pytest.fixture
async def team(db, make_user, owner, executor_for):
    """An owner's board shared with an editor and a reader."""
    editor = await make_user("editor@example.com", "Editor")
    reader = await make_user("reader@example.com", "Reader")
    owner_exec = executor_for(owner)
    board = (
        await _apply(owner_exec, action="create_board", name="Launch", columns=["Todo", "Doing", "Done"])
    ).entity
    await _apply(owner_exec, action="grant_permission", board=str(board.id), user=editor.email, role="editor")
    await _apply(owner_exec, action="grant_permission", board=str(board.id), user=reader.email, role="reader")
    return {
        "board_id": board.id,
        "owner": owner_exec,
        "editor": executor_for(editor, board.id),
        "editor_inbox": executor_for(editor),
        "reader": executor_for(reader, board.id),
        "ids": {"owner": owner.id, "editor": editor.id, "reader": reader.id},
    }


async def test_create_board_makes_owner_row_and_columns(db, team):
    board_id = team["board_id"]
    columns = await queries.list_columns(db, board_id)
    assert [(c.name, c.position) for c in columns] == [("Todo", 0), ("Doing", 1), ("Done", 2)]
    owner_row = (
        await db.execute(
            select(BoardPermission).where(
                BoardPermission.board_id == board_id,
                BoardPermission.user_id == team["ids"]["owner"],
            )
        )
    ).scalar_one()
    assert owner_row.role == "owner"


async def test_batch_keeps_going_after_an_authorization_failure(db, team, executor_for, make_user):
    outsider = await make_user("outsider@example.com", "Outsider")
    other_board = (
        await _apply(executor_for(outsider), action="create_board", name="Private stuff", columns=["Backlog"])
    ).entity
    other_board_id = other_board.id

    outcomes = await team["editor"].execute_batch(
        [
            {"action": "create_card", "title": "Write docs", "column": "Todo"},
            {"action": "create_column", "name": "Review", "position": 2},
            {"action": "create_card", "board": str(other_board_id), "title": "Sneaky"},
            {"action": "create_tag", "name": "urgent", "color": "#ff0000"},
            {"action": "move_card", "card": "Write docs", "column": "Review"},
        ]
    )

    assert len(outcomes) == 5
    assert [o.success for o in outcomes] == [True, True, False, True, True]
    assert outcomes[2].error == "authorization_error"
    assert await _count(db, Card, Card.title == "Sneaky") == 0
    assert await _count(db, CardBoard, CardBoard.board_id == other_board_id) == 0
    columns = await queries.list_columns(db, team["board_id"])
    assert [c.name for c in columns] == ["Todo", "Doing", "Review", "Done"]


async def test_reader_cannot_mutate(team):
    with pytest.raises(AuthorizationError):
        await _apply(team["reader"], action="create_card", title="Nope")


async def test_unknown_action_is_a_validation_outcome(team):
    outcome = await team["editor"].execute({"action": "teleport_card", "card": "x"})
    assert not outcome.success
    assert outcome.error == "validation_error"


async def test_private_card_is_hidden_from_readers(db, team):
    board_id = team["board_id"]
    await _apply(team["editor"], action="create_card", title="Salary review", visibility="private", column="Todo")
    await _apply(team["editor"], action="create_card", title="Standup notes", column="Todo")

    reader_result = await _apply(team["reader"], action="list_cards")
    editor_result = await _apply(team["editor"], action="list_cards")
    owner_rows = await queries.list_board_cards(db, board_id, team["ids"]["owner"], BoardRole.OWNER)

    assert [c.title for c in reader_result.entity] == ["Standup notes"]
    assert {c.title for c in editor_result.entity} == {"Salary review", "Standup notes"}
    assert {c.title for c, _ in owner_rows} == {"Salary review", "Standup notes"}


async def test_move_card_on_unassigned_card_assigns_it(db, team):
    inbox_card = (await _apply(team["editor_inbox"], action="create_card", title="X")).entity
    assert inbox_card.visibility == "private"

    result = await _apply(team["editor"], action="move_card", card="X", column="Doing")

    assert result.action == "assign_card_to_board"
    placement = result.entity
    doing = next(c for c in await queries.list_columns(db, team["board_id"]) if c.name == "Doing")
    assert (placement.column_id, placement.position) == (doing.id, 0)


async def test_update_card_ignores_null_title_and_rejects_empty_changes(team):
    await _apply(team["editor"], action="create_card", title="Draft", column="Todo")

    result = await _apply(team["editor"], action="update_card", card="draft", title=None, status="in_progress")
    assert result.entity.title == "Draft"
    assert result.entity.status == "in_progress"

    with pytest.raises(ValidationError):
        await _apply(team["editor"], action="update_card", card="Draft", title=None)


async def test_delete_card_needs_editor_on_every_board(db, team, executor_for, make_user):
    board_id = team["board_id"]
    card = (await _apply(team["owner"], action="create_card", board=str(board_id), title="Shared")).entity
    card_id = card.id
    side = (await _apply(team["owner"], action="create_board", name="Side")).entity
    await _apply(team["owner"], action="assign_card_to_board", board=str(side.id), card=str(card_id))
    await _apply(team["owner"], action="grant_permission", board=str(side.id), user="reader@example.com", role="reader")
    await _apply(team["owner"], action="grant_permission", board=str(side.id), user="editor@example.com", role="reader")

    outcome = await team["editor"].execute({"action": "delete_card", "card": str(card_id)})
    assert not outcome.success
    assert outcome.error == "authorization_error"

    outcome = await team["owner"].execute({"action": "delete_card", "card": str(card_id)})
    assert outcome.success
    assert await db.get(Card, card_id) is None
    assert await _count(db, CardBoard, CardBoard.card_id == card_id) == 0


async def test_delete_column_sends_its_cards_to_unfiled(db, team):
    board_id = team["board_id"]
    await _apply(team["editor"], action="create_card", title="One", column="Doing")
    await _apply(team["editor"], action="create_card", title="Two", column="Doing")

    result = await _apply(team["editor"], action="delete_column", column="Doing")

    assert "2 card(s) moved to unfiled" in result.description
    columns = await queries.list_columns(db, board_id)
    assert [(c.name, c.position) for c in columns] == [("Todo", 0), ("Done", 1)]
    placements = (
        await db.execute(
            select(CardBoard).where(CardBoard.board_id == board_id).order_by(CardBoard.position)
        )
    ).scalars().all()
    assert [(p.column_id, p.position) for p in placements] == [(None, 0), (None, 1)]


async def test_delete_board_cascades_but_keeps_shared_cards(db, team):
    board_id = team["board_id"]
    owner = team["owner"]
    shared = (await _apply(owner, action="create_card", board=str(board_id), title="Shared", column="Todo")).entity
    shared_id = shared.id
    await _apply(owner, action="create_tag", board=str(board_id), name="launch")
    await _apply(owner, action="add_tag_to_card", board=str(board_id), card="Shared", tag="launch")
    other = (await _apply(owner, action="create_board", name="Other")).entity
    other_id = other.id
    await _apply(owner, action="assign_card_to_board", board=str(other_id), card=str(shared_id))
    db.add(ChatMessage(board_id=board_id, user_id=team["ids"]["owner"], message="hi", response="hello"))
    await db.commit()

    result = await _apply(owner, action="delete_board", board=str(board_id))

    assert result.action == "delete_board"
    assert await _count(db, BoardColumn, BoardColumn.board_id == board_id) == 0
    assert await _count(db, Tag, Tag.board_id == board_id) == 0
    assert await _count(db, CardBoard, CardBoard.board_id == board_id) == 0
    assert await _count(db, BoardPermission, BoardPermission.board_id == board_id) == 0
    assert await _count(db, ChatMessage, ChatMessage.board_id == board_id) == 0
    assert await db.get(Card, shared_id) is not None
    assert await _count(db, CardBoard, CardBoard.board_id == other_id, CardBoard.card_id == shared_id) == 1


async def test_only_the_owner_deletes_a_board(team):
    outcome = await team["editor"].execute({"action": "delete_board"})
    assert not outcome.success
    assert outcome.error == "authorization_error"


async def test_cross_board_move(db, team):
    owner = team["owner"]
    board_id = team["board_id"]
    await _apply(owner, action="create_card", board=str(board_id), title="Travel", column="Todo")
    await _apply(owner, action="create_board", name="Archive", columns=["Old"])

    result = await _apply(owner, action="move_card_cross_board", from_board=str(board_id), board="archive", card="Travel", column="Old")

    assert result.action == "move_card_cross_board"
    assert await _count(db, CardBoard, CardBoard.board_id == board_id) == 0
    assert result.entity.position == 0


async def test_board_tag_needs_card_on_that_board(team):
    editor = team["editor"]
    await _apply(editor, action="create_tag", name="bug")
    await _apply(team["editor_inbox"], action="create_card", title="Inbox only")

    outcome = await editor.execute({"action": "add_tag_to_card", "card": "Inbox only", "tag": "bug"})
    assert not outcome.success
    assert outcome.error == "validation_error"


async def test_editor_of_one_board_cannot_edit_cards_placed_elsewhere(db, team, executor_for, make_user):
    secret = (
        await _apply(
            team["owner"], action="create_card", board=str(team["board_id"]), title="Secret plan",
            visibility="private", column="Todo",
        )
    ).entity
    secret_id = secret.id
    stranger = await make_user("stranger@example.com", "Stranger")
    own_board = (await _apply(executor_for(stranger), action="create_board", name="Mine")).entity

    outcome = await executor_for(stranger, own_board.id).execute(
        {"action": "update_card", "card": str(secret_id), "title": "Renamed"}
    )

    assert not outcome.success
    assert outcome.error == "authorization_error"
    assert (await db.get(Card, secret_id)).title == "Secret plan"


async def test_board_chat_can_still_edit_the_callers_inbox_card(team):
    await _apply(team["editor_inbox"], action="create_card", title="Loose idea")

    result = await _apply(team["editor"], action="update_card", card="Loose idea", status="done")

    assert result.entity.status == "done"


async def test_inbox_card_with_a_column_needs_a_board(db, team):
    outcome = await team["editor_inbox"].execute({"action": "create_card", "title": "Homeless", "column": "Todo"})

    assert not outcome.success
    assert outcome.error == "validation_error"
    assert await _count(db, Card, Card.title == "Homeless") == 0
