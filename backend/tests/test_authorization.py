"""Role resolution and card visibility checks."""

from uuid import uuid4

import pytest

from taskboard.db.models import Board, BoardPermission, Card, Visibility
from taskboard.errors import AuthorizationError
from taskboard.services.authorization import (
    BoardRole,
    can_delete_card,
    can_mutate,
    can_view,
    can_view_card,
    card_role,
    resolve_role,
    role_satisfies,
    visible_visibilities,
)


def _board(owner_id=None) -> Board:
    return Board(id=uuid4(), owner_id=owner_id or uuid4(), name="Roadmap")


def _grant(board: Board, user_id, role: str) -> BoardPermission:
    return BoardPermission(board_id=board.id, user_id=user_id, role=role)


def _card(visibility: str = "restricted", owner_id=None, created_by=None) -> Card:
    return Card(
        id=uuid4(),
        title="Ship it",
        visibility=visibility,
        owner_id=owner_id,
        created_by=created_by or uuid4(),
    )


def test_owner_is_always_owner_even_with_a_weaker_row():
    user_id = uuid4()
    board = _board(owner_id=user_id)
    assert resolve_role(board, user_id, [_grant(board, user_id, "reader")]) is BoardRole.OWNER


def test_role_comes_from_the_matching_permission_row():
    user_id = uuid4()
    board = _board()
    other_board = _board()
    permissions = [_grant(other_board, user_id, "editor"), _grant(board, user_id, "reader")]
    assert resolve_role(board, user_id, permissions) is BoardRole.READER


def test_no_row_means_no_access():
    assert resolve_role(_board(), uuid4(), []) is BoardRole.NONE


@pytest.mark.parametrize(
    "role, required, expected",
    [
        (BoardRole.OWNER, BoardRole.EDITOR, True),
        (BoardRole.EDITOR, BoardRole.EDITOR, True),
        (BoardRole.READER, BoardRole.EDITOR, False),
        (BoardRole.NONE, BoardRole.READER, False),
    ],
)
def test_role_order(role, required, expected):
    assert role_satisfies(role, required) is expected


def test_private_cards_need_editor():
    assert not can_view(Visibility.PRIVATE, BoardRole.READER)
    assert can_view(Visibility.PRIVATE, BoardRole.EDITOR)
    assert can_view(Visibility.PRIVATE, BoardRole.OWNER)


def test_restricted_cards_need_reader():
    assert can_view("restricted", BoardRole.READER)
    assert not can_view("restricted", BoardRole.NONE)


def test_public_counts_as_restricted_until_enabled():
    assert not can_view("public", BoardRole.NONE)
    assert can_view("public", BoardRole.NONE, public_enabled=True)


def test_assignee_sees_own_private_card_without_a_role():
    assert can_view("private", BoardRole.NONE, is_assignee=True)


def test_visible_visibilities_for_a_reader():
    assert visible_visibilities(BoardRole.READER) == ["restricted", "public"]
    assert visible_visibilities(BoardRole.EDITOR) == ["private", "restricted", "public"]
    assert visible_visibilities(BoardRole.NONE) == []
    assert visible_visibilities(BoardRole.NONE, public_enabled=True) == ["public"]


def test_can_mutate_returns_role_or_raises():
    user_id = uuid4()
    board = _board()
    assert can_mutate(board, user_id, [_grant(board, user_id, "editor")], BoardRole.EDITOR) is BoardRole.EDITOR

    with pytest.raises(AuthorizationError, match="Editor role required"):
        can_mutate(board, user_id, [_grant(board, user_id, "reader")], BoardRole.EDITOR)

    with pytest.raises(AuthorizationError, match="do not have access"):
        can_mutate(board, user_id, [], BoardRole.READER)


def test_card_role_is_owner_for_creator_and_best_board_role_otherwise():
    user_id = uuid4()
    assert card_role(_card(created_by=user_id), user_id, {}) is BoardRole.OWNER
    roles = {uuid4(): BoardRole.READER, uuid4(): BoardRole.EDITOR}
    assert card_role(_card(), user_id, roles) is BoardRole.EDITOR
    assert card_role(_card(), user_id, {}) is BoardRole.NONE


def test_can_view_card_through_any_board():
    user_id = uuid4()
    card = _card("private")
    assert not can_view_card(card, user_id, {uuid4(): BoardRole.READER})
    assert can_view_card(card, user_id, {uuid4(): BoardRole.READER, uuid4(): BoardRole.EDITOR})


def test_delete_needs_editor_on_every_board():
    user_id = uuid4()
    card = _card()
    assert can_delete_card(card, user_id, {uuid4(): BoardRole.EDITOR, uuid4(): BoardRole.OWNER})
    assert not can_delete_card(card, user_id, {uuid4(): BoardRole.EDITOR, uuid4(): BoardRole.READER})
    assert not can_delete_card(card, user_id, {})
    assert can_delete_card(_card(owner_id=user_id), user_id, {})
