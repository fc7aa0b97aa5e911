"""Decoding model replies into prose and actions."""

from taskboard.errors import ParseError
from taskboard.services.action_parser import FALLBACK_RESPONSE, normalize_action, parse_reply


def test_plain_prose_has_no_actions():
    parsed = parse_reply("You have three cards in Doing. Want me to move any?")
    assert parsed.entries == []
    assert parsed.text == "You have three cards in Doing. Want me to move any?"


def test_single_action_with_message():
    parsed = parse_reply(
        '{"action": "create_card", "params": {"column": "Todo", "title": "Buy milk"}, "message": "Added it."}'
    )
    assert parsed.actions == [{"action": "create_card", "column": "Todo", "title": "Buy milk"}]
    assert parsed.text == "Added it."


def test_actions_interleaved_with_prose_and_fences():
    reply = (
        "Sure, moving it now.\n"
        "```json\n"
        '{"action": "move_card", "params": {"card_title": "X", "target_column": "Doing"}}\n'
        "```\n"
        "And tagging it:\n"
        '{"action": "add_tag", "params": {"card": "X", "tag_name": "urgent"}}\n'
        "Done!"
    )
    parsed = parse_reply(reply)

    assert [a["action"] for a in parsed.actions] == ["move_card", "add_tag_to_card"]
    assert parsed.actions[0]["card"] == "X"
    assert parsed.actions[0]["column"] == "Doing"
    assert parsed.actions[1]["tag"] == "urgent"
    assert "```" not in parsed.text
    assert "Sure, moving it now." in parsed.text
    assert "Done!" in parsed.text


def test_actions_list_keeps_order():
    parsed = parse_reply(
        '{"actions": ['
        '{"action": "create_column", "params": {"name": "Review"}},'
        '{"action": "move_column", "params": {"column": "Review", "position": 1}}'
        '], "message": "Set up review."}'
    )
    assert [a["action"] for a in parsed.actions] == ["create_column", "move_column"]
    assert parsed.text == "Set up review."


def test_each_malformed_entry_becomes_a_parse_error():
    parsed = parse_reply(
        '{"actions": ['
        '{"action": "create_card", "params": {"title": "Good"}},'
        '"not an action",'
        '{"params": {"title": "no name"}}'
        "]}"
    )
    assert isinstance(parsed.entries[0], dict)
    assert all(isinstance(e, ParseError) for e in parsed.entries[1:])
    assert len(parsed.errors) == 2


def test_undecodable_action_does_not_sink_the_reply():
    parsed = parse_reply(
        'First: {"action": "create_card", "params": {"title": "A"}}\n'
        'Then: {"action": "create_card", "params": {"title": "B"'
    )
    assert parsed.actions == [{"action": "create_card", "title": "A"}]
    assert len(parsed.errors) == 1
    assert parsed.entries[1].code == "parse_error"


def test_trailing_commas_are_tolerated():
    parsed = parse_reply('{"action": "delete_card", "params": {"card": "Old",},}')
    assert parsed.actions == [{"action": "delete_card", "card": "Old"}]


def test_actions_without_text_fall_back_to_placeholder():
    parsed = parse_reply('{"action": "list_tags", "params": {}}')
    assert parsed.text == FALLBACK_RESPONSE


def test_non_action_json_is_left_as_prose():
    reply = 'The config looks like {"theme": "dark"} today.'
    parsed = parse_reply(reply)
    assert parsed.entries == []
    assert parsed.text == reply


def test_normalize_flat_params_and_aliases():
    assert normalize_action({"action": "Create_Board", "board_name": "Ops", "desc": "x"}) == {
        "action": "create_board",
        "board_name": "Ops",
        "desc": "x",
        "name": "Ops",
        "description": "x",
        "board": "Ops",
    }
    assert normalize_action({"action": "none", "params": {}}) == {"action": "no_action"}
