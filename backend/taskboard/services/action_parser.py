"""
Parse model replies into prose plus structured action entries.

Models answer with a mix of free text and JSON. Accepted shapes, in any
combination and number:

- ``{"action": "...", "params": {...}, "message": "..."}``
- ``{"actions": [{...}, {...}], "message": "..."}``
- either of the above inside a fenced ```json block

Anything that looks like an action but does not decode becomes a ParseError
entry in place; the rest of the reply is still used. Parameter names are
normalised so the common spellings models use (``card_title``,
``target_column``, ``tag_name``...) reach the canonical action fields.
"""

import json
import re
from dataclasses import dataclass, field
from itertools import chain

from taskboard.errors import ParseError

FALLBACK_RESPONSE = "Processing your request..."

_FENCE = re.compile(r"```[a-zA-Z]*[ \t]*\n?(.*?)```", re.DOTALL)
_TRAILING_COMMA = re.compile(r",\s*([}\]])")
_JUNK_LINE = re.compile(r"^[\s\[\],]*$")

# Older or looser action names
ACTION_ALIASES = {
    "add_tag": "add_tag_to_card",
    "remove_tag": "remove_tag_from_card",
    "assign_card": "assign_card_to_board",
    "unassign_card": "unassign_card_from_board",
    "move_card_to_board": "move_card_cross_board",
    "rename_column": "update_column",
    "none": "no_action",
}

_SHARED_PARAM_ALIASES = {
    "board": ("board_name",),
    "card": ("card_title", "card_name", "card_id"),
    "column": ("column_name", "target_column", "to_column", "destination", "to", "in", "column_id"),
    "tag": ("tag_name", "tag_id"),
}

_CARD_BY_TITLE = {"card": ("card_title", "card_name", "title", "name")}

_ACTION_PARAM_ALIASES: dict[str, dict[str, tuple[str, ...]]] = {
    "create_card": {"title": ("name", "card_title", "card"), "body": ("description", "content")},
    "update_card": {"title": ("new_title",), "body": ("description", "content")},
    "move_card": _CARD_BY_TITLE,
    "delete_card": _CARD_BY_TITLE,
    "assign_card_to_board": _CARD_BY_TITLE,
    "unassign_card_from_board": _CARD_BY_TITLE,
    "move_card_cross_board": {
        **_CARD_BY_TITLE,
        "board": ("to_board", "target_board"),
        "from_board": ("source_board",),
    },
    "create_column": {"name": ("column_name", "column", "title")},
    "update_column": {"column": ("old_name", "column_name"), "name": ("new_name",)},
    "create_tag": {"name": ("tag_name", "tag")},
    "update_tag": {"name": ("new_name",)},
    "create_board": {"name": ("board_name", "title", "board"), "description": ("desc",)},
    "update_board": {"name": ("new_name",), "description": ("desc",)},
    "grant_permission": {"user": ("email", "user_email")},
    "revoke_permission": {"user": ("email", "user_email")},
}


@dataclass
class ParsedReply:
    """
    A decoded model reply.

    ``entries`` keeps the order the model used: each item is either a
    normalised action mapping or the ParseError for a malformed entry.
    """

    text: str
    entries: list[dict | ParseError] = field(default_factory=list)

    @property
    def actions(self) -> list[dict]:
        return [entry for entry in self.entries if isinstance(entry, dict)]

    @property
    def errors(self) -> list[ParseError]:
        return [entry for entry in self.entries if isinstance(entry, ParseError)]


def normalize_action(entry: dict) -> dict:
    """Flatten ``params`` into the entry and map alias names onto canonical fields."""
    name = entry["action"].strip().lower()
    name = ACTION_ALIASES.get(name, name)
    params = entry.get("params")
    if not isinstance(params, dict):
        params = {k: v for k, v in entry.items() if k not in ("action", "params", "message")}

    data = dict(params)
    aliases = chain(_ACTION_PARAM_ALIASES.get(name, {}).items(), _SHARED_PARAM_ALIASES.items())
    for canonical, names in aliases:
        if data.get(canonical) is not None:
            continue
        for alias in names:
            if params.get(alias) is not None:
                data[canonical] = params[alias]
                break
    data["action"] = name
    return data


def _brace_spans(text: str) -> list[tuple[int, int]]:
    """
    Spans of top-level ``{...}`` groups, honouring JSON string quoting.

    An unterminated group runs to the end of the text.
    """
    spans = []
    depth = 0
    start = 0
    in_string = False
    escaped = False
    for i, ch in enumerate(text):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"' and depth > 0:
            in_string = True
        elif ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                spans.append((start, i + 1))
    if depth > 0:
        spans.append((start, len(text)))
    return spans


def _looks_like_action(candidate: str) -> bool:
    return bool(re.search(r"""["']actions?["']\s*:""", candidate))


def _decode(candidate: str):
    try:
        return json.loads(candidate)
    except json.JSONDecodeError:
        return json.loads(_TRAILING_COMMA.sub(r"\1", candidate))


def _excerpt(candidate: str, limit: int = 80) -> str:
    flat = " ".join(candidate.split())
    return flat if len(flat) <= limit else flat[: limit - 3] + "..."


def _entries_from(obj: dict, messages: list[str]) -> list[dict | ParseError] | None:
    """Entries for one decoded object, or None if it is not action-shaped."""
    if isinstance(obj.get("message"), str) and obj["message"].strip():
        messages.append(obj["message"].strip())

    if "actions" in obj:
        items = obj["actions"]
        if not isinstance(items, list):
            return [ParseError("'actions' must be a list")]
        entries: list[dict | ParseError] = []
        for item in items:
            if isinstance(item, dict) and isinstance(item.get("action"), str):
                if isinstance(item.get("message"), str) and item["message"].strip():
                    messages.append(item["message"].strip())
                entries.append(normalize_action(item))
            else:
                entries.append(ParseError(f"Malformed action entry: {_excerpt(json.dumps(item))}"))
        return entries

    if "action" in obj:
        if not isinstance(obj["action"], str):
            return [ParseError(f"Action name must be a string: {_excerpt(json.dumps(obj))}")]
        return [normalize_action(obj)]
    return None


def parse_reply(reply: str) -> ParsedReply:
    """Split a model reply into display text and ordered action entries."""
    entries: list[dict | ParseError] = []
    messages: list[str] = []
    consumed: list[tuple[int, int]] = []

    # Fenced blocks first; their contents are scanned like the rest of the text
    regions: list[tuple[int, int, int, int]] = []
    for match in _FENCE.finditer(reply):
        regions.append((match.start(), match.end(), match.start(1), match.end(1)))
    outside = []
    cursor = 0
    for start, end, _, _ in regions:
        outside.append((cursor, start))
        cursor = end
    outside.append((cursor, len(reply)))

    segments = sorted(
        [(inner_start, inner_end, (start, end)) for start, end, inner_start, inner_end in regions]
        + [(start, end, None) for start, end in outside]
    )

    for seg_start, seg_end, fence in segments:
        chunk = reply[seg_start:seg_end]
        fence_had_actions = False
        for span_start, span_end in _brace_spans(chunk):
            candidate = chunk[span_start:span_end]
            try:
                obj = _decode(candidate)
            except json.JSONDecodeError:
                if _looks_like_action(candidate):
                    entries.append(ParseError(f"Could not decode action: {_excerpt(candidate)}"))
                    consumed.append((seg_start + span_start, seg_start + span_end))
                    fence_had_actions = True
                continue
            found = _entries_from(obj, messages) if isinstance(obj, dict) else None
            if found is not None:
                entries.extend(found)
                consumed.append((seg_start + span_start, seg_start + span_end))
                fence_had_actions = True
        if fence is not None and fence_had_actions:
            consumed.append(fence)

    prose = _strip_spans(reply, consumed)
    parts = ([prose] if prose else []) + messages
    if parts:
        text = "\n\n".join(parts)
    elif entries:
        text = FALLBACK_RESPONSE
    else:
        text = reply.strip()
    return ParsedReply(text=text, entries=entries)


def _strip_spans(text: str, spans: list[tuple[int, int]]) -> str:
    if not spans:
        return text.strip()
    kept = []
    cursor = 0
    for start, end in sorted(spans):
        if start < cursor:
            cursor = max(cursor, end)
            continue
        kept.append(text[cursor:start])
        cursor = end
    kept.append(text[cursor:])
    lines = "".join(kept).splitlines()
    # drop lines left holding only array punctuation
    cleaned = "\n".join(line.rstrip() for line in lines if not line.strip() or not _JUNK_LINE.match(line))
    return re.sub(r"\n{3,}", "\n\n", cleaned).strip()
