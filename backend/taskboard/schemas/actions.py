"""
Structured actions and their outcomes.

An action is one independently validated mutation (or read) tagged by its
``action`` field. Entity references are strings holding either a UUID or a
name/title; the executor resolves them. ``board`` defaults to the board the
caller is working in.
"""

from datetime import date
from typing import Annotated, Literal, Union, get_args

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from taskboard.errors import ValidationError

VisibilityValue = Literal["private", "restricted", "public"]
StatusValue = Literal["open", "in_progress", "done", "closed"]
GrantableRole = Literal["editor", "reader"]
Color = Annotated[str, Field(pattern=r"^#[0-9A-Fa-f]{6}$")]
Ref = Annotated[str, Field(min_length=1, max_length=500)]


class ActionBase(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True, frozen=True)

    board: Ref | None = None


class CardFields(ActionBase):
    body: str | None = None
    visibility: VisibilityValue | None = None
    status: StatusValue | None = None
    start_date: date | None = None
    end_date: date | None = None
    due_date: date | None = None


# =============================================================================
# CARDS
# =============================================================================


class CreateCard(CardFields):
    action: Literal["create_card"]
    title: str = Field(..., min_length=1, max_length=500)
    column: Ref | None = None
    position: int | None = None


class UpdateCard(CardFields):
    action: Literal["update_card"]
    card: Ref
    title: str | None = Field(None, min_length=1, max_length=500)


class MoveCard(ActionBase):
    action: Literal["move_card"]
    card: Ref
    column: Ref | None = None
    position: int | None = None
    to_unfiled: bool = False


class DeleteCard(ActionBase):
    action: Literal["delete_card"]
    card: Ref


class AssignCardToBoard(ActionBase):
    action: Literal["assign_card_to_board"]
    card: Ref
    column: Ref | None = None
    position: int | None = None


class UnassignCardFromBoard(ActionBase):
    action: Literal["unassign_card_from_board"]
    card: Ref


class MoveCardCrossBoard(ActionBase):
    """Take a card off ``from_board`` (default: current board) and place it on ``board``."""

    action: Literal["move_card_cross_board"]
    card: Ref
    from_board: Ref | None = None
    board: Ref
    column: Ref | None = None
    position: int | None = None


# =============================================================================
# COLUMNS
# =============================================================================


class CreateColumn(ActionBase):
    action: Literal["create_column"]
    name: str = Field(..., min_length=1, max_length=255)
    position: int | None = None


class UpdateColumn(ActionBase):
    action: Literal["update_column"]
    column: Ref
    name: str = Field(..., min_length=1, max_length=255)


class MoveColumn(ActionBase):
    action: Literal["move_column"]
    column: Ref
    position: int


class DeleteColumn(ActionBase):
    action: Literal["delete_column"]
    column: Ref


# =============================================================================
# TAGS
# =============================================================================


class CreateTag(ActionBase):
    """``scope="user"`` creates a global tag owned by the caller."""

    action: Literal["create_tag"]
    name: str = Field(..., min_length=1, max_length=100)
    color: Color | None = None
    scope: Literal["board", "user"] | None = None


class UpdateTag(ActionBase):
    action: Literal["update_tag"]
    tag: Ref
    name: str | None = Field(None, min_length=1, max_length=100)
    color: Color | None = None


class DeleteTag(ActionBase):
    action: Literal["delete_tag"]
    tag: Ref


class AddTagToCard(ActionBase):
    action: Literal["add_tag_to_card"]
    card: Ref
    tag: Ref


class RemoveTagFromCard(ActionBase):
    action: Literal["remove_tag_from_card"]
    card: Ref
    tag: Ref


# =============================================================================
# BOARDS & PERMISSIONS
# =============================================================================


class CreateBoard(ActionBase):
    action: Literal["create_board"]
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    columns: list[Annotated[str, Field(min_length=1, max_length=255)]] = Field(default_factory=list)


class UpdateBoard(ActionBase):
    action: Literal["update_board"]
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = None


class DeleteBoard(ActionBase):
    action: Literal["delete_board"]


class GrantPermission(ActionBase):
    action: Literal["grant_permission"]
    user: Ref
    role: GrantableRole = "reader"


class RevokePermission(ActionBase):
    action: Literal["revoke_permission"]
    user: Ref


# =============================================================================
# READS
# =============================================================================


class ListCards(ActionBase):
    action: Literal["list_cards"]
    column: Ref | None = None


class ListTags(ActionBase):
    action: Literal["list_tags"]


class NoAction(ActionBase):
    action: Literal["no_action"]
    reason: str | None = None


Action = Annotated[
    Union[
        CreateCard,
        UpdateCard,
        MoveCard,
        DeleteCard,
        AssignCardToBoard,
        UnassignCardFromBoard,
        MoveCardCrossBoard,
        CreateColumn,
        UpdateColumn,
        MoveColumn,
        DeleteColumn,
        CreateTag,
        UpdateTag,
        DeleteTag,
        AddTagToCard,
        RemoveTagFromCard,
        CreateBoard,
        UpdateBoard,
        DeleteBoard,
        GrantPermission,
        RevokePermission,
        ListCards,
        ListTags,
        NoAction,
    ],
    Field(discriminator="action"),
]

ACTION_NAMES: frozenset[str] = frozenset(
    get_args(model.model_fields["action"].annotation)[0]
    for model in get_args(get_args(Action)[0])
)

READ_ACTIONS = frozenset({"list_cards", "list_tags", "no_action"})

_action_adapter: TypeAdapter[Action] = TypeAdapter(Action)


def parse_action(data: dict) -> Action:
    """Validate a raw mapping into an Action; ValidationError when malformed."""
    name = data.get("action")
    if not isinstance(name, str) or name not in ACTION_NAMES:
        raise ValidationError(f"Unknown action: {name!r}")
    try:
        return _action_adapter.validate_python(data)
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'][1:]) or 'action'}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationError(f"Invalid {name}: {problems}") from e


class ActionOutcome(BaseModel):
    """Per-action result reported to the caller and stored in chat history."""

    action: str
    description: str
    success: bool
    error: str | None = None
