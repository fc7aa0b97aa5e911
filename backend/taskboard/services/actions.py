"""
Action executor.

Applies one structured action at a time:

1. validate the action's shape (ValidationError),
2. resolve the entities it names (NotFoundError),
3. authorize against the required board role (AuthorizationError),
4. mutate through PositionIndex / CardBoardAssignment inside one
   transaction, committing on success and rolling back on any error,
5. report an ActionOutcome.

Batches run actions independently: a failing action is reported and the
next one still runs. Both the REST routes (``apply``, which raises) and the
chat orchestrator (``execute`` / ``execute_batch``, which report) go through
the same handlers.

Entity references may be UUIDs or names. Names match case-insensitively;
cards are looked up on the board first, then among the caller's own cards.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.config import get_settings, sanitize_error
from taskboard.db.models import (
    Board,
    BoardColumn,
    BoardPermission,
    Card,
    CardBoard,
    CardStatus,
    CardTag,
    ChatMessage,
    Comment,
    Tag,
    User,
    Visibility,
)
from taskboard.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    TaskboardError,
    ValidationError,
)
from taskboard.schemas import actions as a
from taskboard.services import queries
from taskboard.services.assignments import CardBoardAssignment
from taskboard.services.authorization import (
    BoardRole,
    can_delete_card,
    can_mutate,
    can_view_card,
    card_role,
    load_card_board_roles,
    load_permissions,
    role_satisfies,
)
from taskboard.services.positions import ColumnScope, PositionIndex

logger = logging.getLogger(__name__)

CARD_FIELDS = ("title", "body", "visibility", "status", "start_date", "end_date", "due_date")


@dataclass(frozen=True)
class ActionContext:
    """Who is acting, and the board they are working in (None for global chat/inbox)."""

    user_id: UUID
    board_id: UUID | None = None


@dataclass
class ActionResult:
    """A successfully applied action. ``action`` may differ from the requested one."""

    action: str
    description: str
    entity: Any = None


def _as_uuid(ref: str) -> UUID | None:
    try:
        return UUID(ref)
    except ValueError:
        return None


class ActionExecutor:
    """Validate, authorize and apply actions for one user."""

    def __init__(self, db: AsyncSession, context: ActionContext):
        self.db = db
        self.context = context
        self.assignments = CardBoardAssignment(db)
        self.positions = PositionIndex(db)
        self.public_enabled = get_settings().public_visibility_enabled

    # =========================================================================
    # ENTRY POINTS
    # =========================================================================

    async def apply(self, action: a.Action) -> ActionResult:
        """Apply one action in its own transaction. Raises TaskboardError on failure."""
        handler = getattr(self, f"_{action.action}")
        try:
            result = await handler(action)
            await self.db.commit()
        except TaskboardError:
            await self.db.rollback()
            raise
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError("The change conflicts with existing data") from e
        except OperationalError as e:
            # lock timeouts, deadlocks and serialization failures
            await self.db.rollback()
            raise ConflictError("A concurrent change got there first; retry") from e
        except Exception:
            await self.db.rollback()
            raise
        logger.info(
            "Applied %s for user %s: %s", result.action, self.context.user_id, result.description
        )
        return result

    async def execute(self, action: a.Action | dict) -> a.ActionOutcome:
        """Apply one action and report the outcome instead of raising."""
        name = action.get("action", "unknown") if isinstance(action, dict) else action.action
        try:
            if isinstance(action, dict):
                action = a.parse_action(action)
            result = await self.apply(action)
        except TaskboardError as e:
            logger.warning("Action %s failed (%s): %s", name, e.code, e.message)
            return a.ActionOutcome(action=str(name), description=e.message, success=False, error=e.code)
        except Exception as e:
            logger.exception("Unexpected error applying action %s", name)
            return a.ActionOutcome(
                action=str(name),
                description=sanitize_error(e, generic_message="The action failed unexpectedly."),
                success=False,
                error="internal_error",
            )
        return a.ActionOutcome(action=result.action, description=result.description, success=True)

    async def execute_batch(self, actions: Iterable[a.Action | dict]) -> list[a.ActionOutcome]:
        """Run actions in order. A failure is recorded and the batch continues."""
        return [await self.execute(action) for action in actions]

    # =========================================================================
    # RESOLUTION
    # =========================================================================

    async def _board(self, ref: str | None) -> Board:
        if ref is None:
            if self.context.board_id is None:
                raise ValidationError("A board is required for this action")
            board = await self.db.get(Board, self.context.board_id)
        elif (board_id := _as_uuid(ref)) is not None:
            board = await self.db.get(Board, board_id)
        else:
            result = await self.db.execute(
                select(Board)
                .outerjoin(
                    BoardPermission,
                    (BoardPermission.board_id == Board.id)
                    & (BoardPermission.user_id == self.context.user_id),
                )
                .where(
                    func.lower(Board.name) == ref.lower(),
                    or_(Board.owner_id == self.context.user_id, BoardPermission.id.is_not(None)),
                )
                .order_by(Board.created_at, Board.id)
                .limit(1)
            )
            board = result.scalar_one_or_none()
        if board is None:
            raise NotFoundError(f"Board '{ref}' not found" if ref else "Board not found")
        return board

    async def _optional_board(self, ref: str | None) -> Board | None:
        if ref is None and self.context.board_id is None:
            return None
        return await self._board(ref)

    async def _authorize(self, board: Board, required: BoardRole) -> BoardRole:
        permissions = await load_permissions(self.db, board.id, self.context.user_id)
        return can_mutate(board, self.context.user_id, permissions, required)

    async def _column(self, board: Board, ref: str) -> BoardColumn:
        if (column_id := _as_uuid(ref)) is not None:
            column = await self.db.get(BoardColumn, column_id)
            if column is not None and column.board_id != board.id:
                raise ValidationError(f"Column '{column.name}' does not belong to board '{board.name}'")
        else:
            result = await self.db.execute(
                select(BoardColumn)
                .where(BoardColumn.board_id == board.id, func.lower(BoardColumn.name) == ref.lower())
                .order_by(BoardColumn.position, BoardColumn.id)
                .limit(1)
            )
            column = result.scalar_one_or_none()
        if column is None:
            raise NotFoundError(f"Column '{ref}' not found on board '{board.name}'")
        return column

    async def _card(self, ref: str, board: Board | None = None) -> Card:
        if (card_id := _as_uuid(ref)) is not None:
            card = await self.db.get(Card, card_id)
        else:
            card = None
            title = func.lower(Card.title) == ref.lower()
            if board is not None:
                result = await self.db.execute(
                    select(Card)
                    .join(CardBoard, CardBoard.card_id == Card.id)
                    .where(CardBoard.board_id == board.id, title)
                    .order_by(CardBoard.position, Card.id)
                    .limit(1)
                )
                card = result.scalar_one_or_none()
            if card is None:
                user_id = self.context.user_id
                result = await self.db.execute(
                    select(Card)
                    .where(or_(Card.owner_id == user_id, Card.created_by == user_id), title)
                    .order_by(Card.created_at.desc(), Card.id)
                    .limit(1)
                )
                card = result.scalar_one_or_none()
        if card is None:
            raise NotFoundError(f"Card '{ref}' not found")
        return card

    async def _tag(self, ref: str, board: Board | None = None) -> Tag:
        if (tag_id := _as_uuid(ref)) is not None:
            tag = await self.db.get(Tag, tag_id)
        else:
            scopes = [Tag.owner_id == self.context.user_id]
            if board is not None:
                scopes.insert(0, Tag.board_id == board.id)
            result = await self.db.execute(
                select(Tag)
                .where(func.lower(Tag.name) == ref.lower(), or_(*scopes))
                # board tags win over global ones with the same name
                .order_by(Tag.board_id.is_(None), Tag.created_at, Tag.id)
                .limit(1)
            )
            tag = result.scalar_one_or_none()
        if tag is None:
            raise NotFoundError(f"Tag '{ref}' not found")
        return tag

    async def _user(self, ref: str) -> User:
        if (user_id := _as_uuid(ref)) is not None:
            user = await self.db.get(User, user_id)
        else:
            result = await self.db.execute(select(User).where(User.email == ref.lower()))
            user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError(f"User '{ref}' not found")
        return user

    # =========================================================================
    # CARD AUTHORITY
    # =========================================================================

    async def _require_card_visible(self, card: Card) -> dict[UUID, BoardRole]:
        roles = await load_card_board_roles(self.db, card.id, self.context.user_id)
        if not can_view_card(card, self.context.user_id, roles, self.public_enabled):
            raise AuthorizationError(f"You do not have access to card '{card.title}'")
        return roles

    async def _require_card_edit(self, card: Card, board: Board | None) -> None:
        """
        Editor on ``board`` when the card is placed there; otherwise editor
        authority over the card itself (owner, creator, or editor on a board
        it is on).
        """
        if board is not None and await self.assignments.get(card.id, board.id) is not None:
            await self._authorize(board, BoardRole.EDITOR)
            return
        roles = await self._require_card_visible(card)
        if not role_satisfies(card_role(card, self.context.user_id, roles), BoardRole.EDITOR):
            raise AuthorizationError(f"Editor role required to change card '{card.title}'")

    async def _column_name(self, column_id: UUID | None) -> str:
        if column_id is None:
            return "unfiled"
        column = await self.db.get(BoardColumn, column_id)
        return column.name if column else "unfiled"

    # =========================================================================
    # CARDS
    # =========================================================================

    async def _create_card(self, action: a.CreateCard) -> ActionResult:
        board = await self._optional_board(action.board)
        column = None
        if board is None and action.column:
            raise ValidationError("A board is required to place a card in a column")
        if board is not None:
            await self._authorize(board, BoardRole.EDITOR)
            if action.column:
                column = await self._column(board, action.column)
        default_visibility = Visibility.RESTRICTED if board is not None else Visibility.PRIVATE
        card = Card(
            title=action.title,
            body=action.body,
            visibility=action.visibility or default_visibility.value,
            status=action.status or CardStatus.OPEN.value,
            start_date=action.start_date,
            end_date=action.end_date,
            due_date=action.due_date,
            owner_id=self.context.user_id,
            created_by=self.context.user_id,
        )
        self.db.add(card)
        await self.db.flush()

        if board is None:
            return ActionResult("create_card", f"Created card '{card.title}' in your inbox", card)
        await self.assignments.assign(card.id, board.id, column.id if column else None, action.position)
        where = f"column '{column.name}'" if column else f"board '{board.name}' (unfiled)"
        return ActionResult("create_card", f"Created card '{card.title}' in {where}", card)

    async def _update_card(self, action: a.UpdateCard) -> ActionResult:
        board = await self._optional_board(action.board)
        card = await self._card(action.card, board)
        await self._require_card_edit(card, board)
        changes = {
            field: getattr(action, field)
            for field in CARD_FIELDS
            if field in action.model_fields_set
        }
        # title, visibility and status cannot be cleared
        for field in ("title", "visibility", "status"):
            if field in changes and changes[field] is None:
                changes.pop(field)
        if not changes:
            raise ValidationError("update_card needs at least one field to change")
        for field, value in changes.items():
            setattr(card, field, value)
        await self.db.flush()
        return ActionResult("update_card", f"Updated card '{card.title}' ({', '.join(changes)})", card)

    async def _move_card(self, action: a.MoveCard) -> ActionResult:
        board = await self._board(action.board)
        await self._authorize(board, BoardRole.EDITOR)
        card = await self._card(action.card, board)
        column = await self._column(board, action.column) if action.column else None
        placement = await self.assignments.get(card.id, board.id)

        if placement is None:
            # not on this board yet: moving it there is an assignment
            await self._require_card_visible(card)
            placement = await self.assignments.assign(
                card.id, board.id, column.id if column else None, action.position
            )
            where = f"column '{column.name}'" if column else "unfiled"
            return ActionResult(
                "assign_card_to_board",
                f"Assigned card '{card.title}' to board '{board.name}' in {where}",
                placement,
            )

        if column is not None:
            target = column.id
        elif action.to_unfiled:
            target = None
        else:
            target = placement.column_id
        placement = await self.assignments.move(card.id, board.id, target, action.position)
        name = column.name if column else await self._column_name(target)
        return ActionResult(
            "move_card",
            f"Moved card '{card.title}' to '{name}' at position {placement.position}",
            placement,
        )

    async def _delete_card(self, action: a.DeleteCard) -> ActionResult:
        board = await self._optional_board(action.board)
        card = await self._card(action.card, board)
        roles = await load_card_board_roles(self.db, card.id, self.context.user_id)
        if not can_delete_card(card, self.context.user_id, roles):
            raise AuthorizationError(
                f"Deleting card '{card.title}' needs editor on every board it is on"
            )
        title = card.title
        removed = await self.assignments.unassign_everywhere(card.id)
        await self.db.execute(delete(CardTag).where(CardTag.card_id == card.id))
        await self.db.execute(delete(Comment).where(Comment.card_id == card.id))
        await self.db.delete(card)
        await self.db.flush()
        return ActionResult("delete_card", f"Deleted card '{title}' (removed from {removed} board(s))")

    async def _assign_card_to_board(self, action: a.AssignCardToBoard) -> ActionResult:
        board = await self._board(action.board)
        await self._authorize(board, BoardRole.EDITOR)
        card = await self._card(action.card, board)
        await self._require_card_visible(card)
        column = await self._column(board, action.column) if action.column else None
        placement = await self.assignments.assign(
            card.id, board.id, column.id if column else None, action.position
        )
        where = f"column '{column.name}'" if column else "unfiled"
        return ActionResult(
            "assign_card_to_board",
            f"Assigned card '{card.title}' to board '{board.name}' in {where}",
            placement,
        )

    async def _unassign_card_from_board(self, action: a.UnassignCardFromBoard) -> ActionResult:
        board = await self._board(action.board)
        await self._authorize(board, BoardRole.EDITOR)
        card = await self._card(action.card, board)
        if await self.assignments.unassign(card.id, board.id):
            description = f"Removed card '{card.title}' from board '{board.name}'"
        else:
            description = f"Card '{card.title}' was not on board '{board.name}'"
        return ActionResult("unassign_card_from_board", description, card)

    async def _move_card_cross_board(self, action: a.MoveCardCrossBoard) -> ActionResult:
        source = await self._board(action.from_board)
        target = await self._board(action.board)
        if source.id == target.id:
            raise ValidationError("Source and target board are the same; use move_card")
        await self._authorize(source, BoardRole.EDITOR)
        await self._authorize(target, BoardRole.EDITOR)
        card = await self._card(action.card, source)
        column = await self._column(target, action.column) if action.column else None
        if not await self.assignments.unassign(card.id, source.id):
            raise NotFoundError(f"Card '{card.title}' is not on board '{source.name}'")
        placement = await self.assignments.assign(
            card.id, target.id, column.id if column else None, action.position
        )
        return ActionResult(
            "move_card_cross_board",
            f"Moved card '{card.title}' from '{source.name}' to '{target.name}'",
            placement,
        )

    # =========================================================================
    # COLUMNS
    # =========================================================================

    async def _create_column(self, action: a.CreateColumn) -> ActionResult:
        board = await self._board(action.board)
        await self._authorize(board, BoardRole.EDITOR)
        position = await self.positions.insert(ColumnScope(board.id), action.position)
        column = BoardColumn(board_id=board.id, name=action.name, position=position)
        self.db.add(column)
        await self.db.flush()
        return ActionResult(
            "create_column", f"Created column '{column.name}' at position {position}", column
        )

    async def _update_column(self, action: a.UpdateColumn) -> ActionResult:
        board = await self._board(action.board)
        await self._authorize(board, BoardRole.EDITOR)
        column = await self._column(board, action.column)
        old_name = column.name
        column.name = action.name
        await self.db.flush()
        return ActionResult("update_column", f"Renamed column '{old_name}' to '{column.name}'", column)

    async def _move_column(self, action: a.MoveColumn) -> ActionResult:
        board = await self._board(action.board)
        await self._authorize(board, BoardRole.EDITOR)
        column = await self._column(board, action.column)
        scope = ColumnScope(board.id)
        position = await self.positions.move(column, scope, scope, action.position)
        if column.position != position:
            column.position = position
            await self.db.flush()
        return ActionResult("move_column", f"Moved column '{column.name}' to position {position}", column)

    async def _delete_column(self, action: a.DeleteColumn) -> ActionResult:
        board = await self._board(action.board)
        await self._authorize(board, BoardRole.EDITOR)
        column = await self._column(board, action.column)
        name = column.name
        released = await self.assignments.release_column(column)
        await self.positions.remove(ColumnScope(board.id), column)
        await self.db.delete(column)
        await self.db.flush()
        suffix = f" ({released} card(s) moved to unfiled)" if released else ""
        return ActionResult("delete_column", f"Deleted column '{name}'{suffix}")

    # =========================================================================
    # TAGS
    # =========================================================================

    async def _authorize_tag(self, tag: Tag) -> None:
        if tag.board_id is not None:
            board = await self._board(str(tag.board_id))
            await self._authorize(board, BoardRole.EDITOR)
        elif tag.owner_id != self.context.user_id:
            raise AuthorizationError(f"Tag '{tag.name}' belongs to another user")

    async def _create_tag(self, action: a.CreateTag) -> ActionResult:
        board = None
        if action.scope != "user":
            board = await self._optional_board(action.board)
            if board is None and action.scope == "board":
                raise ValidationError("A board is required for a board tag")
        tag = Tag(name=action.name)
        if action.color:
            tag.color = action.color
        if board is not None:
            await self._authorize(board, BoardRole.EDITOR)
            tag.board_id = board.id
            where = f"board '{board.name}'"
        else:
            tag.owner_id = self.context.user_id
            where = "your global tags"
        self.db.add(tag)
        await self.db.flush()
        return ActionResult("create_tag", f"Created tag '{tag.name}' in {where}", tag)

    async def _update_tag(self, action: a.UpdateTag) -> ActionResult:
        tag = await self._tag(action.tag, await self._optional_board(action.board))
        await self._authorize_tag(tag)
        if action.name is None and action.color is None:
            raise ValidationError("update_tag needs a name or a color")
        if action.name is not None:
            tag.name = action.name
        if action.color is not None:
            tag.color = action.color
        await self.db.flush()
        return ActionResult("update_tag", f"Updated tag '{tag.name}'", tag)

    async def _delete_tag(self, action: a.DeleteTag) -> ActionResult:
        tag = await self._tag(action.tag, await self._optional_board(action.board))
        await self._authorize_tag(tag)
        name = tag.name
        await self.db.execute(delete(CardTag).where(CardTag.tag_id == tag.id))
        await self.db.delete(tag)
        await self.db.flush()
        return ActionResult("delete_tag", f"Deleted tag '{name}'")

    async def _authorize_card_tagging(self, card: Card, tag: Tag) -> None:
        """Board tags go on cards placed on that board; global tags need the tag owner."""
        if tag.board_id is not None:
            board = await self._board(str(tag.board_id))
            await self._authorize(board, BoardRole.EDITOR)
            if await self.assignments.get(card.id, board.id) is None:
                raise ValidationError(
                    f"Tag '{tag.name}' belongs to board '{board.name}' but card '{card.title}' is not on it"
                )
            return
        if tag.owner_id != self.context.user_id:
            raise AuthorizationError(f"Tag '{tag.name}' belongs to another user")
        await self._require_card_edit(card, None)

    async def _add_tag_to_card(self, action: a.AddTagToCard) -> ActionResult:
        board = await self._optional_board(action.board)
        card = await self._card(action.card, board)
        tag = await self._tag(action.tag, board)
        await self._authorize_card_tagging(card, tag)
        if await self.db.get(CardTag, (card.id, tag.id)) is not None:
            return ActionResult("add_tag_to_card", f"Card '{card.title}' already has tag '{tag.name}'", card)
        self.db.add(CardTag(card_id=card.id, tag_id=tag.id))
        await self.db.flush()
        return ActionResult("add_tag_to_card", f"Tagged card '{card.title}' with '{tag.name}'", card)

    async def _remove_tag_from_card(self, action: a.RemoveTagFromCard) -> ActionResult:
        board = await self._optional_board(action.board)
        card = await self._card(action.card, board)
        tag = await self._tag(action.tag, board)
        await self._authorize_card_tagging(card, tag)
        link = await self.db.get(CardTag, (card.id, tag.id))
        if link is None:
            raise NotFoundError(f"Card '{card.title}' does not have tag '{tag.name}'")
        await self.db.delete(link)
        await self.db.flush()
        return ActionResult("remove_tag_from_card", f"Removed tag '{tag.name}' from card '{card.title}'", card)

    # =========================================================================
    # BOARDS & PERMISSIONS
    # =========================================================================

    async def _create_board(self, action: a.CreateBoard) -> ActionResult:
        board = Board(owner_id=self.context.user_id, name=action.name, description=action.description)
        self.db.add(board)
        await self.db.flush()
        self.db.add(BoardPermission(board_id=board.id, user_id=self.context.user_id, role=BoardRole.OWNER.value))
        for position, name in enumerate(action.columns):
            self.db.add(BoardColumn(board_id=board.id, name=name, position=position))
        await self.db.flush()
        suffix = f" with columns {', '.join(action.columns)}" if action.columns else ""
        return ActionResult("create_board", f"Created board '{board.name}'{suffix}", board)

    async def _update_board(self, action: a.UpdateBoard) -> ActionResult:
        board = await self._board(action.board)
        await self._authorize(board, BoardRole.EDITOR)
        if action.name is None and "description" not in action.model_fields_set:
            raise ValidationError("update_board needs a name or a description")
        if action.name is not None:
            board.name = action.name
        if "description" in action.model_fields_set:
            board.description = action.description
        await self.db.flush()
        return ActionResult("update_board", f"Updated board '{board.name}'", board)

    async def _delete_board(self, action: a.DeleteBoard) -> ActionResult:
        board = await self._board(action.board)
        await self._authorize(board, BoardRole.OWNER)
        name = board.name
        board_tags = select(Tag.id).where(Tag.board_id == board.id)
        # Explicit deletes so the cascade does not depend on the backend enforcing FKs
        await self.db.execute(delete(CardTag).where(CardTag.tag_id.in_(board_tags)))
        await self.db.execute(delete(Tag).where(Tag.board_id == board.id))
        await self.db.execute(delete(CardBoard).where(CardBoard.board_id == board.id))
        await self.db.execute(delete(BoardColumn).where(BoardColumn.board_id == board.id))
        await self.db.execute(delete(BoardPermission).where(BoardPermission.board_id == board.id))
        await self.db.execute(delete(ChatMessage).where(ChatMessage.board_id == board.id))
        await self.db.delete(board)
        await self.db.flush()
        return ActionResult("delete_board", f"Deleted board '{name}'")

    async def _grant_permission(self, action: a.GrantPermission) -> ActionResult:
        board = await self._board(action.board)
        await self._authorize(board, BoardRole.OWNER)
        user = await self._user(action.user)
        if user.id == board.owner_id:
            raise ValidationError("The board owner's role cannot be changed")
        result = await self.db.execute(
            select(BoardPermission).where(
                BoardPermission.board_id == board.id, BoardPermission.user_id == user.id
            )
        )
        permission = result.scalar_one_or_none()
        if permission is None:
            permission = BoardPermission(board_id=board.id, user_id=user.id, role=action.role)
            self.db.add(permission)
        else:
            permission.role = action.role
        await self.db.flush()
        return ActionResult(
            "grant_permission", f"Granted {action.role} on '{board.name}' to {user.email}", permission
        )

    async def _revoke_permission(self, action: a.RevokePermission) -> ActionResult:
        board = await self._board(action.board)
        await self._authorize(board, BoardRole.OWNER)
        user = await self._user(action.user)
        if user.id == board.owner_id:
            raise ValidationError("The board owner's permission cannot be removed")
        result = await self.db.execute(
            delete(BoardPermission).where(
                BoardPermission.board_id == board.id, BoardPermission.user_id == user.id
            )
        )
        if result.rowcount == 0:
            raise NotFoundError(f"{user.email} has no permission on '{board.name}'")
        return ActionResult("revoke_permission", f"Revoked {user.email}'s access to '{board.name}'")

    # =========================================================================
    # READS
    # =========================================================================

    async def _list_cards(self, action: a.ListCards) -> ActionResult:
        board = await self._board(action.board)
        role = await self._authorize(board, BoardRole.READER)
        filters = None
        if action.column:
            filters = queries.CardFilter(column_id=(await self._column(board, action.column)).id)
        rows = await queries.list_board_cards(
            self.db, board.id, self.context.user_id, role, filters, public_enabled=self.public_enabled
        )
        if not rows:
            return ActionResult("list_cards", f"No cards on board '{board.name}'", [])
        columns = {column.id: column.name for column in await queries.list_columns(self.db, board.id)}
        grouped: dict[str, list[str]] = {}
        for card, placement in rows:
            grouped.setdefault(columns.get(placement.column_id, "unfiled"), []).append(card.title)
        summary = "; ".join(f"{name}: {', '.join(titles)}" for name, titles in grouped.items())
        return ActionResult("list_cards", f"Cards on '{board.name}': {summary}", [card for card, _ in rows])

    async def _list_tags(self, action: a.ListTags) -> ActionResult:
        board = await self._optional_board(action.board)
        tags = await queries.list_user_tags(self.db, self.context.user_id)
        if board is not None:
            await self._authorize(board, BoardRole.READER)
            tags = await queries.list_board_tags(self.db, board.id) + tags
        names = ", ".join(tag.name for tag in tags) or "none"
        return ActionResult("list_tags", f"Tags: {names}", tags)

    async def _no_action(self, action: a.NoAction) -> ActionResult:
        return ActionResult("no_action", action.reason or "Nothing to do")
