"""
Chat orchestration: one user message in, one recorded exchange out.

    Idle -> BuildingContext -> AwaitingModel -> ParsingReply
         -> ExecutingActions -> Recording -> Idle

The context snapshot is taken and the read transaction closed before the
model is called, so no database transaction stays open across the
round-trip. If the model is unreachable the turn goes straight to Recording
with a single failed ``llm_request`` outcome. Parsed actions then run one by
one through the ActionExecutor, each in its own transaction; failures are
recorded and the batch carries on.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum as PyEnum
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from taskboard.config import get_settings
from taskboard.db.models import Board, ChatMessage
from taskboard.errors import LLMUnavailableError, ParseError
from taskboard.schemas.actions import ActionOutcome
from taskboard.services.action_parser import parse_reply
from taskboard.services.actions import ActionContext, ActionExecutor
from taskboard.services.authorization import BoardRole, require_board_role
from taskboard.services.chat_context import snapshot_board, snapshot_global
from taskboard.services.chat_service import ChatService

logger = logging.getLogger(__name__)


class ChatState(str, PyEnum):
    IDLE = "idle"
    BUILDING_CONTEXT = "building_context"
    AWAITING_MODEL = "awaiting_model"
    PARSING_REPLY = "parsing_reply"
    EXECUTING_ACTIONS = "executing_actions"
    RECORDING = "recording"


@dataclass
class ChatTurn:
    """What one exchange produced."""

    record: ChatMessage
    response: str
    actions_taken: list[ActionOutcome]


async def recent_messages(
    db: AsyncSession,
    user_id: UUID,
    board_id: UUID | None,
    limit: int,
) -> list[ChatMessage]:
    """The last ``limit`` exchanges of a conversation, oldest first."""
    board_clause = ChatMessage.board_id.is_(None) if board_id is None else ChatMessage.board_id == board_id
    result = await db.execute(
        select(ChatMessage)
        .where(ChatMessage.user_id == user_id, board_clause)
        .order_by(ChatMessage.created_at.desc(), ChatMessage.id.desc())
        .limit(limit)
    )
    return list(reversed(result.scalars().all()))


class ChatOrchestrator:
    """Drives one user's conversation on one board (or the global conversation)."""

    def __init__(
        self,
        db: AsyncSession,
        llm: ChatService,
        user_id: UUID,
        board_id: UUID | None = None,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ):
        self.db = db
        self.llm = llm
        self.user_id = user_id
        self.board_id = board_id
        self.session_factory = session_factory
        self.settings = get_settings()
        self.state = ChatState.IDLE

    def _transition(self, state: ChatState) -> None:
        logger.debug("Chat for user %s board %s: %s -> %s", self.user_id, self.board_id, self.state.value, state.value)
        self.state = state

    async def run(self, message: str) -> ChatTurn:
        """Handle one message. NotFound/Authorization errors for the board itself are raised."""
        self._transition(ChatState.BUILDING_CONTEXT)
        board_name, context = await self._build_context()
        history = await self._conversation_history()
        # end the read transaction before waiting on the model
        await self.db.commit()

        self._transition(ChatState.AWAITING_MODEL)
        system_prompt = self.llm.build_system_prompt(context, board_name=board_name)
        try:
            reply = await self.llm.get_full_response(message, history, system_prompt)
        except LLMUnavailableError as e:
            outcome = ActionOutcome(action="llm_request", description=e.message, success=False, error=e.code)
            return await self._record(message, e.message, [outcome])

        self._transition(ChatState.PARSING_REPLY)
        parsed = parse_reply(reply)
        if parsed.errors:
            logger.warning("Model reply had %d malformed action(s)", len(parsed.errors))

        self._transition(ChatState.EXECUTING_ACTIONS)
        executor = ActionExecutor(self.db, ActionContext(user_id=self.user_id, board_id=self.board_id))
        outcomes: list[ActionOutcome] = []
        try:
            for entry in parsed.entries:
                if isinstance(entry, ParseError):
                    outcomes.append(
                        ActionOutcome(action="parse", description=entry.message, success=False, error=entry.code)
                    )
                elif entry["action"] != "no_action":
                    outcomes.append(await executor.execute(entry))
        except asyncio.CancelledError:
            logger.warning("Chat turn cancelled after %d action(s); recording partial outcome", len(outcomes))
            await asyncio.shield(self._record_detached(message, parsed.text, list(outcomes)))
            raise

        return await self._record(message, parsed.text, outcomes)

    async def _build_context(self) -> tuple[str | None, str]:
        max_chars = self.settings.max_context_chars
        if self.board_id is None:
            snapshot = await snapshot_global(self.db, self.user_id)
            return None, snapshot.render(max_chars)
        board, role = await require_board_role(self.db, self.board_id, self.user_id, BoardRole.READER)
        snapshot = await snapshot_board(
            self.db, board, self.user_id, role, public_enabled=self.settings.public_visibility_enabled
        )
        return snapshot.name, snapshot.render(max_chars)

    async def _conversation_history(self) -> list[dict]:
        previous = await recent_messages(
            self.db, self.user_id, self.board_id, self.settings.chat_context_messages
        )
        history = []
        for record in previous:
            history.append({"role": "user", "content": record.message})
            history.append({"role": "assistant", "content": record.response})
        return history

    def _new_record(self, board_id: UUID | None, message: str, response: str, outcomes: list[ActionOutcome]) -> ChatMessage:
        return ChatMessage(
            board_id=board_id,
            user_id=self.user_id,
            message=message,
            response=response,
            actions_taken=[outcome.model_dump() for outcome in outcomes],
        )

    async def _record(self, message: str, response: str, outcomes: list[ActionOutcome]) -> ChatTurn:
        self._transition(ChatState.RECORDING)
        board_id = self.board_id
        if board_id is not None and await self.db.get(Board, board_id) is None:
            # the turn deleted its own board; keep the record in the global conversation
            board_id = None
        record = self._new_record(board_id, message, response, outcomes)
        self.db.add(record)
        await self.db.commit()
        self._transition(ChatState.IDLE)
        return ChatTurn(record=record, response=response, actions_taken=outcomes)

    async def _record_detached(self, message: str, response: str, outcomes: list[ActionOutcome]) -> None:
        if self.session_factory is None:
            logger.error("No session factory; partial chat turn for user %s not recorded", self.user_id)
            return
        async with self.session_factory() as session:
            board_id = self.board_id
            if board_id is not None and await session.get(Board, board_id) is None:
                board_id = None
            session.add(self._new_record(board_id, message, response, outcomes))
            await session.commit()
