"""
Chat routes: one message in, the assistant's reply and per-action outcomes out.

A turn always answers 200. Actions that failed, and a model that could not be
reached, are reported in ``actions_taken`` rather than as an HTTP error.
Errors about the board itself (missing, or no access) still fail the request.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from taskboard.api.deps import Assistant, CurrentUser, DbSession
from taskboard.config import get_settings
from taskboard.db.models import ChatMessage
from taskboard.db.session import get_session_factory
from taskboard.schemas.chat import ChatMessageRead, ChatMessageRequest, ChatResponse
from taskboard.services.authorization import BoardRole, require_board_role
from taskboard.services.chat_orchestrator import ChatOrchestrator, recent_messages

router = APIRouter(tags=["chat"])
settings = get_settings()

SessionFactory = Annotated[async_sessionmaker[AsyncSession], Depends(get_session_factory)]


def _history(records: list[ChatMessage]) -> list[ChatMessageRead]:
    return [ChatMessageRead.model_validate(r) for r in records]


@router.post("/boards/{board_id}/chat", response_model=ChatResponse)
async def board_chat(
    board_id: UUID,
    request: ChatMessageRequest,
    current_user: CurrentUser,
    db: DbSession,
    llm: Assistant,
    session_factory: SessionFactory,
) -> ChatResponse:
    """
    Talk to the assistant about one board.

    Requires reader; each action the assistant proposes is then authorized
    on its own, so a reader's turn can answer questions but not change things.
    """
    orchestrator = ChatOrchestrator(db, llm, current_user.id, board_id, session_factory)
    turn = await orchestrator.run(request.message)
    return ChatResponse(response=turn.response, actions_taken=turn.actions_taken)


@router.post("/chat", response_model=ChatResponse)
async def global_chat(
    request: ChatMessageRequest,
    current_user: CurrentUser,
    db: DbSession,
    llm: Assistant,
    session_factory: SessionFactory,
) -> ChatResponse:
    """Talk to the assistant across all of the caller's boards and their inbox."""
    orchestrator = ChatOrchestrator(db, llm, current_user.id, None, session_factory)
    turn = await orchestrator.run(request.message)
    return ChatResponse(response=turn.response, actions_taken=turn.actions_taken)


@router.get("/boards/{board_id}/chat/history", response_model=list[ChatMessageRead])
async def board_chat_history(board_id: UUID, current_user: CurrentUser, db: DbSession) -> list[ChatMessageRead]:
    """The caller's most recent exchanges about this board, oldest first."""
    await require_board_role(db, board_id, current_user.id, BoardRole.READER)
    return _history(await recent_messages(db, current_user.id, board_id, settings.chat_history_limit))


@router.get("/chat/history", response_model=list[ChatMessageRead])
async def global_chat_history(current_user: CurrentUser, db: DbSession) -> list[ChatMessageRead]:
    """The caller's most recent global exchanges, oldest first."""
    return _history(await recent_messages(db, current_user.id, None, settings.chat_history_limit))
