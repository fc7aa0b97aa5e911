"""Pytest configuration and fixtures."""

import os

# Required settings must exist before any taskboard module reads them
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key")
os.environ.setdefault("ENVIRONMENT", "development")

import pytest
from collections.abc import AsyncGenerator, Awaitable, Callable
from uuid import uuid4

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from taskboard.api.deps import create_access_token, session_expiry
from taskboard.db.base import Base
from taskboard.db.models import Session, User
from taskboard.db.session import get_db, get_session_factory
from taskboard.main import app
from taskboard.services.actions import ActionContext, ActionExecutor
from taskboard.services.chat_service import ChatService, get_chat_service
from taskboard.services.security import hash_password


class FakeChatService(ChatService):
    """ChatService with scripted replies instead of an Anthropic client."""

    def __init__(self, replies: list | None = None):
        self.replies = list(replies or [])
        self.calls: list[dict] = []

    def script(self, *replies) -> None:
        self.replies.extend(replies)

    async def get_full_response(self, user_message, conversation_history, system_prompt) -> str:
        self.calls.append(
            {
                "message": user_message,
                "history": conversation_history,
                "system_prompt": system_prompt,
            }
        )
        reply = self.replies.pop(0) if self.replies else '{"action": "no_action", "message": "OK"}'
        if isinstance(reply, Exception):
            raise reply
        return reply


@pytest.fixture
async def engine(tmp_path):
    """SQLite engine with the full schema, one database file per test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'taskboard.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def make_user(db) -> Callable[..., Awaitable[User]]:
    """Factory for users stored with a real password hash."""

    async def _make_user(email: str | None = None, name: str = "Test User", password: str = "password123") -> User:
        user = User(
            email=email or f"user-{uuid4().hex[:8]}@example.com",
            name=name,
            password_hash=hash_password(password),
        )
        db.add(user)
        await db.commit()
        return user

    return _make_user


@pytest.fixture
async def owner(make_user) -> User:
    return await make_user("owner@example.com", "Owner")


@pytest.fixture
def executor_for(db) -> Callable[..., ActionExecutor]:
    def _executor(user: User, board_id=None) -> ActionExecutor:
        return ActionExecutor(db, ActionContext(user_id=user.id, board_id=board_id))

    return _executor


@pytest.fixture
def auth_headers(db) -> Callable[[User], Awaitable[dict[str, str]]]:
    """Bearer headers backed by a real session row."""

    async def _auth_headers(user: User) -> dict[str, str]:
        session = Session(user_id=user.id, expires_at=session_expiry())
        db.add(session)
        await db.commit()
        token = create_access_token(session)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest.fixture
def fake_llm() -> FakeChatService:
    return FakeChatService()


@pytest.fixture
async def client(session_factory, fake_llm) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing FastAPI endpoints."""

    async def _get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_chat_service] = lambda: fake_llm
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
