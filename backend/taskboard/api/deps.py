"""
Request authentication.

A request carries one credential, looked up in this order:

- the HttpOnly ``access_token`` cookie set at login (a session JWT)
- ``Authorization: Bearer <jwt>``
- ``Authorization: Bearer tb_...`` (an API token)

A session JWT names its sessions row in the ``sid`` claim and is only valid
while that row exists, so logout revokes it immediately. API tokens are
looked up by their sha256 hash; read-scope tokens may only make safe
requests. Board and card access is not checked here: the ActionExecutor and
the authorization service do that per action.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Annotated
from uuid import UUID

from fastapi import Cookie, Depends, Header, HTTPException, Request, status
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.config import get_settings
from taskboard.db.models import ApiToken, Session, TokenScope, User
from taskboard.db.session import get_db
from taskboard.schemas.actions import parse_action
from taskboard.services.actions import ActionContext, ActionExecutor, ActionResult
from taskboard.services.chat_service import ChatService, get_chat_service
from taskboard.services.security import hash_api_token, looks_like_api_token

settings = get_settings()

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})


# =============================================================================
# SESSION TOKENS
# =============================================================================


@dataclass(frozen=True)
class SessionClaims:
    user_id: UUID
    session_id: UUID


def session_expiry() -> datetime:
    return datetime.now(timezone.utc) + timedelta(minutes=settings.jwt_expire_minutes)


def create_access_token(session: Session) -> str:
    """Sign a JWT for a stored session; it expires with the session."""
    claims = {"sub": str(session.user_id), "sid": str(session.id), "exp": session.expires_at}
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> SessionClaims | None:
    """Claims of a valid, unexpired token, or None."""
    try:
        claims = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
        return SessionClaims(user_id=UUID(claims["sub"]), session_id=UUID(claims["sid"]))
    except (JWTError, KeyError, TypeError, ValueError):
        return None


def _as_aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


# =============================================================================
# AUTHENTICATION DEPENDENCIES
# =============================================================================


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_token_from_request(
    authorization: Annotated[str | None, Header()] = None,
    access_token: Annotated[str | None, Cookie()] = None,
) -> str:
    """The request's credential: the session cookie, else a bearer token."""
    if access_token:
        return access_token
    scheme, _, credential = (authorization or "").partition(" ")
    if scheme.lower() == "bearer" and credential.strip():
        return credential.strip()
    raise _unauthorized("Not authenticated")


async def _user_from_api_token(db: AsyncSession, token: str, request: Request) -> User | None:
    result = await db.execute(select(ApiToken).where(ApiToken.token_hash == hash_api_token(token)))
    api_token = result.scalar_one_or_none()
    if api_token is None:
        return None
    now = datetime.now(timezone.utc)
    if api_token.expires_at is not None and _as_aware(api_token.expires_at) <= now:
        return None
    if api_token.scope == TokenScope.READ.value and request.method not in SAFE_METHODS:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This API token is read-only",
        )
    api_token.last_used_at = now
    return await db.get(User, api_token.user_id)


async def _user_from_session(db: AsyncSession, token: str, request: Request) -> User | None:
    claims = decode_access_token(token)
    if claims is None:
        return None
    session = await db.get(Session, claims.session_id)
    if (
        session is None
        or session.user_id != claims.user_id
        or _as_aware(session.expires_at) <= datetime.now(timezone.utc)
    ):
        return None
    request.state.session_id = session.id
    return await db.get(User, claims.user_id)


async def get_current_user(
    request: Request,
    token: Annotated[str, Depends(get_token_from_request)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> User:
    """
    The authenticated user.

    401 for a bad, expired or revoked credential, or a deleted user; 403 when
    a read-only API token attempts a write.
    """
    if looks_like_api_token(token):
        user = await _user_from_api_token(db, token, request)
    else:
        user = await _user_from_session(db, token, request)
    if user is None:
        raise _unauthorized("Could not validate credentials")
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]
DbSession = Annotated[AsyncSession, Depends(get_db)]
Assistant = Annotated[ChatService, Depends(get_chat_service)]


# =============================================================================
# ACTION HELPERS
# =============================================================================


async def apply_action(
    db: AsyncSession,
    user: User,
    data: dict,
    board_id: UUID | None = None,
) -> ActionResult:
    """
    Run one REST mutation through the same executor the chat uses.

    Raises the executor's TaskboardError, which the app's exception handler
    turns into the matching status code.
    """
    executor = ActionExecutor(db, ActionContext(user_id=user.id, board_id=board_id))
    return await executor.apply(parse_action(data))
