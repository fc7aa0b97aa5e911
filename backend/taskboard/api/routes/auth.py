"""
Authentication Routes

Endpoints:
- POST /auth/register - Create an account
- POST /auth/login - Exchange email/password for a session
- POST /auth/logout - End the session
- GET /auth/me - Get current user profile
- GET|POST /auth/tokens, DELETE /auth/tokens/{id} - Manage API tokens

Security:
- Passwords are hashed with passlib; plaintext is never stored
- Each login creates a sessions row; the JWT names it in its sid claim
- JWT is HttpOnly cookie + response body (client chooses how to use)
- API tokens are shown once; only their sha256 hash is stored
"""

from datetime import timedelta
from uuid import UUID

from fastapi import APIRouter, HTTPException, Request, Response, status
from sqlalchemy import delete, select

from taskboard.api.deps import (
    CurrentUser,
    DbSession,
    create_access_token,
    session_expiry,
)
from taskboard.config import get_settings
from taskboard.db.models import ApiToken, Session, User, utcnow
from taskboard.errors import ConflictError, NotFoundError, ValidationError
from taskboard.schemas.auth import (
    ApiTokenCreate,
    ApiTokenCreated,
    ApiTokenRead,
    LoginRequest,
    TokenResponse,
)
from taskboard.schemas.user import UserCreate, UserRead
from taskboard.services.security import (
    generate_api_token,
    hash_api_token,
    hash_password,
    verify_password,
)

router = APIRouter(prefix="/auth", tags=["auth"])
settings = get_settings()


def _cookie_options() -> dict:
    # For cross-domain deployments use samesite="none" + secure=True
    return {
        "httponly": True,
        "secure": settings.cookie_cross_domain or settings.environment != "development",
        "samesite": "none" if settings.cookie_cross_domain else "lax",
    }


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def register(data: UserCreate, db: DbSession) -> UserRead:
    """Create an account. Emails are unique, case-insensitively."""
    if len(data.password) < settings.password_min_length:
        raise ValidationError(
            f"Password must be at least {settings.password_min_length} characters"
        )
    email = data.email.lower()
    existing = await db.execute(select(User.id).where(User.email == email))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError("An account with this email already exists")

    user = User(email=email, name=data.name, password_hash=hash_password(data.password))
    db.add(user)
    await db.commit()
    return UserRead.model_validate(user)


@router.post("/login", response_model=TokenResponse)
async def login(data: LoginRequest, response: Response, db: DbSession) -> TokenResponse:
    """
    Exchange email/password for a session JWT.

    The same 401 is returned for an unknown email and a wrong password.
    """
    result = await db.execute(select(User).where(User.email == data.email.lower()))
    user = result.scalar_one_or_none()
    if user is None or not verify_password(data.password, user.password_hash):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    session = Session(user_id=user.id, expires_at=session_expiry())
    db.add(session)
    await db.commit()

    access_token = create_access_token(session)
    expires_in = settings.jwt_expire_minutes * 60

    response.set_cookie(
        key="access_token",
        value=access_token,
        max_age=expires_in,
        **_cookie_options(),
    )

    return TokenResponse(access_token=access_token, expires_in=expires_in)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(request: Request, response: Response, current_user: CurrentUser, db: DbSession) -> None:
    """
    End the current session.

    Deleting the sessions row revokes the JWT everywhere it was stored, not
    just in this browser's cookie. API tokens have no session; revoke them
    through DELETE /auth/tokens/{id}.
    """
    session_id = getattr(request.state, "session_id", None)
    if session_id is not None:
        await db.execute(
            delete(Session).where(Session.id == session_id, Session.user_id == current_user.id)
        )
    response.delete_cookie(key="access_token", **_cookie_options())


@router.get("/me", response_model=UserRead)
async def get_me(current_user: CurrentUser) -> UserRead:
    """Get the current authenticated user's profile."""
    return UserRead.model_validate(current_user)


# =============================================================================
# API TOKENS
# =============================================================================


@router.get("/tokens", response_model=list[ApiTokenRead])
async def list_tokens(current_user: CurrentUser, db: DbSession) -> list[ApiTokenRead]:
    result = await db.execute(
        select(ApiToken)
        .where(ApiToken.user_id == current_user.id)
        .order_by(ApiToken.created_at.desc())
    )
    return [ApiTokenRead.model_validate(t) for t in result.scalars()]


@router.post("/tokens", response_model=ApiTokenCreated, status_code=status.HTTP_201_CREATED)
async def create_token(data: ApiTokenCreate, current_user: CurrentUser, db: DbSession) -> ApiTokenCreated:
    """Issue an API token. The plaintext is in this response and nowhere else."""
    plaintext = generate_api_token()
    token = ApiToken(
        user_id=current_user.id,
        name=data.name,
        token_hash=hash_api_token(plaintext),
        scope=data.scope,
        expires_at=utcnow() + timedelta(days=data.expires_in_days) if data.expires_in_days else None,
    )
    db.add(token)
    await db.commit()
    return ApiTokenCreated(**ApiTokenRead.model_validate(token).model_dump(), token=plaintext)


@router.delete("/tokens/{token_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_token(token_id: UUID, current_user: CurrentUser, db: DbSession) -> None:
    result = await db.execute(
        delete(ApiToken).where(ApiToken.id == token_id, ApiToken.user_id == current_user.id)
    )
    if result.rowcount == 0:
        raise NotFoundError("API token not found")
