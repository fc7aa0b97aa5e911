"""Card comment routes."""

import logging
from uuid import UUID

from fastapi import APIRouter, status
from sqlalchemy import select

from taskboard.api.deps import CurrentUser, DbSession
from taskboard.config import get_settings
from taskboard.db.models import Comment
from taskboard.errors import AuthorizationError, NotFoundError
from taskboard.schemas.comments import CommentCreate, CommentRead, CommentUpdate
from taskboard.services.authorization import BoardRole, card_role, get_visible_card, role_satisfies

logger = logging.getLogger(__name__)
router = APIRouter(tags=["comments"])
settings = get_settings()


async def _get_own_comment(db, comment_id: UUID, user_id: UUID) -> Comment:
    comment = await db.get(Comment, comment_id)
    if comment is None:
        raise NotFoundError("Comment not found")
    if comment.user_id != user_id:
        raise AuthorizationError("Only the author can change a comment")
    return comment


@router.get("/cards/{card_id}/comments", response_model=list[CommentRead])
async def list_comments(card_id: UUID, current_user: CurrentUser, db: DbSession) -> list[CommentRead]:
    """List a card's comments, oldest first."""
    await get_visible_card(db, card_id, current_user.id, settings.public_visibility_enabled)
    result = await db.execute(
        select(Comment)
        .where(Comment.card_id == card_id)
        .order_by(Comment.created_at, Comment.id)
    )
    return [CommentRead.model_validate(c) for c in result.scalars()]


@router.post(
    "/cards/{card_id}/comments",
    response_model=CommentRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_comment(
    card_id: UUID,
    data: CommentCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> CommentRead:
    """Comment on a card. Requires editor authority over the card."""
    card, roles = await get_visible_card(
        db, card_id, current_user.id, settings.public_visibility_enabled
    )
    if not role_satisfies(card_role(card, current_user.id, roles), BoardRole.EDITOR):
        raise AuthorizationError("Editor role required to comment on this card")

    comment = Comment(card_id=card.id, user_id=current_user.id, body=data.body)
    db.add(comment)
    await db.commit()
    logger.info("User %s commented on card %s", current_user.id, card.id)
    return CommentRead.model_validate(comment)


@router.patch("/comments/{comment_id}", response_model=CommentRead)
async def update_comment(
    comment_id: UUID,
    data: CommentUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> CommentRead:
    comment = await _get_own_comment(db, comment_id, current_user.id)
    comment.body = data.body
    await db.commit()
    return CommentRead.model_validate(comment)


@router.delete("/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(comment_id: UUID, current_user: CurrentUser, db: DbSession) -> None:
    comment = await _get_own_comment(db, comment_id, current_user.id)
    await db.delete(comment)
