"""Tag routes: board tags, the caller's global tags, and card tagging."""

from uuid import UUID

from fastapi import APIRouter, status

from taskboard.api.deps import CurrentUser, DbSession, apply_action
from taskboard.db.models import Tag
from taskboard.errors import NotFoundError
from taskboard.schemas.tags import TagCreate, TagRead, TagUpdate
from taskboard.services import queries
from taskboard.services.authorization import BoardRole, require_board_role

router = APIRouter(tags=["tags"])


@router.get("/boards/{board_id}/tags", response_model=list[TagRead])
async def list_board_tags(board_id: UUID, current_user: CurrentUser, db: DbSession) -> list[TagRead]:
    await require_board_role(db, board_id, current_user.id, BoardRole.READER)
    return [TagRead.model_validate(t) for t in await queries.list_board_tags(db, board_id)]


@router.post("/boards/{board_id}/tags", response_model=TagRead, status_code=status.HTTP_201_CREATED)
async def create_board_tag(
    board_id: UUID,
    data: TagCreate,
    current_user: CurrentUser,
    db: DbSession,
) -> TagRead:
    result = await apply_action(
        db,
        current_user,
        {
            "action": "create_tag",
            "board": str(board_id),
            "scope": "board",
            **data.model_dump(exclude_none=True),
        },
    )
    return TagRead.model_validate(result.entity)


@router.get("/tags", response_model=list[TagRead])
async def list_my_tags(current_user: CurrentUser, db: DbSession) -> list[TagRead]:
    """List the caller's global tags (usable on any card they can edit)."""
    return [TagRead.model_validate(t) for t in await queries.list_user_tags(db, current_user.id)]


@router.post("/tags", response_model=TagRead, status_code=status.HTTP_201_CREATED)
async def create_my_tag(data: TagCreate, current_user: CurrentUser, db: DbSession) -> TagRead:
    result = await apply_action(
        db,
        current_user,
        {"action": "create_tag", "scope": "user", **data.model_dump(exclude_none=True)},
    )
    return TagRead.model_validate(result.entity)


@router.patch("/tags/{tag_id}", response_model=TagRead)
async def update_tag(
    tag_id: UUID,
    data: TagUpdate,
    current_user: CurrentUser,
    db: DbSession,
) -> TagRead:
    result = await apply_action(
        db,
        current_user,
        {"action": "update_tag", "tag": str(tag_id), **data.model_dump(exclude_none=True)},
    )
    return TagRead.model_validate(result.entity)


@router.delete("/tags/{tag_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tag(tag_id: UUID, current_user: CurrentUser, db: DbSession) -> None:
    """Delete a tag and detach it from every card."""
    await apply_action(db, current_user, {"action": "delete_tag", "tag": str(tag_id)})


async def _tag_board(db, tag_id: UUID) -> str | None:
    # board tags are resolved against their own board
    tag = await db.get(Tag, tag_id)
    if tag is None:
        raise NotFoundError("Tag not found")
    return str(tag.board_id) if tag.board_id else None


@router.post("/cards/{card_id}/tags/{tag_id}", status_code=status.HTTP_204_NO_CONTENT)
async def add_tag_to_card(card_id: UUID, tag_id: UUID, current_user: CurrentUser, db: DbSession) -> None:
    """Tag a card. A board tag only goes on cards placed on its board."""
    await apply_action(
        db,
        current_user,
        {
            "action": "add_tag_to_card",
            "board": await _tag_board(db, tag_id),
            "card": str(card_id),
            "tag": str(tag_id),
        },
    )


@router.delete("/cards/{card_id}/tags/{tag_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_tag_from_card(card_id: UUID, tag_id: UUID, current_user: CurrentUser, db: DbSession) -> None:
    await apply_action(
        db,
        current_user,
        {
            "action": "remove_tag_from_card",
            "board": await _tag_board(db, tag_id),
            "card": str(card_id),
            "tag": str(tag_id),
        },
    )
