"""Tag schemas. A tag belongs to one board or to one user (a global tag)."""

from uuid import UUID

from taskboard.schemas.base import BaseSchema, CreatedMixin, HexColor, IDMixin, TagName


class TagCreate(BaseSchema):
    name: TagName
    color: HexColor | None = None


class TagUpdate(BaseSchema):
    name: TagName | None = None
    color: HexColor | None = None


class TagRead(BaseSchema, IDMixin, CreatedMixin):
    name: str
    color: str
    board_id: UUID | None
    owner_id: UUID | None
