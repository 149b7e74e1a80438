"""Pydantic schemas for page builder layouts."""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import Field

from app.models.slot_configuration import PageType, SlotConfigurationStatus
from app.schemas.common import BaseSchema


class SlotConfigurationResponse(BaseSchema):
    id: UUID
    store_id: UUID
    user_id: str
    page_type: PageType
    configuration: dict[str, Any]
    status: SlotConfigurationStatus
    version_number: int
    published_at: datetime | None
    published_by: str | None
    acceptance_published_at: datetime | None
    parent_version_id: UUID | None
    has_unpublished_changes: bool
    metadata: dict[str, Any] = Field(validation_alias="extra_metadata")
    created_at: datetime
    updated_at: datetime


class DraftSaveRequest(BaseSchema):
    """Whole-configuration save. The last write wins."""

    configuration: dict[str, Any]


class SlotPatchRequest(BaseSchema):
    changes: dict[str, Any] = Field(..., min_length=1)


class SlotOperationRequest(BaseSchema):
    """One editor action applied to the draft."""

    op: Literal["create", "delete", "move", "text", "class", "update", "resize", "resize_height"]
    slot_id: str | None = None
    slot_type: str | None = None
    parent_id: str | None = None
    target_id: str | None = None
    position: Literal["inside", "before", "after"] | None = None
    content: str | None = None
    class_name: str | None = None
    styles: dict[str, Any] | None = None
    metadata: dict[str, Any] | None = None
    is_alignment_change: bool = False
    changes: dict[str, Any] | None = None
    col_span: int | None = None
    height: float | None = None


class SlotOperationResponse(BaseSchema):
    draft: SlotConfigurationResponse
    result: dict[str, Any]


class RevertRequest(BaseSchema):
    version_id: UUID


class UnpublishedStatusResponse(BaseSchema):
    """Page types whose draft differs from the live layout."""

    pages: dict[str, bool]
    has_unpublished_changes: bool


class PublishedLayoutResponse(BaseSchema):
    id: UUID
    page_type: PageType
    version_number: int
    configuration: dict[str, Any]
    published_at: datetime | None
