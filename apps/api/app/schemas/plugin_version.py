"""Pydantic schemas for plugin version control."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import Field

from app.models.plugin_version import ChangeType, ComponentType, VersionType
from app.schemas.common import BaseSchema


class CommitRequest(BaseSchema):
    commit_message: str | None = Field(default=None, max_length=2000)
    version_number: str | None = Field(default=None, pattern=r"^\d+\.\d+\.\d+$")
    publish: bool = False


class TagResponse(BaseSchema):
    id: UUID
    version_id: UUID
    tag_name: str
    tag_type: str
    description: str | None
    created_by: str | None
    created_at: datetime


class VersionResponse(BaseSchema):
    id: UUID
    plugin_id: UUID
    version_number: str
    version_type: VersionType
    parent_version_id: UUID | None
    commit_message: str | None
    created_by: str | None
    is_current: bool
    is_published: bool
    snapshot_distance: int
    files_changed: int
    lines_added: int
    lines_deleted: int
    created_at: datetime


class VersionWithTags(VersionResponse):
    tags: list[str] = Field(default_factory=list)


class PatchResponse(BaseSchema):
    component_type: ComponentType
    component_key: str | None
    change_type: ChangeType
    patch_operations: list[dict[str, Any]]
    reverse_patch: list[dict[str, Any]]


class VersionDetailResponse(VersionWithTags):
    patches: list[PatchResponse]


class VersionStateResponse(BaseSchema):
    version: VersionResponse
    state: dict[str, Any]


class ComponentDiff(BaseSchema):
    component_type: ComponentType
    component_key: str | None
    change_type: ChangeType
    lines_added: int
    lines_deleted: int
    operations: list[dict[str, Any]]


class CompareResponse(BaseSchema):
    from_version: str
    to_version: str
    added: int
    modified: int
    deleted: int
    files_changed: int
    lines_added: int
    lines_deleted: int
    changes: list[ComponentDiff]


class TagCreate(BaseSchema):
    version_id: UUID
    tag_name: str = Field(..., min_length=1, max_length=100)
    tag_type: str = Field(default="custom", max_length=50)
    description: str | None = None
