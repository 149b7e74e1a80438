"""Pydantic schemas for plugins and their components."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import Field

from app.models.plugin import HookType, PluginStatus
from app.schemas.common import BaseSchema

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class PluginCreate(BaseSchema):
    name: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=2, max_length=255, pattern=SLUG_PATTERN)
    version: str = Field(default="1.0.0", max_length=50)
    description: str | None = None
    author: str | None = Field(default=None, max_length=255)
    category: str | None = Field(default=None, max_length=100)
    is_public: bool = False
    manifest: dict[str, Any] = Field(default_factory=dict)


class PluginUpdate(BaseSchema):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    author: str | None = Field(default=None, max_length=255)
    category: str | None = Field(default=None, max_length=100)
    status: PluginStatus | None = None
    is_public: bool | None = None
    manifest: dict[str, Any] | None = None


class PluginDeprecateRequest(BaseSchema):
    reason: str | None = None


class PluginResponse(BaseSchema):
    id: UUID
    store_id: UUID
    name: str
    slug: str
    version: str
    description: str | None
    author: str | None
    category: str | None
    status: PluginStatus
    is_public: bool
    is_deprecated: bool
    deprecation_reason: str | None
    manifest: dict[str, Any]
    created_at: datetime
    updated_at: datetime


# === Components ===


class WidgetCreate(BaseSchema):
    widget_id: str = Field(..., min_length=1, max_length=255)
    widget_name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    component_code: str = Field(..., min_length=1)
    default_config: dict[str, Any] = Field(default_factory=dict)
    category: str = Field(default="functional", max_length=100)
    icon: str | None = Field(default=None, max_length=100)
    is_enabled: bool = True


class WidgetUpdate(BaseSchema):
    widget_name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    component_code: str | None = Field(default=None, min_length=1)
    default_config: dict[str, Any] | None = None
    category: str | None = Field(default=None, max_length=100)
    icon: str | None = Field(default=None, max_length=100)
    is_enabled: bool | None = None


class WidgetResponse(BaseSchema):
    id: UUID
    plugin_id: UUID
    widget_id: str
    widget_name: str
    description: str | None
    component_code: str
    default_config: dict[str, Any]
    category: str
    icon: str | None
    is_enabled: bool


class HookCreate(BaseSchema):
    hook_name: str = Field(..., min_length=1, max_length=255)
    hook_type: HookType = HookType.FILTER
    handler_code: str = Field(..., min_length=1)
    priority: int = 10
    is_enabled: bool = True


class HookUpdate(BaseSchema):
    hook_name: str | None = Field(default=None, min_length=1, max_length=255)
    hook_type: HookType | None = None
    handler_code: str | None = Field(default=None, min_length=1)
    priority: int | None = None
    is_enabled: bool | None = None


class HookResponse(BaseSchema):
    id: UUID
    plugin_id: UUID
    hook_name: str
    hook_type: HookType
    handler_code: str
    priority: int
    is_enabled: bool


class EventListenerCreate(BaseSchema):
    event_name: str = Field(..., min_length=1, max_length=255)
    listener_code: str = Field(..., min_length=1)
    priority: int = 10
    is_enabled: bool = True


class EventListenerUpdate(BaseSchema):
    event_name: str | None = Field(default=None, min_length=1, max_length=255)
    listener_code: str | None = Field(default=None, min_length=1)
    priority: int | None = None
    is_enabled: bool | None = None


class EventListenerResponse(BaseSchema):
    id: UUID
    plugin_id: UUID
    event_name: str
    listener_code: str
    priority: int
    is_enabled: bool


class StorefrontWidget(BaseSchema):
    """Widget code delivered to the storefront as data."""

    plugin_slug: str
    plugin_name: str
    widget_id: str
    widget_name: str
    component_code: str
    default_config: dict[str, Any]
    category: str
    icon: str | None
