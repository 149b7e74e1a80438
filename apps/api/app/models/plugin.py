"""Plugin registry and plugin component models.

Component code (widgets, hooks, event listeners) is stored as text and
served to the storefront as data; the API never evaluates it.
"""

import enum
import uuid
from typing import Any

from sqlalchemy import Boolean, Enum, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, JSONBType


class PluginStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class HookType(str, enum.Enum):
    """Filters return a transformed value; actions only run side effects."""

    FILTER = "filter"
    ACTION = "action"


class PluginRegistry(Base):
    """A plugin authored by a store.

    Public plugins are visible to every store owner; deprecated plugins stay
    readable but are hidden from discovery listings.
    """

    __tablename__ = "plugin_registry"

    store_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("stores.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    version: Mapped[str] = mapped_column(String(50), default="1.0.0", nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    author: Mapped[str | None] = mapped_column(String(255), nullable=True)
    category: Mapped[str | None] = mapped_column(String(100), nullable=True)

    status: Mapped[PluginStatus] = mapped_column(
        Enum(
            PluginStatus,
            name="plugin_status",
            values_callable=lambda x: [e.value for e in x],
        ),
        default=PluginStatus.ACTIVE,
        nullable=False,
    )
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_deprecated: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    deprecation_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    manifest: Mapped[dict[str, Any]] = mapped_column(JSONBType, default=dict, nullable=False)

    def __repr__(self) -> str:
        return f"<PluginRegistry {self.slug}@{self.version}>"


class PluginWidget(Base):
    """Storefront widget contributed by a plugin."""

    __tablename__ = "plugin_widgets"

    plugin_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("plugin_registry.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    widget_id: Mapped[str] = mapped_column(String(255), nullable=False)
    widget_name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    component_code: Mapped[str] = mapped_column(Text, nullable=False)
    default_config: Mapped[dict[str, Any]] = mapped_column(
        JSONBType, default=dict, nullable=False
    )
    category: Mapped[str] = mapped_column(String(100), default="functional", nullable=False)
    icon: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    __table_args__ = (
        UniqueConstraint("plugin_id", "widget_id", name="uq_plugin_widgets_plugin_widget"),
    )


class PluginHook(Base):
    """Named extension point handler (filter or action)."""

    __tablename__ = "plugin_hooks"

    plugin_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("plugin_registry.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    hook_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    hook_type: Mapped[HookType] = mapped_column(
        Enum(
            HookType,
            name="plugin_hook_type",
            values_callable=lambda x: [e.value for e in x],
        ),
        default=HookType.FILTER,
        nullable=False,
    )
    handler_code: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[int] = mapped_column(Integer, default=10, nullable=False)
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class PluginEventListener(Base):
    """Handler subscribed to a storefront or admin event."""

    __tablename__ = "plugin_event_listeners"

    plugin_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("plugin_registry.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    event_name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    listener_code: Mapped[str] = mapped_column(Text, nullable=False)
    priority: Mapped[int] = mapped_column(Integer, default=10, nullable=False)
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
