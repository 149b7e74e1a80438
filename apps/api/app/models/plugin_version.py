"""Plugin version control: history, patches, snapshots and tags."""

import enum
import uuid
from typing import Any

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, JSONBType


class VersionType(str, enum.Enum):
    SNAPSHOT = "snapshot"
    PATCH = "patch"


class ComponentType(str, enum.Enum):
    """Parts of a plugin tracked separately in patches."""

    HOOK = "hook"
    EVENT = "event"
    WIDGET = "widget"
    MANIFEST = "manifest"
    METADATA = "metadata"


class ChangeType(str, enum.Enum):
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"


class PluginVersion(Base):
    """One commit in a plugin's history.

    Snapshot versions store the full plugin state; patch versions store JSON
    patches against their parent. ``snapshot_distance`` counts patches since
    the last snapshot so reconstruction never replays a long chain.
    """

    __tablename__ = "plugin_version_history"

    plugin_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("plugin_registry.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    version_number: Mapped[str] = mapped_column(String(50), nullable=False)
    version_type: Mapped[VersionType] = mapped_column(
        Enum(
            VersionType,
            name="plugin_version_type",
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    parent_version_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("plugin_version_history.id", ondelete="SET NULL"),
        nullable=True,
    )
    commit_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    is_current: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_published: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    snapshot_distance: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    files_changed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    lines_added: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    lines_deleted: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    __table_args__ = (
        UniqueConstraint("plugin_id", "version_number", name="uq_plugin_version_history_number"),
        CheckConstraint(
            "snapshot_distance >= 0 AND snapshot_distance <= 10", name="snapshot_distance_range"
        ),
        Index(
            "uq_plugin_version_history_one_current",
            "plugin_id",
            unique=True,
            postgresql_where=text("is_current"),
            sqlite_where=text("is_current"),
        ),
    )

    def __repr__(self) -> str:
        return f"<PluginVersion {self.version_number} ({self.version_type.value})>"


class PluginVersionPatch(Base):
    """RFC 6902 patch (and its inverse) for one component of a version."""

    __tablename__ = "plugin_version_patches"

    version_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("plugin_version_history.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    component_type: Mapped[ComponentType] = mapped_column(
        Enum(
            ComponentType,
            name="plugin_component_type",
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    component_key: Mapped[str | None] = mapped_column(String(255), nullable=True)
    change_type: Mapped[ChangeType] = mapped_column(
        Enum(
            ChangeType,
            name="plugin_change_type",
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    patch_operations: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONBType, default=list, nullable=False
    )
    reverse_patch: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONBType, default=list, nullable=False
    )


class PluginVersionSnapshot(Base):
    """Full plugin state captured at a snapshot version."""

    __tablename__ = "plugin_version_snapshots"

    version_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("plugin_version_history.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    snapshot_data: Mapped[dict[str, Any]] = mapped_column(
        JSONBType, default=dict, nullable=False
    )


class PluginVersionTag(Base):
    """Named pointer (``stable``, ``v1.0.0``) to a version."""

    __tablename__ = "plugin_version_tags"

    plugin_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("plugin_registry.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    version_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("plugin_version_history.id", ondelete="CASCADE"),
        nullable=False,
    )
    tag_name: Mapped[str] = mapped_column(String(100), nullable=False)
    tag_type: Mapped[str] = mapped_column(String(50), default="custom", nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(255), nullable=True)

    __table_args__ = (
        UniqueConstraint("plugin_id", "tag_name", name="uq_plugin_version_tags_plugin_tag"),
    )
