"""Git-like version control for plugins.

A plugin's state (registry fields, manifest, widgets, hooks and event
listeners) is committed as a chain of versions. Each version records RFC
6902 patches against its parent; every ``plugin_snapshot_interval`` commits
a full snapshot is stored instead so reconstruction replays a short chain.
"""

import copy
import difflib
import json
import logging
import re
import uuid
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

import jsonpatch
from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.plugin import (
    HookType,
    PluginEventListener,
    PluginHook,
    PluginRegistry,
    PluginStatus,
    PluginWidget,
)
from app.models.plugin_version import (
    ChangeType,
    ComponentType,
    PluginVersion,
    PluginVersionPatch,
    PluginVersionSnapshot,
    PluginVersionTag,
    VersionType,
)

logger = logging.getLogger(__name__)

REGISTRY_FIELDS = ("name", "description", "author", "category", "status", "is_public")
WIDGET_FIELDS = (
    "widget_name",
    "description",
    "component_code",
    "default_config",
    "category",
    "icon",
    "is_enabled",
)
HOOK_FIELDS = ("hook_name", "hook_type", "handler_code", "priority", "is_enabled")
EVENT_FIELDS = ("event_name", "listener_code", "priority", "is_enabled")

# state section -> component type
SECTIONS: dict[str, ComponentType] = {
    "registry": ComponentType.METADATA,
    "manifest": ComponentType.MANIFEST,
    "widgets": ComponentType.WIDGET,
    "hooks": ComponentType.HOOK,
    "events": ComponentType.EVENT,
}
KEYED_SECTIONS = ("widgets", "hooks", "events")
CODE_FIELDS = ("component_code", "handler_code", "listener_code")

_SEMVER_RE = re.compile(r"^(\d+)\.(\d+)\.(\d+)$")


class VersionControlError(ValueError):
    """Version history operation cannot be performed."""


class NoChangesError(VersionControlError):
    """Nothing changed since the current version."""


class TagExistsError(VersionControlError):
    """Tag name already used by this plugin."""


@dataclass
class ComponentChange:
    component_type: ComponentType
    component_key: str | None
    change_type: ChangeType
    forward: list[dict[str, Any]]
    reverse: list[dict[str, Any]]
    lines_added: int = 0
    lines_deleted: int = 0


@dataclass
class StateDiff:
    changes: list[ComponentChange] = field(default_factory=list)

    @property
    def lines_added(self) -> int:
        return sum(c.lines_added for c in self.changes)

    @property
    def lines_deleted(self) -> int:
        return sum(c.lines_deleted for c in self.changes)

    def summary(self) -> dict[str, Any]:
        counts = {t.value: 0 for t in ChangeType}
        for change in self.changes:
            counts[change.change_type.value] += 1
        return {
            **counts,
            "files_changed": len(self.changes),
            "lines_added": self.lines_added,
            "lines_deleted": self.lines_deleted,
        }


def _plain(value: Any) -> Any:
    return value.value if hasattr(value, "value") else value


def _row_state(row: Any, fields: tuple[str, ...]) -> dict[str, Any]:
    return {name: copy.deepcopy(_plain(getattr(row, name))) for name in fields}


def empty_state() -> dict[str, Any]:
    return {"registry": {}, "manifest": {}, "widgets": {}, "hooks": {}, "events": {}}


def _component_text(item: Any) -> list[str]:
    """Line-oriented rendering used for added/deleted line counts."""
    if not isinstance(item, dict):
        return json.dumps(item, indent=2, sort_keys=True, default=str).splitlines()
    meta = {k: v for k, v in item.items() if k not in CODE_FIELDS}
    lines = json.dumps(meta, indent=2, sort_keys=True, default=str).splitlines()
    for name in CODE_FIELDS:
        if item.get(name):
            lines.extend(str(item[name]).splitlines())
    return lines


def line_stats(old: Any, new: Any) -> tuple[int, int]:
    old_lines = _component_text(old) if old is not None else []
    new_lines = _component_text(new) if new is not None else []
    added = deleted = 0
    for line in difflib.ndiff(old_lines, new_lines):
        if line.startswith("+ "):
            added += 1
        elif line.startswith("- "):
            deleted += 1
    return added, deleted


def _change(
    section: str, key: str | None, old_part: dict, new_part: dict, old: Any, new: Any
) -> ComponentChange:
    if old is None:
        change_type = ChangeType.ADDED
    elif new is None:
        change_type = ChangeType.DELETED
    else:
        change_type = ChangeType.MODIFIED
    added, deleted = line_stats(old, new)
    return ComponentChange(
        component_type=SECTIONS[section],
        component_key=key,
        change_type=change_type,
        forward=jsonpatch.make_patch(old_part, new_part).patch,
        reverse=jsonpatch.make_patch(new_part, old_part).patch,
        lines_added=added,
        lines_deleted=deleted,
    )


def diff_states(old: dict[str, Any], new: dict[str, Any]) -> StateDiff:
    """Per-component changes between two plugin states.

    Patch paths are rooted at the full state document so patches of one
    version can be applied in any order.
    """
    diff = StateDiff()

    for section in ("registry", "manifest"):
        before, after = old.get(section) or {}, new.get(section) or {}
        if before != after:
            diff.changes.append(
                _change(section, None, {section: before}, {section: after}, before or None, after)
            )

    for section in KEYED_SECTIONS:
        before, after = old.get(section) or {}, new.get(section) or {}
        for key in sorted(set(before) | set(after)):
            old_item, new_item = before.get(key), after.get(key)
            if old_item == new_item:
                continue
            old_part = {section: {key: old_item}} if old_item is not None else {section: {}}
            new_part = {section: {key: new_item}} if new_item is not None else {section: {}}
            diff.changes.append(_change(section, key, old_part, new_part, old_item, new_item))

    return diff


def bump_patch(version_number: str) -> str:
    match = _SEMVER_RE.match(version_number or "")
    if not match:
        return "1.0.0"
    major, minor, patch = (int(p) for p in match.groups())
    return f"{major}.{minor}.{patch + 1}"


class PluginVersionService:
    """Commit, inspect, compare, tag and restore plugin versions."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # --- state -------------------------------------------------------------

    async def capture_state(self, plugin: PluginRegistry) -> dict[str, Any]:
        """Current live state of a plugin as a JSON document."""
        state = empty_state()
        state["registry"] = _row_state(plugin, REGISTRY_FIELDS)
        state["manifest"] = copy.deepcopy(plugin.manifest or {})

        widgets = await self.db.execute(select(PluginWidget).where(PluginWidget.plugin_id == plugin.id))
        for widget in widgets.scalars().all():
            state["widgets"][widget.widget_id] = _row_state(widget, WIDGET_FIELDS)

        hooks = await self.db.execute(select(PluginHook).where(PluginHook.plugin_id == plugin.id))
        for hook in hooks.scalars().all():
            state["hooks"][str(hook.id)] = _row_state(hook, HOOK_FIELDS)

        events = await self.db.execute(
            select(PluginEventListener).where(PluginEventListener.plugin_id == plugin.id)
        )
        for listener in events.scalars().all():
            state["events"][str(listener.id)] = _row_state(listener, EVENT_FIELDS)

        return state

    async def get_version(self, plugin_id: UUID, version_id: UUID) -> PluginVersion | None:
        query = select(PluginVersion).where(
            PluginVersion.id == version_id,
            PluginVersion.plugin_id == plugin_id,
        )
        return (await self.db.execute(query)).scalar_one_or_none()

    async def get_current(self, plugin_id: UUID) -> PluginVersion | None:
        query = select(PluginVersion).where(
            PluginVersion.plugin_id == plugin_id,
            PluginVersion.is_current == True,  # noqa: E712
        )
        return (await self.db.execute(query)).scalar_one_or_none()

    async def reconstruct(self, version: PluginVersion) -> dict[str, Any]:
        """Plugin state at ``version``: nearest snapshot plus forward patches."""
        chain: list[PluginVersion] = []
        cursor: PluginVersion | None = version
        while cursor is not None and cursor.version_type != VersionType.SNAPSHOT:
            chain.append(cursor)
            parent_id = cursor.parent_version_id
            cursor = await self.db.get(PluginVersion, parent_id) if parent_id else None

        if cursor is None:
            raise VersionControlError(f"No snapshot found for version {version.version_number}")

        snapshot = (
            await self.db.execute(
                select(PluginVersionSnapshot).where(PluginVersionSnapshot.version_id == cursor.id)
            )
        ).scalar_one_or_none()
        if snapshot is None:
            raise VersionControlError(f"Snapshot data missing for version {cursor.version_number}")

        state = copy.deepcopy(snapshot.snapshot_data)
        for step in reversed(chain):
            patches = await self.db.execute(
                select(PluginVersionPatch).where(PluginVersionPatch.version_id == step.id)
            )
            for patch in patches.scalars().all():
                state = jsonpatch.apply_patch(state, patch.patch_operations)
        return state

    # --- commits -----------------------------------------------------------

    async def _unused_version_number(self, plugin_id: UUID, candidate: str) -> str:
        taken = set(
            (
                await self.db.execute(
                    select(PluginVersion.version_number).where(PluginVersion.plugin_id == plugin_id)
                )
            )
            .scalars()
            .all()
        )
        while candidate in taken:
            candidate = bump_patch(candidate)
        return candidate

    async def commit(
        self,
        plugin: PluginRegistry,
        message: str | None,
        user_id: str | None,
        version_number: str | None = None,
        publish: bool = False,
    ) -> PluginVersion:
        """Record the plugin's current state as a new version.

        Raises:
            NoChangesError: If the state matches the current version
        """
        state = await self.capture_state(plugin)
        current = await self.get_current(plugin.id)

        if current is None:
            diff = diff_states(empty_state(), state)
            number = version_number or (plugin.version if _SEMVER_RE.match(plugin.version or "") else "1.0.0")
            distance = 0
        else:
            diff = diff_states(await self.reconstruct(current), state)
            if not diff.changes:
                raise NoChangesError("No changes since the current version")
            number = version_number or bump_patch(current.version_number)
            distance = current.snapshot_distance + 1

        number = await self._unused_version_number(plugin.id, number)
        is_snapshot = current is None or distance >= settings.plugin_snapshot_interval

        # The partial unique index allows a single current version per plugin
        await self.db.execute(
            update(PluginVersion)
            .where(PluginVersion.plugin_id == plugin.id, PluginVersion.is_current == True)  # noqa: E712
            .values(is_current=False)
        )

        version = PluginVersion(
            plugin_id=plugin.id,
            version_number=number,
            version_type=VersionType.SNAPSHOT if is_snapshot else VersionType.PATCH,
            parent_version_id=current.id if current is not None else None,
            commit_message=message,
            created_by=user_id,
            is_current=True,
            is_published=publish,
            snapshot_distance=0 if is_snapshot else distance,
            files_changed=len(diff.changes),
            lines_added=diff.lines_added,
            lines_deleted=diff.lines_deleted,
        )
        self.db.add(version)
        await self.db.flush()

        for change in diff.changes:
            self.db.add(
                PluginVersionPatch(
                    version_id=version.id,
                    component_type=change.component_type,
                    component_key=change.component_key,
                    change_type=change.change_type,
                    patch_operations=change.forward,
                    reverse_patch=change.reverse,
                )
            )
        if is_snapshot:
            self.db.add(PluginVersionSnapshot(version_id=version.id, snapshot_data=state))

        plugin.version = number
        await self.db.commit()
        await self.db.refresh(version)
        logger.info(
            "Committed plugin %s v%s (%s, %d components changed)",
            plugin.slug,
            number,
            version.version_type.value,
            len(diff.changes),
        )
        return version

    # --- history -----------------------------------------------------------

    async def history(
        self, plugin_id: UUID, limit: int = 50, offset: int = 0
    ) -> list[tuple[PluginVersion, list[PluginVersionTag]]]:
        """Versions newest first, each with its tags."""
        query = (
            select(PluginVersion)
            .where(PluginVersion.plugin_id == plugin_id)
            .order_by(PluginVersion.created_at.desc(), PluginVersion.version_number.desc())
            .offset(offset)
            .limit(limit)
        )
        versions = list((await self.db.execute(query)).scalars().all())
        tags = await self.list_tags(plugin_id)
        by_version: dict[UUID, list[PluginVersionTag]] = {}
        for tag in tags:
            by_version.setdefault(tag.version_id, []).append(tag)
        return [(v, by_version.get(v.id, [])) for v in versions]

    async def patches_for(self, version: PluginVersion) -> list[PluginVersionPatch]:
        query = select(PluginVersionPatch).where(PluginVersionPatch.version_id == version.id)
        return list((await self.db.execute(query)).scalars().all())

    async def compare(self, from_version: PluginVersion, to_version: PluginVersion) -> StateDiff:
        return diff_states(await self.reconstruct(from_version), await self.reconstruct(to_version))

    # --- tags --------------------------------------------------------------

    async def list_tags(self, plugin_id: UUID) -> list[PluginVersionTag]:
        query = (
            select(PluginVersionTag)
            .where(PluginVersionTag.plugin_id == plugin_id)
            .order_by(PluginVersionTag.tag_name)
        )
        return list((await self.db.execute(query)).scalars().all())

    async def tag(
        self,
        version: PluginVersion,
        tag_name: str,
        tag_type: str = "custom",
        description: str | None = None,
        user_id: str | None = None,
    ) -> PluginVersionTag:
        existing = await self.db.execute(
            select(PluginVersionTag.id).where(
                PluginVersionTag.plugin_id == version.plugin_id,
                PluginVersionTag.tag_name == tag_name,
            )
        )
        if existing.first() is not None:
            raise TagExistsError(f"Tag '{tag_name}' already exists")

        tag = PluginVersionTag(
            plugin_id=version.plugin_id,
            version_id=version.id,
            tag_name=tag_name,
            tag_type=tag_type,
            description=description,
            created_by=user_id,
        )
        self.db.add(tag)
        await self.db.commit()
        await self.db.refresh(tag)
        return tag

    async def untag(self, plugin_id: UUID, tag_name: str) -> bool:
        result = await self.db.execute(
            delete(PluginVersionTag).where(
                PluginVersionTag.plugin_id == plugin_id,
                PluginVersionTag.tag_name == tag_name,
            )
        )
        await self.db.commit()
        return result.rowcount > 0

    # --- restore -----------------------------------------------------------

    async def _apply_state(self, plugin: PluginRegistry, state: dict[str, Any]) -> None:
        registry = state.get("registry") or {}
        for name in REGISTRY_FIELDS:
            if name not in registry:
                continue
            value = registry[name]
            if name == "status":
                value = PluginStatus(value)
            setattr(plugin, name, value)
        plugin.manifest = copy.deepcopy(state.get("manifest") or {})

        for model in (PluginWidget, PluginHook, PluginEventListener):
            await self.db.execute(delete(model).where(model.plugin_id == plugin.id))
        await self.db.flush()

        for widget_id, data in (state.get("widgets") or {}).items():
            self.db.add(PluginWidget(plugin_id=plugin.id, widget_id=widget_id, **data))
        for key, data in (state.get("hooks") or {}).items():
            self.db.add(
                PluginHook(
                    id=uuid.UUID(key),
                    plugin_id=plugin.id,
                    **{**data, "hook_type": HookType(data["hook_type"])},
                )
            )
        for key, data in (state.get("events") or {}).items():
            self.db.add(PluginEventListener(id=uuid.UUID(key), plugin_id=plugin.id, **data))
        await self.db.flush()

    async def restore(
        self, plugin: PluginRegistry, version: PluginVersion, user_id: str | None
    ) -> PluginVersion:
        """Make ``version`` the live state and commit it as a new version."""
        state = await self.reconstruct(version)
        await self._apply_state(plugin, state)
        logger.info("Restoring plugin %s to v%s", plugin.slug, version.version_number)
        return await self.commit(plugin, f"Restore to {version.version_number}", user_id)
