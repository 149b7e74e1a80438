"""Tests for plugin version control.

Covers:
- State diffing and semver bumping
- Commit, reconstruct, compare and restore through the service
- Snapshot cadence
- Routes under /api/v1/stores/{store_id}/plugins/{plugin_id}/versions
"""

from typing import Any, Callable

import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.plugin import PluginRegistry, PluginWidget
from app.models.plugin_version import ChangeType, ComponentType, VersionType
from app.models.store import Store
from app.services.plugin_service import PluginService
from app.services.plugin_version_service import (
    NoChangesError,
    PluginVersionService,
    TagExistsError,
    bump_patch,
    diff_states,
    empty_state,
)
from tests.conftest import TEST_USER_ID

V1_CODE = "function Banner() {\n  return 'v1';\n}"
V2_CODE = "function Banner() {\n  return 'v2';\n}"


def _url(store: Store, plugin: PluginRegistry, suffix: str = "") -> str:
    return f"/api/v1/stores/{store.id}/plugins/{plugin.id}/versions{suffix}"


@pytest.fixture
def plugin_with_widget(
    db_session: AsyncSession, store: Store, plugin_factory: Callable[..., Any]
) -> Callable[..., Any]:
    async def _create() -> tuple[PluginRegistry, PluginWidget]:
        plugin = await plugin_factory(store_id=store.id, name="Banner")
        widget = await PluginService(db_session).add_component(
            PluginWidget,
            plugin.id,
            {"widget_id": "banner", "widget_name": "Banner", "component_code": V1_CODE},
        )
        return plugin, widget

    return _create


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


class TestDiffStates:
    def test_no_changes(self) -> None:
        assert diff_states(empty_state(), empty_state()).changes == []

    def test_added_widget(self) -> None:
        new = empty_state()
        new["widgets"]["banner"] = {"component_code": V1_CODE}

        diff = diff_states(empty_state(), new)

        assert len(diff.changes) == 1
        change = diff.changes[0]
        assert change.component_type == ComponentType.WIDGET
        assert change.component_key == "banner"
        assert change.change_type == ChangeType.ADDED
        assert change.lines_added > 0
        assert change.lines_deleted == 0

    def test_modified_and_deleted(self) -> None:
        old = empty_state()
        old["widgets"] = {"a": {"component_code": V1_CODE}, "b": {"component_code": "x"}}
        new = empty_state()
        new["widgets"] = {"a": {"component_code": V2_CODE}}

        diff = diff_states(old, new)

        types = {c.component_key: c.change_type for c in diff.changes}
        assert types == {"a": ChangeType.MODIFIED, "b": ChangeType.DELETED}
        assert diff.summary()["files_changed"] == 2

    def test_registry_and_manifest(self) -> None:
        old = empty_state()
        old["registry"] = {"name": "Old"}
        new = empty_state()
        new["registry"] = {"name": "New"}
        new["manifest"] = {"entry": "index.js"}

        diff = diff_states(old, new)

        assert {c.component_type for c in diff.changes} == {
            ComponentType.METADATA,
            ComponentType.MANIFEST,
        }


class TestBumpPatch:
    def test_increments_patch(self) -> None:
        assert bump_patch("1.2.9") == "1.2.10"

    def test_invalid_resets(self) -> None:
        assert bump_patch("beta") == "1.0.0"


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class TestCommit:
    async def test_first_commit_is_snapshot(
        self, db_session: AsyncSession, plugin_with_widget: Callable[..., Any]
    ) -> None:
        plugin, _ = await plugin_with_widget()

        version = await PluginVersionService(db_session).commit(plugin, "Initial", TEST_USER_ID)

        assert version.version_number == "1.0.0"
        assert version.version_type == VersionType.SNAPSHOT
        assert version.is_current is True
        assert version.parent_version_id is None
        assert version.snapshot_distance == 0
        assert version.created_by == TEST_USER_ID

    async def test_second_commit_is_patch(
        self, db_session: AsyncSession, plugin_with_widget: Callable[..., Any]
    ) -> None:
        plugin, widget = await plugin_with_widget()
        service = PluginVersionService(db_session)
        first = await service.commit(plugin, "Initial", TEST_USER_ID)

        await PluginService(db_session).update_component(widget, {"component_code": V2_CODE})
        second = await service.commit(plugin, "Say v2", TEST_USER_ID)

        assert second.version_number == "1.0.1"
        assert second.version_type == VersionType.PATCH
        assert second.parent_version_id == first.id
        assert second.snapshot_distance == 1
        assert second.files_changed == 1
        assert second.lines_added == 1
        assert second.lines_deleted == 1
        assert plugin.version == "1.0.1"

        await db_session.refresh(first)
        assert first.is_current is False

    async def test_no_changes_rejected(
        self, db_session: AsyncSession, plugin_with_widget: Callable[..., Any]
    ) -> None:
        plugin, _ = await plugin_with_widget()
        service = PluginVersionService(db_session)
        await service.commit(plugin, "Initial", TEST_USER_ID)

        with pytest.raises(NoChangesError):
            await service.commit(plugin, "Again", TEST_USER_ID)

    async def test_explicit_version_number(
        self, db_session: AsyncSession, plugin_with_widget: Callable[..., Any]
    ) -> None:
        plugin, _ = await plugin_with_widget()

        version = await PluginVersionService(db_session).commit(
            plugin, "Release", TEST_USER_ID, version_number="2.0.0", publish=True
        )

        assert version.version_number == "2.0.0"
        assert version.is_published is True

    async def test_snapshot_every_interval(
        self,
        db_session: AsyncSession,
        plugin_with_widget: Callable[..., Any],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        monkeypatch.setattr(settings, "plugin_snapshot_interval", 2)
        plugin, widget = await plugin_with_widget()
        service = PluginVersionService(db_session)
        components = PluginService(db_session)

        types = [(await service.commit(plugin, "v0", TEST_USER_ID)).version_type]
        for n in range(1, 4):
            await components.update_component(widget, {"component_code": f"return {n};"})
            types.append((await service.commit(plugin, f"v{n}", TEST_USER_ID)).version_type)

        assert types == [
            VersionType.SNAPSHOT,
            VersionType.PATCH,
            VersionType.SNAPSHOT,
            VersionType.PATCH,
        ]


class TestReconstructAndRestore:
    async def test_reconstruct_each_version(
        self, db_session: AsyncSession, plugin_with_widget: Callable[..., Any]
    ) -> None:
        plugin, widget = await plugin_with_widget()
        service = PluginVersionService(db_session)
        first = await service.commit(plugin, "Initial", TEST_USER_ID)
        await PluginService(db_session).update_component(widget, {"component_code": V2_CODE})
        second = await service.commit(plugin, "Say v2", TEST_USER_ID)

        assert (await service.reconstruct(first))["widgets"]["banner"]["component_code"] == V1_CODE
        assert (await service.reconstruct(second))["widgets"]["banner"]["component_code"] == V2_CODE

    async def test_compare(
        self, db_session: AsyncSession, plugin_with_widget: Callable[..., Any]
    ) -> None:
        plugin, widget = await plugin_with_widget()
        service = PluginVersionService(db_session)
        first = await service.commit(plugin, "Initial", TEST_USER_ID)
        await PluginService(db_session).update_component(widget, {"component_code": V2_CODE})
        second = await service.commit(plugin, "Say v2", TEST_USER_ID)

        diff = await service.compare(first, second)

        assert diff.summary()["modified"] == 1
        assert diff.changes[0].component_key == "banner"

    async def test_restore_creates_new_version(
        self, db_session: AsyncSession, plugin_with_widget: Callable[..., Any]
    ) -> None:
        plugin, widget = await plugin_with_widget()
        service = PluginVersionService(db_session)
        components = PluginService(db_session)
        first = await service.commit(plugin, "Initial", TEST_USER_ID)
        await components.update_component(widget, {"component_code": V2_CODE})
        await service.commit(plugin, "Say v2", TEST_USER_ID)

        restored = await service.restore(plugin, first, TEST_USER_ID)

        assert restored.version_number == "1.0.2"
        assert restored.commit_message == "Restore to 1.0.0"
        widgets = await components.list_components(PluginWidget, plugin.id)
        assert [w.component_code for w in widgets] == [V1_CODE]

    async def test_tags_unique_per_plugin(
        self, db_session: AsyncSession, plugin_with_widget: Callable[..., Any]
    ) -> None:
        plugin, _ = await plugin_with_widget()
        service = PluginVersionService(db_session)
        version = await service.commit(plugin, "Initial", TEST_USER_ID)

        await service.tag(version, "stable")
        with pytest.raises(TagExistsError):
            await service.tag(version, "stable")

        assert await service.untag(plugin.id, "stable") is True
        assert await service.untag(plugin.id, "stable") is False


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


class TestVersionRoutes:
    async def test_commit_history_and_detail(
        self,
        client: AsyncClient,
        store: Store,
        plugin_with_widget: Callable[..., Any],
    ) -> None:
        plugin, widget = await plugin_with_widget()

        response = await client.post(_url(store, plugin), json={"commit_message": "Initial"})
        assert response.status_code == 201
        first = response.json()
        assert first["version_type"] == "snapshot"

        response = await client.post(_url(store, plugin), json={"commit_message": "Nothing"})
        assert response.status_code == 409

        response = await client.post(
            _url(store, plugin, "/tags"), json={"version_id": first["id"], "tag_name": "stable"}
        )
        assert response.status_code == 201

        response = await client.get(_url(store, plugin))
        items = response.json()["items"]
        assert len(items) == 1
        assert items[0]["tags"] == ["stable"]

        response = await client.get(_url(store, plugin, f"/{first['id']}"))
        detail = response.json()
        assert detail["tags"] == ["stable"]
        assert {p["component_type"] for p in detail["patches"]} >= {"widget", "metadata"}

    async def test_state_and_compare(
        self,
        client: AsyncClient,
        store: Store,
        plugin_with_widget: Callable[..., Any],
    ) -> None:
        plugin, widget = await plugin_with_widget()
        first = (await client.post(_url(store, plugin), json={})).json()
        await client.patch(
            f"/api/v1/stores/{store.id}/plugins/{plugin.id}/widgets/{widget.id}",
            json={"component_code": V2_CODE},
        )
        second = (await client.post(_url(store, plugin), json={})).json()

        response = await client.get(_url(store, plugin, f"/{first['id']}/state"))
        assert response.status_code == 200
        assert response.json()["state"]["widgets"]["banner"]["component_code"] == V1_CODE

        response = await client.get(
            _url(store, plugin, "/compare"), params={"from": first["id"], "to": second["id"]}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["from_version"] == "1.0.0"
        assert data["to_version"] == "1.0.1"
        assert data["modified"] == 1
        assert data["lines_added"] == 1

    async def test_restore_route(
        self,
        client: AsyncClient,
        store: Store,
        plugin_with_widget: Callable[..., Any],
    ) -> None:
        plugin, widget = await plugin_with_widget()
        first = (await client.post(_url(store, plugin), json={})).json()

        response = await client.post(_url(store, plugin, f"/{first['id']}/restore"))
        assert response.status_code == 409

        await client.patch(
            f"/api/v1/stores/{store.id}/plugins/{plugin.id}/widgets/{widget.id}",
            json={"component_code": V2_CODE},
        )
        await client.post(_url(store, plugin), json={})

        response = await client.post(_url(store, plugin, f"/{first['id']}/restore"))
        assert response.status_code == 201
        assert response.json()["version_number"] == "1.0.2"

    async def test_other_store_plugin(
        self,
        client: AsyncClient,
        other_store: Store,
        plugin_factory: Callable[..., Any],
    ) -> None:
        plugin = await plugin_factory(store_id=other_store.id, is_public=True)

        response = await client.get(_url(other_store, plugin))

        assert response.status_code == 404
