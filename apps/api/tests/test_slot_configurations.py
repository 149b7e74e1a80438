"""Tests for the page builder draft/publish lifecycle.

Covers:
- Draft creation, editor operations and whole-draft saves
- Publishing, acceptance and promotion
- History and revert
- The cached storefront read of the live layout
"""

import re
from typing import Any

import fakeredis.aioredis
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.slot_configuration import PageType
from app.models.store import Store
from app.services.slot_configuration_service import (
    SlotConfigurationService,
    published_cache_key,
)
from tests.conftest import TEST_USER_ID


def _url(store: Store, suffix: str = "") -> str:
    return f"/api/v1/stores/{store.id}/slot-configurations{suffix}"


def _published_url(page_type: str = "cart") -> str:
    return f"/api/v1/storefront/slot-configurations/{page_type}/published"


async def _add_text_slot(client: AsyncClient, store: Store, content: str = "Hello") -> dict[str, Any]:
    response = await client.post(
        _url(store, "/cart/draft/operations"),
        json={"op": "create", "slot_type": "text", "parent_id": "content_area", "content": content},
    )
    assert response.status_code == 200
    return response.json()


# ---------------------------------------------------------------------------
# Drafts
# ---------------------------------------------------------------------------


class TestDraft:
    async def test_get_creates_skeleton(self, client: AsyncClient, store: Store) -> None:
        """First read of a never-edited page seeds an empty layout."""
        response = await client.get(_url(store, "/cart/draft"))

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "draft"
        assert data["version_number"] == 1
        assert data["user_id"] == TEST_USER_ID
        assert data["parent_version_id"] is None
        assert set(data["configuration"]["slots"]) == {
            "main_layout",
            "header_container",
            "content_area",
            "sidebar_area",
        }

    async def test_get_is_idempotent(self, client: AsyncClient, store: Store) -> None:
        first = (await client.get(_url(store, "/cart/draft"))).json()
        second = (await client.get(_url(store, "/cart/draft"))).json()

        assert first["id"] == second["id"]

    async def test_unknown_page_type(self, client: AsyncClient, store: Store) -> None:
        response = await client.get(_url(store, "/nowhere/draft"))

        assert response.status_code == 422

    async def test_other_owner_forbidden(self, client: AsyncClient, other_store: Store) -> None:
        response = await client.get(_url(other_store, "/cart/draft"))

        assert response.status_code == 404

    async def test_save_replaces_configuration(self, client: AsyncClient, store: Store) -> None:
        draft = (await client.get(_url(store, "/cart/draft"))).json()
        configuration = draft["configuration"]
        configuration["page_name"] = "Basket"

        response = await client.put(
            _url(store, "/cart/draft"), json={"configuration": configuration}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["configuration"]["page_name"] == "Basket"
        # Never published, so the draft always differs from the live layout
        assert data["has_unpublished_changes"] is True

    async def test_save_rejects_invalid_slots(self, client: AsyncClient, store: Store) -> None:
        configuration = {"slots": {"a": {"id": "b", "type": "text"}}}

        response = await client.put(
            _url(store, "/cart/draft"), json={"configuration": configuration}
        )

        assert response.status_code == 400
        assert "invalid or missing id" in response.json()["detail"]

    async def test_delete_draft(self, client: AsyncClient, store: Store) -> None:
        await client.get(_url(store, "/cart/draft"))

        response = await client.delete(_url(store, "/cart/draft"))
        assert response.status_code == 204

        response = await client.delete(_url(store, "/cart/draft"))
        assert response.status_code == 404


# ---------------------------------------------------------------------------
# Editor operations
# ---------------------------------------------------------------------------


class TestOperations:
    async def test_create_returns_new_slot_id(self, client: AsyncClient, store: Store) -> None:
        data = await _add_text_slot(client, store, "Free shipping")

        slot_id = data["result"]["slot_id"]
        assert slot_id.startswith("new_text_")
        slot = data["draft"]["configuration"]["slots"][slot_id]
        assert slot["content"] == "Free shipping"
        assert slot["parentId"] == "content_area"
        assert data["draft"]["has_unpublished_changes"] is True

    async def test_missing_required_field(self, client: AsyncClient, store: Store) -> None:
        response = await client.post(
            _url(store, "/cart/draft/operations"), json={"op": "move", "slot_id": "x"}
        )

        assert response.status_code == 400
        assert "target_id" in response.json()["detail"]
        assert "position" in response.json()["detail"]

    async def test_protected_slot_cannot_be_deleted(
        self, client: AsyncClient, store: Store
    ) -> None:
        response = await client.post(
            _url(store, "/cart/draft/operations"), json={"op": "delete", "slot_id": "main_layout"}
        )

        assert response.status_code == 400

    async def test_text_and_delete(self, client: AsyncClient, store: Store) -> None:
        slot_id = (await _add_text_slot(client, store))["result"]["slot_id"]

        response = await client.post(
            _url(store, "/cart/draft/operations"),
            json={"op": "text", "slot_id": slot_id, "content": "Updated"},
        )
        assert response.status_code == 200
        assert response.json()["draft"]["configuration"]["slots"][slot_id]["content"] == "Updated"

        response = await client.post(
            _url(store, "/cart/draft/operations"), json={"op": "delete", "slot_id": slot_id}
        )
        assert response.status_code == 200
        assert slot_id not in response.json()["draft"]["configuration"]["slots"]

    async def test_patch_slot(self, client: AsyncClient, store: Store) -> None:
        slot_id = (await _add_text_slot(client, store))["result"]["slot_id"]

        response = await client.patch(
            _url(store, f"/cart/draft/slots/{slot_id}"),
            json={"changes": {"styles": {"color": "red"}}},
        )

        assert response.status_code == 200
        assert response.json()["configuration"]["slots"][slot_id]["styles"]["color"] == "red"

    async def test_patch_cannot_reparent_under_descendant(
        self, client: AsyncClient, store: Store
    ) -> None:
        response = await client.post(
            _url(store, "/cart/draft/operations"),
            json={"op": "create", "slot_type": "container", "parent_id": "content_area"},
        )
        box = response.json()["result"]["slot_id"]
        response = await client.post(
            _url(store, "/cart/draft/operations"),
            json={"op": "create", "slot_type": "text", "parent_id": box},
        )
        child = response.json()["result"]["slot_id"]

        response = await client.patch(
            _url(store, f"/cart/draft/slots/{box}"), json={"changes": {"parentId": child}}
        )

        assert response.status_code == 400
        draft = (await client.get(_url(store, "/cart/draft"))).json()
        assert draft["configuration"]["slots"][box]["parentId"] == "content_area"

    async def test_patch_requires_changes(self, client: AsyncClient, store: Store) -> None:
        response = await client.patch(
            _url(store, "/cart/draft/slots/content_area"), json={"changes": {}}
        )

        assert response.status_code == 422


# ---------------------------------------------------------------------------
# Publishing
# ---------------------------------------------------------------------------


class TestPublish:
    async def test_publish_freezes_draft(self, client: AsyncClient, store: Store) -> None:
        await _add_text_slot(client, store)

        response = await client.post(_url(store, "/cart/publish"))

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "published"
        assert data["version_number"] == 1
        assert data["published_by"] == TEST_USER_ID
        assert data["published_at"] is not None
        assert data["has_unpublished_changes"] is False

    async def test_publish_without_draft(self, client: AsyncClient, store: Store) -> None:
        response = await client.post(_url(store, "/cart/publish"))

        assert response.status_code == 409

    async def test_next_draft_starts_from_published(
        self, client: AsyncClient, store: Store
    ) -> None:
        slot_id = (await _add_text_slot(client, store))["result"]["slot_id"]
        published = (await client.post(_url(store, "/cart/publish"))).json()

        draft = (await client.get(_url(store, "/cart/draft"))).json()

        assert draft["version_number"] == 2
        assert draft["parent_version_id"] == published["id"]
        assert slot_id in draft["configuration"]["slots"]

    async def test_acceptance_then_promote(self, client: AsyncClient, store: Store) -> None:
        await _add_text_slot(client, store)

        response = await client.post(_url(store, "/cart/acceptance"))
        assert response.status_code == 200
        assert response.json()["status"] == "acceptance"
        assert response.json()["acceptance_published_at"] is not None

        # Acceptance does not change the live layout
        response = await client.get(_published_url(), headers={"x-store-id": str(store.id)})
        assert response.status_code == 404

        response = await client.post(_url(store, "/cart/acceptance/promote"))
        assert response.status_code == 200
        assert response.json()["status"] == "published"

        response = await client.get(_published_url(), headers={"x-store-id": str(store.id)})
        assert response.status_code == 200

    async def test_promote_after_intermediate_publish(
        self, client: AsyncClient, store: Store
    ) -> None:
        candidate_slot = (await _add_text_slot(client, store, "Candidate"))["result"]["slot_id"]
        candidate = (await client.post(_url(store, "/cart/acceptance"))).json()
        hotfix_slot = (await _add_text_slot(client, store, "Hotfix"))["result"]["slot_id"]
        hotfix = (await client.post(_url(store, "/cart/publish"))).json()
        assert hotfix["version_number"] == 2

        response = await client.post(_url(store, "/cart/acceptance/promote"))

        assert response.status_code == 200
        promoted = response.json()
        assert promoted["id"] == candidate["id"]
        assert promoted["version_number"] == 3
        assert promoted["parent_version_id"] == hotfix["id"]

        live = (
            await client.get(_published_url(), headers={"x-store-id": str(store.id)})
        ).json()
        assert live["id"] == candidate["id"]
        assert live["version_number"] == 3
        assert candidate_slot in live["configuration"]["slots"]
        assert hotfix_slot not in live["configuration"]["slots"]

    async def test_promote_without_acceptance(self, client: AsyncClient, store: Store) -> None:
        response = await client.post(_url(store, "/cart/acceptance/promote"))

        assert response.status_code == 409

    async def test_publish_all_only_changed_pages(
        self, client: AsyncClient, store: Store
    ) -> None:
        await _add_text_slot(client, store)
        await client.get(_url(store, "/product/draft"))

        response = await client.post(_url(store, "/publish-all"))

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["page_type"] == "cart"

    async def test_unpublished_status(self, client: AsyncClient, store: Store) -> None:
        await _add_text_slot(client, store)
        await client.post(_url(store, "/cart/publish"))
        await client.get(_url(store, "/cart/draft"))
        await client.get(_url(store, "/header/draft"))

        response = await client.get(_url(store, "/unpublished-status"))

        assert response.status_code == 200
        data = response.json()
        assert data["pages"] == {"cart": False, "header": True}
        assert data["has_unpublished_changes"] is True


# ---------------------------------------------------------------------------
# History & revert
# ---------------------------------------------------------------------------


class TestHistoryAndRevert:
    async def _publish_two(self, client: AsyncClient, store: Store) -> tuple[dict, dict]:
        await _add_text_slot(client, store, "First")
        v1 = (await client.post(_url(store, "/cart/publish"))).json()
        await _add_text_slot(client, store, "Second")
        v2 = (await client.post(_url(store, "/cart/publish"))).json()
        return v1, v2

    async def test_history_newest_first(self, client: AsyncClient, store: Store) -> None:
        await self._publish_two(client, store)
        await client.get(_url(store, "/cart/draft"))

        response = await client.get(_url(store, "/cart/history"))

        assert response.status_code == 200
        data = response.json()
        assert [v["version_number"] for v in data["items"]] == [2, 1]
        assert all(v["status"] != "draft" for v in data["items"])

    async def test_revert_republishes_target(self, client: AsyncClient, store: Store) -> None:
        v1, v2 = await self._publish_two(client, store)

        response = await client.post(_url(store, "/cart/revert"), json={"version_id": v1["id"]})

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "published"
        assert data["version_number"] == 3
        assert data["metadata"] == {"reverted_from": 1}
        assert data["parent_version_id"] == v1["id"]
        assert data["configuration"]["slots"] == v1["configuration"]["slots"]

        history = (await client.get(_url(store, "/cart/history"))).json()["items"]
        statuses = {v["version_number"]: v["status"] for v in history}
        assert statuses == {3: "published", 2: "reverted", 1: "published"}

    async def test_revert_unknown_version(self, client: AsyncClient, store: Store) -> None:
        response = await client.post(
            _url(store, "/cart/revert"),
            json={"version_id": "00000000-0000-0000-0000-000000000000"},
        )

        assert response.status_code == 404

    async def test_get_version(self, client: AsyncClient, store: Store) -> None:
        v1, _ = await self._publish_two(client, store)

        response = await client.get(_url(store, f"/cart/versions/{v1['id']}"))
        assert response.status_code == 200
        assert response.json()["version_number"] == 1

        response = await client.get(_url(store, f"/product/versions/{v1['id']}"))
        assert response.status_code == 404


# ---------------------------------------------------------------------------
# Storefront read & cache
# ---------------------------------------------------------------------------


class TestPublishedLayout:
    async def test_requires_store_header(self, unauthed_client: AsyncClient) -> None:
        response = await unauthed_client.get(_published_url())

        assert response.status_code == 400

    async def test_not_published(self, client: AsyncClient, store: Store) -> None:
        response = await client.get(_published_url(), headers={"x-store-id": str(store.id)})

        assert response.status_code == 404

    async def test_issues_session_id(self, client: AsyncClient, store: Store) -> None:
        await _add_text_slot(client, store)
        await client.post(_url(store, "/cart/publish"))

        response = await client.get(_published_url(), headers={"x-store-id": str(store.id)})

        assert re.fullmatch(r"session_\d+_[0-9a-f]{10}", response.headers["x-session-id"])

    async def test_echoes_session_id(self, client: AsyncClient, store: Store) -> None:
        await _add_text_slot(client, store)
        await client.post(_url(store, "/cart/publish"))

        response = await client.get(
            _published_url(),
            headers={"x-store-id": str(store.id), "X-Session-ID": "session_1_abcdef0123"},
        )

        assert response.headers["x-session-id"] == "session_1_abcdef0123"

    async def test_served_and_cached(
        self,
        client: AsyncClient,
        store: Store,
        fake_redis: fakeredis.aioredis.FakeRedis,
    ) -> None:
        await _add_text_slot(client, store)
        await client.post(_url(store, "/cart/publish"))

        response = await client.get(_published_url(), headers={"x-store-id": str(store.id)})

        assert response.status_code == 200
        assert response.json()["version_number"] == 1
        assert await fake_redis.get(published_cache_key(store.id, PageType.CART)) is not None

    async def test_publish_invalidates_cache(
        self,
        client: AsyncClient,
        store: Store,
        fake_redis: fakeredis.aioredis.FakeRedis,
    ) -> None:
        headers = {"x-store-id": str(store.id)}
        await _add_text_slot(client, store)
        await client.post(_url(store, "/cart/publish"))
        await client.get(_published_url(), headers=headers)

        await _add_text_slot(client, store, "Second")
        await client.post(_url(store, "/cart/publish"))

        assert await fake_redis.get(published_cache_key(store.id, PageType.CART)) is None
        response = await client.get(_published_url(), headers=headers)
        assert response.json()["version_number"] == 2

    async def test_revert_invalidates_cache(
        self,
        client: AsyncClient,
        store: Store,
        fake_redis: fakeredis.aioredis.FakeRedis,
    ) -> None:
        headers = {"x-store-id": str(store.id)}
        await _add_text_slot(client, store)
        v1 = (await client.post(_url(store, "/cart/publish"))).json()
        await _add_text_slot(client, store, "Second")
        await client.post(_url(store, "/cart/publish"))
        await client.get(_published_url(), headers=headers)

        await client.post(_url(store, "/cart/revert"), json={"version_id": v1["id"]})

        response = await client.get(_published_url(), headers=headers)
        assert response.json()["version_number"] == 3


class TestServiceWithoutRedis:
    async def test_published_read_without_cache(
        self, db_session: AsyncSession, store: Store
    ) -> None:
        """The service works without Redis; reads go straight to the database."""
        service = SlotConfigurationService(db_session)
        await service.get_or_create_draft(store.id, TEST_USER_ID, PageType.HEADER)
        await service.publish(store.id, TEST_USER_ID, PageType.HEADER)

        payload = await service.get_published_configuration(store.id, PageType.HEADER)

        assert payload is not None
        assert payload["page_type"] == "header"
        assert payload["version_number"] == 1
