"""Persistence and publishing of page builder layouts."""

import copy
import json
import logging
from typing import Any
from uuid import UUID

import redis.asyncio as aioredis
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.models.base import utcnow
from app.models.slot_configuration import PageType, SlotConfiguration, SlotConfigurationStatus
from app.services import slot_tree

logger = logging.getLogger(__name__)

HISTORY_STATUSES = (
    SlotConfigurationStatus.PUBLISHED,
    SlotConfigurationStatus.REVERTED,
    SlotConfigurationStatus.ACCEPTANCE,
)


class SlotConfigurationError(ValueError):
    """Layout lifecycle rule violation."""


def published_cache_key(store_id: UUID, page_type: PageType) -> str:
    return f"slots:published:{store_id}:{page_type.value}"


def _slots_of(configuration: dict[str, Any] | None) -> dict[str, Any]:
    return (configuration or {}).get("slots") or {}


class SlotConfigurationService:
    """Draft, publish, history and revert for slot layouts.

    Drafts are edited in place with last-write-wins semantics. Publishing
    freezes the draft as a numbered version; published reads are cached in
    Redis and invalidated whenever the published version changes.
    """

    def __init__(self, db: AsyncSession, redis: aioredis.Redis | None = None) -> None:
        self.db = db
        self.redis = redis

    # --- lookups -----------------------------------------------------------

    async def _latest(
        self,
        store_id: UUID,
        page_type: PageType,
        statuses: tuple[SlotConfigurationStatus, ...],
    ) -> SlotConfiguration | None:
        query = (
            select(SlotConfiguration)
            .where(
                SlotConfiguration.store_id == store_id,
                SlotConfiguration.page_type == page_type,
                SlotConfiguration.status.in_(statuses),
            )
            .order_by(SlotConfiguration.version_number.desc())
            .limit(1)
        )
        return (await self.db.execute(query)).scalar_one_or_none()

    async def get_draft(self, store_id: UUID, page_type: PageType) -> SlotConfiguration | None:
        return await self._latest(
            store_id, page_type, (SlotConfigurationStatus.DRAFT, SlotConfigurationStatus.INIT)
        )

    async def get_latest_published(
        self, store_id: UUID, page_type: PageType
    ) -> SlotConfiguration | None:
        return await self._latest(store_id, page_type, (SlotConfigurationStatus.PUBLISHED,))

    async def get_version(
        self, store_id: UUID, page_type: PageType, version_id: UUID
    ) -> SlotConfiguration | None:
        query = select(SlotConfiguration).where(
            SlotConfiguration.id == version_id,
            SlotConfiguration.store_id == store_id,
            SlotConfiguration.page_type == page_type,
        )
        return (await self.db.execute(query)).scalar_one_or_none()

    async def _next_version_number(self, store_id: UUID, page_type: PageType) -> int:
        query = select(func.max(SlotConfiguration.version_number)).where(
            SlotConfiguration.store_id == store_id,
            SlotConfiguration.page_type == page_type,
            SlotConfiguration.status != SlotConfigurationStatus.DRAFT,
        )
        current = (await self.db.execute(query)).scalar_one_or_none()
        return (current or 0) + 1

    # --- drafts ------------------------------------------------------------

    async def get_or_create_draft(
        self, store_id: UUID, user_id: str, page_type: PageType
    ) -> SlotConfiguration:
        """Return the page's draft, creating one from the latest frozen version.

        A new draft starts from the newest acceptance or published layout, or
        from an empty skeleton when the page was never published.
        """
        draft = await self.get_draft(store_id, page_type)
        if draft is not None:
            return draft

        base = await self._latest(
            store_id,
            page_type,
            (SlotConfigurationStatus.PUBLISHED, SlotConfigurationStatus.ACCEPTANCE),
        )
        configuration = (
            copy.deepcopy(base.configuration)
            if base is not None
            else slot_tree.empty_configuration(page_type.value)
        )
        draft = SlotConfiguration(
            store_id=store_id,
            user_id=user_id,
            page_type=page_type,
            configuration=configuration,
            status=SlotConfigurationStatus.DRAFT,
            version_number=await self._next_version_number(store_id, page_type),
            parent_version_id=base.id if base is not None else None,
            has_unpublished_changes=False,
            extra_metadata={},
        )
        self.db.add(draft)
        await self.db.commit()
        await self.db.refresh(draft)
        logger.info("Created %s draft for store %s", page_type.value, store_id)
        return draft

    async def save_draft(
        self,
        store_id: UUID,
        user_id: str,
        page_type: PageType,
        configuration: dict[str, Any],
    ) -> SlotConfiguration:
        """Replace the draft's whole configuration (last write wins).

        Raises:
            SlotValidationError: If the slot map is structurally invalid
        """
        slot_tree.validate_slots(_slots_of(configuration))
        draft = await self.get_or_create_draft(store_id, user_id, page_type)
        draft.configuration = copy.deepcopy(configuration)
        draft.user_id = user_id
        draft.current_edit_id = None
        draft.has_unpublished_changes = await self._differs_from_published(
            store_id, page_type, configuration
        )
        await self.db.commit()
        await self.db.refresh(draft)
        return draft

    async def apply_operation(
        self,
        store_id: UUID,
        user_id: str,
        page_type: PageType,
        operation: dict[str, Any],
    ) -> tuple[SlotConfiguration, dict[str, Any]]:
        """Apply one slot tree mutation to the draft and persist it.

        Returns:
            Tuple of (draft, operation result such as the new slot id)
        """
        draft = await self.get_or_create_draft(store_id, user_id, page_type)
        configuration = copy.deepcopy(draft.configuration)
        slots = _slots_of(configuration)
        op = operation["op"]
        result: dict[str, Any] = {}

        if op == "create":
            slots, new_id = slot_tree.create_slot(
                slots,
                operation["slot_type"],
                page_type.value,
                content=operation.get("content") or "",
                parent_id=operation.get("parent_id"),
                metadata=operation.get("metadata"),
            )
            result["slot_id"] = new_id
        elif op == "delete":
            slots = slot_tree.delete_slot(slots, operation["slot_id"])
        elif op == "move":
            slots = slot_tree.move_slot(
                slots, operation["slot_id"], operation["target_id"], operation["position"]
            )
        elif op == "text":
            slots = slot_tree.change_text(slots, operation["slot_id"], operation["content"])
        elif op == "class":
            slots = slot_tree.change_class(
                slots,
                operation["slot_id"],
                operation.get("class_name") or "",
                operation.get("styles"),
                operation.get("metadata"),
                bool(operation.get("is_alignment_change")),
            )
        elif op == "update":
            slots = slot_tree.update_slot_config(slots, operation["slot_id"], operation["changes"])
        elif op == "resize":
            slots = slot_tree.resize_slot(slots, operation["slot_id"], operation["col_span"])
        elif op == "resize_height":
            slots = slot_tree.resize_height(slots, operation["slot_id"], operation["height"])
        else:
            raise slot_tree.SlotOperationError(f"Unknown operation: {op}")

        configuration["slots"] = slots
        configuration.setdefault("metadata", {})["lastModified"] = utcnow().isoformat()
        saved = await self.save_draft(store_id, user_id, page_type, configuration)
        return saved, result

    async def patch_slot(
        self,
        store_id: UUID,
        user_id: str,
        page_type: PageType,
        slot_id: str,
        changes: dict[str, Any],
    ) -> SlotConfiguration:
        """Merge changes into a single slot of the draft."""
        draft, _ = await self.apply_operation(
            store_id,
            user_id,
            page_type,
            {"op": "update", "slot_id": slot_id, "changes": changes},
        )
        return draft

    async def delete_draft(self, store_id: UUID, page_type: PageType) -> bool:
        """Discard the page's draft. Returns False when there was none."""
        draft = await self.get_draft(store_id, page_type)
        if draft is None:
            return False
        await self.db.delete(draft)
        await self.db.commit()
        return True

    # --- publishing --------------------------------------------------------

    async def _freeze_draft(
        self,
        store_id: UUID,
        user_id: str,
        page_type: PageType,
        status: SlotConfigurationStatus,
    ) -> SlotConfiguration:
        draft = await self.get_draft(store_id, page_type)
        if draft is None:
            raise SlotConfigurationError(f"No draft to publish for {page_type.value}")
        slot_tree.validate_slots(_slots_of(draft.configuration))

        previous = await self.get_latest_published(store_id, page_type)
        now = utcnow()
        draft.status = status
        draft.version_number = await self._next_version_number(store_id, page_type)
        draft.parent_version_id = previous.id if previous is not None else draft.parent_version_id
        draft.has_unpublished_changes = False
        if status == SlotConfigurationStatus.PUBLISHED:
            draft.published_at = now
            draft.published_by = user_id
        else:
            draft.acceptance_published_at = now
        await self.db.commit()
        await self.db.refresh(draft)
        return draft

    async def publish(self, store_id: UUID, user_id: str, page_type: PageType) -> SlotConfiguration:
        """Publish the draft straight to production."""
        version = await self._freeze_draft(
            store_id, user_id, page_type, SlotConfigurationStatus.PUBLISHED
        )
        await self.invalidate_cache(store_id, page_type)
        logger.info(
            "Published %s v%d for store %s", page_type.value, version.version_number, store_id
        )
        return version

    async def publish_to_acceptance(
        self, store_id: UUID, user_id: str, page_type: PageType
    ) -> SlotConfiguration:
        """Freeze the draft for review without changing the live layout."""
        return await self._freeze_draft(
            store_id, user_id, page_type, SlotConfigurationStatus.ACCEPTANCE
        )

    async def promote_acceptance(
        self, store_id: UUID, user_id: str, page_type: PageType
    ) -> SlotConfiguration:
        """Publish the newest acceptance version to production.

        The promoted version is renumbered past every existing version so it
        becomes the live layout even when something was published after it
        went to acceptance.
        """
        candidate = await self._latest(
            store_id, page_type, (SlotConfigurationStatus.ACCEPTANCE,)
        )
        if candidate is None:
            raise SlotConfigurationError(f"No acceptance version for {page_type.value}")
        previous = await self.get_latest_published(store_id, page_type)
        candidate.version_number = await self._next_version_number(store_id, page_type)
        if previous is not None:
            candidate.parent_version_id = previous.id
        candidate.status = SlotConfigurationStatus.PUBLISHED
        candidate.published_at = utcnow()
        candidate.published_by = user_id
        await self.db.commit()
        await self.db.refresh(candidate)
        await self.invalidate_cache(store_id, page_type)
        return candidate

    async def publish_all(self, store_id: UUID, user_id: str) -> list[SlotConfiguration]:
        """Publish every page whose draft has unpublished changes."""
        query = select(SlotConfiguration).where(
            SlotConfiguration.store_id == store_id,
            SlotConfiguration.status == SlotConfigurationStatus.DRAFT,
            SlotConfiguration.has_unpublished_changes == True,  # noqa: E712
        )
        drafts = list((await self.db.execute(query)).scalars().all())
        published = []
        for draft in drafts:
            published.append(await self.publish(store_id, user_id, draft.page_type))
        return published

    async def history(
        self, store_id: UUID, page_type: PageType, limit: int = 20
    ) -> list[SlotConfiguration]:
        """Frozen versions of a page, newest first."""
        query = (
            select(SlotConfiguration)
            .where(
                SlotConfiguration.store_id == store_id,
                SlotConfiguration.page_type == page_type,
                SlotConfiguration.status.in_(HISTORY_STATUSES),
            )
            .order_by(SlotConfiguration.version_number.desc())
            .limit(limit)
        )
        return list((await self.db.execute(query)).scalars().all())

    async def revert(
        self,
        store_id: UUID,
        user_id: str,
        page_type: PageType,
        version_id: UUID,
    ) -> SlotConfiguration:
        """Roll the live layout back to an earlier version.

        Later published versions are marked ``reverted`` and the target's
        configuration is republished as a new version, so history stays
        append-only.
        """
        target = await self.get_version(store_id, page_type, version_id)
        if target is None or target.status not in HISTORY_STATUSES:
            raise SlotConfigurationError("Version not found in history")

        await self.db.execute(
            update(SlotConfiguration)
            .where(
                SlotConfiguration.store_id == store_id,
                SlotConfiguration.page_type == page_type,
                SlotConfiguration.status == SlotConfigurationStatus.PUBLISHED,
                SlotConfiguration.version_number > target.version_number,
            )
            .values(status=SlotConfigurationStatus.REVERTED)
        )

        now = utcnow()
        version = SlotConfiguration(
            store_id=store_id,
            user_id=user_id,
            page_type=page_type,
            configuration=copy.deepcopy(target.configuration),
            status=SlotConfigurationStatus.PUBLISHED,
            version_number=await self._next_version_number(store_id, page_type),
            parent_version_id=target.id,
            published_at=now,
            published_by=user_id,
            has_unpublished_changes=False,
            extra_metadata={"reverted_from": target.version_number},
        )
        self.db.add(version)

        # An untouched draft follows the reverted layout
        draft = await self.get_draft(store_id, page_type)
        if draft is not None and not draft.has_unpublished_changes:
            draft.configuration = copy.deepcopy(target.configuration)

        await self.db.commit()
        await self.db.refresh(version)
        await self.invalidate_cache(store_id, page_type)
        logger.info(
            "Reverted %s for store %s to v%d (new v%d)",
            page_type.value,
            store_id,
            target.version_number,
            version.version_number,
        )
        return version

    # --- status & cache ----------------------------------------------------

    async def _differs_from_published(
        self, store_id: UUID, page_type: PageType, configuration: dict[str, Any]
    ) -> bool:
        published = await self.get_latest_published(store_id, page_type)
        if published is None:
            return True
        return _slots_of(published.configuration) != _slots_of(configuration)

    async def unpublished_status(self, store_id: UUID) -> dict[str, bool]:
        """Per page type: does the draft differ from the live layout?"""
        query = select(SlotConfiguration).where(
            SlotConfiguration.store_id == store_id,
            SlotConfiguration.status == SlotConfigurationStatus.DRAFT,
        )
        drafts = (await self.db.execute(query)).scalars().all()
        status: dict[str, bool] = {}
        for draft in drafts:
            status[draft.page_type.value] = await self._differs_from_published(
                store_id, draft.page_type, draft.configuration
            )
        return status

    async def get_published_configuration(
        self, store_id: UUID, page_type: PageType
    ) -> dict[str, Any] | None:
        """Live layout for the storefront, served from Redis when cached."""
        key = published_cache_key(store_id, page_type)
        if self.redis is not None:
            cached = await self.redis.get(key)
            if cached:
                return json.loads(cached)

        published = await self.get_latest_published(store_id, page_type)
        if published is None:
            return None

        payload = {
            "id": str(published.id),
            "page_type": page_type.value,
            "version_number": published.version_number,
            "configuration": published.configuration,
            "published_at": published.published_at.isoformat() if published.published_at else None,
        }
        if self.redis is not None:
            await self.redis.set(key, json.dumps(payload), ex=settings.slot_cache_ttl_seconds)
        return payload

    async def invalidate_cache(self, store_id: UUID, page_type: PageType) -> None:
        if self.redis is not None:
            await self.redis.delete(published_cache_key(store_id, page_type))
