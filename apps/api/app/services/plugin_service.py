"""Plugin registry and plugin component management."""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.plugin import (
    PluginEventListener,
    PluginHook,
    PluginRegistry,
    PluginStatus,
    PluginWidget,
)

logger = logging.getLogger(__name__)

type PluginComponent = PluginWidget | PluginHook | PluginEventListener


class PluginService:
    """CRUD for plugins and their widgets, hooks and event listeners.

    Component code is stored verbatim and returned to clients as data.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # --- plugins -----------------------------------------------------------

    async def list_plugins(self, store_id: UUID, include_deprecated: bool = False) -> list[PluginRegistry]:
        """Public plugins plus the store's own, newest first."""
        query = select(PluginRegistry).where(
            or_(PluginRegistry.is_public == True, PluginRegistry.store_id == store_id)  # noqa: E712
        )
        if not include_deprecated:
            query = query.where(
                or_(PluginRegistry.is_deprecated == False, PluginRegistry.store_id == store_id)  # noqa: E712
            )
        query = query.order_by(PluginRegistry.created_at.desc())
        return list((await self.db.execute(query)).scalars().all())

    async def get_plugin(self, plugin_id: UUID) -> PluginRegistry | None:
        return await self.db.get(PluginRegistry, plugin_id)

    async def get_owned_plugin(self, store_id: UUID, plugin_id: UUID) -> PluginRegistry | None:
        query = select(PluginRegistry).where(
            PluginRegistry.id == plugin_id,
            PluginRegistry.store_id == store_id,
        )
        return (await self.db.execute(query)).scalar_one_or_none()

    async def slug_taken(self, slug: str) -> bool:
        query = select(PluginRegistry.id).where(PluginRegistry.slug == slug)
        return (await self.db.execute(query)).first() is not None

    async def create_plugin(self, store_id: UUID, data: dict[str, Any]) -> PluginRegistry:
        plugin = PluginRegistry(store_id=store_id, **data)
        self.db.add(plugin)
        await self.db.commit()
        await self.db.refresh(plugin)
        logger.info("Registered plugin %s for store %s", plugin.slug, store_id)
        return plugin

    async def update_plugin(self, plugin: PluginRegistry, changes: dict[str, Any]) -> PluginRegistry:
        for field, value in changes.items():
            setattr(plugin, field, value)
        await self.db.commit()
        await self.db.refresh(plugin)
        return plugin

    async def deprecate(self, plugin: PluginRegistry, reason: str | None) -> PluginRegistry:
        plugin.is_deprecated = True
        plugin.deprecation_reason = reason
        await self.db.commit()
        await self.db.refresh(plugin)
        logger.info("Deprecated plugin %s", plugin.slug)
        return plugin

    async def delete_plugin(self, plugin: PluginRegistry) -> None:
        await self.db.delete(plugin)
        await self.db.commit()

    # --- components --------------------------------------------------------

    async def list_components[T: PluginComponent](
        self, model: type[T], plugin_id: UUID
    ) -> list[T]:
        query = select(model).where(model.plugin_id == plugin_id)
        if model is PluginWidget:
            query = query.order_by(PluginWidget.widget_id)
        else:
            query = query.order_by(model.priority, model.created_at)
        return list((await self.db.execute(query)).scalars().all())

    async def get_component[T: PluginComponent](
        self, model: type[T], plugin_id: UUID, component_id: UUID
    ) -> T | None:
        query = select(model).where(model.id == component_id, model.plugin_id == plugin_id)
        return (await self.db.execute(query)).scalar_one_or_none()

    async def add_component[T: PluginComponent](
        self, model: type[T], plugin_id: UUID, data: dict[str, Any]
    ) -> T:
        component = model(plugin_id=plugin_id, **data)
        self.db.add(component)
        await self.db.commit()
        await self.db.refresh(component)
        return component

    async def update_component[T: PluginComponent](self, component: T, changes: dict[str, Any]) -> T:
        for field, value in changes.items():
            setattr(component, field, value)
        await self.db.commit()
        await self.db.refresh(component)
        return component

    async def remove_component(self, component: PluginComponent) -> None:
        await self.db.delete(component)
        await self.db.commit()

    async def widget_id_taken(self, plugin_id: UUID, widget_id: str) -> bool:
        query = select(PluginWidget.id).where(
            PluginWidget.plugin_id == plugin_id,
            PluginWidget.widget_id == widget_id,
        )
        return (await self.db.execute(query)).first() is not None

    # --- storefront --------------------------------------------------------

    async def storefront_widgets(self, store_id: UUID) -> list[tuple[PluginRegistry, PluginWidget]]:
        """Enabled widgets of the store's active, non-deprecated plugins."""
        query = (
            select(PluginRegistry, PluginWidget)
            .join(PluginWidget, PluginWidget.plugin_id == PluginRegistry.id)
            .where(
                PluginRegistry.store_id == store_id,
                PluginRegistry.status == PluginStatus.ACTIVE,
                PluginRegistry.is_deprecated == False,  # noqa: E712
                PluginWidget.is_enabled == True,  # noqa: E712
            )
            .order_by(PluginRegistry.name, PluginWidget.widget_id)
        )
        return [(row[0], row[1]) for row in (await self.db.execute(query)).all()]
