"""Plugin registry API endpoints.

Plugin components carry code as text. The API stores and returns it; it is
never evaluated server side.
"""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from app.core.deps import DBSession, get_store_for_user, get_storefront_store
from app.models.plugin import PluginEventListener, PluginHook, PluginRegistry, PluginWidget
from app.models.store import Store
from app.schemas.common import ListResponse
from app.schemas.plugin import (
    EventListenerCreate,
    EventListenerResponse,
    EventListenerUpdate,
    HookCreate,
    HookResponse,
    HookUpdate,
    PluginCreate,
    PluginDeprecateRequest,
    PluginResponse,
    PluginUpdate,
    StorefrontWidget,
    WidgetCreate,
    WidgetResponse,
    WidgetUpdate,
)
from app.services.plugin_service import PluginComponent, PluginService

router = APIRouter()
storefront_router = APIRouter()


async def get_owned_plugin_or_404(
    service: PluginService, store: Store, plugin_id: UUID
) -> PluginRegistry:
    plugin = await service.get_owned_plugin(store.id, plugin_id)
    if plugin is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Plugin not found",
        )
    return plugin


async def _get_component_or_404[T: PluginComponent](
    service: PluginService, model: type[T], plugin_id: UUID, component_id: UUID
) -> T:
    component = await service.get_component(model, plugin_id, component_id)
    if component is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Component not found",
        )
    return component


def _values(data: BaseModel, exclude_unset: bool = False) -> dict[str, Any]:
    return data.model_dump(exclude_unset=exclude_unset)


# === Plugins ===


@router.get(
    "",
    response_model=ListResponse[PluginResponse],
    summary="List plugins",
    description="Public plugins plus the store's own.",
)
async def list_plugins(
    db: DBSession,
    store: Store = Depends(get_store_for_user),
    include_deprecated: bool = Query(False),
) -> ListResponse[PluginResponse]:
    plugins = await PluginService(db).list_plugins(store.id, include_deprecated=include_deprecated)
    return ListResponse[PluginResponse](
        items=[PluginResponse.model_validate(p) for p in plugins],
        total=len(plugins),
    )


@router.post(
    "",
    response_model=PluginResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register plugin",
)
async def create_plugin(
    data: PluginCreate,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> PluginResponse:
    service = PluginService(db)
    if await service.slug_taken(data.slug):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Plugin slug '{data.slug}' already exists",
        )
    plugin = await service.create_plugin(store.id, _values(data))
    return PluginResponse.model_validate(plugin)


@router.get(
    "/{plugin_id}",
    response_model=PluginResponse,
    summary="Get plugin",
)
async def get_plugin(
    plugin_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> PluginResponse:
    plugin = await PluginService(db).get_plugin(plugin_id)
    if plugin is None or (plugin.store_id != store.id and not plugin.is_public):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Plugin not found",
        )
    return PluginResponse.model_validate(plugin)


@router.patch(
    "/{plugin_id}",
    response_model=PluginResponse,
    summary="Update plugin",
)
async def update_plugin(
    plugin_id: UUID,
    data: PluginUpdate,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> PluginResponse:
    service = PluginService(db)
    plugin = await get_owned_plugin_or_404(service, store, plugin_id)
    plugin = await service.update_plugin(plugin, _values(data, exclude_unset=True))
    return PluginResponse.model_validate(plugin)


@router.post(
    "/{plugin_id}/deprecate",
    response_model=PluginResponse,
    summary="Deprecate plugin",
    description="Hide the plugin from other stores and stop serving its widgets.",
)
async def deprecate_plugin(
    plugin_id: UUID,
    data: PluginDeprecateRequest,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> PluginResponse:
    service = PluginService(db)
    plugin = await get_owned_plugin_or_404(service, store, plugin_id)
    plugin = await service.deprecate(plugin, data.reason)
    return PluginResponse.model_validate(plugin)


@router.delete(
    "/{plugin_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete plugin",
)
async def delete_plugin(
    plugin_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> None:
    service = PluginService(db)
    plugin = await get_owned_plugin_or_404(service, store, plugin_id)
    await service.delete_plugin(plugin)


# === Widgets ===


@router.get(
    "/{plugin_id}/widgets",
    response_model=ListResponse[WidgetResponse],
    summary="List widgets",
)
async def list_widgets(
    plugin_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> ListResponse[WidgetResponse]:
    service = PluginService(db)
    plugin = await get_owned_plugin_or_404(service, store, plugin_id)
    widgets = await service.list_components(PluginWidget, plugin.id)
    return ListResponse[WidgetResponse](
        items=[WidgetResponse.model_validate(w) for w in widgets],
        total=len(widgets),
    )


@router.post(
    "/{plugin_id}/widgets",
    response_model=WidgetResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add widget",
)
async def add_widget(
    plugin_id: UUID,
    data: WidgetCreate,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> WidgetResponse:
    service = PluginService(db)
    plugin = await get_owned_plugin_or_404(service, store, plugin_id)
    if await service.widget_id_taken(plugin.id, data.widget_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Widget '{data.widget_id}' already exists",
        )
    widget = await service.add_component(PluginWidget, plugin.id, _values(data))
    return WidgetResponse.model_validate(widget)


@router.patch(
    "/{plugin_id}/widgets/{component_id}",
    response_model=WidgetResponse,
    summary="Update widget",
)
async def update_widget(
    plugin_id: UUID,
    component_id: UUID,
    data: WidgetUpdate,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> WidgetResponse:
    service = PluginService(db)
    plugin = await get_owned_plugin_or_404(service, store, plugin_id)
    widget = await _get_component_or_404(service, PluginWidget, plugin.id, component_id)
    widget = await service.update_component(widget, _values(data, exclude_unset=True))
    return WidgetResponse.model_validate(widget)


@router.delete(
    "/{plugin_id}/widgets/{component_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove widget",
)
async def remove_widget(
    plugin_id: UUID,
    component_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> None:
    service = PluginService(db)
    plugin = await get_owned_plugin_or_404(service, store, plugin_id)
    widget = await _get_component_or_404(service, PluginWidget, plugin.id, component_id)
    await service.remove_component(widget)


# === Hooks ===


@router.get(
    "/{plugin_id}/hooks",
    response_model=ListResponse[HookResponse],
    summary="List hooks",
)
async def list_hooks(
    plugin_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> ListResponse[HookResponse]:
    service = PluginService(db)
    plugin = await get_owned_plugin_or_404(service, store, plugin_id)
    hooks = await service.list_components(PluginHook, plugin.id)
    return ListResponse[HookResponse](
        items=[HookResponse.model_validate(h) for h in hooks],
        total=len(hooks),
    )


@router.post(
    "/{plugin_id}/hooks",
    response_model=HookResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add hook",
)
async def add_hook(
    plugin_id: UUID,
    data: HookCreate,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> HookResponse:
    service = PluginService(db)
    plugin = await get_owned_plugin_or_404(service, store, plugin_id)
    hook = await service.add_component(PluginHook, plugin.id, _values(data))
    return HookResponse.model_validate(hook)


@router.patch(
    "/{plugin_id}/hooks/{component_id}",
    response_model=HookResponse,
    summary="Update hook",
)
async def update_hook(
    plugin_id: UUID,
    component_id: UUID,
    data: HookUpdate,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> HookResponse:
    service = PluginService(db)
    plugin = await get_owned_plugin_or_404(service, store, plugin_id)
    hook = await _get_component_or_404(service, PluginHook, plugin.id, component_id)
    hook = await service.update_component(hook, _values(data, exclude_unset=True))
    return HookResponse.model_validate(hook)


@router.delete(
    "/{plugin_id}/hooks/{component_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove hook",
)
async def remove_hook(
    plugin_id: UUID,
    component_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> None:
    service = PluginService(db)
    plugin = await get_owned_plugin_or_404(service, store, plugin_id)
    hook = await _get_component_or_404(service, PluginHook, plugin.id, component_id)
    await service.remove_component(hook)


# === Event listeners ===


@router.get(
    "/{plugin_id}/event-listeners",
    response_model=ListResponse[EventListenerResponse],
    summary="List event listeners",
)
async def list_event_listeners(
    plugin_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> ListResponse[EventListenerResponse]:
    service = PluginService(db)
    plugin = await get_owned_plugin_or_404(service, store, plugin_id)
    listeners = await service.list_components(PluginEventListener, plugin.id)
    return ListResponse[EventListenerResponse](
        items=[EventListenerResponse.model_validate(e) for e in listeners],
        total=len(listeners),
    )


@router.post(
    "/{plugin_id}/event-listeners",
    response_model=EventListenerResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add event listener",
)
async def add_event_listener(
    plugin_id: UUID,
    data: EventListenerCreate,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> EventListenerResponse:
    service = PluginService(db)
    plugin = await get_owned_plugin_or_404(service, store, plugin_id)
    listener = await service.add_component(PluginEventListener, plugin.id, _values(data))
    return EventListenerResponse.model_validate(listener)


@router.patch(
    "/{plugin_id}/event-listeners/{component_id}",
    response_model=EventListenerResponse,
    summary="Update event listener",
)
async def update_event_listener(
    plugin_id: UUID,
    component_id: UUID,
    data: EventListenerUpdate,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> EventListenerResponse:
    service = PluginService(db)
    plugin = await get_owned_plugin_or_404(service, store, plugin_id)
    listener = await _get_component_or_404(service, PluginEventListener, plugin.id, component_id)
    listener = await service.update_component(listener, _values(data, exclude_unset=True))
    return EventListenerResponse.model_validate(listener)


@router.delete(
    "/{plugin_id}/event-listeners/{component_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove event listener",
)
async def remove_event_listener(
    plugin_id: UUID,
    component_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> None:
    service = PluginService(db)
    plugin = await get_owned_plugin_or_404(service, store, plugin_id)
    listener = await _get_component_or_404(service, PluginEventListener, plugin.id, component_id)
    await service.remove_component(listener)


# === Storefront ===


@storefront_router.get(
    "/widgets",
    response_model=ListResponse[StorefrontWidget],
    summary="Storefront widgets",
    description="Enabled widgets of active plugins, delivered as code text for the client to render.",
)
async def storefront_widgets(
    db: DBSession,
    store: Store = Depends(get_storefront_store),
) -> ListResponse[StorefrontWidget]:
    rows = await PluginService(db).storefront_widgets(store.id)
    return ListResponse[StorefrontWidget](
        items=[
            StorefrontWidget(
                plugin_slug=plugin.slug,
                plugin_name=plugin.name,
                widget_id=widget.widget_id,
                widget_name=widget.widget_name,
                component_code=widget.component_code,
                default_config=widget.default_config or {},
                category=widget.category,
                icon=widget.icon,
            )
            for plugin, widget in rows
        ],
        total=len(rows),
    )
