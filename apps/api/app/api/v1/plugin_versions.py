"""Plugin version control API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.api.v1.plugins import get_owned_plugin_or_404
from app.core.deps import CurrentUser, DBSession, get_store_for_user, get_user_id
from app.models.plugin import PluginRegistry
from app.models.plugin_version import PluginVersion
from app.models.store import Store
from app.schemas.common import ListResponse
from app.schemas.plugin_version import (
    CommitRequest,
    CompareResponse,
    ComponentDiff,
    PatchResponse,
    TagCreate,
    TagResponse,
    VersionDetailResponse,
    VersionResponse,
    VersionStateResponse,
    VersionWithTags,
)
from app.services.plugin_service import PluginService
from app.services.plugin_version_service import (
    NoChangesError,
    PluginVersionService,
    TagExistsError,
    VersionControlError,
)

router = APIRouter()


async def _plugin(db: DBSession, store: Store, plugin_id: UUID) -> PluginRegistry:
    return await get_owned_plugin_or_404(PluginService(db), store, plugin_id)


async def _get_version_or_404(
    service: PluginVersionService, plugin_id: UUID, version_id: UUID
) -> PluginVersion:
    version = await service.get_version(plugin_id, version_id)
    if version is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Version not found",
        )
    return version


@router.post(
    "",
    response_model=VersionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Commit plugin version",
    description=(
        "Record the plugin's current state. The first commit and every Nth one "
        "store a full snapshot; the rest store JSON patches."
    ),
)
async def commit_version(
    plugin_id: UUID,
    data: CommitRequest,
    db: DBSession,
    user: CurrentUser,
    store: Store = Depends(get_store_for_user),
) -> VersionResponse:
    plugin = await _plugin(db, store, plugin_id)
    try:
        version = await PluginVersionService(db).commit(
            plugin,
            data.commit_message,
            get_user_id(user),
            version_number=data.version_number,
            publish=data.publish,
        )
    except NoChangesError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return VersionResponse.model_validate(version)


@router.get(
    "",
    response_model=ListResponse[VersionWithTags],
    summary="Version history",
)
async def list_versions(
    plugin_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
) -> ListResponse[VersionWithTags]:
    plugin = await _plugin(db, store, plugin_id)
    rows = await PluginVersionService(db).history(plugin.id, limit=limit, offset=offset)
    items = [
        VersionWithTags(
            **VersionResponse.model_validate(version).model_dump(),
            tags=[t.tag_name for t in tags],
        )
        for version, tags in rows
    ]
    return ListResponse[VersionWithTags](items=items, total=len(items))


@router.get(
    "/compare",
    response_model=CompareResponse,
    summary="Compare two versions",
)
async def compare_versions(
    plugin_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
    from_version: UUID = Query(..., alias="from"),
    to_version: UUID = Query(..., alias="to"),
) -> CompareResponse:
    plugin = await _plugin(db, store, plugin_id)
    service = PluginVersionService(db)
    older = await _get_version_or_404(service, plugin.id, from_version)
    newer = await _get_version_or_404(service, plugin.id, to_version)

    try:
        diff = await service.compare(older, newer)
    except VersionControlError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))

    return CompareResponse(
        from_version=older.version_number,
        to_version=newer.version_number,
        **diff.summary(),
        changes=[
            ComponentDiff(
                component_type=c.component_type,
                component_key=c.component_key,
                change_type=c.change_type,
                lines_added=c.lines_added,
                lines_deleted=c.lines_deleted,
                operations=c.forward,
            )
            for c in diff.changes
        ],
    )


@router.get(
    "/tags",
    response_model=ListResponse[TagResponse],
    summary="List tags",
)
async def list_tags(
    plugin_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> ListResponse[TagResponse]:
    plugin = await _plugin(db, store, plugin_id)
    tags = await PluginVersionService(db).list_tags(plugin.id)
    return ListResponse[TagResponse](
        items=[TagResponse.model_validate(t) for t in tags],
        total=len(tags),
    )


@router.post(
    "/tags",
    response_model=TagResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Tag a version",
)
async def create_tag(
    plugin_id: UUID,
    data: TagCreate,
    db: DBSession,
    user: CurrentUser,
    store: Store = Depends(get_store_for_user),
) -> TagResponse:
    plugin = await _plugin(db, store, plugin_id)
    service = PluginVersionService(db)
    version = await _get_version_or_404(service, plugin.id, data.version_id)
    try:
        tag = await service.tag(
            version,
            data.tag_name,
            tag_type=data.tag_type,
            description=data.description,
            user_id=get_user_id(user),
        )
    except TagExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return TagResponse.model_validate(tag)


@router.delete(
    "/tags/{tag_name}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove tag",
)
async def delete_tag(
    plugin_id: UUID,
    tag_name: str,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> None:
    plugin = await _plugin(db, store, plugin_id)
    if not await PluginVersionService(db).untag(plugin.id, tag_name):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Tag not found",
        )


@router.get(
    "/{version_id}",
    response_model=VersionDetailResponse,
    summary="Get version",
    description="Version metadata with its tags and stored patches.",
)
async def get_version(
    plugin_id: UUID,
    version_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> VersionDetailResponse:
    plugin = await _plugin(db, store, plugin_id)
    service = PluginVersionService(db)
    version = await _get_version_or_404(service, plugin.id, version_id)
    patches = await service.patches_for(version)
    tags = [t.tag_name for t in await service.list_tags(plugin.id) if t.version_id == version.id]
    return VersionDetailResponse(
        **VersionResponse.model_validate(version).model_dump(),
        tags=tags,
        patches=[PatchResponse.model_validate(p) for p in patches],
    )


@router.get(
    "/{version_id}/state",
    response_model=VersionStateResponse,
    summary="Reconstructed state",
)
async def get_version_state(
    plugin_id: UUID,
    version_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> VersionStateResponse:
    plugin = await _plugin(db, store, plugin_id)
    service = PluginVersionService(db)
    version = await _get_version_or_404(service, plugin.id, version_id)
    try:
        state = await service.reconstruct(version)
    except VersionControlError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    return VersionStateResponse(version=VersionResponse.model_validate(version), state=state)


@router.post(
    "/{version_id}/restore",
    response_model=VersionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Restore version",
    description="Make the version's state live again and record it as a new commit.",
)
async def restore_version(
    plugin_id: UUID,
    version_id: UUID,
    db: DBSession,
    user: CurrentUser,
    store: Store = Depends(get_store_for_user),
) -> VersionResponse:
    plugin = await _plugin(db, store, plugin_id)
    service = PluginVersionService(db)
    version = await _get_version_or_404(service, plugin.id, version_id)
    try:
        restored = await service.restore(plugin, version, get_user_id(user))
    except NoChangesError as e:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return VersionResponse.model_validate(restored)
