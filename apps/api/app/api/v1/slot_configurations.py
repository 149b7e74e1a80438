"""Page builder layout API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from app.core.deps import (
    CurrentUser,
    DBSession,
    RedisClient,
    get_store_for_user,
    get_storefront_store,
    get_user_id,
)
from app.models.slot_configuration import PageType
from app.models.store import Store
from app.schemas.common import ListResponse
from app.schemas.slot_configuration import (
    DraftSaveRequest,
    PublishedLayoutResponse,
    RevertRequest,
    SlotConfigurationResponse,
    SlotOperationRequest,
    SlotOperationResponse,
    SlotPatchRequest,
    UnpublishedStatusResponse,
)
from app.services.slot_configuration_service import (
    SlotConfigurationError,
    SlotConfigurationService,
)
from app.services.slot_tree import SlotOperationError

router = APIRouter()
storefront_router = APIRouter()

# Fields each editor operation cannot do without
REQUIRED_FIELDS: dict[str, tuple[str, ...]] = {
    "create": ("slot_type",),
    "delete": ("slot_id",),
    "move": ("slot_id", "target_id", "position"),
    "text": ("slot_id", "content"),
    "class": ("slot_id",),
    "update": ("slot_id", "changes"),
    "resize": ("slot_id", "col_span"),
    "resize_height": ("slot_id", "height"),
}


def _bad_request(e: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


# === Store-wide endpoints ===


@router.get(
    "/unpublished-status",
    response_model=UnpublishedStatusResponse,
    summary="Unpublished changes per page",
)
async def get_unpublished_status(
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> UnpublishedStatusResponse:
    pages = await SlotConfigurationService(db).unpublished_status(store.id)
    return UnpublishedStatusResponse(pages=pages, has_unpublished_changes=any(pages.values()))


@router.post(
    "/publish-all",
    response_model=ListResponse[SlotConfigurationResponse],
    summary="Publish every changed page",
)
async def publish_all(
    db: DBSession,
    redis: RedisClient,
    user: CurrentUser,
    store: Store = Depends(get_store_for_user),
) -> ListResponse[SlotConfigurationResponse]:
    service = SlotConfigurationService(db, redis)
    try:
        published = await service.publish_all(store.id, get_user_id(user))
    except SlotOperationError as e:
        raise _bad_request(e)
    return ListResponse[SlotConfigurationResponse](
        items=[SlotConfigurationResponse.model_validate(v) for v in published],
        total=len(published),
    )


# === Draft endpoints ===


@router.get(
    "/{page_type}/draft",
    response_model=SlotConfigurationResponse,
    summary="Get or create draft",
    description="Returns the page's draft, seeding it from the live layout when missing.",
)
async def get_draft(
    page_type: PageType,
    db: DBSession,
    user: CurrentUser,
    store: Store = Depends(get_store_for_user),
) -> SlotConfigurationResponse:
    draft = await SlotConfigurationService(db).get_or_create_draft(
        store.id, get_user_id(user), page_type
    )
    return SlotConfigurationResponse.model_validate(draft)


@router.put(
    "/{page_type}/draft",
    response_model=SlotConfigurationResponse,
    summary="Save draft",
)
async def save_draft(
    page_type: PageType,
    data: DraftSaveRequest,
    db: DBSession,
    user: CurrentUser,
    store: Store = Depends(get_store_for_user),
) -> SlotConfigurationResponse:
    try:
        draft = await SlotConfigurationService(db).save_draft(
            store.id, get_user_id(user), page_type, data.configuration
        )
    except SlotOperationError as e:
        raise _bad_request(e)
    return SlotConfigurationResponse.model_validate(draft)


@router.delete(
    "/{page_type}/draft",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Discard draft",
)
async def delete_draft(
    page_type: PageType,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> None:
    if not await SlotConfigurationService(db).delete_draft(store.id, page_type):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Draft not found",
        )


@router.post(
    "/{page_type}/draft/operations",
    response_model=SlotOperationResponse,
    summary="Apply editor operation",
    description=(
        "Create, delete, move, restyle or resize a slot in the draft. "
        "The result carries the new slot id for create operations."
    ),
)
async def apply_operation(
    page_type: PageType,
    data: SlotOperationRequest,
    db: DBSession,
    user: CurrentUser,
    store: Store = Depends(get_store_for_user),
) -> SlotOperationResponse:
    operation = data.model_dump()
    missing = [f for f in REQUIRED_FIELDS[data.op] if operation.get(f) is None]
    if missing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Operation '{data.op}' requires: {', '.join(missing)}",
        )

    try:
        draft, result = await SlotConfigurationService(db).apply_operation(
            store.id, get_user_id(user), page_type, operation
        )
    except SlotOperationError as e:
        raise _bad_request(e)
    return SlotOperationResponse(
        draft=SlotConfigurationResponse.model_validate(draft),
        result=result,
    )


@router.patch(
    "/{page_type}/draft/slots/{slot_id}",
    response_model=SlotConfigurationResponse,
    summary="Update one slot",
)
async def patch_slot(
    page_type: PageType,
    slot_id: str,
    data: SlotPatchRequest,
    db: DBSession,
    user: CurrentUser,
    store: Store = Depends(get_store_for_user),
) -> SlotConfigurationResponse:
    try:
        draft = await SlotConfigurationService(db).patch_slot(
            store.id, get_user_id(user), page_type, slot_id, data.changes
        )
    except SlotOperationError as e:
        raise _bad_request(e)
    return SlotConfigurationResponse.model_validate(draft)


# === Publishing endpoints ===


@router.post(
    "/{page_type}/publish",
    response_model=SlotConfigurationResponse,
    summary="Publish draft",
)
async def publish(
    page_type: PageType,
    db: DBSession,
    redis: RedisClient,
    user: CurrentUser,
    store: Store = Depends(get_store_for_user),
) -> SlotConfigurationResponse:
    service = SlotConfigurationService(db, redis)
    try:
        version = await service.publish(store.id, get_user_id(user), page_type)
    except SlotConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except SlotOperationError as e:
        raise _bad_request(e)
    return SlotConfigurationResponse.model_validate(version)


@router.post(
    "/{page_type}/acceptance",
    response_model=SlotConfigurationResponse,
    summary="Publish draft to acceptance",
)
async def publish_to_acceptance(
    page_type: PageType,
    db: DBSession,
    user: CurrentUser,
    store: Store = Depends(get_store_for_user),
) -> SlotConfigurationResponse:
    try:
        version = await SlotConfigurationService(db).publish_to_acceptance(
            store.id, get_user_id(user), page_type
        )
    except SlotConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except SlotOperationError as e:
        raise _bad_request(e)
    return SlotConfigurationResponse.model_validate(version)


@router.post(
    "/{page_type}/acceptance/promote",
    response_model=SlotConfigurationResponse,
    summary="Promote acceptance to production",
)
async def promote_acceptance(
    page_type: PageType,
    db: DBSession,
    redis: RedisClient,
    user: CurrentUser,
    store: Store = Depends(get_store_for_user),
) -> SlotConfigurationResponse:
    service = SlotConfigurationService(db, redis)
    try:
        version = await service.promote_acceptance(store.id, get_user_id(user), page_type)
    except SlotConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return SlotConfigurationResponse.model_validate(version)


@router.get(
    "/{page_type}/history",
    response_model=ListResponse[SlotConfigurationResponse],
    summary="Version history",
)
async def get_history(
    page_type: PageType,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
    limit: int = Query(20, ge=1, le=100),
) -> ListResponse[SlotConfigurationResponse]:
    versions = await SlotConfigurationService(db).history(store.id, page_type, limit=limit)
    return ListResponse[SlotConfigurationResponse](
        items=[SlotConfigurationResponse.model_validate(v) for v in versions],
        total=len(versions),
    )


@router.post(
    "/{page_type}/revert",
    response_model=SlotConfigurationResponse,
    summary="Revert to a version",
    description="Republishes an earlier version; later published versions become reverted.",
)
async def revert(
    page_type: PageType,
    data: RevertRequest,
    db: DBSession,
    redis: RedisClient,
    user: CurrentUser,
    store: Store = Depends(get_store_for_user),
) -> SlotConfigurationResponse:
    service = SlotConfigurationService(db, redis)
    try:
        version = await service.revert(store.id, get_user_id(user), page_type, data.version_id)
    except SlotConfigurationError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return SlotConfigurationResponse.model_validate(version)


@router.get(
    "/{page_type}/versions/{version_id}",
    response_model=SlotConfigurationResponse,
    summary="Get a version",
)
async def get_version(
    page_type: PageType,
    version_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> SlotConfigurationResponse:
    version = await SlotConfigurationService(db).get_version(store.id, page_type, version_id)
    if version is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Version not found",
        )
    return SlotConfigurationResponse.model_validate(version)


# === Storefront endpoints ===


@storefront_router.get(
    "/{page_type}/published",
    response_model=PublishedLayoutResponse,
    summary="Live layout",
    description="Published layout of the store named by the x-store-id header.",
)
async def get_published_layout(
    page_type: PageType,
    db: DBSession,
    redis: RedisClient,
    store: Store = Depends(get_storefront_store),
) -> PublishedLayoutResponse:
    payload = await SlotConfigurationService(db, redis).get_published_configuration(
        store.id, page_type
    )
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No published layout for this page",
        )
    return PublishedLayoutResponse(**payload)
