"""Product label API endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select

from app.core.deps import DBSession, get_store_for_user, get_storefront_store
from app.models.product import Product
from app.models.product_label import ProductLabel
from app.models.store import Store
from app.schemas.common import ListResponse
from app.schemas.product_label import (
    ProductLabelCreate,
    ProductLabelResponse,
    ProductLabelUpdate,
)
from app.services.product_label_service import ProductLabelService

router = APIRouter()
storefront_router = APIRouter()


async def _get_label_or_404(
    service: ProductLabelService, store: Store, label_id: UUID
) -> ProductLabel:
    label = await service.get_label(store.id, label_id)
    if label is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product label not found",
        )
    return label


@router.get(
    "",
    response_model=ListResponse[ProductLabelResponse],
    summary="List product labels",
    description="Labels ordered by priority (highest first), then name.",
)
async def list_labels(
    db: DBSession,
    store: Store = Depends(get_store_for_user),
    active_only: bool = Query(False),
) -> ListResponse[ProductLabelResponse]:
    labels = await ProductLabelService(db).list_labels(store.id, active_only=active_only)
    return ListResponse[ProductLabelResponse](
        items=[ProductLabelResponse.model_validate(label) for label in labels],
        total=len(labels),
    )


@router.post(
    "",
    response_model=ProductLabelResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create product label",
)
async def create_label(
    data: ProductLabelCreate,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> ProductLabelResponse:
    service = ProductLabelService(db)
    if await service.slug_taken(store.id, data.slug):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Label slug '{data.slug}' already exists",
        )
    label = await service.create_label(store.id, data.model_dump(mode="json"))
    return ProductLabelResponse.model_validate(label)


@router.get(
    "/{label_id}",
    response_model=ProductLabelResponse,
    summary="Get product label",
)
async def get_label(
    label_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> ProductLabelResponse:
    label = await _get_label_or_404(ProductLabelService(db), store, label_id)
    return ProductLabelResponse.model_validate(label)


@router.patch(
    "/{label_id}",
    response_model=ProductLabelResponse,
    summary="Update product label",
)
async def update_label(
    label_id: UUID,
    data: ProductLabelUpdate,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> ProductLabelResponse:
    service = ProductLabelService(db)
    label = await _get_label_or_404(service, store, label_id)
    changes = data.model_dump(mode="json", exclude_unset=True)

    if "slug" in changes and await service.slug_taken(store.id, changes["slug"], label.id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Label slug '{changes['slug']}' already exists",
        )

    label = await service.update_label(label, changes)
    return ProductLabelResponse.model_validate(label)


@router.delete(
    "/{label_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete product label",
)
async def delete_label(
    label_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> None:
    service = ProductLabelService(db)
    label = await _get_label_or_404(service, store, label_id)
    await service.delete_label(label)


@storefront_router.get(
    "/for-product/{product_id}",
    response_model=ListResponse[ProductLabelResponse],
    summary="Labels for a product",
    description="Active labels whose conditions match the product, in display order.",
)
async def labels_for_product(
    product_id: UUID,
    db: DBSession,
    store: Store = Depends(get_storefront_store),
) -> ListResponse[ProductLabelResponse]:
    product = (
        await db.execute(
            select(Product).where(Product.id == product_id, Product.store_id == store.id)
        )
    ).scalar_one_or_none()
    if product is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found",
        )

    labels = await ProductLabelService(db).labels_for_product(store.id, product)
    return ListResponse[ProductLabelResponse](
        items=[ProductLabelResponse.model_validate(label) for label in labels],
        total=len(labels),
    )
