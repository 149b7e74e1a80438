"""Shipping method API endpoints."""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel

from app.core.deps import DBSession, get_store_for_user, get_storefront_store
from app.models.shipping_method import ShippingMethod
from app.models.store import Store
from app.schemas.common import ListResponse
from app.schemas.shipping import (
    ShippingMethodCreate,
    ShippingMethodResponse,
    ShippingMethodUpdate,
    ShippingQuote,
    ShippingQuoteRequest,
    ShippingQuoteResponse,
)
from app.services.shipping_service import ShippingService, ShippingValidationError

router = APIRouter()
storefront_router = APIRouter()

# Stored in JSON columns, so they are dumped in JSON mode
JSON_FIELDS = {"weight_ranges", "price_ranges", "conditions", "translations", "countries"}


def _column_values(data: BaseModel, exclude_unset: bool) -> dict[str, Any]:
    values = data.model_dump(exclude_unset=exclude_unset, exclude=JSON_FIELDS)
    values.update(data.model_dump(mode="json", exclude_unset=exclude_unset, include=JSON_FIELDS))
    # Cost columns are NOT NULL; an omitted cost means zero
    return {k: v for k, v in values.items() if not (v is None and k.endswith(("_cost", "_order")))}


async def _get_method_or_404(service: ShippingService, store: Store, method_id: UUID) -> ShippingMethod:
    method = await service.get_method(store.id, method_id)
    if method is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Shipping method not found",
        )
    return method


@router.get(
    "",
    response_model=ListResponse[ShippingMethodResponse],
    summary="List shipping methods",
)
async def list_shipping_methods(
    db: DBSession,
    store: Store = Depends(get_store_for_user),
    active_only: bool = Query(False),
) -> ListResponse[ShippingMethodResponse]:
    methods = await ShippingService(db).list_methods(store.id, active_only=active_only)
    return ListResponse[ShippingMethodResponse](
        items=[ShippingMethodResponse.model_validate(m) for m in methods],
        total=len(methods),
    )


@router.post(
    "",
    response_model=ShippingMethodResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create shipping method",
)
async def create_shipping_method(
    data: ShippingMethodCreate,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> ShippingMethodResponse:
    try:
        method = await ShippingService(db).create_method(store.id, _column_values(data, False))
    except ShippingValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return ShippingMethodResponse.model_validate(method)


@router.get(
    "/{method_id}",
    response_model=ShippingMethodResponse,
    summary="Get shipping method",
)
async def get_shipping_method(
    method_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> ShippingMethodResponse:
    method = await _get_method_or_404(ShippingService(db), store, method_id)
    return ShippingMethodResponse.model_validate(method)


@router.patch(
    "/{method_id}",
    response_model=ShippingMethodResponse,
    summary="Update shipping method",
)
async def update_shipping_method(
    method_id: UUID,
    data: ShippingMethodUpdate,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> ShippingMethodResponse:
    service = ShippingService(db)
    method = await _get_method_or_404(service, store, method_id)
    try:
        method = await service.update_method(method, _column_values(data, True))
    except ShippingValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    return ShippingMethodResponse.model_validate(method)


@router.delete(
    "/{method_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete shipping method",
)
async def delete_shipping_method(
    method_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> None:
    service = ShippingService(db)
    method = await _get_method_or_404(service, store, method_id)
    await service.delete_method(method)


@storefront_router.post(
    "/quote",
    response_model=ShippingQuoteResponse,
    summary="Quote shipping for a cart",
    description=(
        "Active methods that serve the destination and match the cart conditions, "
        "with their computed cost, ordered by sort order."
    ),
)
async def quote_shipping(
    data: ShippingQuoteRequest,
    db: DBSession,
    store: Store = Depends(get_storefront_store),
) -> ShippingQuoteResponse:
    items = [item.model_dump(mode="python") for item in data.items]
    quotes = await ShippingService(db).quote(store.id, items, data.country)
    return ShippingQuoteResponse(
        quotes=[
            ShippingQuote(
                method_id=method.id,
                name=method.name,
                description=method.description,
                type=method.type,
                cost=cost,
                min_delivery_days=method.min_delivery_days,
                max_delivery_days=method.max_delivery_days,
            )
            for method, cost in quotes
        ]
    )
