"""Product catalog API endpoints with localized reads."""

from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select

from app.core.deps import DBSession, Language, get_store_for_user, get_storefront_store
from app.models.product import Product
from app.models.store import Store
from app.schemas.common import ListResponse, PaginatedResponse
from app.schemas.product import (
    ProductCreate,
    ProductResponse,
    ProductTranslationResponse,
    ProductTranslationUpsert,
    ProductUpdate,
)
from app.services.translation_service import TranslationService

router = APIRouter()
storefront_router = APIRouter()


def _to_response(payload: dict[str, Any]) -> ProductResponse:
    product: Product = payload["product"]
    return ProductResponse(
        id=product.id,
        store_id=product.store_id,
        sku=product.sku,
        slug=product.slug,
        status=product.status,
        price=product.price,
        compare_price=product.compare_price,
        weight=product.weight,
        stock_quantity=product.stock_quantity,
        attribute_set_id=product.attribute_set_id,
        attributes=product.attributes or {},
        category_ids=product.category_ids or [],
        language=payload["language"],
        name=payload.get("name"),
        description=payload.get("description"),
        short_description=payload.get("short_description"),
        seo=payload["seo"],
        created_at=product.created_at,
        updated_at=product.updated_at,
    )


async def _localized_page(
    db: DBSession,
    store_id: UUID,
    language: str,
    page: int,
    page_size: int,
    active_only: bool,
) -> PaginatedResponse[ProductResponse]:
    conditions = [Product.store_id == store_id]
    if active_only:
        conditions.append(Product.status == "active")

    # Count
    count_stmt = select(func.count()).select_from(Product).where(*conditions)
    total = (await db.execute(count_stmt)).scalar() or 0

    # Fetch page
    offset = (page - 1) * page_size
    stmt = (
        select(Product)
        .where(*conditions)
        .order_by(Product.created_at.desc(), Product.sku)
        .offset(offset)
        .limit(page_size)
    )
    products = list((await db.execute(stmt)).scalars().all())
    payloads = await TranslationService(db).localize_products(products, language)

    return PaginatedResponse[ProductResponse](
        items=[_to_response(p) for p in payloads],
        total=total,
        page=page,
        page_size=page_size,
        pages=(total + page_size - 1) // page_size,
    )


async def _get_product_or_404(db: DBSession, store_id: UUID, product_id: UUID) -> Product:
    product = (
        await db.execute(
            select(Product).where(Product.id == product_id, Product.store_id == store_id)
        )
    ).scalar_one_or_none()
    if product is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found",
        )
    return product


async def _sku_taken(db: DBSession, store_id: UUID, sku: str, exclude: UUID | None = None) -> bool:
    query = select(Product.id).where(Product.store_id == store_id, Product.sku == sku)
    if exclude is not None:
        query = query.where(Product.id != exclude)
    return (await db.execute(query)).first() is not None


# === Owner endpoints ===


@router.get(
    "",
    response_model=PaginatedResponse[ProductResponse],
    summary="List products",
    description="Products with text in the X-Language language (falls back to English).",
)
async def list_products(
    db: DBSession,
    language: Language,
    store: Store = Depends(get_store_for_user),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> PaginatedResponse[ProductResponse]:
    return await _localized_page(db, store.id, language, page, page_size, active_only=False)


@router.post(
    "",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create product",
)
async def create_product(
    data: ProductCreate,
    db: DBSession,
    language: Language,
    store: Store = Depends(get_store_for_user),
) -> ProductResponse:
    if await _sku_taken(db, store.id, data.sku):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"SKU '{data.sku}' already exists",
        )

    product = Product(store_id=store.id, **data.model_dump())
    db.add(product)
    await db.commit()
    await db.refresh(product)

    payloads = await TranslationService(db).localize_products([product], language)
    return _to_response(payloads[0])


@router.get(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Get product",
)
async def get_product(
    product_id: UUID,
    db: DBSession,
    language: Language,
    store: Store = Depends(get_store_for_user),
) -> ProductResponse:
    product = await _get_product_or_404(db, store.id, product_id)
    payloads = await TranslationService(db).localize_products([product], language)
    return _to_response(payloads[0])


@router.patch(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Update product",
)
async def update_product(
    product_id: UUID,
    data: ProductUpdate,
    db: DBSession,
    language: Language,
    store: Store = Depends(get_store_for_user),
) -> ProductResponse:
    product = await _get_product_or_404(db, store.id, product_id)
    update_data = data.model_dump(exclude_unset=True)

    if "sku" in update_data and await _sku_taken(db, store.id, update_data["sku"], product.id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"SKU '{update_data['sku']}' already exists",
        )

    for field, value in update_data.items():
        setattr(product, field, value)
    if "translations" in update_data or "category_ids" in update_data:
        # Text changed, so the stored vector is stale
        product.embedding = None

    await db.commit()
    await db.refresh(product)
    payloads = await TranslationService(db).localize_products([product], language)
    return _to_response(payloads[0])


@router.delete(
    "/{product_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete product",
)
async def delete_product(
    product_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> None:
    product = await _get_product_or_404(db, store.id, product_id)
    await db.delete(product)
    await db.commit()


@router.get(
    "/{product_id}/translations",
    response_model=ListResponse[ProductTranslationResponse],
    summary="List product translations",
)
async def list_product_translations(
    product_id: UUID,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> ListResponse[ProductTranslationResponse]:
    await _get_product_or_404(db, store.id, product_id)
    rows = await TranslationService(db).get_product_translations(product_id)
    return ListResponse[ProductTranslationResponse](
        items=[ProductTranslationResponse.model_validate(r) for r in rows],
        total=len(rows),
    )


@router.put(
    "/{product_id}/translations/{language_code}",
    response_model=ProductTranslationResponse,
    summary="Upsert product translation",
)
async def upsert_product_translation(
    product_id: UUID,
    language_code: str,
    data: ProductTranslationUpsert,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> ProductTranslationResponse:
    await _get_product_or_404(db, store.id, product_id)
    row = await TranslationService(db).upsert_product_translation(
        product_id, language_code, data.model_dump(exclude_unset=True)
    )
    return ProductTranslationResponse.model_validate(row)


@router.delete(
    "/{product_id}/translations/{language_code}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete product translation",
)
async def delete_product_translation(
    product_id: UUID,
    language_code: str,
    db: DBSession,
    store: Store = Depends(get_store_for_user),
) -> None:
    await _get_product_or_404(db, store.id, product_id)
    if not await TranslationService(db).delete_product_translation(product_id, language_code):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Translation not found",
        )


# === Storefront endpoints ===


@storefront_router.get(
    "",
    response_model=PaginatedResponse[ProductResponse],
    summary="Browse products",
    description="Active products of the store named by the x-store-id header.",
)
async def storefront_list_products(
    db: DBSession,
    language: Language,
    store: Store = Depends(get_storefront_store),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> PaginatedResponse[ProductResponse]:
    return await _localized_page(db, store.id, language, page, page_size, active_only=True)


@storefront_router.get(
    "/{product_id}",
    response_model=ProductResponse,
    summary="Get product (storefront)",
)
async def storefront_get_product(
    product_id: UUID,
    db: DBSession,
    language: Language,
    store: Store = Depends(get_storefront_store),
) -> ProductResponse:
    product = await _get_product_or_404(db, store.id, product_id)
    if product.status != "active":
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Product not found",
        )
    payloads = await TranslationService(db).localize_products([product], language)
    return _to_response(payloads[0])
