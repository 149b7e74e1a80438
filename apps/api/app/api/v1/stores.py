"""Store CRUD, settings and database configuration API endpoints."""

import logging
from typing import Any
from uuid import UUID

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import select

from app.core.deps import DBSession, StoreOwner, get_store_for_user, get_user_id
from app.core.encryption import decrypt_secret, encrypt_secret
from app.core.security import mask_connection_string
from app.models.store import Store
from app.models.store_database import ConnectionStatus, StoreDatabase
from app.schemas.common import ListResponse
from app.schemas.store import (
    DEFAULT_STORE_SETTINGS,
    StoreCreate,
    StoreDatabaseResponse,
    StoreDatabaseUpsert,
    StoreResponse,
    StoreSettings,
    StoreSettingsUpdate,
    StorefrontUrlResponse,
    StoreUpdate,
)
from app.services.domain_service import DomainService

logger = logging.getLogger(__name__)

router = APIRouter()


def _merged_settings(stored: dict[str, Any] | None) -> StoreSettings:
    stored = stored or {}
    merged = {**DEFAULT_STORE_SETTINGS, **stored}
    merged["theme"] = {**DEFAULT_STORE_SETTINGS["theme"], **(stored.get("theme") or {})}
    return StoreSettings(**merged)


def _database_response(config: StoreDatabase) -> StoreDatabaseResponse:
    return StoreDatabaseResponse(
        id=config.id,
        store_id=config.store_id,
        provider=config.provider,
        host=config.host,
        database_name=config.database_name,
        connection_string_masked=mask_connection_string(
            decrypt_secret(config.connection_string_encrypted)
        ),
        is_active=config.is_active,
        connection_status=config.connection_status,
        last_checked_at=config.last_checked_at,
        created_at=config.created_at,
        updated_at=config.updated_at,
    )


# === Store CRUD Endpoints ===


@router.get(
    "",
    response_model=ListResponse[StoreResponse],
    summary="List stores",
    description="List the authenticated owner's active stores, newest first.",
)
async def list_stores(
    user: StoreOwner,
    db: DBSession,
) -> ListResponse[StoreResponse]:
    query = (
        select(Store)
        .where(
            Store.owner_id == get_user_id(user),
            Store.is_active == True,  # noqa: E712
        )
        .order_by(Store.created_at.desc())
    )
    result = await db.execute(query)
    stores = list(result.scalars().all())

    return ListResponse[StoreResponse](
        items=[StoreResponse.model_validate(store) for store in stores],
        total=len(stores),
    )


@router.post(
    "",
    response_model=StoreResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create store",
)
async def create_store(
    data: StoreCreate,
    user: StoreOwner,
    db: DBSession,
) -> StoreResponse:
    """Create a new store owned by the caller."""
    existing = await db.execute(select(Store.id).where(Store.slug == data.slug))
    if existing.first() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Store slug '{data.slug}' is already taken",
        )

    store = Store(
        owner_id=get_user_id(user),
        name=data.name,
        slug=data.slug,
        email=data.email,
        settings={},
    )
    db.add(store)
    await db.commit()
    await db.refresh(store)

    logger.info("Created store %s (%s)", store.slug, store.id)
    return StoreResponse.model_validate(store)


@router.get(
    "/{store_id}",
    response_model=StoreResponse,
    summary="Get store",
)
async def get_store(
    store_id: UUID,
    user: StoreOwner,
    db: DBSession,
) -> StoreResponse:
    store = await get_store_for_user(store_id, user, db)
    return StoreResponse.model_validate(store)


@router.patch(
    "/{store_id}",
    response_model=StoreResponse,
    summary="Update store",
)
async def update_store(
    store_id: UUID,
    data: StoreUpdate,
    user: StoreOwner,
    db: DBSession,
) -> StoreResponse:
    store = await get_store_for_user(store_id, user, db)

    # Update only provided fields
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(store, field, value)

    await db.commit()
    await db.refresh(store)
    return StoreResponse.model_validate(store)


@router.delete(
    "/{store_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete store",
    description="Soft delete: the store is deactivated, its data is kept.",
)
async def delete_store(
    store_id: UUID,
    user: StoreOwner,
    db: DBSession,
) -> None:
    store = await get_store_for_user(store_id, user, db)
    store.is_active = False
    await db.commit()
    logger.info("Deactivated store %s", store.id)


# === Store Settings Endpoints ===


@router.get(
    "/{store_id}/settings",
    response_model=StoreSettings,
    summary="Get store settings",
)
async def get_store_settings(
    store_id: UUID,
    user: StoreOwner,
    db: DBSession,
) -> StoreSettings:
    store = await get_store_for_user(store_id, user, db)
    return _merged_settings(store.settings)


@router.patch(
    "/{store_id}/settings",
    response_model=StoreSettings,
    summary="Update store settings",
    description="Partially update store settings. Only provided fields will be updated.",
)
async def update_store_settings(
    store_id: UUID,
    data: StoreSettingsUpdate,
    user: StoreOwner,
    db: DBSession,
) -> StoreSettings:
    store = await get_store_for_user(store_id, user, db)
    current = dict(store.settings or {})

    update_data = data.model_dump(exclude_unset=True, exclude={"theme"})
    current.update({k: v for k, v in update_data.items() if v is not None})
    if data.theme is not None:
        theme = dict(current.get("theme") or {})
        theme.update(data.theme.model_dump(exclude_unset=True, exclude_none=True))
        current["theme"] = theme

    # Reassign so the JSON column is flagged dirty
    store.settings = current
    await db.commit()
    await db.refresh(store)
    return _merged_settings(store.settings)


@router.get(
    "/{store_id}/storefront-url",
    response_model=StorefrontUrlResponse,
    summary="Get storefront URL",
    description=(
        "Public URL of the storefront: the primary verified custom domain, any "
        "verified domain, or the platform subdomain."
    ),
)
async def get_storefront_url(
    store_id: UUID,
    db: DBSession,
) -> StorefrontUrlResponse:
    store = await db.get(Store, store_id)
    if store is None or not store.is_active:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Store not found",
        )
    return StorefrontUrlResponse(**await DomainService(db).storefront_url(store))


# === Store Database Endpoints ===


async def _get_database_config(db: DBSession, store_id: UUID) -> StoreDatabase | None:
    result = await db.execute(select(StoreDatabase).where(StoreDatabase.store_id == store_id))
    return result.scalar_one_or_none()


@router.get(
    "/{store_id}/database",
    response_model=StoreDatabaseResponse,
    summary="Get database configuration",
    description="The connection string is only ever returned masked.",
)
async def get_store_database(
    store_id: UUID,
    user: StoreOwner,
    db: DBSession,
) -> StoreDatabaseResponse:
    await get_store_for_user(store_id, user, db)
    config = await _get_database_config(db, store_id)
    if config is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No database configured for this store",
        )
    return _database_response(config)


@router.put(
    "/{store_id}/database",
    response_model=StoreDatabaseResponse,
    summary="Connect database",
    description="Create or replace the store's database connection.",
)
async def upsert_store_database(
    store_id: UUID,
    data: StoreDatabaseUpsert,
    user: StoreOwner,
    db: DBSession,
) -> StoreDatabaseResponse:
    await get_store_for_user(store_id, user, db)
    config = await _get_database_config(db, store_id)
    if config is None:
        config = StoreDatabase(store_id=store_id)
        db.add(config)

    config.provider = data.provider
    config.host = data.host
    config.database_name = data.database_name
    config.is_active = data.is_active
    config.connection_string_encrypted = encrypt_secret(data.connection_string)
    config.connection_status = ConnectionStatus.PENDING
    config.last_checked_at = None

    await db.commit()
    await db.refresh(config)
    logger.info("Saved %s database config for store %s", data.provider.value, store_id)
    return _database_response(config)


@router.delete(
    "/{store_id}/database",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Disconnect database",
)
async def delete_store_database(
    store_id: UUID,
    user: StoreOwner,
    db: DBSession,
) -> None:
    await get_store_for_user(store_id, user, db)
    config = await _get_database_config(db, store_id)
    if config is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No database configured for this store",
        )
    await db.delete(config)
    await db.commit()
