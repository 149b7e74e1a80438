"""Dependency injection for FastAPI routes."""

import re
from collections.abc import AsyncGenerator
from typing import TYPE_CHECKING, Annotated, Any
from uuid import UUID

import redis.asyncio as aioredis
from fastapi import Depends, Header, HTTPException, Response, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

# Re-export auth dependencies for convenience
from app.core.auth import (
    CurrentUser,
    JobUser,
    OptionalUser,
    PlatformAdmin,
    StoreOwner,
    get_current_user,
    get_optional_user,
    require_store_owner,
)
from app.core.config import settings
from app.core.database import get_async_session
from app.core.logging_config import store_id_var
from app.core.security import generate_session_id

if TYPE_CHECKING:
    from app.models.store import Store

DEFAULT_LANGUAGE = "en"
_LANGUAGE_RE = re.compile(r"^[a-z]{2,3}(-[A-Za-z0-9]{2,8})?$")

# Type alias for database session dependency
AsyncSessionDep = Annotated[AsyncSession, Depends(get_async_session)]


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Alias for get_async_session so tests can override a single dependency."""
    async for session in get_async_session():
        yield session


# Shared Redis connection pool
_redis_pool: aioredis.ConnectionPool | None = None


def _get_redis_pool() -> aioredis.ConnectionPool:
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is None:
        _redis_pool = aioredis.ConnectionPool.from_url(
            str(settings.redis_url), decode_responses=True
        )
    return _redis_pool


async def get_redis() -> AsyncGenerator[aioredis.Redis, None]:
    """Yield a Redis client from the shared connection pool."""
    pool = _get_redis_pool()
    r = aioredis.Redis(connection_pool=pool)
    try:
        yield r
    finally:
        await r.aclose()


# Database session dependency
DBSession = Annotated[AsyncSession, Depends(get_db)]
RedisClient = Annotated[aioredis.Redis, Depends(get_redis)]


def get_user_id(user: dict[str, Any]) -> str:
    """Extract the user id (``sub`` claim) from a decoded token."""
    user_id = user.get("sub")
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has no subject",
        )
    return str(user_id)


async def get_store_for_user(
    store_id: UUID,
    user: StoreOwner,
    db: AsyncSession = Depends(get_db),
) -> "Store":
    """Get store by ID, verifying it belongs to the authenticated owner.

    Used by endpoints that need to validate store ownership via path parameter.
    """
    from app.models.store import Store

    query = select(Store).where(
        Store.id == store_id,
        Store.owner_id == get_user_id(user),
        Store.is_active == True,  # noqa: E712
    )
    result = await db.execute(query)
    store = result.scalar_one_or_none()

    if not store:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Store not found or access denied",
        )

    store_id_var.set(str(store.id))
    return store


async def get_storefront_store(
    x_store_id: Annotated[UUID | None, Header(alias="x-store-id")] = None,
    db: AsyncSession = Depends(get_db),
) -> "Store":
    """Resolve the store addressed by the ``x-store-id`` header.

    Used by storefront endpoints that are called without an owner token.
    """
    from app.models.store import Store

    if x_store_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="x-store-id header is required",
        )

    query = select(Store).where(
        Store.id == x_store_id,
        Store.is_active == True,  # noqa: E712
    )
    result = await db.execute(query)
    store = result.scalar_one_or_none()

    if not store:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Store not found or inactive",
        )

    store_id_var.set(str(store.id))
    return store


def get_language(
    x_language: Annotated[str | None, Header(alias="X-Language")] = None,
) -> str:
    """Language requested by the client, falling back to English."""
    if not x_language:
        return DEFAULT_LANGUAGE
    language = x_language.strip().split(",")[0].strip()
    if not _LANGUAGE_RE.match(language):
        return DEFAULT_LANGUAGE
    return language


def get_session_id(
    response: Response,
    x_session_id: Annotated[str | None, Header(alias="X-Session-ID")] = None,
) -> str:
    """Anonymous storefront session identifier.

    A new id is issued when the client sent none. Either way it is echoed in
    the ``X-Session-ID`` response header so the client can keep it.
    """
    session_id = x_session_id or generate_session_id()
    response.headers["X-Session-ID"] = session_id
    return session_id


Language = Annotated[str, Depends(get_language)]
SessionId = Annotated[str, Depends(get_session_id)]


__all__ = [
    "AsyncSessionDep",
    "CurrentUser",
    "DBSession",
    "DEFAULT_LANGUAGE",
    "JobUser",
    "Language",
    "OptionalUser",
    "PlatformAdmin",
    "RedisClient",
    "SessionId",
    "StoreOwner",
    "get_current_user",
    "get_db",
    "get_language",
    "get_optional_user",
    "get_redis",
    "get_session_id",
    "get_store_for_user",
    "get_storefront_store",
    "get_user_id",
    "require_store_owner",
]
