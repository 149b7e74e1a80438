"""Pydantic schemas for store CRUD, settings and database configuration."""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import Field

from app.models.store_database import ConnectionStatus, DatabaseProvider
from app.schemas.common import BaseSchema

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"

# === Store CRUD Schemas ===


class StoreCreate(BaseSchema):
    """Schema for creating a new store."""

    name: str = Field(..., min_length=1, max_length=255, description="Store name")
    slug: str = Field(
        ...,
        min_length=2,
        max_length=100,
        pattern=SLUG_PATTERN,
        description="Subdomain-safe identifier",
    )
    email: str | None = Field(default=None, max_length=255, description="Store email")


class StoreUpdate(BaseSchema):
    """Schema for updating a store."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: str | None = Field(default=None, max_length=255)


class StoreResponse(BaseSchema):
    """Schema for store response."""

    id: UUID
    owner_id: str
    name: str
    slug: str
    email: str | None
    is_active: bool
    created_at: datetime
    updated_at: datetime


class StorefrontUrlResponse(BaseSchema):
    storefront_url: str
    source: Literal["primary_domain", "verified_domain", "platform_subdomain"]
    store_slug: str


# === Store Settings Schemas ===


class ThemeSettings(BaseSchema):
    """Storefront colours."""

    primary_color: str = Field(default="#2563eb", pattern=r"^#[0-9A-Fa-f]{6}$")
    secondary_color: str = Field(default="#1e293b", pattern=r"^#[0-9A-Fa-f]{6}$")
    accent_color: str = Field(default="#f59e0b", pattern=r"^#[0-9A-Fa-f]{6}$")


class StoreSettings(BaseSchema):
    """Store-wide settings merged over the defaults."""

    currency: str = Field(default="USD", min_length=3, max_length=3)
    default_language: str = Field(default="en", max_length=10)
    languages: list[str] = Field(default_factory=lambda: ["en"])
    theme: ThemeSettings = Field(default_factory=ThemeSettings)
    extra: dict[str, Any] = Field(default_factory=dict)


class ThemeSettingsUpdate(BaseSchema):
    primary_color: str | None = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")
    secondary_color: str | None = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")
    accent_color: str | None = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")


class StoreSettingsUpdate(BaseSchema):
    """Partial settings update; nested theme keys merge individually."""

    currency: str | None = Field(default=None, min_length=3, max_length=3)
    default_language: str | None = Field(default=None, max_length=10)
    languages: list[str] | None = None
    theme: ThemeSettingsUpdate | None = None
    extra: dict[str, Any] | None = None


DEFAULT_STORE_SETTINGS: dict[str, Any] = StoreSettings().model_dump()


# === Store Database Schemas ===


class StoreDatabaseUpsert(BaseSchema):
    """Connect or replace the store's database."""

    provider: DatabaseProvider
    connection_string: str = Field(..., min_length=1, description="Database URL, stored encrypted")
    host: str | None = Field(default=None, max_length=255)
    database_name: str | None = Field(default=None, max_length=255)
    is_active: bool = True


class StoreDatabaseResponse(BaseSchema):
    """Database configuration with the connection string masked."""

    id: UUID
    store_id: UUID
    provider: DatabaseProvider
    host: str | None
    database_name: str | None
    connection_string_masked: str
    is_active: bool
    connection_status: ConnectionStatus
    last_checked_at: datetime | None
    created_at: datetime
    updated_at: datetime
