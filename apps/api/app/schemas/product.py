"""Pydantic schemas for products and their translations."""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import Field

from app.schemas.common import BaseSchema


class ProductCreate(BaseSchema):
    """Owner request to add a product."""

    sku: str = Field(..., min_length=1, max_length=100)
    slug: str = Field(..., min_length=1, max_length=255)
    status: str = Field(default="active", max_length=50)
    price: Decimal = Field(default=Decimal("0"), ge=0)
    compare_price: Decimal | None = Field(default=None, ge=0)
    weight: Decimal | None = Field(default=None, ge=0)
    stock_quantity: int = 0
    attribute_set_id: str | None = None
    attributes: dict[str, Any] = Field(default_factory=dict)
    category_ids: list[str] = Field(default_factory=list)
    translations: dict[str, dict[str, Any]] = Field(
        default_factory=dict,
        description='Per-language text, e.g. {"en": {"name": "Mug"}}',
    )
    seo: dict[str, Any] = Field(default_factory=dict)


class ProductUpdate(BaseSchema):
    sku: str | None = Field(default=None, min_length=1, max_length=100)
    slug: str | None = Field(default=None, min_length=1, max_length=255)
    status: str | None = Field(default=None, max_length=50)
    price: Decimal | None = Field(default=None, ge=0)
    compare_price: Decimal | None = Field(default=None, ge=0)
    weight: Decimal | None = Field(default=None, ge=0)
    stock_quantity: int | None = None
    attribute_set_id: str | None = None
    attributes: dict[str, Any] | None = None
    category_ids: list[str] | None = None
    translations: dict[str, dict[str, Any]] | None = None
    seo: dict[str, Any] | None = None


class ProductSeoResponse(BaseSchema):
    meta_title: str | None = None
    meta_description: str | None = None
    meta_keywords: str | None = None
    meta_robots_tag: str | None = None
    og_title: str | None = None
    og_description: str | None = None
    og_image_url: str | None = None
    twitter_title: str | None = None
    twitter_description: str | None = None
    twitter_image_url: str | None = None
    canonical_url: str | None = None


class ProductResponse(BaseSchema):
    """Product with its text resolved for the requested language."""

    id: UUID
    store_id: UUID
    sku: str
    slug: str
    status: str
    price: Decimal
    compare_price: Decimal | None
    weight: Decimal | None
    stock_quantity: int
    attribute_set_id: str | None
    attributes: dict[str, Any]
    category_ids: list[str]
    language: str
    name: str | None = None
    description: str | None = None
    short_description: str | None = None
    seo: ProductSeoResponse
    created_at: datetime
    updated_at: datetime


class ProductTranslationUpsert(BaseSchema):
    name: str | None = Field(default=None, max_length=500)
    description: str | None = None
    short_description: str | None = None


class ProductTranslationResponse(BaseSchema):
    id: UUID
    product_id: UUID
    language_code: str
    name: str | None
    description: str | None
    short_description: str | None
    updated_at: datetime
