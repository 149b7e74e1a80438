"""Pydantic schemas for shipping methods and quotes."""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import Field

from app.models.shipping_method import ShippingAvailability, ShippingType
from app.schemas.common import BaseSchema


class WeightRange(BaseSchema):
    min_weight: Decimal = Field(..., ge=0)
    max_weight: Decimal = Field(..., ge=0)
    cost: Decimal = Field(..., ge=0)


class PriceRange(BaseSchema):
    min_price: Decimal = Field(..., ge=0)
    max_price: Decimal = Field(..., ge=0)
    cost: Decimal = Field(..., ge=0)


class AttributeCondition(BaseSchema):
    attribute_code: str
    attribute_value: str


class ShippingConditions(BaseSchema):
    """Empty lists impose no restriction."""

    categories: list[str] = Field(default_factory=list)
    attribute_sets: list[str] = Field(default_factory=list)
    skus: list[str] = Field(default_factory=list)
    attribute_conditions: list[AttributeCondition] = Field(default_factory=list)


class ShippingMethodCreate(BaseSchema):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    is_active: bool = True
    type: ShippingType
    flat_rate_cost: Decimal | None = Field(default=None, ge=0)
    free_shipping_min_order: Decimal | None = Field(default=None, ge=0)
    weight_ranges: list[WeightRange] = Field(default_factory=list)
    price_ranges: list[PriceRange] = Field(default_factory=list)
    availability: ShippingAvailability = ShippingAvailability.ALL
    countries: list[str] = Field(default_factory=list)
    min_delivery_days: int = Field(default=1, ge=0)
    max_delivery_days: int = Field(default=7, ge=0)
    sort_order: int = 0
    conditions: ShippingConditions = Field(default_factory=ShippingConditions)
    translations: dict[str, dict[str, Any]] = Field(default_factory=dict)


class ShippingMethodUpdate(BaseSchema):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    is_active: bool | None = None
    type: ShippingType | None = None
    flat_rate_cost: Decimal | None = Field(default=None, ge=0)
    free_shipping_min_order: Decimal | None = Field(default=None, ge=0)
    weight_ranges: list[WeightRange] | None = None
    price_ranges: list[PriceRange] | None = None
    availability: ShippingAvailability | None = None
    countries: list[str] | None = None
    min_delivery_days: int | None = Field(default=None, ge=0)
    max_delivery_days: int | None = Field(default=None, ge=0)
    sort_order: int | None = None
    conditions: ShippingConditions | None = None
    translations: dict[str, dict[str, Any]] | None = None


class ShippingMethodResponse(BaseSchema):
    id: UUID
    store_id: UUID
    name: str
    description: str | None
    is_active: bool
    type: ShippingType
    flat_rate_cost: Decimal
    free_shipping_min_order: Decimal
    weight_ranges: list[dict[str, Any]]
    price_ranges: list[dict[str, Any]]
    availability: ShippingAvailability
    countries: list[str]
    min_delivery_days: int
    max_delivery_days: int
    sort_order: int
    conditions: dict[str, Any]
    translations: dict[str, Any]
    created_at: datetime


class CartItem(BaseSchema):
    """Cart line as sent by the storefront checkout."""

    product_id: str | None = None
    sku: str | None = None
    price: Decimal = Field(default=Decimal("0"), ge=0)
    quantity: int = Field(default=1, ge=1)
    weight: Decimal = Field(default=Decimal("0"), ge=0)
    category_ids: list[str] = Field(default_factory=list)
    attribute_set_id: str | None = None
    attributes: dict[str, Any] | list[dict[str, Any]] = Field(default_factory=dict)


class ShippingQuoteRequest(BaseSchema):
    items: list[CartItem] = Field(..., min_length=1)
    country: str | None = Field(default=None, min_length=2, max_length=3)


class ShippingQuote(BaseSchema):
    method_id: UUID
    name: str
    description: str | None
    type: ShippingType
    cost: Decimal
    min_delivery_days: int
    max_delivery_days: int


class ShippingQuoteResponse(BaseSchema):
    quotes: list[ShippingQuote]
