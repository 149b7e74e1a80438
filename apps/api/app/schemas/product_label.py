"""Pydantic schemas for product labels."""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import Field

from app.schemas.common import BaseSchema

LabelPosition = Literal["top-left", "top-right", "bottom-left", "bottom-right", "center"]
HEX_COLOR = r"^#[0-9A-Fa-f]{3,8}$"


class PriceConditions(BaseSchema):
    has_sale_price: bool = False
    is_new: bool = False
    days_since_created: int | None = Field(default=None, ge=0)


class LabelAttributeCondition(BaseSchema):
    attribute_code: str
    attribute_value: str


class LabelConditions(BaseSchema):
    """Every present condition must match (AND)."""

    product_ids: list[str] = Field(default_factory=list)
    category_ids: list[str] = Field(default_factory=list)
    price_conditions: PriceConditions | None = None
    attribute_conditions: list[LabelAttributeCondition] = Field(default_factory=list)


class ProductLabelCreate(BaseSchema):
    name: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=1, max_length=255, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$")
    text: str = Field(..., min_length=1, max_length=255)
    color: str = Field(default="#000000", pattern=HEX_COLOR)
    background_color: str = Field(default="#FFFFFF", pattern=HEX_COLOR)
    position: LabelPosition = "top-left"
    is_active: bool = True
    priority: int = 0
    sort_order: int = 0
    conditions: LabelConditions = Field(default_factory=LabelConditions)
    translations: dict[str, dict[str, Any]] = Field(default_factory=dict)


class ProductLabelUpdate(BaseSchema):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    slug: str | None = Field(
        default=None, min_length=1, max_length=255, pattern=r"^[a-z0-9]+(?:-[a-z0-9]+)*$"
    )
    text: str | None = Field(default=None, min_length=1, max_length=255)
    color: str | None = Field(default=None, pattern=HEX_COLOR)
    background_color: str | None = Field(default=None, pattern=HEX_COLOR)
    position: LabelPosition | None = None
    is_active: bool | None = None
    priority: int | None = None
    sort_order: int | None = None
    conditions: LabelConditions | None = None
    translations: dict[str, dict[str, Any]] | None = None


class ProductLabelResponse(BaseSchema):
    id: UUID
    store_id: UUID
    name: str
    slug: str
    text: str
    color: str
    background_color: str
    position: str
    is_active: bool
    priority: int
    sort_order: int
    conditions: dict[str, Any]
    translations: dict[str, Any]
    created_at: datetime
