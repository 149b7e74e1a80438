"""Shipping method model."""

import enum
import uuid
from decimal import Decimal
from typing import Any

from sqlalchemy import Boolean, Enum, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, JSONBType


class ShippingType(str, enum.Enum):
    """How the shipping cost is computed."""

    FLAT_RATE = "flat_rate"
    FREE_SHIPPING = "free_shipping"
    WEIGHT_BASED = "weight_based"
    PRICE_BASED = "price_based"


class ShippingAvailability(str, enum.Enum):
    """Which destination countries a method serves."""

    ALL = "all"
    SPECIFIC_COUNTRIES = "specific_countries"


class ShippingMethod(Base):
    """A shipping option offered at checkout.

    Only the fields of the method's ``type`` are meaningful:
    ``flat_rate_cost`` for flat rates (and as the fallback charge of free
    shipping below its threshold), ``free_shipping_min_order`` for free
    shipping, ``weight_ranges`` / ``price_ranges`` for the tiered types.
    """

    __tablename__ = "shipping_methods"

    store_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("stores.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    type: Mapped[ShippingType] = mapped_column(
        Enum(
            ShippingType,
            name="shipping_type",
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    flat_rate_cost: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), nullable=False
    )
    free_shipping_min_order: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0"), nullable=False
    )
    # [{"min_weight": 0, "max_weight": 5, "cost": 4.99}]
    weight_ranges: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONBType, default=list, nullable=False
    )
    # [{"min_price": 0, "max_price": 50, "cost": 5.0}]
    price_ranges: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONBType, default=list, nullable=False
    )

    availability: Mapped[ShippingAvailability] = mapped_column(
        Enum(
            ShippingAvailability,
            name="shipping_availability",
            values_callable=lambda x: [e.value for e in x],
        ),
        default=ShippingAvailability.ALL,
        nullable=False,
    )
    countries: Mapped[list[str]] = mapped_column(JSONBType, default=list, nullable=False)

    min_delivery_days: Mapped[int] = mapped_column(Integer, default=1, nullable=False)
    max_delivery_days: Mapped[int] = mapped_column(Integer, default=7, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # {"categories": [...], "attribute_sets": [...], "skus": [...],
    #  "attribute_conditions": [{"attribute_code": ..., "attribute_value": ...}]}
    conditions: Mapped[dict[str, Any]] = mapped_column(JSONBType, default=dict, nullable=False)
    translations: Mapped[dict[str, Any]] = mapped_column(JSONBType, default=dict, nullable=False)

    def __repr__(self) -> str:
        return f"<ShippingMethod {self.name} ({self.type.value})>"
