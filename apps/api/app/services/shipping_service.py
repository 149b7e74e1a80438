"""Shipping method management and checkout quotes."""

import logging
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.shipping_method import ShippingAvailability, ShippingMethod, ShippingType

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class ShippingValidationError(ValueError):
    """Shipping method fields are inconsistent with its type."""


def _dec(value: Any) -> Decimal:
    if value is None or value == "":
        return ZERO
    return Decimal(str(value))


def validate_method_fields(data: dict[str, Any]) -> None:
    """Check that the fields required by the method's type are present.

    Raises:
        ShippingValidationError: If a required field is missing or a range
            is malformed
    """
    method_type = ShippingType(data["type"])

    if method_type == ShippingType.FLAT_RATE and data.get("flat_rate_cost") is None:
        raise ShippingValidationError("flat_rate_cost is required for flat_rate methods")
    if method_type == ShippingType.FREE_SHIPPING and data.get("free_shipping_min_order") is None:
        raise ShippingValidationError(
            "free_shipping_min_order is required for free_shipping methods"
        )

    for range_type, field, low, high in (
        (ShippingType.WEIGHT_BASED, "weight_ranges", "min_weight", "max_weight"),
        (ShippingType.PRICE_BASED, "price_ranges", "min_price", "max_price"),
    ):
        if method_type != range_type:
            continue
        ranges = data.get(field) or []
        if not ranges:
            raise ShippingValidationError(f"{field} must not be empty for {range_type.value}")
        for entry in ranges:
            if _dec(entry.get(low)) > _dec(entry.get(high)):
                raise ShippingValidationError(f"{field}: {low} must not exceed {high}")
            if _dec(entry.get("cost")) < ZERO:
                raise ShippingValidationError(f"{field}: cost must not be negative")

    if data.get("availability") == ShippingAvailability.SPECIFIC_COUNTRIES.value and not data.get(
        "countries"
    ):
        raise ShippingValidationError("countries are required for specific_countries availability")

    if int(data.get("min_delivery_days") or 0) > int(data.get("max_delivery_days") or 0):
        raise ShippingValidationError("min_delivery_days must not exceed max_delivery_days")


def _in_range(value: Decimal, entry: dict[str, Any], low: str, high: str) -> bool:
    return _dec(entry.get(low)) <= value <= _dec(entry.get(high))


def calculate_cost(method: ShippingMethod, subtotal: Decimal, total_weight: Decimal) -> Decimal | None:
    """Shipping charge for a cart, or None when no tier covers it."""
    if method.type == ShippingType.FLAT_RATE:
        return _dec(method.flat_rate_cost)

    if method.type == ShippingType.FREE_SHIPPING:
        if subtotal >= _dec(method.free_shipping_min_order):
            return ZERO
        return _dec(method.flat_rate_cost)

    if method.type == ShippingType.WEIGHT_BASED:
        for entry in method.weight_ranges or []:
            if _in_range(total_weight, entry, "min_weight", "max_weight"):
                return _dec(entry.get("cost"))
        return None

    for entry in method.price_ranges or []:
        if _in_range(subtotal, entry, "min_price", "max_price"):
            return _dec(entry.get("cost"))
    return None


def is_available_for_country(method: ShippingMethod, country: str | None) -> bool:
    if method.availability == ShippingAvailability.ALL:
        return True
    if not country:
        return False
    return country.upper() in {c.upper() for c in method.countries or []}


def _attribute_value(attributes: Any, code: str) -> Any:
    if isinstance(attributes, dict):
        return attributes.get(code)
    for attr in attributes or []:
        if isinstance(attr, dict) and attr.get("code") == code:
            return attr.get("value")
    return None


def matches_conditions(conditions: dict[str, Any] | None, items: list[dict[str, Any]]) -> bool:
    """True when every non-empty condition matches at least one cart item."""
    if not conditions:
        return True

    categories = {str(c) for c in conditions.get("categories") or []}
    if categories and not any(
        categories & {str(c) for c in item.get("category_ids") or []} for item in items
    ):
        return False

    attribute_sets = {str(a) for a in conditions.get("attribute_sets") or []}
    if attribute_sets and not any(
        str(item.get("attribute_set_id")) in attribute_sets for item in items
    ):
        return False

    skus = set(conditions.get("skus") or [])
    if skus and not any(item.get("sku") in skus for item in items):
        return False

    for cond in conditions.get("attribute_conditions") or []:
        expected = str(cond.get("attribute_value", "")).lower()
        if not any(
            str(_attribute_value(item.get("attributes"), cond.get("attribute_code")) or "").lower()
            == expected
            for item in items
        ):
            return False

    return True


class ShippingService:
    """CRUD and quoting for a store's shipping methods."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_methods(self, store_id: UUID, active_only: bool = False) -> list[ShippingMethod]:
        query = select(ShippingMethod).where(ShippingMethod.store_id == store_id)
        if active_only:
            query = query.where(ShippingMethod.is_active == True)  # noqa: E712
        query = query.order_by(ShippingMethod.sort_order, ShippingMethod.name)
        return list((await self.db.execute(query)).scalars().all())

    async def get_method(self, store_id: UUID, method_id: UUID) -> ShippingMethod | None:
        query = select(ShippingMethod).where(
            ShippingMethod.id == method_id,
            ShippingMethod.store_id == store_id,
        )
        return (await self.db.execute(query)).scalar_one_or_none()

    async def create_method(self, store_id: UUID, data: dict[str, Any]) -> ShippingMethod:
        validate_method_fields(data)
        method = ShippingMethod(store_id=store_id, **data)
        self.db.add(method)
        await self.db.commit()
        await self.db.refresh(method)
        logger.info("Created shipping method %s for store %s", method.name, store_id)
        return method

    async def update_method(self, method: ShippingMethod, changes: dict[str, Any]) -> ShippingMethod:
        """Apply a partial update, validating the merged result."""
        merged = {
            "type": method.type.value,
            "flat_rate_cost": method.flat_rate_cost,
            "free_shipping_min_order": method.free_shipping_min_order,
            "weight_ranges": method.weight_ranges,
            "price_ranges": method.price_ranges,
            "availability": method.availability.value,
            "countries": method.countries,
            "min_delivery_days": method.min_delivery_days,
            "max_delivery_days": method.max_delivery_days,
        }
        merged.update({k: getattr(v, "value", v) for k, v in changes.items()})
        validate_method_fields(merged)

        for field, value in changes.items():
            setattr(method, field, value)
        await self.db.commit()
        await self.db.refresh(method)
        return method

    async def delete_method(self, method: ShippingMethod) -> None:
        await self.db.delete(method)
        await self.db.commit()

    async def quote(
        self,
        store_id: UUID,
        items: list[dict[str, Any]],
        country: str | None = None,
    ) -> list[tuple[ShippingMethod, Decimal]]:
        """Applicable active methods for a cart with their computed cost.

        Args:
            store_id: Storefront store
            items: Cart lines with ``price``, ``quantity``, ``weight`` and the
                product fields used by conditions
            country: Destination country code

        Returns:
            (method, cost) pairs ordered by sort_order
        """
        subtotal = sum(
            (_dec(item.get("price")) * int(item.get("quantity") or 1) for item in items), ZERO
        )
        total_weight = sum(
            (_dec(item.get("weight")) * int(item.get("quantity") or 1) for item in items), ZERO
        )

        quotes = []
        for method in await self.list_methods(store_id, active_only=True):
            if not is_available_for_country(method, country):
                continue
            if not matches_conditions(method.conditions, items):
                continue
            cost = calculate_cost(method, subtotal, total_weight)
            if cost is None:
                continue
            quotes.append((method, cost))
        return quotes
