"""Product label CRUD and condition matching."""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.base import as_utc, utcnow
from app.models.product import Product
from app.models.product_label import ProductLabel

logger = logging.getLogger(__name__)


def _attribute_matches(attributes: Any, code: str, expected: Any) -> bool:
    if isinstance(attributes, dict):
        value = attributes.get(code)
    else:
        value = next(
            (a.get("value") for a in attributes or [] if isinstance(a, dict) and a.get("code") == code),
            None,
        )
    if not value:
        return False
    return str(value).lower() == str(expected).lower()


def has_sale_price(product: Product) -> bool:
    """A compare price that is set, positive and differs from the price."""
    compare = product.compare_price
    if compare is None or Decimal(compare) <= 0:
        return False
    return Decimal(compare) != Decimal(product.price)


def label_matches(
    conditions: dict[str, Any] | None, product: Product, now: datetime | None = None
) -> bool:
    """Whether a label with ``conditions`` applies to ``product``.

    Every present condition must hold. Empty lists and missing keys are
    ignored, so a label without conditions matches every product.
    """
    if not conditions:
        return True

    product_ids = [str(p) for p in conditions.get("product_ids") or []]
    if product_ids and str(product.id) not in product_ids:
        return False

    category_ids = {str(c) for c in conditions.get("category_ids") or []}
    if category_ids and not category_ids & {str(c) for c in product.category_ids or []}:
        return False

    price_conditions = conditions.get("price_conditions") or {}
    if price_conditions.get("has_sale_price") and not has_sale_price(product):
        return False
    if price_conditions.get("is_new") and price_conditions.get("days_since_created"):
        now = now or utcnow()
        age_days = (now - as_utc(product.created_at)).days
        if age_days > int(price_conditions["days_since_created"]):
            return False

    for cond in conditions.get("attribute_conditions") or []:
        if not _attribute_matches(
            product.attributes, cond.get("attribute_code"), cond.get("attribute_value")
        ):
            return False

    return True


def display_order(labels: list[ProductLabel]) -> list[ProductLabel]:
    """Sort by sort_order ascending, then priority descending."""
    return sorted(labels, key=lambda label: (label.sort_order or 0, -(label.priority or 0)))


class ProductLabelService:
    """Manage a store's product labels."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_labels(self, store_id: UUID, active_only: bool = False) -> list[ProductLabel]:
        query = select(ProductLabel).where(ProductLabel.store_id == store_id)
        if active_only:
            query = query.where(ProductLabel.is_active == True)  # noqa: E712
        query = query.order_by(ProductLabel.priority.desc(), ProductLabel.name)
        return list((await self.db.execute(query)).scalars().all())

    async def get_label(self, store_id: UUID, label_id: UUID) -> ProductLabel | None:
        query = select(ProductLabel).where(
            ProductLabel.id == label_id,
            ProductLabel.store_id == store_id,
        )
        return (await self.db.execute(query)).scalar_one_or_none()

    async def slug_taken(
        self, store_id: UUID, slug: str, exclude_id: UUID | None = None
    ) -> bool:
        query = select(ProductLabel.id).where(
            ProductLabel.store_id == store_id,
            ProductLabel.slug == slug,
        )
        if exclude_id is not None:
            query = query.where(ProductLabel.id != exclude_id)
        return (await self.db.execute(query)).first() is not None

    async def create_label(self, store_id: UUID, data: dict[str, Any]) -> ProductLabel:
        label = ProductLabel(store_id=store_id, **data)
        self.db.add(label)
        await self.db.commit()
        await self.db.refresh(label)
        logger.info("Created product label %s for store %s", label.slug, store_id)
        return label

    async def update_label(self, label: ProductLabel, changes: dict[str, Any]) -> ProductLabel:
        for field, value in changes.items():
            setattr(label, field, value)
        await self.db.commit()
        await self.db.refresh(label)
        return label

    async def delete_label(self, label: ProductLabel) -> None:
        await self.db.delete(label)
        await self.db.commit()

    async def labels_for_product(self, store_id: UUID, product: Product) -> list[ProductLabel]:
        """Active labels whose conditions match the product, in display order."""
        labels = await self.list_labels(store_id, active_only=True)
        now = utcnow()
        return display_order([label for label in labels if label_matches(label.conditions, product, now)])
