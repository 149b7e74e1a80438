"""Product model for a store's catalog."""

import uuid
from decimal import Decimal
from typing import Any

from sqlalchemy import ForeignKey, Index, Integer, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, EmbeddingType, JSONBType


class Product(Base):
    """Product model scoped to a store.

    Localized text lives in the ``translations`` blob keyed by language code
    (``{"en": {"name": ..., "description": ...}}``) and, once normalized, in
    the ``product_translations`` table. The blob is kept for rollback.
    """

    __tablename__ = "products"

    store_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("stores.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    sku: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(50),
        default="active",
        nullable=False,
    )

    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    compare_price: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    weight: Mapped[Decimal | None] = mapped_column(Numeric(10, 3), nullable=True)
    stock_quantity: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    attribute_set_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    # {attribute_code: value}
    attributes: Mapped[dict[str, Any]] = mapped_column(
        JSONBType,
        default=dict,
        nullable=False,
    )
    category_ids: Mapped[list[str]] = mapped_column(
        JSONBType,
        default=list,
        nullable=False,
    )

    # Legacy per-language blobs
    translations: Mapped[dict[str, Any]] = mapped_column(
        JSONBType,
        default=dict,
        nullable=False,
    )
    seo: Mapped[dict[str, Any]] = mapped_column(
        JSONBType,
        default=dict,
        nullable=False,
    )

    # Vector embedding for semantic search (1536 dimensions for OpenAI embeddings)
    embedding: Mapped[list[float] | None] = mapped_column(
        EmbeddingType,
        nullable=True,
    )

    __table_args__ = (
        Index(
            "ix_products_store_sku",
            "store_id",
            "sku",
            unique=True,
        ),
    )

    def __repr__(self) -> str:
        return f"<Product {self.sku} ({self.slug})>"
