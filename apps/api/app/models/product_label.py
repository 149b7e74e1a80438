"""Product label (badge) model."""

import uuid
from typing import Any

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, JSONBType

LABEL_POSITIONS = ("top-left", "top-right", "bottom-left", "bottom-right", "center")


class ProductLabel(Base):
    """A badge shown on product cards whose ``conditions`` match the product."""

    __tablename__ = "product_labels"

    store_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("stores.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    text: Mapped[str] = mapped_column(String(255), nullable=False)
    color: Mapped[str] = mapped_column(String(20), default="#000000", nullable=False)
    background_color: Mapped[str] = mapped_column(String(20), default="#FFFFFF", nullable=False)
    position: Mapped[str] = mapped_column(String(20), default="top-left", nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    priority: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    conditions: Mapped[dict[str, Any]] = mapped_column(JSONBType, default=dict, nullable=False)
    translations: Mapped[dict[str, Any]] = mapped_column(JSONBType, default=dict, nullable=False)

    __table_args__ = (Index("ix_product_labels_store_slug", "store_id", "slug", unique=True),)

    def __repr__(self) -> str:
        return f"<ProductLabel {self.slug}>"
