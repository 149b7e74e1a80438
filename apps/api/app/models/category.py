"""Category and CMS page models."""

import uuid
from typing import Any

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, JSONBType


class Category(Base):
    """Product category, optionally nested under a parent."""

    __tablename__ = "categories"

    store_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("stores.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    parent_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
    )
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    translations: Mapped[dict[str, Any]] = mapped_column(JSONBType, default=dict, nullable=False)
    seo: Mapped[dict[str, Any]] = mapped_column(JSONBType, default=dict, nullable=False)

    __table_args__ = (Index("ix_categories_store_slug", "store_id", "slug", unique=True),)


class CmsPage(Base):
    """Content page (about, terms, etc.)."""

    __tablename__ = "cms_pages"

    store_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("stores.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    slug: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    translations: Mapped[dict[str, Any]] = mapped_column(JSONBType, default=dict, nullable=False)
    seo: Mapped[dict[str, Any]] = mapped_column(JSONBType, default=dict, nullable=False)

    __table_args__ = (Index("ix_cms_pages_store_slug", "store_id", "slug", unique=True),)
