"""Normalized per-language translation and SEO tables.

Each table holds one row per ``(entity, language_code)``. The unique
constraint on that pair is what makes the blob-to-row migration idempotent.
"""

import uuid

from sqlalchemy import ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base

SEO_FIELDS: tuple[str, ...] = (
    "meta_title",
    "meta_description",
    "meta_keywords",
    "meta_robots_tag",
    "og_title",
    "og_description",
    "og_image_url",
    "twitter_title",
    "twitter_description",
    "twitter_image_url",
    "canonical_url",
)


class LanguageRowMixin:
    """Common ``language_code`` column for normalized rows."""

    language_code: Mapped[str] = mapped_column(String(10), nullable=False)


class SeoFieldsMixin(LanguageRowMixin):
    """Columns shared by every ``*_seo`` table."""

    meta_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    meta_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    meta_keywords: Mapped[str | None] = mapped_column(Text, nullable=True)
    meta_robots_tag: Mapped[str | None] = mapped_column(String(100), nullable=True)
    og_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    og_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    og_image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    twitter_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    twitter_description: Mapped[str | None] = mapped_column(Text, nullable=True)
    twitter_image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    canonical_url: Mapped[str | None] = mapped_column(Text, nullable=True)


def _entity_fk(table: str) -> Mapped[uuid.UUID]:
    return mapped_column(
        Uuid(as_uuid=True),
        ForeignKey(f"{table}.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )


def _unique_per_language(table: str, fk: str) -> UniqueConstraint:
    return UniqueConstraint(fk, "language_code", name=f"uq_{table}_entity_language")


class ProductTranslation(LanguageRowMixin, Base):
    __tablename__ = "product_translations"
    __table_args__ = (_unique_per_language(__tablename__, "product_id"),)

    product_id: Mapped[uuid.UUID] = _entity_fk("products")
    name: Mapped[str | None] = mapped_column(String(500), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    short_description: Mapped[str | None] = mapped_column(Text, nullable=True)


class CategoryTranslation(LanguageRowMixin, Base):
    __tablename__ = "category_translations"
    __table_args__ = (_unique_per_language(__tablename__, "category_id"),)

    category_id: Mapped[uuid.UUID] = _entity_fk("categories")
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class CmsPageTranslation(LanguageRowMixin, Base):
    __tablename__ = "cms_page_translations"
    __table_args__ = (_unique_per_language(__tablename__, "cms_page_id"),)

    cms_page_id: Mapped[uuid.UUID] = _entity_fk("cms_pages")
    title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    excerpt: Mapped[str | None] = mapped_column(Text, nullable=True)


class ProductLabelTranslation(LanguageRowMixin, Base):
    __tablename__ = "product_label_translations"
    __table_args__ = (_unique_per_language(__tablename__, "product_label_id"),)

    product_label_id: Mapped[uuid.UUID] = _entity_fk("product_labels")
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    text: Mapped[str | None] = mapped_column(String(255), nullable=True)


class ShippingMethodTranslation(LanguageRowMixin, Base):
    __tablename__ = "shipping_method_translations"
    __table_args__ = (_unique_per_language(__tablename__, "shipping_method_id"),)

    shipping_method_id: Mapped[uuid.UUID] = _entity_fk("shipping_methods")
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class ProductSeo(SeoFieldsMixin, Base):
    __tablename__ = "product_seo"
    __table_args__ = (_unique_per_language(__tablename__, "product_id"),)

    product_id: Mapped[uuid.UUID] = _entity_fk("products")


class CategorySeo(SeoFieldsMixin, Base):
    __tablename__ = "category_seo"
    __table_args__ = (_unique_per_language(__tablename__, "category_id"),)

    category_id: Mapped[uuid.UUID] = _entity_fk("categories")


class CmsPageSeo(SeoFieldsMixin, Base):
    __tablename__ = "cms_page_seo"
    __table_args__ = (_unique_per_language(__tablename__, "cms_page_id"),)

    cms_page_id: Mapped[uuid.UUID] = _entity_fk("cms_pages")
