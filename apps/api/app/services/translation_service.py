"""Localized reads over the normalized translation tables."""

import json
import logging
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.deps import DEFAULT_LANGUAGE
from app.models.product import Product
from app.models.translation import SEO_FIELDS, ProductSeo, ProductTranslation

logger = logging.getLogger(__name__)

PRODUCT_TEXT_FIELDS = ("name", "description", "short_description")


def localized_text(blob: Any, language: str) -> dict[str, Any]:
    """Entry of a translations blob for ``language``, falling back to English."""
    if isinstance(blob, str):
        blob = json.loads(blob) if blob.strip() else {}
    if not isinstance(blob, dict):
        return {}
    for code in (language, DEFAULT_LANGUAGE):
        entry = blob.get(code)
        if isinstance(entry, dict) and entry:
            return entry
    return {}


def _row_fields(row: Any, fields: tuple[str, ...]) -> dict[str, Any]:
    return {name: getattr(row, name) for name in fields}


class TranslationService:
    """Resolve product text and SEO for a language.

    Lookup order: the requested language's normalized row, the English row,
    then the legacy JSON blob.
    """

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _rows_by_product[T: (ProductTranslation, ProductSeo)](
        self, model: type[T], product_ids: list[UUID], language: str
    ) -> dict[UUID, dict[str, T]]:
        if not product_ids:
            return {}
        query = select(model).where(
            model.product_id.in_(product_ids),
            model.language_code.in_({language, DEFAULT_LANGUAGE}),
        )
        rows: dict[UUID, dict[str, T]] = {}
        for row in (await self.db.execute(query)).scalars().all():
            rows.setdefault(row.product_id, {})[row.language_code] = row
        return rows

    async def localize_products(
        self, products: list[Product], language: str
    ) -> list[dict[str, Any]]:
        """Product payloads with ``name``/``description``/``seo`` in ``language``."""
        ids = [p.id for p in products]
        texts = await self._rows_by_product(ProductTranslation, ids, language)
        seos = await self._rows_by_product(ProductSeo, ids, language)

        payloads = []
        for product in products:
            by_lang = texts.get(product.id, {})
            row = by_lang.get(language) or by_lang.get(DEFAULT_LANGUAGE)
            if row is not None:
                text = _row_fields(row, PRODUCT_TEXT_FIELDS)
                resolved = row.language_code
            else:
                blob = localized_text(product.translations, language)
                text = {name: blob.get(name) for name in PRODUCT_TEXT_FIELDS}
                resolved = language if language in (product.translations or {}) else DEFAULT_LANGUAGE

            seo_by_lang = seos.get(product.id, {})
            seo_row = seo_by_lang.get(language) or seo_by_lang.get(DEFAULT_LANGUAGE)
            if seo_row is not None:
                seo = _row_fields(seo_row, SEO_FIELDS)
            else:
                seo = self._blob_seo(product.seo, language)

            payloads.append({"product": product, "language": resolved, "seo": seo, **text})
        return payloads

    @staticmethod
    def _blob_seo(blob: Any, language: str) -> dict[str, Any]:
        blob = blob or {}
        if any(isinstance(v, dict) for v in blob.values()):
            blob = localized_text(blob, language)
        return {name: blob.get(name) for name in SEO_FIELDS}

    async def get_product_translations(self, product_id: UUID) -> list[ProductTranslation]:
        query = (
            select(ProductTranslation)
            .where(ProductTranslation.product_id == product_id)
            .order_by(ProductTranslation.language_code)
        )
        return list((await self.db.execute(query)).scalars().all())

    async def upsert_product_translation(
        self, product_id: UUID, language: str, values: dict[str, Any]
    ) -> ProductTranslation:
        """Create or replace the product's row for ``language``."""
        query = select(ProductTranslation).where(
            ProductTranslation.product_id == product_id,
            ProductTranslation.language_code == language,
        )
        row = (await self.db.execute(query)).scalar_one_or_none()
        if row is None:
            row = ProductTranslation(product_id=product_id, language_code=language)
            self.db.add(row)
        for name in PRODUCT_TEXT_FIELDS:
            if name in values:
                setattr(row, name, values[name])
        await self.db.commit()
        await self.db.refresh(row)
        return row

    async def delete_product_translation(self, product_id: UUID, language: str) -> bool:
        query = select(ProductTranslation).where(
            ProductTranslation.product_id == product_id,
            ProductTranslation.language_code == language,
        )
        row = (await self.db.execute(query)).scalar_one_or_none()
        if row is None:
            return False
        await self.db.delete(row)
        await self.db.commit()
        return True
