"""Copy JSON translation and SEO blobs into the normalized per-language tables.

The transform is written against SQLAlchemy Core table constructs rather than
the ORM models so the same code runs from an Alembic data migration (sync
connection), the ``normalize_translations`` CLI and the Celery task (async
engine via ``run_sync``). Inserts use ``ON CONFLICT DO NOTHING`` on
``(entity_fk, language_code)`` so every entrypoint can be re-run safely.
"""

import json
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncEngine

from app.models.base import utcnow
from app.models.translation import SEO_FIELDS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TranslationTarget:
    """One blob column to normalize.

    Attributes:
        entity_table: Table holding the JSON blob
        translation_table: Normalized destination table
        fk_column: Destination column referencing ``entity_table.id``
        fields: Destination columns copied per language
        field_mapping: Destination column -> blob key, where they differ
        blob_column: Source JSON column
        per_language_detection: SEO blobs may be language-agnostic
    """

    entity_table: str
    translation_table: str
    fk_column: str
    fields: tuple[str, ...]
    field_mapping: dict[str, str] = field(default_factory=dict)
    blob_column: str = "translations"
    per_language_detection: bool = False

    @property
    def name(self) -> str:
        return f"{self.entity_table}.{self.blob_column}"

    def source_key(self, column: str) -> str:
        return self.field_mapping.get(column, column)


def _seo_target(entity_table: str, seo_table: str, fk_column: str) -> TranslationTarget:
    return TranslationTarget(
        entity_table=entity_table,
        translation_table=seo_table,
        fk_column=fk_column,
        fields=SEO_FIELDS,
        blob_column="seo",
        per_language_detection=True,
    )


TARGETS: tuple[TranslationTarget, ...] = (
    TranslationTarget(
        "products", "product_translations", "product_id", ("name", "description", "short_description")
    ),
    TranslationTarget("categories", "category_translations", "category_id", ("name", "description")),
    TranslationTarget("cms_pages", "cms_page_translations", "cms_page_id", ("title", "content", "excerpt")),
    TranslationTarget("product_labels", "product_label_translations", "product_label_id", ("name", "text")),
    TranslationTarget(
        "shipping_methods", "shipping_method_translations", "shipping_method_id", ("name", "description")
    ),
    _seo_target("products", "product_seo", "product_id"),
    _seo_target("categories", "category_seo", "category_id"),
    _seo_target("cms_pages", "cms_page_seo", "cms_page_id"),
)

ENTITY_NAMES = tuple(dict.fromkeys(t.entity_table for t in TARGETS))


@dataclass
class MigrationReport:
    target: str
    migrated: int = 0
    skipped: int = 0


def select_targets(entity: str | None = None) -> list[TranslationTarget]:
    """Targets for one entity table, or all of them.

    Raises:
        ValueError: If ``entity`` is not a known entity table
    """
    if entity is None:
        return list(TARGETS)
    if entity not in ENTITY_NAMES:
        raise ValueError(f"Unknown entity '{entity}'. Choose from: {', '.join(ENTITY_NAMES)}")
    return [t for t in TARGETS if t.entity_table == entity]


def parse_blob(raw: Any) -> dict[str, Any]:
    """Blob as a dict; accepts stored JSON strings as well as objects."""
    if raw is None:
        return {}
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return {}
        raw = json.loads(raw)
    return raw if isinstance(raw, dict) else {}


def is_per_language_seo(blob: dict[str, Any]) -> bool:
    """SEO is keyed by language when any value carries a meta title or description."""
    return any(
        isinstance(value, dict) and (value.get("meta_title") or value.get("meta_description"))
        for value in blob.values()
    )


def _translation_rows(target: TranslationTarget, blob: dict[str, Any]) -> list[dict[str, Any]]:
    rows = []
    for language, data in blob.items():
        if not isinstance(data, dict):
            continue
        values = {col: data.get(target.source_key(col)) for col in target.fields}
        if any(v is not None and v != "" for v in values.values()):
            rows.append({"language_code": language, **values})
    return rows


def _seo_rows(target: TranslationTarget, blob: dict[str, Any]) -> list[dict[str, Any]]:
    def row(language: str, data: dict[str, Any]) -> dict[str, Any] | None:
        if not any(data.get(col) for col in target.fields):
            return None
        return {"language_code": language, **{col: data.get(col) or None for col in target.fields}}

    if is_per_language_seo(blob):
        candidates = [
            row(language, data) for language, data in blob.items() if isinstance(data, dict)
        ]
    else:
        candidates = [row("en", blob)]
    return [r for r in candidates if r is not None]


def extract_rows(target: TranslationTarget, blob: dict[str, Any]) -> list[dict[str, Any]]:
    if target.per_language_detection:
        return _seo_rows(target, blob)
    return _translation_rows(target, blob)


def _entity_table(target: TranslationTarget) -> sa.TableClause:
    return sa.table(
        target.entity_table,
        sa.column("id", sa.Uuid()),
        sa.column(target.blob_column, sa.JSON()),
    )


def _destination_table(target: TranslationTarget) -> sa.TableClause:
    columns = [
        sa.column("id", sa.Uuid()),
        sa.column(target.fk_column, sa.Uuid()),
        sa.column("language_code", sa.String()),
        sa.column("created_at", sa.DateTime(timezone=True)),
        sa.column("updated_at", sa.DateTime(timezone=True)),
    ]
    columns.extend(sa.column(col, sa.Text()) for col in target.fields)
    return sa.table(target.translation_table, *columns)


def insert_ignore(conn: Connection, table: sa.TableClause, conflict_columns: list[str]):
    """INSERT ... ON CONFLICT DO NOTHING for the connection's dialect."""
    dialect = conn.dialect.name
    if dialect == "postgresql":
        return postgresql.insert(table).on_conflict_do_nothing(index_elements=conflict_columns)
    if dialect == "sqlite":
        return sqlite.insert(table).on_conflict_do_nothing(index_elements=conflict_columns)
    raise NotImplementedError(f"Conflict-ignoring insert not supported on {dialect}")


def migrate_target(conn: Connection, target: TranslationTarget) -> MigrationReport:
    """Normalize one blob column. Existing rows are never overwritten."""
    report = MigrationReport(target=target.name)
    source = _entity_table(target)
    destination = _destination_table(target)
    blob_col = source.c[target.blob_column]

    try:
        entities = conn.execute(sa.select(source.c.id, blob_col).where(blob_col.is_not(None))).all()
        for entity_id, raw in entities:
            blob = parse_blob(raw)
            if not blob:
                report.skipped += 1
                continue

            rows = extract_rows(target, blob)
            if not rows:
                continue

            now = utcnow()
            values = [
                {
                    "id": uuid.uuid4(),
                    target.fk_column: entity_id,
                    "created_at": now,
                    "updated_at": now,
                    **row,
                }
                for row in rows
            ]
            stmt = insert_ignore(conn, destination, [target.fk_column, "language_code"])
            conn.execute(stmt, values)
            report.migrated += len(values)
    except Exception:
        logger.exception("Failed normalizing %s into %s", target.name, target.translation_table)
        raise

    logger.info(
        "Normalized %s into %s: %d rows (%d skipped)",
        target.name,
        target.translation_table,
        report.migrated,
        report.skipped,
    )
    return report


def migrate(conn: Connection, entity: str | None = None) -> list[MigrationReport]:
    return [migrate_target(conn, target) for target in select_targets(entity)]


def rollback(conn: Connection, entity: str | None = None) -> dict[str, int]:
    """Empty the normalized tables. JSON blobs are left untouched."""
    deleted = {}
    for target in select_targets(entity):
        result = conn.execute(sa.delete(sa.table(target.translation_table)))
        deleted[target.translation_table] = result.rowcount
        logger.info("Cleared %s (%d rows)", target.translation_table, result.rowcount)
    return deleted


async def run_migration(engine: AsyncEngine, entity: str | None = None) -> list[MigrationReport]:
    async with engine.begin() as conn:
        return await conn.run_sync(migrate, entity)


async def run_rollback(engine: AsyncEngine, entity: str | None = None) -> dict[str, int]:
    async with engine.begin() as conn:
        return await conn.run_sync(rollback, entity)
