"""Copy JSON translation blobs into the normalized per-language tables.

Safe to re-run: rows that already exist for an (entity, language) pair are
left untouched. ``--rollback`` empties the normalized tables and keeps the
JSON blobs.

Usage:
    cd apps/api && uv run python -m scripts.normalize_translations
    uv run python -m scripts.normalize_translations --entity products
    uv run python -m scripts.normalize_translations --entity products --rollback
"""

import asyncio

import typer

from app.core.database import engine
from app.core.logging_config import setup_logging
from app.services.translation_migration import (
    ENTITY_NAMES,
    MigrationReport,
    run_migration,
    run_rollback,
    select_targets,
)

cli = typer.Typer(help="Normalize per-language JSON translations")


@cli.command()
def main(
    entity: str | None = typer.Option(
        None,
        "--entity",
        "-e",
        help=f"Entity table to process ({', '.join(ENTITY_NAMES)}); all when omitted",
    ),
    rollback: bool = typer.Option(
        False, "--rollback", help="Delete the normalized rows instead of creating them"
    ),
) -> None:
    """Normalize translation blobs, or roll the normalization back."""
    setup_logging(debug=False)
    try:
        select_targets(entity)
    except ValueError as e:
        typer.secho(str(e), fg=typer.colors.RED, err=True)
        raise typer.Exit(code=2) from e

    if rollback:
        deleted = asyncio.run(_rollback(entity))
        for table, count in deleted.items():
            typer.echo(f"{table}: deleted {count}")
        return

    reports = asyncio.run(_migrate(entity))
    for report in reports:
        typer.echo(f"{report.target}: migrated {report.migrated}, skipped {report.skipped}")


async def _migrate(entity: str | None) -> list[MigrationReport]:
    try:
        return await run_migration(engine, entity)
    finally:
        await engine.dispose()


async def _rollback(entity: str | None) -> dict[str, int]:
    try:
        return await run_rollback(engine, entity)
    finally:
        await engine.dispose()


if __name__ == "__main__":
    cli()
