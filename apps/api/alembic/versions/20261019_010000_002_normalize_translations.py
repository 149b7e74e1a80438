"""Copy JSON translation blobs into the normalized per-language tables

Revision ID: 002
Revises: 001
Create Date: 2026-10-19

"""

from collections.abc import Sequence

from alembic import op
from app.services import translation_migration

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: str | None = "001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    translation_migration.migrate(op.get_bind())


def downgrade() -> None:
    # JSON blobs are kept, so emptying the normalized tables loses nothing
    translation_migration.rollback(op.get_bind())
