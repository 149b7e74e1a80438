"""Per-store database connection configuration."""

import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base

if TYPE_CHECKING:
    from app.models.store import Store


class DatabaseProvider(str, enum.Enum):
    """Hosted database providers a store can connect."""

    SUPABASE = "supabase"
    NEON = "neon"
    PLANETSCALE = "planetscale"
    POSTGRES = "postgres"


class ConnectionStatus(str, enum.Enum):
    """Result of the last connection check."""

    PENDING = "pending"
    CONNECTED = "connected"
    FAILED = "failed"


class StoreDatabase(Base):
    """Database connection for a store's tenant data.

    Each store has at most one connection config. The connection string is
    encrypted at rest and never returned in clear text by the API.
    """

    __tablename__ = "store_databases"

    store_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("stores.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )

    provider: Mapped[DatabaseProvider] = mapped_column(
        Enum(
            DatabaseProvider,
            name="database_provider",
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    host: Mapped[str | None] = mapped_column(String(255), nullable=True)
    database_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Fernet-encrypted connection string
    connection_string_encrypted: Mapped[str] = mapped_column(Text, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    connection_status: Mapped[ConnectionStatus] = mapped_column(
        Enum(
            ConnectionStatus,
            name="database_connection_status",
            values_callable=lambda x: [e.value for e in x],
        ),
        default=ConnectionStatus.PENDING,
        nullable=False,
    )
    last_checked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    store: Mapped["Store"] = relationship(
        "Store",
        back_populates="database_config",
    )

    def __repr__(self) -> str:
        return f"<StoreDatabase {self.provider.value}:{self.host}>"
