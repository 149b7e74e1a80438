"""Store model, the tenant root of the platform."""

from typing import TYPE_CHECKING, Any

from sqlalchemy import Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, JSONBType

if TYPE_CHECKING:
    from app.models.custom_domain import CustomDomain
    from app.models.store_database import StoreDatabase


class Store(Base):
    """Store model representing a single tenant.

    A store owns its catalog, shipping methods, labels, templates, custom
    domains, page layouts and plugins. Everything tenant-scoped carries a
    ``store_id`` foreign key with ``ON DELETE CASCADE``.
    """

    __tablename__ = "stores"

    # User id (``sub`` claim) of the store owner
    owner_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
    )

    # Store information
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Store status
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    # Flexible settings storage (currency, languages, theme, etc.)
    settings: Mapped[dict[str, Any]] = mapped_column(
        JSONBType,
        default=dict,
        nullable=False,
    )

    # Relationships
    custom_domains: Mapped[list["CustomDomain"]] = relationship(
        "CustomDomain",
        back_populates="store",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    database_config: Mapped["StoreDatabase | None"] = relationship(
        "StoreDatabase",
        back_populates="store",
        uselist=False,
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Store {self.name} ({self.slug})>"
