"""Custom domain model with verification and SSL lifecycle."""

import enum
import uuid
from datetime import datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, String, Text, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, JSONBType

if TYPE_CHECKING:
    from app.models.store import Store


class VerificationStatus(str, enum.Enum):
    """DNS ownership verification state."""

    PENDING = "pending"
    VERIFYING = "verifying"
    VERIFIED = "verified"
    FAILED = "failed"


class VerificationMethod(str, enum.Enum):
    """How ownership of the domain is proven."""

    TXT = "txt"
    CNAME = "cname"
    HTTP = "http"


class SslStatus(str, enum.Enum):
    """Certificate lifecycle state."""

    PENDING = "pending"
    ACTIVE = "active"
    FAILED = "failed"
    EXPIRED = "expired"
    RENEWING = "renewing"


class CustomDomain(Base):
    """A hostname pointed at a store's storefront.

    At most one domain per store is primary; the partial unique index below
    lets the database enforce that under concurrent writers.
    """

    __tablename__ = "custom_domains"

    store_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("stores.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    domain: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    subdomain: Mapped[str | None] = mapped_column(String(255), nullable=True)

    is_primary: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_redirect: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    redirect_to: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Verification
    verification_status: Mapped[VerificationStatus] = mapped_column(
        Enum(
            VerificationStatus,
            name="domain_verification_status",
            values_callable=lambda x: [e.value for e in x],
        ),
        default=VerificationStatus.PENDING,
        nullable=False,
    )
    verification_method: Mapped[VerificationMethod] = mapped_column(
        Enum(
            VerificationMethod,
            name="domain_verification_method",
            values_callable=lambda x: [e.value for e in x],
        ),
        default=VerificationMethod.TXT,
        nullable=False,
    )
    verification_token: Mapped[str] = mapped_column(String(64), nullable=False)
    verification_record_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    verification_record_value: Mapped[str | None] = mapped_column(String(255), nullable=True)
    verified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_verification_error: Mapped[str | None] = mapped_column(Text, nullable=True)

    # SSL
    ssl_status: Mapped[SslStatus] = mapped_column(
        Enum(
            SslStatus,
            name="domain_ssl_status",
            values_callable=lambda x: [e.value for e in x],
        ),
        default=SslStatus.PENDING,
        nullable=False,
    )
    ssl_issued_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    ssl_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    ssl_auto_renew: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Required DNS records and per-domain response headers
    dns_records: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONBType,
        default=list,
        nullable=False,
    )
    custom_headers: Mapped[dict[str, str]] = mapped_column(
        JSONBType,
        default=dict,
        nullable=False,
    )

    store: Mapped["Store"] = relationship(
        "Store",
        back_populates="custom_domains",
    )

    __table_args__ = (
        Index(
            "uq_custom_domains_one_primary_per_store",
            "store_id",
            unique=True,
            postgresql_where=text("is_primary"),
            sqlite_where=text("is_primary"),
        ),
    )

    def __repr__(self) -> str:
        return f"<CustomDomain {self.domain} ({self.verification_status.value})>"
