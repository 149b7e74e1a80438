"""Page builder slot configuration model."""

import enum
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Enum, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, JSONBType


class PageType(str, enum.Enum):
    """Storefront pages that have an editable layout."""

    CART = "cart"
    CATEGORY = "category"
    PRODUCT = "product"
    CHECKOUT = "checkout"
    SUCCESS = "success"
    HEADER = "header"
    ACCOUNT = "account"
    LOGIN = "login"


class SlotConfigurationStatus(str, enum.Enum):
    """Lifecycle of a layout version."""

    INIT = "init"
    DRAFT = "draft"
    ACCEPTANCE = "acceptance"
    PUBLISHED = "published"
    REVERTED = "reverted"


class SlotConfiguration(Base):
    """One version of a page layout.

    ``configuration`` holds ``{"page_name", "slot_type", "slots", "metadata"}``
    where ``slots`` is the flat id-keyed slot map. Drafts are edited in place
    (last write wins); publishing freezes the draft as a new numbered version.
    """

    __tablename__ = "slot_configurations"

    store_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("stores.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)

    page_type: Mapped[PageType] = mapped_column(
        Enum(
            PageType,
            name="slot_page_type",
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    configuration: Mapped[dict[str, Any]] = mapped_column(
        JSONBType,
        default=dict,
        nullable=False,
    )
    status: Mapped[SlotConfigurationStatus] = mapped_column(
        Enum(
            SlotConfigurationStatus,
            name="slot_configuration_status",
            values_callable=lambda x: [e.value for e in x],
        ),
        default=SlotConfigurationStatus.DRAFT,
        nullable=False,
    )
    version_number: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    published_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    published_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    acceptance_published_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    parent_version_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("slot_configurations.id", ondelete="SET NULL"),
        nullable=True,
    )
    current_edit_id: Mapped[uuid.UUID | None] = mapped_column(Uuid(as_uuid=True), nullable=True)
    has_unpublished_changes: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    extra_metadata: Mapped[dict[str, Any]] = mapped_column(
        "metadata",
        JSONBType,
        default=dict,
        nullable=False,
    )

    __table_args__ = (
        Index("ix_slot_configurations_store_page_status", "store_id", "page_type", "status"),
    )

    def __repr__(self) -> str:
        return f"<SlotConfiguration {self.page_type.value} v{self.version_number} {self.status.value}>"
