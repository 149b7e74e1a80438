"""PDF template model for invoices, shipments and receipts."""

import enum
import uuid
from typing import Any

from sqlalchemy import Boolean, Enum, ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base, JSONBType


class TemplateType(str, enum.Enum):
    """Document kinds a template can render."""

    INVOICE = "invoice"
    SHIPMENT = "shipment"
    PACKING_SLIP = "packing_slip"
    RECEIPT = "receipt"


class PdfTemplate(Base):
    """HTML template rendered into a PDF document.

    ``default_html_template`` keeps the shipped markup so an edited template
    can be restored.
    """

    __tablename__ = "pdf_templates"

    store_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("stores.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    identifier: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    template_type: Mapped[TemplateType] = mapped_column(
        Enum(
            TemplateType,
            name="pdf_template_type",
            values_callable=lambda x: [e.value for e in x],
        ),
        nullable=False,
    )
    html_template: Mapped[str] = mapped_column(Text, nullable=False)
    default_html_template: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_system: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    variables: Mapped[list[str]] = mapped_column(JSONBType, default=list, nullable=False)
    # {"page_size": "A4", "orientation": "portrait", "margin_top": "20px", ...}
    settings: Mapped[dict[str, Any]] = mapped_column(JSONBType, default=dict, nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    __table_args__ = (
        UniqueConstraint("store_id", "identifier", name="uq_pdf_templates_store_identifier"),
    )

    def __repr__(self) -> str:
        return f"<PdfTemplate {self.identifier} ({self.template_type.value})>"
