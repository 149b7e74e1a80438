"""PDF template management and HTML preview rendering."""

import logging
import re
from typing import Any
from uuid import UUID

from jinja2 import TemplateSyntaxError, Undefined
from jinja2.sandbox import SandboxedEnvironment
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.pdf_template import PdfTemplate, TemplateType

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: dict[str, Any] = {
    "page_size": "A4",
    "orientation": "portrait",
    "margin_top": "20px",
    "margin_right": "20px",
    "margin_bottom": "20px",
    "margin_left": "20px",
}

# Block helpers written as {{#if name}} ... {{/if}}
_IF_OPEN_RE = re.compile(r"\{\{\s*#if\s+([A-Za-z_][\w.]*)\s*\}\}")
_IF_CLOSE_RE = re.compile(r"\{\{\s*/if\s*\}\}")


class PdfTemplateError(ValueError):
    """Template cannot be rendered or modified."""


class SystemTemplateError(PdfTemplateError):
    """System templates cannot be deleted."""


class KeepPlaceholder(Undefined):
    """Renders an unknown variable back as its ``{{name}}`` placeholder."""

    __slots__ = ()

    def __str__(self) -> str:
        return "{{" + (self._undefined_name or "") + "}}"


_env = SandboxedEnvironment(undefined=KeepPlaceholder, autoescape=False)


def render_html(html: str, variables: dict[str, Any]) -> str:
    """Substitute ``{{variable}}`` placeholders in ``html``.

    Raises:
        PdfTemplateError: If the markup is not a valid template
    """
    source = _IF_CLOSE_RE.sub("{% endif %}", _IF_OPEN_RE.sub(r"{% if \1 %}", html))
    try:
        return _env.from_string(source).render(**variables)
    except TemplateSyntaxError as e:
        raise PdfTemplateError(f"Template syntax error on line {e.lineno}: {e.message}") from e


INVOICE_HTML = """<div class="invoice">
  {{email_header}}
  <h1>Invoice {{invoice_number}}</h1>
  <p>Order {{order_number}} &middot; {{invoice_date}}</p>
  <table class="addresses">
    <tr><td>{{billing_address}}</td><td>{{shipping_address}}</td></tr>
  </table>
  <table class="items">
    <thead><tr><th>Product</th><th>SKU</th><th>Qty</th><th>Price</th><th>Total</th></tr></thead>
    <tbody>{{items_table_rows}}</tbody>
  </table>
  <p>Subtotal: {{order_subtotal}}</p>
  {{#if order_discount}}<p>Discount: -{{order_discount}}</p>{{/if}}
  <p>Shipping: {{order_shipping}}</p>
  <p>Tax: {{order_tax}}</p>
  <p class="total">Total: {{order_total}}</p>
  {{#if payment_method}}<p>Paid with {{payment_method}} ({{payment_status}})</p>{{/if}}
  {{email_footer}}
</div>"""

SHIPMENT_HTML = """<div class="shipment">
  {{email_header}}
  <h1>Shipment for order {{order_number}}</h1>
  <p>Shipped {{ship_date}} via {{shipping_method}}</p>
  {{#if tracking_number}}<p>Tracking number: {{tracking_number}}</p>{{/if}}
  <p>Ship to: {{shipping_address}}</p>
  <table class="items">
    <thead><tr><th>Product</th><th>SKU</th><th>Qty</th></tr></thead>
    <tbody>{{items_table_rows}}</tbody>
  </table>
  <p>{{items_count}} item(s)</p>
  {{#if delivery_instructions}}<p>Instructions: {{delivery_instructions}}</p>{{/if}}
  {{email_footer}}
</div>"""

DEFAULT_TEMPLATES: list[dict[str, Any]] = [
    {
        "identifier": "invoice_pdf",
        "name": "Invoice PDF",
        "template_type": TemplateType.INVOICE,
        "html_template": INVOICE_HTML,
        "variables": [
            "invoice_number",
            "invoice_date",
            "order_number",
            "billing_address",
            "shipping_address",
            "items_table_rows",
            "order_subtotal",
            "order_discount",
            "order_shipping",
            "order_tax",
            "order_total",
            "payment_method",
            "payment_status",
            "email_header",
            "email_footer",
        ],
        "sort_order": 1,
    },
    {
        "identifier": "shipment_pdf",
        "name": "Shipment PDF",
        "template_type": TemplateType.SHIPMENT,
        "html_template": SHIPMENT_HTML,
        "variables": [
            "order_number",
            "ship_date",
            "shipping_method",
            "tracking_number",
            "shipping_address",
            "items_table_rows",
            "items_count",
            "delivery_instructions",
            "email_header",
            "email_footer",
        ],
        "sort_order": 2,
    },
]


class PdfTemplateService:
    """CRUD, restore and preview for a store's PDF templates."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def list_templates(
        self, store_id: UUID, template_type: TemplateType | None = None
    ) -> list[PdfTemplate]:
        query = select(PdfTemplate).where(PdfTemplate.store_id == store_id)
        if template_type is not None:
            query = query.where(PdfTemplate.template_type == template_type)
        query = query.order_by(PdfTemplate.sort_order, PdfTemplate.name)
        return list((await self.db.execute(query)).scalars().all())

    async def get_template(self, store_id: UUID, template_id: UUID) -> PdfTemplate | None:
        query = select(PdfTemplate).where(
            PdfTemplate.id == template_id,
            PdfTemplate.store_id == store_id,
        )
        return (await self.db.execute(query)).scalar_one_or_none()

    async def get_by_identifier(self, store_id: UUID, identifier: str) -> PdfTemplate | None:
        query = select(PdfTemplate).where(
            PdfTemplate.store_id == store_id,
            PdfTemplate.identifier == identifier,
        )
        return (await self.db.execute(query)).scalar_one_or_none()

    async def create_template(self, store_id: UUID, data: dict[str, Any]) -> PdfTemplate:
        data = dict(data)
        data.setdefault("settings", dict(DEFAULT_SETTINGS))
        template = PdfTemplate(store_id=store_id, **data)
        if template.default_html_template is None:
            template.default_html_template = template.html_template
        self.db.add(template)
        await self.db.commit()
        await self.db.refresh(template)
        return template

    async def update_template(self, template: PdfTemplate, changes: dict[str, Any]) -> PdfTemplate:
        if "settings" in changes and changes["settings"] is not None:
            changes["settings"] = {**(template.settings or {}), **changes["settings"]}
        for field, value in changes.items():
            setattr(template, field, value)
        await self.db.commit()
        await self.db.refresh(template)
        return template

    async def delete_template(self, template: PdfTemplate) -> None:
        """Delete a template.

        Raises:
            SystemTemplateError: If the template ships with the platform
        """
        if template.is_system:
            raise SystemTemplateError("System templates cannot be deleted")
        await self.db.delete(template)
        await self.db.commit()

    async def restore_default(self, template: PdfTemplate) -> PdfTemplate:
        """Copy the shipped markup back over any edits."""
        if not template.default_html_template:
            raise PdfTemplateError("Template has no default markup to restore")
        template.html_template = template.default_html_template
        await self.db.commit()
        await self.db.refresh(template)
        return template

    async def seed_defaults(self, store_id: UUID) -> list[PdfTemplate]:
        """Create the invoice and shipment templates if they are missing.

        Existing templates are left untouched, so seeding is repeatable.

        Returns:
            Templates created by this call
        """
        created = []
        for spec in DEFAULT_TEMPLATES:
            if await self.get_by_identifier(store_id, spec["identifier"]) is not None:
                continue
            template = PdfTemplate(
                store_id=store_id,
                identifier=spec["identifier"],
                name=spec["name"],
                template_type=spec["template_type"],
                html_template=spec["html_template"],
                default_html_template=spec["html_template"],
                is_active=True,
                is_system=True,
                variables=list(spec["variables"]),
                settings=dict(DEFAULT_SETTINGS),
                sort_order=spec["sort_order"],
            )
            self.db.add(template)
            created.append(template)

        if created:
            await self.db.commit()
            for template in created:
                await self.db.refresh(template)
            logger.info("Seeded %d PDF templates for store %s", len(created), store_id)
        return created

    @staticmethod
    def preview(template: PdfTemplate, variables: dict[str, Any]) -> str:
        return render_html(template.html_template, variables)
