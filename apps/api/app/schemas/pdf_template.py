"""Pydantic schemas for PDF templates."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import Field

from app.models.pdf_template import TemplateType
from app.schemas.common import BaseSchema


class PdfTemplateCreate(BaseSchema):
    identifier: str = Field(..., min_length=1, max_length=100, pattern=r"^[a-z0-9_\-]+$")
    name: str = Field(..., min_length=1, max_length=255)
    template_type: TemplateType
    html_template: str = Field(..., min_length=1)
    is_active: bool = True
    variables: list[str] = Field(default_factory=list)
    settings: dict[str, Any] | None = None
    sort_order: int = 0


class PdfTemplateUpdate(BaseSchema):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    html_template: str | None = Field(default=None, min_length=1)
    is_active: bool | None = None
    variables: list[str] | None = None
    settings: dict[str, Any] | None = None
    sort_order: int | None = None


class PdfTemplateResponse(BaseSchema):
    id: UUID
    store_id: UUID
    identifier: str
    name: str
    template_type: TemplateType
    html_template: str
    default_html_template: str | None
    is_active: bool
    is_system: bool
    variables: list[str]
    settings: dict[str, Any]
    sort_order: int
    created_at: datetime
    updated_at: datetime


class PdfPreviewRequest(BaseSchema):
    variables: dict[str, Any] = Field(default_factory=dict)


class PdfPreviewResponse(BaseSchema):
    html: str
    settings: dict[str, Any]
