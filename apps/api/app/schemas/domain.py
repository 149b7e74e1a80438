"""Pydantic schemas for custom domains."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import Field

from app.models.custom_domain import SslStatus, VerificationMethod, VerificationStatus
from app.schemas.common import BaseSchema


class DnsRecord(BaseSchema):
    type: str
    name: str
    value: str
    ttl: int | None = None


class DomainCreate(BaseSchema):
    """Request to connect a custom domain."""

    domain: str = Field(..., min_length=3, max_length=255, examples=["shop.example.com"])
    redirect_from: str | None = Field(
        default=None,
        max_length=255,
        description="Optional companion domain that redirects to this one (e.g. the apex)",
    )


class DomainResponse(BaseSchema):
    id: UUID
    store_id: UUID
    domain: str
    subdomain: str | None
    is_primary: bool
    is_active: bool
    is_redirect: bool
    redirect_to: str | None
    verification_status: VerificationStatus
    verification_method: VerificationMethod
    verification_token: str
    verification_record_name: str | None
    verification_record_value: str | None
    verified_at: datetime | None
    last_verification_error: str | None
    ssl_status: SslStatus
    ssl_issued_at: datetime | None
    ssl_expires_at: datetime | None
    ssl_auto_renew: bool
    dns_records: list[dict[str, Any]]
    custom_headers: dict[str, str]
    created_at: datetime


class DomainCreateResponse(BaseSchema):
    domain: DomainResponse
    redirect_domain: DomainResponse | None = None


class DomainVerifyResponse(BaseSchema):
    verified: bool
    records: list[str]
    required_records: list[DnsRecord]
    domain: DomainResponse


class DnsRecordsResponse(BaseSchema):
    records: list[DnsRecord]


class DomainDeleteResponse(BaseSchema):
    deleted: bool
    promoted_domain_id: UUID | None = None
