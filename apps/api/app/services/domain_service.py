"""Custom domain management: DNS verification, SSL lifecycle and primary domain."""

import asyncio
import logging
import re
import socket
from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.security import generate_verification_token
from app.models.base import utcnow
from app.models.custom_domain import (
    CustomDomain,
    SslStatus,
    VerificationMethod,
    VerificationStatus,
)
from app.models.store import Store

logger = logging.getLogger(__name__)

DOMAIN_RE = re.compile(r"^([a-zA-Z0-9]([a-zA-Z0-9-]*[a-zA-Z0-9])?\.)+[a-zA-Z]{2,}$")

# Allowed SSL transitions; anything else is rejected
_SSL_TRANSITIONS: dict[SslStatus, set[SslStatus]] = {
    SslStatus.PENDING: {SslStatus.ACTIVE, SslStatus.FAILED},
    SslStatus.FAILED: {SslStatus.ACTIVE, SslStatus.FAILED},
    SslStatus.ACTIVE: {SslStatus.EXPIRED, SslStatus.RENEWING},
    SslStatus.EXPIRED: {SslStatus.RENEWING, SslStatus.ACTIVE},
    SslStatus.RENEWING: {SslStatus.ACTIVE, SslStatus.FAILED},
}

Resolver = Callable[[str], Awaitable[list[str]]]


class DomainError(ValueError):
    """Base class for domain rule violations."""


class InvalidDomainError(DomainError):
    """Hostname is malformed."""


class DomainExistsError(DomainError):
    """Hostname is already registered by a store."""


class DomainStateError(DomainError):
    """Requested transition is not allowed from the current state."""


async def resolve_a_records(hostname: str) -> list[str]:
    """Resolve IPv4 addresses for a hostname.

    Returns an empty list when the name does not resolve.
    """
    loop = asyncio.get_running_loop()
    try:
        infos = await loop.getaddrinfo(hostname, None, family=socket.AF_INET)
    except socket.gaierror:
        return []
    return sorted({sockaddr[0] for _family, _type, _proto, _canon, sockaddr in infos})


def normalize_domain(domain: str) -> str:
    """Lower-case and validate a hostname.

    Raises:
        InvalidDomainError: If the hostname does not match the accepted format.
    """
    candidate = domain.strip().lower().rstrip(".")
    if candidate.startswith(("http://", "https://")):
        raise InvalidDomainError("Domain must not include a scheme")
    if not DOMAIN_RE.match(candidate):
        raise InvalidDomainError(f"Invalid domain format: {domain}")
    return candidate


def required_dns_records(domain: CustomDomain | None = None) -> list[dict[str, Any]]:
    """DNS records a store owner must create for a domain."""
    records: list[dict[str, Any]] = [
        {"type": "A", "name": "@", "value": ip, "ttl": 3600}
        for ip in settings.platform_ip_addresses
    ]
    records.append(
        {"type": "CNAME", "name": "www", "value": settings.platform_cname_target, "ttl": 3600}
    )
    if domain is not None:
        records.append(
            {
                "type": "TXT",
                "name": domain.verification_record_name,
                "value": domain.verification_record_value,
                "ttl": 3600,
            }
        )
    return records


def assert_ssl_transition(current: SslStatus, target: SslStatus) -> None:
    """Raise DomainStateError unless ``current -> target`` is a legal SSL move."""
    if target not in _SSL_TRANSITIONS[current]:
        raise DomainStateError(f"Cannot change SSL status from {current.value} to {target.value}")


class DomainService:
    """Service for a store's custom domains."""

    def __init__(self, db: AsyncSession, resolver: Resolver = resolve_a_records) -> None:
        self.db = db
        self.resolver = resolver

    async def list_domains(self, store_id: UUID) -> list[CustomDomain]:
        """List a store's domains, primary first then oldest first."""
        query = (
            select(CustomDomain)
            .where(CustomDomain.store_id == store_id)
            .order_by(CustomDomain.is_primary.desc(), CustomDomain.created_at.asc())
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_domain(self, store_id: UUID, domain_id: UUID) -> CustomDomain | None:
        query = select(CustomDomain).where(
            CustomDomain.id == domain_id,
            CustomDomain.store_id == store_id,
        )
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    def _build_domain(self, store_id: UUID, hostname: str, **extra: Any) -> CustomDomain:
        token = generate_verification_token()
        domain = CustomDomain(
            store_id=store_id,
            domain=hostname,
            verification_status=VerificationStatus.PENDING,
            verification_method=VerificationMethod.TXT,
            verification_token=token,
            verification_record_name=f"_storeforge-verification.{hostname}",
            verification_record_value=f"storeforge-verify={token}",
            ssl_status=SslStatus.PENDING,
            custom_headers={},
            **extra,
        )
        domain.dns_records = required_dns_records(domain)
        return domain

    async def add_domain(
        self,
        store_id: UUID,
        domain: str,
        redirect_from: str | None = None,
    ) -> tuple[CustomDomain, CustomDomain | None]:
        """Register a domain, plus an optional companion that redirects to it.

        The first domain a store adds becomes its primary domain.

        Args:
            store_id: Owning store
            domain: Hostname to serve the storefront on
            redirect_from: Optional hostname that should redirect to ``domain``

        Returns:
            Tuple of (domain, redirect domain or None)

        Raises:
            InvalidDomainError: Malformed hostname
            DomainExistsError: Hostname already registered
        """
        hostname = normalize_domain(domain)
        redirect_hostname = normalize_domain(redirect_from) if redirect_from else None
        if redirect_hostname == hostname:
            raise InvalidDomainError("Redirect domain must differ from the domain")

        wanted = [h for h in (hostname, redirect_hostname) if h]
        existing = await self.db.execute(
            select(CustomDomain.domain).where(CustomDomain.domain.in_(wanted))
        )
        taken = existing.scalars().first()
        if taken:
            raise DomainExistsError(f"Domain {taken} already exists")

        has_domains = await self.db.execute(
            select(CustomDomain.id).where(CustomDomain.store_id == store_id).limit(1)
        )
        is_first = has_domains.scalar_one_or_none() is None

        primary = self._build_domain(store_id, hostname, is_primary=is_first)
        self.db.add(primary)

        companion = None
        if redirect_hostname:
            companion = self._build_domain(
                store_id,
                redirect_hostname,
                is_primary=False,
                is_redirect=True,
                redirect_to=hostname,
            )
            self.db.add(companion)

        await self.db.commit()
        await self.db.refresh(primary)
        if companion is not None:
            await self.db.refresh(companion)

        logger.info(
            "Added domain %s for store %s (primary=%s, redirect_from=%s)",
            hostname,
            store_id,
            is_first,
            redirect_hostname,
        )
        return primary, companion

    async def verify_domain(self, domain: CustomDomain) -> dict[str, Any]:
        """Check that the domain's A records point at the platform.

        Moves the domain through ``verifying`` to ``verified`` or ``failed``.

        Returns:
            Dict with verified flag, resolved records and, on failure, the
            records the owner still needs to create
        """
        if domain.verification_status == VerificationStatus.VERIFYING:
            raise DomainStateError("Verification already in progress")

        domain.verification_status = VerificationStatus.VERIFYING
        await self.db.flush()

        records = await self.resolver(domain.domain)
        platform_ips = set(settings.platform_ip_addresses)
        verified = any(ip in platform_ips for ip in records)

        if verified:
            domain.verification_status = VerificationStatus.VERIFIED
            domain.verified_at = utcnow()
            domain.is_active = True
            domain.last_verification_error = None
        else:
            domain.verification_status = VerificationStatus.FAILED
            domain.last_verification_error = (
                f"{domain.domain} resolves to {records or 'nothing'}, "
                f"expected one of {sorted(platform_ips)}"
            )

        await self.db.commit()
        await self.db.refresh(domain)

        logger.info(
            "Domain verification %s for %s (records=%s)",
            "succeeded" if verified else "failed",
            domain.domain,
            records,
        )
        return {
            "verified": verified,
            "records": records,
            "required_records": [] if verified else required_dns_records(domain),
        }

    async def provision_ssl(self, domain: CustomDomain) -> CustomDomain:
        """Record certificate issuance for a verified domain."""
        if domain.verification_status != VerificationStatus.VERIFIED:
            raise DomainStateError("Domain must be verified before SSL setup")
        if domain.ssl_status == SslStatus.ACTIVE:
            raise DomainStateError("SSL certificate is already active")

        if domain.ssl_status == SslStatus.EXPIRED:
            assert_ssl_transition(domain.ssl_status, SslStatus.RENEWING)
            domain.ssl_status = SslStatus.RENEWING
            await self.db.flush()

        assert_ssl_transition(domain.ssl_status, SslStatus.ACTIVE)
        now = utcnow()
        domain.ssl_status = SslStatus.ACTIVE
        domain.ssl_issued_at = now
        domain.ssl_expires_at = now + timedelta(days=settings.ssl_certificate_days)

        await self.db.commit()
        await self.db.refresh(domain)
        logger.info("SSL active for %s until %s", domain.domain, domain.ssl_expires_at)
        return domain

    async def set_primary(self, store_id: UUID, domain: CustomDomain) -> CustomDomain:
        """Make a verified domain the store's primary domain.

        The previous primary is cleared in the same transaction; the partial
        unique index rejects any concurrent writer that races us.
        """
        if domain.verification_status != VerificationStatus.VERIFIED:
            raise DomainStateError("Only verified domains can be primary")
        if domain.is_redirect:
            raise DomainStateError("Redirect domains cannot be primary")
        if domain.is_primary:
            return domain

        await self.db.execute(
            update(CustomDomain)
            .where(CustomDomain.store_id == store_id, CustomDomain.is_primary == True)  # noqa: E712
            .values(is_primary=False)
        )
        domain.is_primary = True
        await self.db.commit()
        await self.db.refresh(domain)
        return domain

    async def delete_domain(self, store_id: UUID, domain: CustomDomain) -> CustomDomain | None:
        """Remove a domain, promoting the oldest remaining one if it was primary.

        Returns:
            The newly promoted primary domain, if any
        """
        was_primary = domain.is_primary
        await self.db.delete(domain)
        await self.db.flush()

        promoted = None
        if was_primary:
            query = (
                select(CustomDomain)
                .where(CustomDomain.store_id == store_id, CustomDomain.is_redirect == False)  # noqa: E712
                .order_by(CustomDomain.created_at.asc())
                .limit(1)
            )
            promoted = (await self.db.execute(query)).scalar_one_or_none()
            if promoted is not None:
                promoted.is_primary = True

        await self.db.commit()
        if promoted is not None:
            await self.db.refresh(promoted)
            logger.info("Promoted %s to primary for store %s", promoted.domain, store_id)
        return promoted

    async def expire_certificates(self) -> int:
        """Mark active certificates past their expiry date as expired.

        Returns:
            Number of domains updated
        """
        result = await self.db.execute(
            update(CustomDomain)
            .where(
                CustomDomain.ssl_status == SslStatus.ACTIVE,
                CustomDomain.ssl_expires_at.is_not(None),
                CustomDomain.ssl_expires_at < utcnow(),
            )
            .values(ssl_status=SslStatus.EXPIRED)
        )
        await self.db.commit()
        count = result.rowcount or 0
        if count:
            logger.info("Expired %d SSL certificates", count)
        return count

    async def storefront_url(self, store: Store) -> dict[str, Any]:
        """Public URL of a store's storefront.

        Priority: primary verified domain, any verified domain, then the
        platform subdomain built from the store slug.
        """
        query = (
            select(CustomDomain)
            .where(
                CustomDomain.store_id == store.id,
                CustomDomain.verification_status == VerificationStatus.VERIFIED,
                CustomDomain.is_active == True,  # noqa: E712
                CustomDomain.is_redirect == False,  # noqa: E712
            )
            .order_by(CustomDomain.is_primary.desc(), CustomDomain.created_at.asc())
        )
        domain = (await self.db.execute(query)).scalars().first()

        if domain is not None:
            source = "primary_domain" if domain.is_primary else "verified_domain"
            return {
                "storefront_url": f"https://{domain.domain}",
                "source": source,
                "store_slug": store.slug,
            }
        return {
            "storefront_url": f"https://{store.slug}.{settings.storefront_base_domain}",
            "source": "platform_subdomain",
            "store_slug": store.slug,
        }
