"""Tests for custom domain management.

Covers:
- Hostname normalization and SSL transition rules
- POST/GET/DELETE /api/v1/stores/{store_id}/domains
- Verification against the stub resolver
- SSL provisioning, primary switching and certificate expiry
"""

from datetime import timedelta
from typing import Any, Callable

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.models.base import utcnow
from app.models.custom_domain import CustomDomain, SslStatus, VerificationStatus
from app.models.store import Store
from app.services.domain_service import (
    DomainService,
    DomainStateError,
    InvalidDomainError,
    assert_ssl_transition,
    normalize_domain,
)
from app.workers.tasks import domains as domain_tasks
from tests.conftest import PLATFORM_IP


def _url(store: Store, suffix: str = "") -> str:
    return f"/api/v1/stores/{store.id}/domains{suffix}"


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------


class TestNormalizeDomain:
    def test_lowercases_and_strips_trailing_dot(self) -> None:
        assert normalize_domain("  Shop.Example.COM. ") == "shop.example.com"

    @pytest.mark.parametrize(
        "value", ["https://shop.example.com", "localhost", "-bad.example.com", "shop..com"]
    )
    def test_rejects_invalid(self, value: str) -> None:
        with pytest.raises(InvalidDomainError):
            normalize_domain(value)


class TestSslTransitions:
    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (SslStatus.PENDING, SslStatus.ACTIVE),
            (SslStatus.ACTIVE, SslStatus.EXPIRED),
            (SslStatus.EXPIRED, SslStatus.RENEWING),
            (SslStatus.RENEWING, SslStatus.ACTIVE),
        ],
    )
    def test_allowed(self, current: SslStatus, target: SslStatus) -> None:
        assert_ssl_transition(current, target)

    @pytest.mark.parametrize(
        ("current", "target"),
        [
            (SslStatus.PENDING, SslStatus.EXPIRED),
            (SslStatus.ACTIVE, SslStatus.PENDING),
            (SslStatus.EXPIRED, SslStatus.PENDING),
        ],
    )
    def test_rejected(self, current: SslStatus, target: SslStatus) -> None:
        with pytest.raises(DomainStateError):
            assert_ssl_transition(current, target)


# ---------------------------------------------------------------------------
# POST /domains
# ---------------------------------------------------------------------------


class TestAddDomain:
    async def test_first_domain_becomes_primary(self, client: AsyncClient, store: Store) -> None:
        response = await client.post(_url(store), json={"domain": "Shop.Example.com"})
        assert response.status_code == 201

        data = response.json()["domain"]
        assert data["domain"] == "shop.example.com"
        assert data["is_primary"] is True
        assert data["verification_status"] == "pending"
        assert data["ssl_status"] == "pending"
        assert data["verification_record_name"] == "_storeforge-verification.shop.example.com"
        assert data["verification_record_value"].startswith("storeforge-verify=")
        assert any(r["type"] == "TXT" for r in data["dns_records"])
        assert response.json()["redirect_domain"] is None

    async def test_second_domain_not_primary(self, client: AsyncClient, store: Store) -> None:
        await client.post(_url(store), json={"domain": "one.example.com"})
        response = await client.post(_url(store), json={"domain": "two.example.com"})
        assert response.json()["domain"]["is_primary"] is False

    async def test_redirect_companion(self, client: AsyncClient, store: Store) -> None:
        response = await client.post(
            _url(store),
            json={"domain": "www.example.com", "redirect_from": "example.com"},
        )
        assert response.status_code == 201
        companion = response.json()["redirect_domain"]
        assert companion["domain"] == "example.com"
        assert companion["is_redirect"] is True
        assert companion["redirect_to"] == "www.example.com"
        assert companion["is_primary"] is False

    async def test_duplicate_domain_returns_409(
        self,
        client: AsyncClient,
        store: Store,
        other_store: Store,
        domain_factory: Callable[..., Any],
    ) -> None:
        await domain_factory(store_id=other_store.id, domain="taken.example.com")
        response = await client.post(_url(store), json={"domain": "taken.example.com"})
        assert response.status_code == 409

    async def test_invalid_domain_returns_400(self, client: AsyncClient, store: Store) -> None:
        response = await client.post(_url(store), json={"domain": "http://bad"})
        assert response.status_code == 400

    async def test_other_owners_store_returns_404(
        self, client: AsyncClient, other_store: Store
    ) -> None:
        response = await client.post(_url(other_store), json={"domain": "x.example.com"})
        assert response.status_code == 404


# ---------------------------------------------------------------------------
# GET /domains
# ---------------------------------------------------------------------------


class TestListDomains:
    async def test_primary_listed_first(
        self, client: AsyncClient, store: Store, domain_factory: Callable[..., Any]
    ) -> None:
        await domain_factory(store_id=store.id, domain="a.example.com")
        await domain_factory(store_id=store.id, domain="b.example.com", is_primary=True)

        response = await client.get(_url(store))
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 2
        assert data["items"][0]["domain"] == "b.example.com"

    async def test_required_records(self, client: AsyncClient, store: Store) -> None:
        response = await client.get(_url(store, "/dns-records"))
        assert response.status_code == 200
        records = response.json()["records"]
        assert {"type": "A", "name": "@", "value": PLATFORM_IP, "ttl": 3600} in records
        assert any(r["type"] == "CNAME" for r in records)

    async def test_unknown_domain_returns_404(self, client: AsyncClient, store: Store) -> None:
        response = await client.get(_url(store, "/00000000-0000-0000-0000-000000000000"))
        assert response.status_code == 404


# ---------------------------------------------------------------------------
# Verification and SSL
# ---------------------------------------------------------------------------


class TestVerifyDomain:
    async def test_verified_when_pointing_at_platform(
        self,
        client: AsyncClient,
        store: Store,
        domain_factory: Callable[..., Any],
        dns_records: dict[str, list[str]],
    ) -> None:
        domain = await domain_factory(store_id=store.id, domain="shop.example.com")
        dns_records["shop.example.com"] = [PLATFORM_IP]

        response = await client.post(_url(store, f"/{domain.id}/verify"))
        assert response.status_code == 200

        data = response.json()
        assert data["verified"] is True
        assert data["required_records"] == []
        assert data["domain"]["verification_status"] == "verified"
        assert data["domain"]["is_active"] is True
        assert data["domain"]["verified_at"] is not None

    async def test_failed_when_pointing_elsewhere(
        self,
        client: AsyncClient,
        store: Store,
        domain_factory: Callable[..., Any],
        dns_records: dict[str, list[str]],
    ) -> None:
        domain = await domain_factory(store_id=store.id, domain="shop.example.com")
        dns_records["shop.example.com"] = ["10.0.0.1"]

        response = await client.post(_url(store, f"/{domain.id}/verify"))
        data = response.json()
        assert data["verified"] is False
        assert data["domain"]["verification_status"] == "failed"
        assert "10.0.0.1" in data["domain"]["last_verification_error"]
        assert len(data["required_records"]) > 0

    async def test_failed_domain_can_retry(
        self,
        client: AsyncClient,
        store: Store,
        domain_factory: Callable[..., Any],
        dns_records: dict[str, list[str]],
    ) -> None:
        domain = await domain_factory(store_id=store.id, domain="shop.example.com")
        await client.post(_url(store, f"/{domain.id}/verify"))

        dns_records["shop.example.com"] = [PLATFORM_IP]
        response = await client.post(_url(store, f"/{domain.id}/verify"))
        assert response.json()["verified"] is True


class TestProvisionSsl:
    async def test_unverified_domain_returns_409(
        self, client: AsyncClient, store: Store, domain_factory: Callable[..., Any]
    ) -> None:
        domain = await domain_factory(store_id=store.id)
        response = await client.post(_url(store, f"/{domain.id}/ssl"))
        assert response.status_code == 409

    async def test_verified_domain_gets_certificate(
        self, client: AsyncClient, store: Store, domain_factory: Callable[..., Any]
    ) -> None:
        domain = await domain_factory(store_id=store.id, verified=True)
        response = await client.post(_url(store, f"/{domain.id}/ssl"))
        assert response.status_code == 200

        data = response.json()
        assert data["ssl_status"] == "active"
        assert data["ssl_issued_at"] is not None
        assert data["ssl_expires_at"] is not None

    async def test_active_certificate_returns_409(
        self, client: AsyncClient, store: Store, domain_factory: Callable[..., Any]
    ) -> None:
        domain = await domain_factory(store_id=store.id, verified=True, ssl_status=SslStatus.ACTIVE)
        response = await client.post(_url(store, f"/{domain.id}/ssl"))
        assert response.status_code == 409

    async def test_expired_certificate_renews(
        self, client: AsyncClient, store: Store, domain_factory: Callable[..., Any]
    ) -> None:
        domain = await domain_factory(store_id=store.id, verified=True, ssl_status=SslStatus.EXPIRED)
        response = await client.post(_url(store, f"/{domain.id}/ssl"))
        assert response.status_code == 200
        assert response.json()["ssl_status"] == "active"


# ---------------------------------------------------------------------------
# Primary domain and deletion
# ---------------------------------------------------------------------------


class TestPrimaryDomain:
    async def test_switch_primary(
        self,
        client: AsyncClient,
        db_session: AsyncSession,
        store: Store,
        domain_factory: Callable[..., Any],
    ) -> None:
        old = await domain_factory(store_id=store.id, is_primary=True, verified=True)
        new = await domain_factory(store_id=store.id, verified=True)

        response = await client.post(_url(store, f"/{new.id}/primary"))
        assert response.status_code == 200
        assert response.json()["is_primary"] is True

        result = await db_session.execute(
            select(CustomDomain.id).where(
                CustomDomain.store_id == store.id, CustomDomain.is_primary == True  # noqa: E712
            )
        )
        assert list(result.scalars().all()) == [new.id]
        assert old.id != new.id

    async def test_unverified_cannot_be_primary(
        self, client: AsyncClient, store: Store, domain_factory: Callable[..., Any]
    ) -> None:
        domain = await domain_factory(store_id=store.id)
        response = await client.post(_url(store, f"/{domain.id}/primary"))
        assert response.status_code == 409

    async def test_redirect_cannot_be_primary(
        self, client: AsyncClient, store: Store, domain_factory: Callable[..., Any]
    ) -> None:
        domain = await domain_factory(store_id=store.id, verified=True, is_redirect=True)
        response = await client.post(_url(store, f"/{domain.id}/primary"))
        assert response.status_code == 409


class TestDeleteDomain:
    async def test_deleting_primary_promotes_oldest(
        self, client: AsyncClient, store: Store, domain_factory: Callable[..., Any]
    ) -> None:
        primary = await domain_factory(store_id=store.id, is_primary=True)
        oldest = await domain_factory(store_id=store.id)
        await domain_factory(store_id=store.id)

        response = await client.delete(_url(store, f"/{primary.id}"))
        assert response.status_code == 200
        data = response.json()
        assert data["deleted"] is True
        assert data["promoted_domain_id"] == str(oldest.id)

    async def test_deleting_non_primary_promotes_nothing(
        self, client: AsyncClient, store: Store, domain_factory: Callable[..., Any]
    ) -> None:
        await domain_factory(store_id=store.id, is_primary=True)
        other = await domain_factory(store_id=store.id)

        response = await client.delete(_url(store, f"/{other.id}"))
        assert response.json()["promoted_domain_id"] is None


# ---------------------------------------------------------------------------
# Certificate expiry (service + periodic task)
# ---------------------------------------------------------------------------


class TestExpireCertificates:
    async def test_service_expires_past_certificates(
        self, db_session: AsyncSession, store: Store, domain_factory: Callable[..., Any]
    ) -> None:
        past = await domain_factory(
            store_id=store.id,
            verified=True,
            ssl_status=SslStatus.ACTIVE,
            ssl_expires_at=utcnow() - timedelta(days=1),
        )
        future = await domain_factory(
            store_id=store.id,
            verified=True,
            ssl_status=SslStatus.ACTIVE,
            ssl_expires_at=utcnow() + timedelta(days=30),
        )

        assert await DomainService(db_session).expire_certificates() == 1

        await db_session.refresh(past)
        await db_session.refresh(future)
        assert past.ssl_status == SslStatus.EXPIRED
        assert future.ssl_status == SslStatus.ACTIVE

    async def test_task_reports_count(
        self,
        store: Store,
        domain_factory: Callable[..., Any],
        session_factory: async_sessionmaker[AsyncSession],
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        await domain_factory(
            store_id=store.id,
            verified=True,
            ssl_status=SslStatus.ACTIVE,
            ssl_expires_at=utcnow() - timedelta(hours=1),
        )
        monkeypatch.setattr(domain_tasks, "async_session_maker", session_factory)

        assert await domain_tasks._expire_certificates_async() == {"expired": 1}


class TestVerificationLifecycle:
    async def test_verifying_state_blocks_concurrent_check(
        self, db_session: AsyncSession, store: Store, domain_factory: Callable[..., Any]
    ) -> None:
        domain = await domain_factory(store_id=store.id)
        domain.verification_status = VerificationStatus.VERIFYING
        await db_session.commit()

        with pytest.raises(DomainStateError):
            await DomainService(db_session).verify_domain(domain)
