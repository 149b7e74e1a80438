"""Pytest configuration and fixtures for the Storeforge API test suite.

Provides:
- Test database (``TEST_DATABASE_URL`` or a throwaway SQLite file) with
  per-test cleanup
- Mock authentication (JWT bypass, store owner role)
- Mock Redis (fakeredis)
- Stub DNS resolver for domain verification
- Disabled rate limiting
- Model factory fixtures for Store, Product, CustomDomain, ShippingMethod,
  ProductLabel and PluginRegistry
"""

import os
import tempfile
import uuid
from collections.abc import AsyncGenerator, Callable, Generator
from decimal import Decimal
from typing import Any
from unittest.mock import AsyncMock, patch
from uuid import UUID

import fakeredis.aioredis
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.api.v1.domains import get_resolver
from app.core.auth import get_current_user, get_optional_user
from app.core.database import get_async_session
from app.core.deps import get_db, get_redis
from app.core.rate_limit import limiter
from app.main import app
from app.models.base import Base
from app.models.custom_domain import CustomDomain, SslStatus, VerificationStatus
from app.models.plugin import PluginRegistry
from app.models.product import Product
from app.models.product_label import ProductLabel
from app.models.shipping_method import ShippingMethod, ShippingType
from app.models.store import Store
from app.services.embedding_service import EmbeddingService

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
TEST_USER_ID = "test-user-id"
TEST_USER_EMAIL = "owner@example.com"
OTHER_USER_ID = "other-user-id"
PLATFORM_IP = "76.76.19.23"

# ---------------------------------------------------------------------------
# Disable rate limiting globally for tests
# ---------------------------------------------------------------------------
limiter.enabled = False

# ---------------------------------------------------------------------------
# Session-scoped engine & table setup
# ---------------------------------------------------------------------------

_test_engine: Any = None
_test_session_factory: Any = None
_sqlite_dir = tempfile.mkdtemp(prefix="storeforge-tests-")
_TEST_DATABASE_URL = os.environ.get(
    "TEST_DATABASE_URL",
    f"sqlite+aiosqlite:///{os.path.join(_sqlite_dir, 'test.db')}",
)
_IS_POSTGRES = _TEST_DATABASE_URL.startswith("postgresql")


def requires_postgres(reason: str = "needs PostgreSQL") -> pytest.MarkDecorator:
    """Skip marker for tests that rely on pgvector or other Postgres-only SQL."""
    return pytest.mark.skipif(not _IS_POSTGRES, reason=reason)


@pytest_asyncio.fixture(scope="session", loop_scope="session")
async def _create_tables() -> AsyncGenerator[None, None]:
    """Create all tables once per test session.

    The engine is created here (not at module level) so that the connection
    pool is bound to the session-scoped event loop.

    Uses NullPool to avoid asyncpg connection-loop affinity issues with
    starlette's BaseHTTPMiddleware (which spawns sub-tasks).
    """
    global _test_engine, _test_session_factory  # noqa: PLW0603
    _test_engine = create_async_engine(
        _TEST_DATABASE_URL,
        echo=False,
        poolclass=NullPool,
    )
    _test_session_factory = async_sessionmaker(
        _test_engine, class_=AsyncSession, expire_on_commit=False
    )
    async with _test_engine.begin() as conn:
        if _IS_POSTGRES:
            await conn.execute(text("CREATE EXTENSION IF NOT EXISTS vector"))
        await conn.run_sync(Base.metadata.create_all)
    yield
    await _test_engine.dispose()


# ---------------------------------------------------------------------------
# Per-test database session + cleanup
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(loop_scope="session")
async def db_session(_create_tables: None) -> AsyncGenerator[AsyncSession, None]:
    """Provide a database session for test setup (factory fixtures).

    Cleanup is handled by the ``_cleanup_tables`` autouse fixture.
    """
    async with _test_session_factory() as session:
        yield session


@pytest_asyncio.fixture(autouse=True)
async def _cleanup_tables() -> AsyncGenerator[None, None]:
    """Empty all tables after each test to restore a clean state."""
    yield
    if _test_engine is None:
        return
    tables = [t.name for t in reversed(Base.metadata.sorted_tables)]
    async with _test_engine.begin() as conn:
        if _IS_POSTGRES:
            await conn.execute(text(f"TRUNCATE {', '.join(tables)} CASCADE"))
        else:
            for table in tables:
                await conn.execute(text(f"DELETE FROM {table}"))


@pytest.fixture
def session_factory(_create_tables: None) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine, for patching task modules."""
    return _test_session_factory


# ---------------------------------------------------------------------------
# Fake Redis
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_redis() -> fakeredis.aioredis.FakeRedis:
    """Provide a fresh fakeredis instance per test."""
    return fakeredis.aioredis.FakeRedis(decode_responses=True)


# ---------------------------------------------------------------------------
# Auth mock
# ---------------------------------------------------------------------------


@pytest.fixture
def auth_user() -> dict[str, Any]:
    """Return the default authenticated test user payload (mimics decoded JWT)."""
    return {
        "sub": TEST_USER_ID,
        "email": TEST_USER_EMAIL,
        "role": "store_owner",
    }


# ---------------------------------------------------------------------------
# DNS stub
# ---------------------------------------------------------------------------


@pytest.fixture
def dns_records() -> dict[str, list[str]]:
    """Hostname -> A records answered by the stub resolver. Mutate in tests."""
    return {}


def _override_common(
    fake_redis: fakeredis.aioredis.FakeRedis,
    dns_records: dict[str, list[str]],
) -> None:
    async def _override_session() -> AsyncGenerator[AsyncSession, None]:
        async with _test_session_factory() as s:
            yield s

    async def _override_redis() -> AsyncGenerator[fakeredis.aioredis.FakeRedis, None]:
        yield fake_redis

    async def _resolve(hostname: str) -> list[str]:
        return dns_records.get(hostname, [])

    app.dependency_overrides[get_async_session] = _override_session
    app.dependency_overrides[get_db] = _override_session
    app.dependency_overrides[get_redis] = _override_redis
    app.dependency_overrides[get_resolver] = lambda: _resolve


# ---------------------------------------------------------------------------
# Authenticated client (overrides DB, Redis, Auth, DNS)
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,  # noqa: ARG001  # Ensures _create_tables runs
    fake_redis: fakeredis.aioredis.FakeRedis,
    auth_user: dict[str, Any],
    dns_records: dict[str, list[str]],
) -> AsyncGenerator[AsyncClient, None]:
    """Authenticated async test client with all dependencies overridden."""

    async def _override_user() -> dict[str, Any]:
        return auth_user

    async def _override_optional_user() -> dict[str, Any] | None:
        return auth_user

    _override_common(fake_redis, dns_records)
    app.dependency_overrides[get_current_user] = _override_user
    app.dependency_overrides[get_optional_user] = _override_optional_user

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Unauthenticated client (overrides DB & Redis only; no auth bypass)
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def unauthed_client(
    db_session: AsyncSession,  # noqa: ARG001  # Ensures _create_tables runs
    fake_redis: fakeredis.aioredis.FakeRedis,
    dns_records: dict[str, list[str]],
) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated async test client. Auth is NOT overridden."""
    _override_common(fake_redis, dns_records)

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# Lightweight client (no DB, no auth; for stateless endpoint tests)
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def plain_client() -> AsyncGenerator[AsyncClient, None]:
    """Minimal async test client with NO dependency overrides."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ---------------------------------------------------------------------------
# Model Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def store_factory(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory that creates Store instances in the test database."""

    async def _create(
        *,
        name: str = "Test Store",
        slug: str | None = None,
        owner_id: str = TEST_USER_ID,
        email: str | None = "store@example.com",
        is_active: bool = True,
        settings_data: dict[str, Any] | None = None,
    ) -> Store:
        store = Store(
            owner_id=owner_id,
            name=name,
            slug=slug or f"store-{uuid.uuid4().hex[:8]}",
            email=email,
            is_active=is_active,
            settings=settings_data or {},
        )
        db_session.add(store)
        await db_session.commit()
        await db_session.refresh(store)
        return store

    return _create


@pytest_asyncio.fixture
async def store(store_factory: Callable[..., Any]) -> Store:
    """A store owned by the authenticated test user."""
    return await store_factory(name="Acme", slug="acme")


@pytest_asyncio.fixture
async def other_store(store_factory: Callable[..., Any]) -> Store:
    """A store owned by somebody else."""
    return await store_factory(name="Rival", slug="rival", owner_id=OTHER_USER_ID)


@pytest.fixture
def product_factory(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory that creates Product instances."""

    async def _create(
        *,
        store_id: UUID,
        sku: str | None = None,
        slug: str | None = None,
        price: Decimal | str = "10.00",
        compare_price: Decimal | str | None = None,
        weight: Decimal | str | None = None,
        stock_quantity: int = 10,
        attribute_set_id: str | None = None,
        attributes: dict[str, Any] | None = None,
        category_ids: list[str] | None = None,
        translations: dict[str, Any] | None = None,
        seo: dict[str, Any] | None = None,
        embedding: list[float] | None = None,
    ) -> Product:
        sku = sku or f"SKU-{uuid.uuid4().hex[:6]}"
        product = Product(
            store_id=store_id,
            sku=sku,
            slug=slug or sku.lower(),
            price=Decimal(str(price)),
            compare_price=Decimal(str(compare_price)) if compare_price is not None else None,
            weight=Decimal(str(weight)) if weight is not None else None,
            stock_quantity=stock_quantity,
            attribute_set_id=attribute_set_id,
            attributes=attributes or {},
            category_ids=category_ids or [],
            translations=translations or {},
            seo=seo or {},
            embedding=embedding,
        )
        db_session.add(product)
        await db_session.commit()
        await db_session.refresh(product)
        return product

    return _create


@pytest.fixture
def domain_factory(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory that creates CustomDomain instances."""

    async def _create(
        *,
        store_id: UUID,
        domain: str | None = None,
        is_primary: bool = False,
        is_redirect: bool = False,
        verified: bool = False,
        ssl_status: SslStatus = SslStatus.PENDING,
        ssl_expires_at: Any = None,
    ) -> CustomDomain:
        hostname = domain or f"shop-{uuid.uuid4().hex[:6]}.example.com"
        token = uuid.uuid4().hex
        record = CustomDomain(
            store_id=store_id,
            domain=hostname,
            is_primary=is_primary,
            is_active=verified,
            is_redirect=is_redirect,
            verification_status=(
                VerificationStatus.VERIFIED if verified else VerificationStatus.PENDING
            ),
            verification_token=token,
            verification_record_name=f"_storeforge-verification.{hostname}",
            verification_record_value=f"storeforge-verify={token}",
            ssl_status=ssl_status,
            ssl_expires_at=ssl_expires_at,
            dns_records=[],
            custom_headers={},
        )
        db_session.add(record)
        await db_session.commit()
        await db_session.refresh(record)
        return record

    return _create


@pytest.fixture
def shipping_method_factory(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory that creates ShippingMethod instances."""

    async def _create(
        *,
        store_id: UUID,
        name: str = "Standard",
        type: ShippingType = ShippingType.FLAT_RATE,  # noqa: A002
        **fields: Any,
    ) -> ShippingMethod:
        method = ShippingMethod(store_id=store_id, name=name, type=type, **fields)
        db_session.add(method)
        await db_session.commit()
        await db_session.refresh(method)
        return method

    return _create


@pytest.fixture
def product_label_factory(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory that creates ProductLabel instances."""

    async def _create(
        *,
        store_id: UUID,
        name: str = "Sale",
        slug: str | None = None,
        text: str = "SALE",
        **fields: Any,
    ) -> ProductLabel:
        label = ProductLabel(
            store_id=store_id,
            name=name,
            slug=slug or name.lower().replace(" ", "-"),
            text=text,
            **fields,
        )
        db_session.add(label)
        await db_session.commit()
        await db_session.refresh(label)
        return label

    return _create


@pytest.fixture
def plugin_factory(db_session: AsyncSession) -> Callable[..., Any]:
    """Factory that creates PluginRegistry instances."""

    async def _create(
        *,
        store_id: UUID,
        name: str = "Reviews",
        slug: str | None = None,
        **fields: Any,
    ) -> PluginRegistry:
        plugin = PluginRegistry(
            store_id=store_id,
            name=name,
            slug=slug or f"{name.lower()}-{uuid.uuid4().hex[:6]}",
            **fields,
        )
        db_session.add(plugin)
        await db_session.commit()
        await db_session.refresh(plugin)
        return plugin

    return _create


# ---------------------------------------------------------------------------
# Embedding mocks
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_embedding() -> list[float]:
    """A mock 1536-dimensional embedding vector."""
    return [0.1] * 1536


@pytest.fixture
def mock_embedding_service(mock_embedding: list[float]) -> Generator[EmbeddingService, None, None]:
    """Real EmbeddingService with the OpenAI calls mocked, patched into the job service."""
    service = EmbeddingService()
    service.generate_embedding = AsyncMock(return_value=mock_embedding)  # type: ignore[method-assign]
    service.generate_embeddings_batch = AsyncMock(  # type: ignore[method-assign]
        side_effect=lambda texts: [mock_embedding for _ in texts]
    )
    with patch("app.services.job_service.get_embedding_service", return_value=service):
        yield service
