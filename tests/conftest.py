"""
Pytest configuration and fixtures.
"""

import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production")
os.environ.setdefault("AUDIT_CLEANUP_ENABLED", "false")

from datetime import datetime, timedelta, timezone
from typing import AsyncGenerator, List, Optional

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from backend.app.core.database import Base
from backend.app.models import AuditLogORM, DataRetentionPolicyORM  # noqa: F401
from backend.app.schemas.audit import AuditLogCreate, RetentionPolicyCreate
from backend.app.services.audit_service import AuditService
from backend.app.services.audit_store import (
    PersistenceError,
    PolicyLookupError,
    SqlAlchemyAuditStore,
    StoreResult,
)

# Use in-memory SQLite for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

T0 = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Deterministic clock; tests move it explicitly."""

    def __init__(self, start: datetime = T0):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


class FailingStore:
    """Every storage call reports failure, as if the database were unreachable."""

    def __init__(self):
        self.calls: List[str] = []

    def _fail(self, name: str, error_cls=PersistenceError) -> StoreResult:
        self.calls.append(name)
        return StoreResult.failure(error_cls("database unavailable"))

    async def insert_entry(self, record: AuditLogCreate) -> StoreResult:
        return self._fail("insert_entry")

    async def delete_expired(self, now: datetime) -> StoreResult:
        return self._fail("delete_expired")

    async def list_trail(self, entity_type: str, entity_id: str, limit: int, clinic_id: Optional[str] = None) -> StoreResult:
        return self._fail("list_trail")

    async def find_active_policy(self, data_type: str) -> StoreResult:
        return self._fail("find_active_policy", PolicyLookupError)

    async def policy_exists(self, data_type: str) -> StoreResult:
        return self._fail("policy_exists", PolicyLookupError)

    async def insert_policy(self, policy: RetentionPolicyCreate) -> StoreResult:
        return self._fail("insert_policy")

    async def list_policies(self, active_only: bool = True) -> StoreResult:
        return self._fail("list_policies", PolicyLookupError)


class RaisingStore:
    """A badly behaved adapter that raises instead of returning a failure result."""

    def __getattr__(self, name):
        async def _raise(*args, **kwargs):
            raise ConnectionError(f"{name}: connection refused")
        return _raise


@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory bound to a fresh in-memory database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def store(session_factory) -> SqlAlchemyAuditStore:
    return SqlAlchemyAuditStore(session_factory)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def audit_service(store, clock) -> AuditService:
    return AuditService(store, clock=clock)


@pytest.fixture
def failing_store() -> FailingStore:
    return FailingStore()


@pytest.fixture
def raising_store() -> RaisingStore:
    return RaisingStore()


@pytest.fixture
def fetch_all_entries(session_factory):
    """Every audit row currently stored, oldest first."""
    async def _fetch() -> List[AuditLogORM]:
        async with session_factory() as session:
            result = await session.execute(select(AuditLogORM).order_by(AuditLogORM.timestamp, AuditLogORM.seq))
            return list(result.scalars().all())
    return _fetch


@pytest.fixture
async def client(audit_service: AuditService) -> AsyncGenerator[AsyncClient, None]:
    """
    Test client wired to the per-test audit service.
    The app lifespan is not run; the service is injected directly.
    """
    from backend.app.main import app

    app.state.audit_service = audit_service
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
