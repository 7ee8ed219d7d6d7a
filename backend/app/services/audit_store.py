"""
Audit Storage Adapter

Persistence boundary of the audit engine. Two logical tables are touched:
`audit_logs` and `data_retention_policies`.

Every operation returns a StoreResult instead of raising. Components branch
on `result.ok`, log the captured error and degrade; tests can assert on the
failure path directly.
"""
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Generic, List, Optional, Protocol, TypeVar

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.app.models.audit_orm import AuditLogORM
from backend.app.models.retention_policy_orm import DataRetentionPolicyORM
from backend.app.schemas.audit import (
    AuditLogCreate,
    AuditLogEntry,
    RetentionPolicy,
    RetentionPolicyCreate,
    parse_details,
)

T = TypeVar("T")


class AuditStoreError(Exception):
    """Base class for storage failures surfaced through StoreResult."""
    pass


class PolicyLookupError(AuditStoreError):
    """Policy storage unreachable or policy row malformed."""
    pass


class PersistenceError(AuditStoreError):
    """Audit rows could not be inserted, deleted or read."""
    pass


@dataclass(frozen=True)
class StoreResult(Generic[T]):
    value: Optional[T] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "StoreResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: Exception) -> "StoreResult[T]":
        return cls(error=error)


def _wrap(error_cls: type, message: str, exc: Exception) -> AuditStoreError:
    err = error_cls(f"{message}: {exc}")
    err.__cause__ = exc
    return err


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; everything stored here is UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class AuditStore(Protocol):
    """
    Interface the audit components depend on.

    Implementations must never raise from these methods; failures are
    returned as StoreResult.failure(...).
    """

    async def insert_entry(self, record: AuditLogCreate) -> StoreResult[AuditLogEntry]:
        ...

    async def delete_expired(self, now: datetime) -> StoreResult[int]:
        ...

    async def list_trail(
        self,
        entity_type: str,
        entity_id: str,
        limit: int,
        clinic_id: Optional[str] = None,
    ) -> StoreResult[List[AuditLogEntry]]:
        ...

    async def find_active_policy(self, data_type: str) -> StoreResult[Optional[RetentionPolicy]]:
        ...

    async def policy_exists(self, data_type: str) -> StoreResult[bool]:
        ...

    async def insert_policy(self, policy: RetentionPolicyCreate) -> StoreResult[RetentionPolicy]:
        ...

    async def list_policies(self, active_only: bool = True) -> StoreResult[List[RetentionPolicy]]:
        ...


def _to_entry(row: AuditLogORM) -> AuditLogEntry:
    return AuditLogEntry(
        id=row.id,
        user_id=row.user_id,
        clinic_id=row.clinic_id,
        action=row.action,
        entity_type=row.entity_type,
        entity_id=row.entity_id,
        details=parse_details(row.action, row.details),
        ip_address=row.ip_address,
        user_agent=row.user_agent,
        successful=row.successful,
        error_message=row.error_message,
        timestamp=_as_utc(row.timestamp),
        retention_date=_as_utc(row.retention_date),
    )


def _to_policy(row: DataRetentionPolicyORM) -> RetentionPolicy:
    return RetentionPolicy(
        id=row.id,
        data_type=row.data_type,
        retention_period_days=row.retention_period_days,
        description=row.description,
        legal_basis=row.legal_basis,
        is_active=row.is_active,
        created_at=_as_utc(row.created_at),
    )


class SqlAlchemyAuditStore:
    """Async SQLAlchemy implementation of AuditStore. One transaction per call."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @asynccontextmanager
    async def _session(self):
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def insert_entry(self, record: AuditLogCreate) -> StoreResult[AuditLogEntry]:
        try:
            values = record.model_dump()
            values["timestamp"] = _as_utc(record.timestamp)
            values["retention_date"] = _as_utc(record.retention_date)
            row = AuditLogORM(id=str(uuid.uuid4()), **values)
            entry = _to_entry(row)
            async with self._session() as s:
                s.add(row)
        except Exception as e:
            return StoreResult.failure(_wrap(PersistenceError, f"insert of {record.action} failed", e))
        return StoreResult.success(entry)

    async def delete_expired(self, now: datetime) -> StoreResult[int]:
        stmt = (
            delete(AuditLogORM)
            .where(
                AuditLogORM.retention_date.is_not(None),
                AuditLogORM.retention_date < _as_utc(now),
            )
            .execution_options(synchronize_session=False)
        )
        try:
            async with self._session() as s:
                result = await s.execute(stmt)
                deleted = result.rowcount or 0
        except Exception as e:
            return StoreResult.failure(_wrap(PersistenceError, "delete of expired entries failed", e))
        return StoreResult.success(deleted)

    async def list_trail(
        self,
        entity_type: str,
        entity_id: str,
        limit: int,
        clinic_id: Optional[str] = None,
    ) -> StoreResult[List[AuditLogEntry]]:
        stmt = select(AuditLogORM).where(
            AuditLogORM.entity_type == entity_type,
            AuditLogORM.entity_id == entity_id,
        )
        if clinic_id is not None:
            stmt = stmt.where(AuditLogORM.clinic_id == clinic_id)
        stmt = stmt.order_by(AuditLogORM.timestamp.asc(), AuditLogORM.seq.asc()).limit(limit)

        try:
            async with self._session() as s:
                rows = (await s.execute(stmt)).scalars().all()
                entries = [_to_entry(row) for row in rows]
        except Exception as e:
            return StoreResult.failure(_wrap(PersistenceError, "trail read failed", e))
        return StoreResult.success(entries)

    async def find_active_policy(self, data_type: str) -> StoreResult[Optional[RetentionPolicy]]:
        # Ordered so that, should duplicates ever slip past the unique index, the oldest wins
        stmt = (
            select(DataRetentionPolicyORM)
            .where(
                DataRetentionPolicyORM.data_type == data_type,
                DataRetentionPolicyORM.is_active.is_(True),
            )
            .order_by(DataRetentionPolicyORM.created_at.asc(), DataRetentionPolicyORM.id.asc())
            .limit(1)
        )
        try:
            async with self._session() as s:
                row = (await s.execute(stmt)).scalars().first()
                policy = _to_policy(row) if row is not None else None
        except Exception as e:
            return StoreResult.failure(_wrap(PolicyLookupError, f"lookup for '{data_type}' failed", e))

        if policy is not None and (policy.retention_period_days is None or policy.retention_period_days <= 0):
            return StoreResult.failure(
                PolicyLookupError(
                    f"policy {policy.id} for '{data_type}' has invalid period {policy.retention_period_days}"
                )
            )
        return StoreResult.success(policy)

    async def policy_exists(self, data_type: str) -> StoreResult[bool]:
        stmt = select(DataRetentionPolicyORM.id).where(DataRetentionPolicyORM.data_type == data_type).limit(1)
        try:
            async with self._session() as s:
                found = (await s.execute(stmt)).scalar_one_or_none()
        except Exception as e:
            return StoreResult.failure(_wrap(PolicyLookupError, f"existence check for '{data_type}' failed", e))
        return StoreResult.success(found is not None)

    async def insert_policy(self, policy: RetentionPolicyCreate) -> StoreResult[RetentionPolicy]:
        try:
            row = DataRetentionPolicyORM(
                id=str(uuid.uuid4()),
                created_at=datetime.now(timezone.utc),
                **policy.model_dump(),
            )
            created = _to_policy(row)
            async with self._session() as s:
                s.add(row)
        except Exception as e:
            return StoreResult.failure(_wrap(PersistenceError, f"insert of policy '{policy.data_type}' failed", e))
        return StoreResult.success(created)

    async def list_policies(self, active_only: bool = True) -> StoreResult[List[RetentionPolicy]]:
        stmt = select(DataRetentionPolicyORM)
        if active_only:
            stmt = stmt.where(DataRetentionPolicyORM.is_active.is_(True))
        stmt = stmt.order_by(DataRetentionPolicyORM.data_type.asc(), DataRetentionPolicyORM.created_at.asc())
        try:
            async with self._session() as s:
                rows = (await s.execute(stmt)).scalars().all()
                policies = [_to_policy(row) for row in rows]
        except Exception as e:
            return StoreResult.failure(_wrap(PolicyLookupError, "policy listing failed", e))
        return StoreResult.success(policies)
