"""
Audit Recorder

Write path of the audit engine. Business operations (bookings, completed
calls, settings changes) hand an AuditActionDescriptor to `record()`.

Recording is best-effort: serialization, policy lookup and persistence
failures are logged and reported through the returned StoreResult, but
never raised. A booking must not fail because its audit row could not be
written.
"""
import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from pydantic import BaseModel

from backend.app.core.logging import get_logger
from backend.app.schemas.audit import AuditActionDescriptor, AuditLogCreate, AuditLogEntry
from backend.app.services.audit_store import AuditStore, StoreResult
from backend.app.services.retention_policies import RetentionPolicyStore

logger = get_logger(__name__)


class DetailSerializationError(Exception):
    """Detail payload could not be turned into JSON."""
    pass


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_action(action: str) -> str:
    return action.strip().upper()


def serialize_details(details: Any) -> Optional[str]:
    """JSON-encode a detail payload; typed payloads use their pydantic schema."""
    if details is None:
        return None
    try:
        if isinstance(details, BaseModel):
            return details.model_dump_json()
        return json.dumps(details, default=str)
    except (TypeError, ValueError, RecursionError) as e:
        raise DetailSerializationError(str(e)) from e


class AuditRecorder:
    """Persists audit entries stamped with their retention date."""

    def __init__(
        self,
        store: AuditStore,
        policies: RetentionPolicyStore,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.policies = policies
        self.clock = clock

    async def retention_date_for(self, entity_type: str, now: datetime) -> Optional[datetime]:
        """`now` plus the category's retention period in calendar days, or None if unknown."""
        days = await self.policies.resolve_retention_period(entity_type)
        if days is None:
            return None
        return now + timedelta(days=days)

    async def record(self, descriptor: AuditActionDescriptor) -> StoreResult[AuditLogEntry]:
        """
        Write one audit entry. Never raises.

        The result is informational; callers on a business path can ignore it.
        """
        try:
            action = normalize_action(descriptor.action)

            try:
                details = serialize_details(descriptor.details)
            except DetailSerializationError as e:
                logger.warning(f"Audit details for {action} not serializable, storing without payload: {e}")
                details = None

            now = self.clock()
            retention_date = await self.retention_date_for(descriptor.entity_type, now)
            if retention_date is None:
                logger.warning(
                    f"No retention date for {action} on '{descriptor.entity_type}'; entry kept indefinitely"
                )

            record = AuditLogCreate(
                user_id=descriptor.user_id,
                clinic_id=descriptor.clinic_id,
                action=action,
                entity_type=descriptor.entity_type,
                entity_id=descriptor.entity_id,
                details=details,
                ip_address=descriptor.ip_address,
                user_agent=descriptor.user_agent,
                successful=descriptor.successful,
                error_message=descriptor.error_message,
                timestamp=now,
                retention_date=retention_date,
            )
            result = await self.store.insert_entry(record)
        except Exception as e:
            logger.error(f"Failed to log audit action: {e}", exc_info=True)
            return StoreResult.failure(e)

        if not result.ok:
            logger.error(
                f"Failed to log audit action {action}: {result.error}",
                extra={"extra_data": {"action": action, "entity_type": descriptor.entity_type}},
            )
        return result

    async def log_action(self, **fields: Any) -> StoreResult[AuditLogEntry]:
        """
        Keyword form of `record()`:

            await recorder.log_action(user_id=user.id, clinic_id=clinic.id,
                                      action="appointment_booked", entity_type="appointments",
                                      entity_id=appointment.id)

        Invalid keyword sets are logged and dropped like any other failure.
        """
        try:
            descriptor = AuditActionDescriptor(**fields)
        except Exception as e:
            logger.error(f"Invalid audit descriptor {fields.get('action')!r}: {e}")
            return StoreResult.failure(e)
        return await self.record(descriptor)
