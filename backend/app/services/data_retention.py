"""
Data Retention Enforcement Service

Purges audit entries whose retention date has passed. Entries stored with
no retention date are never auto-deleted.

Every run audits itself as CLEANUP_EXPIRED_LOGS by the "system" actor,
whether it succeeded or not. Failures are logged and reported as zero
deletions; they are never raised to the scheduler.
"""
import asyncio
from datetime import datetime
from typing import Callable

from backend.app.core.logging import get_logger
from backend.app.schemas.audit import AUDIT_LOGS, CLEANUP_EXPIRED_LOGS, SYSTEM_ACTOR, AuditActionDescriptor, CleanupDetails
from backend.app.services.audit_recorder import AuditRecorder, utc_now
from backend.app.services.audit_store import AuditStore, StoreResult
from backend.app.workers.scheduled import start_scheduler

logger = get_logger(__name__)


class RetentionSweeper:
    def __init__(
        self,
        store: AuditStore,
        recorder: AuditRecorder,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.recorder = recorder
        self.clock = clock

    async def cleanup_expired_entries(self) -> int:
        """
        Delete every entry whose retention date is strictly before now.

        Returns the number of rows removed, or 0 if the delete failed.
        """
        now = self.clock()
        try:
            result = await self.store.delete_expired(now)
        except Exception as e:
            result = StoreResult.failure(e)

        if not result.ok:
            logger.error(f"Error cleaning up expired audit logs: {result.error}", exc_info=result.error)
            await self.recorder.record(
                AuditActionDescriptor(
                    user_id=SYSTEM_ACTOR,
                    action=CLEANUP_EXPIRED_LOGS,
                    entity_type=AUDIT_LOGS,
                    successful=False,
                    error_message=str(result.error) or "Unknown error",
                )
            )
            return 0

        deleted = result.value
        logger.info(
            f"Cleaned up {deleted} expired audit logs (cutoff: {now.isoformat()})",
            extra={"extra_data": {"deleted": deleted}},
        )
        await self.recorder.record(
            AuditActionDescriptor(
                user_id=SYSTEM_ACTOR,
                action=CLEANUP_EXPIRED_LOGS,
                entity_type=AUDIT_LOGS,
                details=CleanupDetails(deleted_count=deleted),
                successful=True,
            )
        )
        return deleted


def start_retention_scheduler(
    sweeper: RetentionSweeper,
    interval_seconds: int,
    initial_delay_seconds: float = 0.0,
) -> asyncio.Task:
    """Run the sweeper every `interval_seconds` as a background task."""
    logger.info(f"Audit retention sweeper scheduled (interval={interval_seconds}s)")
    return start_scheduler(
        "audit-retention-sweep",
        interval_seconds,
        sweeper.cleanup_expired_entries,
        initial_delay_seconds=initial_delay_seconds,
    )
