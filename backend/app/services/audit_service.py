"""
Audit Service

Composes the compliance components around a single storage adapter. Built
once at startup and handed to callers explicitly (FastAPI app state, worker
wiring, tests); there is no module-level instance.
"""
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.app.core.config import Settings, get_settings
from backend.app.core.logging import get_logger
from backend.app.services.audit_recorder import AuditRecorder, utc_now
from backend.app.services.audit_store import AuditStore, SqlAlchemyAuditStore
from backend.app.services.audit_trail import AuditTrailReader
from backend.app.services.data_retention import RetentionSweeper
from backend.app.services.retention_policies import DEFAULT_RETENTION_DAYS, RetentionPolicyStore

logger = get_logger(__name__)


class AuditService:
    def __init__(
        self,
        store: AuditStore,
        fallback_retention_days: int = DEFAULT_RETENTION_DAYS,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.store = store
        self.policies = RetentionPolicyStore(store, fallback_days=fallback_retention_days)
        self.recorder = AuditRecorder(store, self.policies, clock=clock)
        self.sweeper = RetentionSweeper(store, self.recorder, clock=clock)
        self.trail = AuditTrailReader(store)

    async def is_processing_compliant(self, clinic_id: str, data_type: str) -> bool:
        """
        Whether data of `data_type` may be processed for this clinic.

        Requires an active retention policy for the category. Any lookup
        failure answers False.
        """
        try:
            result = await self.store.find_active_policy(data_type)
        except Exception as e:
            logger.error(f"Error checking processing compliance for clinic {clinic_id}: {e}")
            return False

        if not result.ok:
            logger.error(f"Error checking processing compliance for clinic {clinic_id}: {result.error}")
            return False
        if result.value is None:
            logger.warning(f"No active retention policy for '{data_type}' (clinic {clinic_id})")
            return False
        return True


def build_audit_service(
    session_factory: async_sessionmaker[AsyncSession],
    settings: Optional[Settings] = None,
) -> AuditService:
    settings = settings or get_settings()
    return AuditService(
        SqlAlchemyAuditStore(session_factory),
        fallback_retention_days=settings.default_retention_days,
    )
