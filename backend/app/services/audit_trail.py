"""
Audit Trail Reader

Chronological history of one entity for compliance and reporting views.
Storage failures degrade to an empty trail.
"""
from typing import List, Optional

from backend.app.core.logging import get_logger
from backend.app.schemas.audit import AuditLogEntry
from backend.app.services.audit_store import AuditStore, StoreResult

logger = get_logger(__name__)

DEFAULT_TRAIL_LIMIT = 100


class AuditTrailReader:
    def __init__(self, store: AuditStore):
        self.store = store

    async def get_trail(
        self,
        entity_type: str,
        entity_id: str,
        limit: int = DEFAULT_TRAIL_LIMIT,
        clinic_id: Optional[str] = None,
    ) -> List[AuditLogEntry]:
        """
        Entries for exactly (entity_type, entity_id), oldest first, at most `limit`.

        `clinic_id` restricts the trail to one tenant.
        """
        if limit <= 0:
            return []
        try:
            result = await self.store.list_trail(entity_type, entity_id, limit, clinic_id=clinic_id)
        except Exception as e:
            result = StoreResult.failure(e)

        if not result.ok:
            logger.error(
                f"Error fetching audit trail for {entity_type}:{entity_id}: {result.error}",
                exc_info=result.error,
            )
            return []
        return result.value
