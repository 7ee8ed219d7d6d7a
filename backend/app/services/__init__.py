"""Services package."""

from backend.app.services.audit_recorder import AuditRecorder
from backend.app.services.audit_service import AuditService, build_audit_service
from backend.app.services.audit_store import AuditStore, SqlAlchemyAuditStore, StoreResult
from backend.app.services.audit_trail import AuditTrailReader
from backend.app.services.data_retention import RetentionSweeper
from backend.app.services.redaction import redact, redact_entry
from backend.app.services.retention_policies import RetentionPolicyStore

__all__ = [
    "AuditRecorder",
    "AuditService",
    "AuditStore",
    "AuditTrailReader",
    "RetentionPolicyStore",
    "RetentionSweeper",
    "SqlAlchemyAuditStore",
    "StoreResult",
    "build_audit_service",
    "redact",
    "redact_entry",
]
