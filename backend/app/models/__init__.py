"""Models package."""

from backend.app.models.audit_orm import AuditLogORM
from backend.app.models.retention_policy_orm import DataRetentionPolicyORM

__all__ = [
    "AuditLogORM",
    "DataRetentionPolicyORM",
]
