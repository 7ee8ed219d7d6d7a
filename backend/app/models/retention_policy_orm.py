"""
Data Retention Policy ORM Model.

One rule per data category. Inactive rows are kept for history but never
consulted; the partial unique index allows a single active rule per category.
"""
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, Integer, DateTime, Boolean, Index, CheckConstraint, text
from backend.app.core.database import Base


class DataRetentionPolicyORM(Base):
    """
    Retention period for a category of data (call_logs, appointments, audit_logs, ...).
    """
    __tablename__ = "data_retention_policies"
    __table_args__ = (
        CheckConstraint("retention_period_days > 0", name="ck_retention_period_positive"),
        Index(
            "uq_data_retention_policies_active_data_type",
            "data_type",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    data_type = Column(String(100), nullable=False, index=True)
    retention_period_days = Column(Integer, nullable=False)
    description = Column(Text, nullable=True)
    legal_basis = Column(String(50), nullable=True)  # HIPAA | GDPR | ...
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)

    def __repr__(self):
        return f"<DataRetentionPolicy {self.data_type} {self.retention_period_days}d ({self.legal_basis})>"
