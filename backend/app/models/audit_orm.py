"""
Audit Log ORM Model for Regulatory Compliance.

Stores one row per action taken in the system (bookings, completed calls,
settings changes, automated maintenance). Rows are written once and only
ever read or deleted by the retention sweeper.
"""
import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, String, Text, Integer, DateTime, Boolean, Index
from backend.app.core.database import Base


class AuditLogORM(Base):
    """
    Persistent audit trail entry.
    Mandatory for HIPAA/GDPR accountability.
    """
    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_entity", "entity_type", "entity_id", "timestamp", "seq"),
    )

    # Insertion order; breaks ties between entries written in the same clock tick
    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(36), unique=True, nullable=False, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(255), nullable=False, index=True)  # "system" for automated jobs
    clinic_id = Column(String(36), nullable=True, index=True)

    action = Column(String(100), nullable=False)
    entity_type = Column(String(100), nullable=False)
    entity_id = Column(String(255), nullable=True)
    details = Column(Text, nullable=True)

    # Request provenance
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(Text, nullable=True)

    successful = Column(Boolean, default=True, nullable=False)
    error_message = Column(Text, nullable=True)

    timestamp = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
    # NULL means "retain indefinitely"; the sweeper never deletes such rows
    retention_date = Column(DateTime(timezone=True), nullable=True, index=True)

    def __repr__(self):
        return f"<AuditLog {self.action} by {self.user_id} on {self.entity_type}:{self.entity_id}>"
