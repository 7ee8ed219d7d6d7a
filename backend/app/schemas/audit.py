"""
Audit Schemas

Pydantic models for audit log entries, retention policies and the
structured detail payloads attached to known actions.
"""

import json
from datetime import datetime
from typing import Annotated, Any, Dict, Literal, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

# Synthetic actor used by automated jobs
SYSTEM_ACTOR = "system"

# Canonical action names
CLEANUP_EXPIRED_LOGS = "CLEANUP_EXPIRED_LOGS"
AUDIT_TRAIL_VIEWED = "AUDIT_TRAIL_VIEWED"
APPOINTMENT_BOOKED = "APPOINTMENT_BOOKED"
APPOINTMENT_CANCELLED = "APPOINTMENT_CANCELLED"
APPOINTMENT_RESCHEDULED = "APPOINTMENT_RESCHEDULED"
CALL_COMPLETED = "CALL_COMPLETED"
SETTINGS_UPDATED = "SETTINGS_UPDATED"

# Data categories (match both entity types and retention policy keys)
AUDIT_LOGS = "audit_logs"


class CleanupDetails(BaseModel):
    """Outcome of a retention sweep."""
    kind: Literal["cleanup"] = "cleanup"
    deleted_count: int


class AppointmentDetails(BaseModel):
    """Booking lifecycle payload."""
    kind: Literal["appointment"] = "appointment"
    appointment_time: Optional[datetime] = None
    patient_name: Optional[str] = None
    phone: Optional[str] = None
    reason: Optional[str] = None


class CallDetails(BaseModel):
    """Completed receptionist call."""
    kind: Literal["call"] = "call"
    caller_phone: Optional[str] = None
    duration_seconds: Optional[int] = None
    outcome: Optional[str] = None
    transcript_id: Optional[str] = None


class SettingsChangeDetails(BaseModel):
    kind: Literal["settings_change"] = "settings_change"
    changed_fields: Dict[str, Any] = Field(default_factory=dict)


class TrailAccessDetails(BaseModel):
    """Who looked at which audit trail (access to PHI is itself audited)."""
    kind: Literal["trail_access"] = "trail_access"
    entity_type: str
    entity_id: str
    redacted: bool = False
    returned: int = 0


AuditDetails = Annotated[
    Union[CleanupDetails, AppointmentDetails, CallDetails, SettingsChangeDetails, TrailAccessDetails],
    Field(discriminator="kind"),
]

DETAILS_BY_ACTION: Dict[str, Type[BaseModel]] = {
    CLEANUP_EXPIRED_LOGS: CleanupDetails,
    AUDIT_TRAIL_VIEWED: TrailAccessDetails,
    APPOINTMENT_BOOKED: AppointmentDetails,
    APPOINTMENT_CANCELLED: AppointmentDetails,
    APPOINTMENT_RESCHEDULED: AppointmentDetails,
    CALL_COMPLETED: CallDetails,
    SETTINGS_UPDATED: SettingsChangeDetails,
}


def parse_details(action: str, raw: Optional[str]) -> Any:
    """
    Decode a stored detail payload.

    Known actions come back as their typed model; anything else as the plain
    decoded JSON. Payloads that are not valid JSON are returned as stored.
    """
    if raw is None:
        return None
    try:
        data = json.loads(raw)
    except ValueError:
        return raw

    model = DETAILS_BY_ACTION.get(action)
    if model is not None and isinstance(data, dict):
        try:
            return model.model_validate(data)
        except ValidationError:
            return data
    return data


class AuditActionDescriptor(BaseModel):
    """What a business operation hands to the audit recorder."""
    user_id: str
    clinic_id: Optional[str] = None
    action: str
    entity_type: str
    entity_id: Optional[str] = None
    details: Any = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    successful: bool = True
    error_message: Optional[str] = None


class AuditLogCreate(BaseModel):
    """Fully prepared row handed to the storage adapter."""
    user_id: str
    clinic_id: Optional[str] = None
    action: str
    entity_type: str
    entity_id: Optional[str] = None
    details: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    successful: bool = True
    error_message: Optional[str] = None
    timestamp: datetime
    retention_date: Optional[datetime] = None


class AuditLogEntry(BaseModel):
    """Immutable view of a stored audit entry."""
    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    clinic_id: Optional[str] = None
    action: str
    entity_type: str
    entity_id: Optional[str] = None
    details: Any = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    successful: bool = True
    error_message: Optional[str] = None
    timestamp: datetime
    retention_date: Optional[datetime] = None


class RetentionPolicyCreate(BaseModel):
    data_type: str
    retention_period_days: int = Field(..., gt=0)
    description: Optional[str] = None
    legal_basis: Optional[str] = None
    is_active: bool = True


class RetentionPolicy(BaseModel):
    """Stored retention rule for a data category."""
    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: str
    data_type: str
    retention_period_days: int
    description: Optional[str] = None
    legal_basis: Optional[str] = None
    is_active: bool = True
    created_at: datetime
