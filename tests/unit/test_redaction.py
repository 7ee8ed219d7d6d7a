"""
Unit tests for view-time PII redaction.
"""
import re
from datetime import datetime, timezone

import pytest

from backend.app.schemas.audit import AppointmentDetails, AuditLogEntry, SettingsChangeDetails
from backend.app.services.redaction import REDACTED, redact, redact_entry


def test_redact_default_fields():
    """Phone keeps +CC and three digits, email keeps first letter and domain, name is replaced."""
    out = redact({"phone": "+447700900123", "email": "jane@x.com", "name": "Jane Doe"})
    assert out["phone"].startswith("+44770")
    assert out["phone"] == "+447700***"
    assert "900123" not in out["phone"]
    assert out["email"] == "j***@x.com"
    assert out["name"] == "***REDACTED***"


@pytest.mark.parametrize("value", [None, 42, "plain text", ["phone"], 3.5])
def test_non_mapping_input_returned_unchanged(value):
    assert redact(value) is value


def test_input_is_not_mutated():
    record = {"name": "Jane Doe", "address": "1 High St", "appointment_id": "A1"}
    out = redact(record)
    assert record == {"name": "Jane Doe", "address": "1 High St", "appointment_id": "A1"}
    assert out is not record
    assert out["address"] == REDACTED
    assert out["appointment_id"] == "A1"


def test_missing_and_empty_fields_are_skipped():
    out = redact({"email": "", "notes": "follow-up"}, fields=["phone", "email", "name"])
    assert out == {"email": "", "notes": "follow-up"}


def test_phone_separators_are_ignored():
    assert redact({"phone": "+44 7700-900 123"})["phone"] == "+447700***"


def test_unrecognised_phone_shape_is_fully_masked():
    assert redact({"phone": "07700 900123"})["phone"] == REDACTED
    assert redact({"phone": 447700900123})["phone"] == REDACTED


def test_email_without_domain_is_fully_masked():
    assert redact({"email": "not-an-email"})["email"] == REDACTED


def test_rule_follows_field_name():
    """caller_phone gets the phone rule, patient_email the email rule."""
    out = redact(
        {"caller_phone": "+15551234567", "patient_email": "bob@clinic.org", "phone_type": "mobile"},
        fields=["caller_phone", "patient_email"],
    )
    assert out["caller_phone"] == "+155512***"
    assert out["patient_email"] == "b***@clinic.org"
    assert out["phone_type"] == "mobile"


def test_custom_phone_prefix_pattern():
    """Only the UK country code kept."""
    country_only = re.compile(r"^(\+44)()(\d+)$")
    assert redact({"phone": "+447700900123"}, phone_pattern=country_only)["phone"] == "+44***"


def test_redact_entry_masks_typed_payload_only_in_copy():
    entry = AuditLogEntry(
        id="e1",
        user_id="receptionist-ai",
        clinic_id="clinic-1",
        action="APPOINTMENT_BOOKED",
        entity_type="appointments",
        entity_id="A1",
        details=AppointmentDetails(patient_name="Jane Doe", phone="+447700900123", reason="check-up"),
        timestamp=datetime(2026, 3, 1, tzinfo=timezone.utc),
    )
    view = redact_entry(entry)

    assert view.details["patient_name"] == REDACTED
    assert view.details["phone"] == "+447700***"
    assert view.details["reason"] == "check-up"
    # stored entry keeps full detail
    assert entry.details.patient_name == "Jane Doe"
    assert entry.details.phone == "+447700900123"


def test_redact_entry_without_details():
    entry = AuditLogEntry(
        id="e2",
        user_id="system",
        action="CLEANUP_EXPIRED_LOGS",
        entity_type="audit_logs",
        timestamp=datetime(2026, 3, 1, tzinfo=timezone.utc),
    )
    assert redact_entry(entry).details is None


def _entry(action: str, details) -> AuditLogEntry:
    return AuditLogEntry(
        id="e3",
        user_id="admin-1",
        clinic_id="clinic-1",
        action=action,
        entity_type="user",
        entity_id="U1",
        details=details,
        timestamp=datetime(2026, 3, 1, tzinfo=timezone.utc),
    )


def test_redact_entry_masks_unstructured_payload_whole():
    entry = _entry("LEGACY_IMPORT", "caller +447700900123 jane@x.com")
    assert redact_entry(entry).details == REDACTED
    assert entry.details == "caller +447700900123 jane@x.com"


def test_redact_entry_masks_nested_settings_changes():
    entry = _entry(
        "SETTINGS_UPDATED",
        SettingsChangeDetails(changed_fields={"email": "jane@x.com", "greeting": "Hello", "phone": "+447700900123"}),
    )
    view = redact_entry(entry)

    assert view.details["kind"] == "settings_change"
    assert view.details["changed_fields"] == {
        "email": "j***@x.com",
        "greeting": "Hello",
        "phone": "+447700***",
    }
    assert entry.details.changed_fields["email"] == "jane@x.com"


def test_redact_entry_masks_mappings_inside_opaque_payloads():
    entry = _entry("LEGACY_IMPORT", {"source": "csv", "rows": [{"name": "Jane Doe", "row": 1}]})
    assert redact_entry(entry).details == {"source": "csv", "rows": [{"name": REDACTED, "row": 1}]}


def test_redact_stays_shallow():
    nested = {"contact": {"email": "jane@x.com"}}
    assert redact(nested) == nested
