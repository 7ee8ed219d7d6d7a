"""
PII Redaction Service.

View-time redaction of personally identifying fields for compliance exports
and audit trail views. Stored audit rows always keep full detail so they can
be produced under lawful request; only the copy handed to a viewer is masked.

The field NAME selects the rule:
  - phone-like fields keep the country code and the next three digits
  - email-like fields keep the first character and the domain
  - everything else is replaced wholesale
"""
import re
from collections.abc import Mapping
from typing import Any, Iterable, Optional, Pattern

from pydantic import BaseModel

from backend.app.schemas.audit import AuditLogEntry

DEFAULT_PII_FIELDS = ("phone", "email", "name", "address")
# Detail payload fields that also identify a patient
AUDIT_DETAIL_PII_FIELDS = DEFAULT_PII_FIELDS + ("patient_name", "caller_phone", "patient_email", "patient_address")

MASK = "***"
REDACTED = "***REDACTED***"

# +<country code><first 3 digits><rest>
PHONE_PREFIX_PATTERN = re.compile(r"^(\+\d{1,3})(\d{3})(\d+)$")
_EMAIL_PATTERN = re.compile(r"^(.)(.*?)(@.+)$", re.DOTALL)
_PHONE_SEPARATORS = re.compile(r"[\s\-().]")


def _is_phone_field(field: str) -> bool:
    key = field.lower()
    return key == "phone" or key.endswith("_phone") or key.startswith("phone_")


def _is_email_field(field: str) -> bool:
    key = field.lower()
    return key == "email" or key.endswith("_email") or key.startswith("email_")


def _redact_phone(value: Any, pattern: Pattern[str]) -> str:
    if not isinstance(value, str):
        return REDACTED
    m = pattern.match(_PHONE_SEPARATORS.sub("", value))
    if not m:
        return REDACTED
    return f"{m.group(1)}{m.group(2)}{MASK}"


def _redact_email(value: Any) -> str:
    if not isinstance(value, str):
        return REDACTED
    m = _EMAIL_PATTERN.match(value)
    if not m:
        return REDACTED
    return f"{m.group(1)}{MASK}{m.group(3)}"


def redact(
    record: Any,
    fields: Iterable[str] = DEFAULT_PII_FIELDS,
    phone_pattern: Optional[Pattern[str]] = None,
) -> Any:
    """
    Return a shallow copy of `record` with the named fields masked.

    Anything that is not a mapping (None, numbers, strings, lists) is
    returned unchanged. Named fields that are missing or empty are skipped.
    The input is never modified.
    """
    if not isinstance(record, Mapping):
        return record

    pattern = phone_pattern or PHONE_PREFIX_PATTERN
    redacted = dict(record)

    for field in fields:
        value = redacted.get(field)
        if value is None or value == "":
            continue
        if _is_phone_field(field):
            redacted[field] = _redact_phone(value, pattern)
        elif _is_email_field(field):
            redacted[field] = _redact_email(value)
        else:
            redacted[field] = REDACTED

    return redacted


def _redact_payload(payload: Any, fields: Iterable[str]) -> Any:
    """`redact` applied at every mapping level (e.g. settings `changed_fields`)."""
    if isinstance(payload, Mapping):
        masked = redact(payload, fields)
        return {key: _redact_payload(value, fields) for key, value in masked.items()}
    if isinstance(payload, list):
        return [_redact_payload(item, fields) for item in payload]
    return payload


def redact_entry(entry: AuditLogEntry, fields: Iterable[str] = AUDIT_DETAIL_PII_FIELDS) -> AuditLogEntry:
    """
    Copy of an audit entry whose detail payload has been redacted for display.

    Nested mappings are redacted too. Payloads that are not structured at all
    (raw strings kept from undecodable JSON) cannot be inspected and are
    masked whole.
    """
    details = entry.details
    fields = tuple(fields)
    if isinstance(details, BaseModel):
        details = details.model_dump(mode="json")
    if details is None:
        return entry.model_copy()
    if not isinstance(details, Mapping):
        return entry.model_copy(update={"details": REDACTED})
    return entry.model_copy(update={"details": _redact_payload(details, fields)})
