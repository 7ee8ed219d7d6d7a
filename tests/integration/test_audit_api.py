"""
Integration tests for the compliance API (trail views, policies, cleanup).
"""
from datetime import timedelta

import pytest
from httpx import AsyncClient

from backend.app.core.config import get_settings
from backend.app.core.security import Role, create_access_token
from backend.app.schemas.audit import AppointmentDetails, AuditActionDescriptor, AuditLogCreate


def _headers(role: str = Role.CLINIC_ADMIN, clinic_id: str = "clinic-1", username: str = "dr-patel") -> dict:
    token = create_access_token({"sub": username, "role": role, "clinic_id": clinic_id})
    return {"Authorization": f"Bearer {token}", "User-Agent": "compliance-portal/1.0"}


async def _book(audit_service, clock, clinic_id: str, appointment_id: str = "A1"):
    clock.advance(minutes=1)
    await audit_service.recorder.record(
        AuditActionDescriptor(
            user_id="receptionist-ai",
            clinic_id=clinic_id,
            action="appointment_booked",
            entity_type="appointments",
            entity_id=appointment_id,
            details=AppointmentDetails(patient_name="Jane Doe", phone="+447700900123"),
        )
    )


@pytest.mark.asyncio
async def test_trail_requires_authentication(client: AsyncClient):
    resp = await client.get("/api/v1/audit/trail/appointments/A1")
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_receptionist_cannot_read_trail(client: AsyncClient):
    resp = await client.get("/api/v1/audit/trail/appointments/A1", headers=_headers(role=Role.RECEPTIONIST))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_trail_is_scoped_to_callers_clinic(client: AsyncClient, audit_service, clock):
    await _book(audit_service, clock, "clinic-1")
    await _book(audit_service, clock, "clinic-2")

    resp = await client.get("/api/v1/audit/trail/appointments/A1", headers=_headers(clinic_id="clinic-1"))

    assert resp.status_code == 200
    body = resp.json()
    assert [e["clinic_id"] for e in body] == ["clinic-1"]
    assert body[0]["action"] == "APPOINTMENT_BOOKED"
    assert body[0]["details"]["patient_name"] == "Jane Doe"


@pytest.mark.asyncio
async def test_platform_admin_sees_all_clinics(client: AsyncClient, audit_service, clock):
    await _book(audit_service, clock, "clinic-1")
    await _book(audit_service, clock, "clinic-2")

    resp = await client.get(
        "/api/v1/audit/trail/appointments/A1",
        headers=_headers(role=Role.PLATFORM_ADMIN, clinic_id=None),
    )

    assert resp.status_code == 200
    assert [e["clinic_id"] for e in resp.json()] == ["clinic-1", "clinic-2"]


@pytest.mark.asyncio
async def test_redacted_trail(client: AsyncClient, audit_service, clock):
    await _book(audit_service, clock, "clinic-1")

    resp = await client.get(
        "/api/v1/audit/trail/appointments/A1",
        params={"redact": "true"},
        headers=_headers(),
    )

    details = resp.json()[0]["details"]
    assert details["patient_name"] == "***REDACTED***"
    assert details["phone"] == "+447700***"

    # stored entry untouched
    stored = await audit_service.trail.get_trail("appointments", "A1")
    assert stored[0].details.patient_name == "Jane Doe"


@pytest.mark.asyncio
async def test_trail_limit_is_honoured(client: AsyncClient, audit_service, clock):
    for _ in range(3):
        await _book(audit_service, clock, "clinic-1")

    resp = await client.get("/api/v1/audit/trail/appointments/A1", params={"limit": 2}, headers=_headers())
    assert len(resp.json()) == 2

    resp = await client.get("/api/v1/audit/trail/appointments/A1", params={"limit": 0}, headers=_headers())
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_reading_a_trail_is_audited(client: AsyncClient, audit_service, clock):
    await _book(audit_service, clock, "clinic-1")
    clock.advance(minutes=1)

    await client.get(
        "/api/v1/audit/trail/appointments/A1",
        params={"redact": "true"},
        headers=_headers(username="dr-patel"),
    )

    views = await audit_service.trail.get_trail("audit_logs", "appointments:A1")
    assert len(views) == 1
    view = views[0]
    assert view.action == "AUDIT_TRAIL_VIEWED"
    assert view.user_id == "dr-patel"
    assert view.clinic_id == "clinic-1"
    assert view.ip_address == "127.0.0.1"
    assert view.user_agent == "compliance-portal/1.0"
    assert view.details.redacted is True
    assert view.details.returned == 1


@pytest.mark.asyncio
async def test_trail_degrades_to_empty_when_storage_fails(client: AsyncClient, failing_store):
    from backend.app.main import app
    from backend.app.services.audit_service import AuditService

    app.state.audit_service = AuditService(failing_store)

    resp = await client.get("/api/v1/audit/trail/appointments/A1", headers=_headers())

    assert resp.status_code == 200
    assert resp.json() == []


@pytest.mark.asyncio
async def test_list_policies(client: AsyncClient, audit_service):
    await audit_service.policies.seed_default_policies()

    resp = await client.get("/api/v1/audit/policies", headers=_headers())

    assert resp.status_code == 200
    by_type = {p["data_type"]: p for p in resp.json()}
    assert set(by_type) == {"call_logs", "appointments", "audit_logs", "user", "consent_records"}
    assert by_type["audit_logs"]["retention_period_days"] == 2190
    assert by_type["user"]["legal_basis"] == "GDPR"


@pytest.mark.asyncio
async def test_cleanup_requires_admin_scope(client: AsyncClient):
    resp = await client.post("/api/v1/audit/cleanup", headers=_headers(role=Role.CLINIC_ADMIN))
    assert resp.status_code == 403


@pytest.mark.asyncio
async def test_cleanup_endpoint(client: AsyncClient, audit_service, store, clock):
    await store.insert_entry(
        AuditLogCreate(
            user_id="receptionist-ai",
            action="CALL_COMPLETED",
            entity_type="call_logs",
            entity_id="C1",
            timestamp=clock.now - timedelta(days=3000),
            retention_date=clock.now - timedelta(days=1),
        )
    )

    resp = await client.post("/api/v1/audit/cleanup", headers=_headers(role=Role.PLATFORM_ADMIN, clinic_id=None))

    assert resp.status_code == 200
    assert resp.json() == {"deleted": 1}
    assert await audit_service.trail.get_trail("call_logs", "C1") == []


@pytest.mark.asyncio
async def test_compliance_check(client: AsyncClient, audit_service):
    resp = await client.get("/api/v1/audit/compliance/call_logs", headers=_headers())
    assert resp.json() == {"clinic_id": "clinic-1", "data_type": "call_logs", "compliant": False}

    await audit_service.policies.seed_default_policies()

    resp = await client.get(
        "/api/v1/audit/compliance/call_logs",
        params={"clinic_id": "clinic-9"},
        headers=_headers(),
    )
    # clinic users cannot query on behalf of another clinic
    assert resp.json() == {"clinic_id": "clinic-1", "data_type": "call_logs", "compliant": True}


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_forwarded_for_ignored_from_untrusted_peer(client: AsyncClient, audit_service):
    headers = {**_headers(), "X-Forwarded-For": "203.0.113.9"}
    await client.get("/api/v1/audit/trail/appointments/A1", headers=headers)

    views = await audit_service.trail.get_trail("audit_logs", "appointments:A1")
    assert views[0].ip_address == "127.0.0.1"


@pytest.mark.asyncio
async def test_forwarded_for_honoured_from_trusted_proxy(client: AsyncClient, audit_service, monkeypatch):
    monkeypatch.setattr(get_settings(), "trusted_proxies", ["127.0.0.1"])
    headers = {**_headers(), "X-Forwarded-For": "203.0.113.9, 10.0.0.2"}
    await client.get("/api/v1/audit/trail/appointments/A1", headers=headers)

    views = await audit_service.trail.get_trail("audit_logs", "appointments:A1")
    assert views[0].ip_address == "203.0.113.9"
