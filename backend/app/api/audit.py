"""
Compliance API Endpoints

Audit trail views (optionally redacted), retention policy listing,
on-demand retention sweeps and processing-compliance checks.
"""

from typing import List, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Security, status

from backend.app.core.config import get_settings
from backend.app.core.logging import get_logger
from backend.app.core.security import AUDIT_ADMIN, AUDIT_READ, User, get_current_user
from backend.app.schemas.audit import (
    AUDIT_LOGS,
    AUDIT_TRAIL_VIEWED,
    AuditActionDescriptor,
    AuditLogEntry,
    RetentionPolicy,
    TrailAccessDetails,
)
from backend.app.services.audit_service import AuditService
from backend.app.services.redaction import redact_entry

router = APIRouter()
logger = get_logger(__name__)


def get_audit_service(request: Request) -> AuditService:
    """Audit service built at startup (see main.lifespan)."""
    return request.app.state.audit_service


def request_provenance(request: Request) -> Tuple[Optional[str], Optional[str]]:
    """
    (client address, user agent) of the calling request.

    X-Forwarded-For is only honoured when the direct peer is a configured
    trusted proxy; otherwise the header is client-controlled.
    """
    peer = request.client.host if request.client else None
    ip = peer
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded and peer is not None and peer in get_settings().trusted_proxies:
        ip = forwarded.split(",")[0].strip() or peer
    return ip, request.headers.get("User-Agent")


def _scoped_clinic(user: User) -> Optional[str]:
    """Clinic the caller is confined to; None for platform admins."""
    if user.is_platform_admin:
        return None
    if not user.clinic_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Token is not bound to a clinic")
    return user.clinic_id


@router.get("/trail/{entity_type}/{entity_id}", response_model=List[AuditLogEntry])
async def get_audit_trail(
    entity_type: str,
    entity_id: str,
    request: Request,
    limit: Optional[int] = Query(None, ge=1),
    redact: bool = Query(False, description="Mask PII in detail payloads"),
    current_user: User = Security(get_current_user, scopes=[AUDIT_READ]),
    audit: AuditService = Depends(get_audit_service),
) -> List[AuditLogEntry]:
    """
    Chronological audit history of one entity.

    Non-admin callers only see entries of their own clinic. The read itself
    is recorded as AUDIT_TRAIL_VIEWED.
    """
    settings = get_settings()
    clinic_id = _scoped_clinic(current_user)
    limit = min(limit or settings.audit_trail_default_limit, settings.audit_trail_max_limit)

    entries = await audit.trail.get_trail(entity_type, entity_id, limit=limit, clinic_id=clinic_id)
    if redact:
        entries = [redact_entry(entry) for entry in entries]

    ip_address, user_agent = request_provenance(request)
    await audit.recorder.record(
        AuditActionDescriptor(
            user_id=current_user.username,
            clinic_id=current_user.clinic_id,
            action=AUDIT_TRAIL_VIEWED,
            entity_type=AUDIT_LOGS,
            entity_id=f"{entity_type}:{entity_id}",
            details=TrailAccessDetails(
                entity_type=entity_type,
                entity_id=entity_id,
                redacted=redact,
                returned=len(entries),
            ),
            ip_address=ip_address,
            user_agent=user_agent,
        )
    )
    return entries


@router.get("/policies", response_model=List[RetentionPolicy])
async def list_retention_policies(
    current_user: User = Security(get_current_user, scopes=[AUDIT_READ]),
    audit: AuditService = Depends(get_audit_service),
) -> List[RetentionPolicy]:
    """Active retention policies."""
    return await audit.policies.list_policies(active_only=True)


@router.post("/cleanup")
async def run_retention_cleanup(
    current_user: User = Security(get_current_user, scopes=[AUDIT_ADMIN]),
    audit: AuditService = Depends(get_audit_service),
):
    """Run the retention sweeper now instead of waiting for the schedule."""
    logger.info(f"Manual retention cleanup requested by {current_user.username}")
    deleted = await audit.sweeper.cleanup_expired_entries()
    return {"deleted": deleted}


@router.get("/compliance/{data_type}")
async def check_processing_compliance(
    data_type: str,
    clinic_id: Optional[str] = Query(None, description="Platform admins only"),
    current_user: User = Security(get_current_user, scopes=[AUDIT_READ]),
    audit: AuditService = Depends(get_audit_service),
):
    scoped = _scoped_clinic(current_user)
    if scoped is not None:
        clinic_id = scoped
    elif clinic_id is None:
        clinic_id = get_settings().default_clinic_id

    compliant = await audit.is_processing_compliant(clinic_id, data_type)
    return {"clinic_id": clinic_id, "data_type": data_type, "compliant": compliant}
