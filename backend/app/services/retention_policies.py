"""
Retention Policy Store

Default retention periods per data category:
  - call_logs:        7 years (HIPAA)  patient call recordings and transcripts
  - appointments:     7 years (HIPAA)  booking and scheduling records
  - audit_logs:       6 years (HIPAA)  access and action audit trails
  - user:             3 years (GDPR)   account and profile information
  - consent_records:  6 years (GDPR)   consent and withdrawal records

Categories without an active policy fall back to DEFAULT_RETENTION_DAYS.
"""
from typing import List, Optional

from backend.app.core.logging import get_logger
from backend.app.schemas.audit import RetentionPolicy, RetentionPolicyCreate
from backend.app.services.audit_store import AuditStore, StoreResult

logger = get_logger(__name__)

# ~7 years, the default for regulated health data
DEFAULT_RETENTION_DAYS = 2555

DEFAULT_RETENTION_POLICIES: List[RetentionPolicyCreate] = [
    RetentionPolicyCreate(
        data_type="call_logs",
        retention_period_days=2555,
        description="Patient call recordings and transcripts",
        legal_basis="HIPAA",
    ),
    RetentionPolicyCreate(
        data_type="appointments",
        retention_period_days=2555,
        description="Appointment booking and scheduling records",
        legal_basis="HIPAA",
    ),
    RetentionPolicyCreate(
        data_type="audit_logs",
        retention_period_days=2190,
        description="System access and action audit trails",
        legal_basis="HIPAA",
    ),
    RetentionPolicyCreate(
        data_type="user",
        retention_period_days=1095,
        description="User account and profile information",
        legal_basis="GDPR",
    ),
    RetentionPolicyCreate(
        data_type="consent_records",
        retention_period_days=2190,
        description="Patient consent and withdrawal records",
        legal_basis="GDPR",
    ),
]


class RetentionPolicyStore:
    """Resolves how long each data category must be kept."""

    def __init__(self, store: AuditStore, fallback_days: int = DEFAULT_RETENTION_DAYS):
        if fallback_days <= 0:
            raise ValueError(f"fallback retention must be positive, got {fallback_days}")
        self.store = store
        self.fallback_days = fallback_days

    async def resolve_retention_period(self, data_category: str) -> Optional[int]:
        """
        Days to retain data of this category.

        Returns the fallback when no active policy exists, and None when the
        policy store could not be consulted.
        """
        try:
            result = await self.store.find_active_policy(data_category)
        except Exception as e:
            result = StoreResult.failure(e)
        if not result.ok:
            logger.error(
                f"Retention policy lookup failed for '{data_category}': {result.error}",
                exc_info=result.error,
            )
            return None

        if result.value is None:
            return self.fallback_days
        return result.value.retention_period_days

    async def seed_default_policies(self) -> int:
        """
        Insert the default policy set. Categories already present (active or
        not) are left untouched, so this is safe to run on every start.

        Returns the number of policies inserted.
        """
        inserted = 0
        for policy in DEFAULT_RETENTION_POLICIES:
            try:
                exists = await self.store.policy_exists(policy.data_type)
                if exists.ok and exists.value:
                    continue
                created = await self.store.insert_policy(policy) if exists.ok else exists
            except Exception as e:
                created = StoreResult.failure(e)

            if not created.ok:
                logger.error(f"Error seeding retention policy '{policy.data_type}': {created.error}")
                continue
            inserted += 1
            logger.info(
                f"Seeded retention policy '{policy.data_type}' "
                f"({policy.retention_period_days} days, {policy.legal_basis})"
            )
        return inserted

    async def list_policies(self, active_only: bool = True) -> List[RetentionPolicy]:
        try:
            result = await self.store.list_policies(active_only=active_only)
        except Exception as e:
            result = StoreResult.failure(e)
        if not result.ok:
            logger.error(f"Error listing retention policies: {result.error}")
            return []
        return result.value
