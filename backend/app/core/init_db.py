"""
Database initialization script.

Creates the audit tables and seeds the default retention policies.
Run this to initialize a fresh database:

    python -m backend.app.core.init_db          # create + seed
    python -m backend.app.core.init_db --drop   # drop all tables
"""

import asyncio
import sys

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backend.app.core.config import get_settings
from backend.app.core.database import Base, build_engine
from backend.app.core.logging import get_logger, setup_logging
from backend.app.models import AuditLogORM, DataRetentionPolicyORM  # noqa: F401
from backend.app.services.audit_service import build_audit_service

settings = get_settings()
logger = get_logger(__name__)


async def init_database() -> int:
    """Create tables and seed retention policies. Returns the number of policies inserted."""
    logger.info(f"Initializing database at {settings.database_url}")
    engine = build_engine(settings)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
        audit_service = build_audit_service(session_factory, settings)
        inserted = await audit_service.policies.seed_default_policies()
    finally:
        await engine.dispose()

    logger.info(f"Database initialized ({inserted} retention policies seeded)")
    return inserted


async def drop_all_tables():
    """Drop all tables (use with caution!)."""
    engine = build_engine(settings)
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
    finally:
        await engine.dispose()
    logger.warning("All tables dropped")


if __name__ == "__main__":
    setup_logging(level=settings.log_level)

    if len(sys.argv) > 1 and sys.argv[1] == "--drop":
        print("⚠️ WARNING: This will drop all tables, including the audit trail!")
        confirm = input("Type 'yes' to confirm: ")
        if confirm == "yes":
            asyncio.run(drop_all_tables())
        else:
            print("Aborted.")
    else:
        asyncio.run(init_database())
