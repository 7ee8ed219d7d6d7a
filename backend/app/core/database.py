"""Database connection and session management."""

from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase

from backend.app.core.config import Settings, get_settings


class Base(DeclarativeBase):
    """Base class for SQLAlchemy models."""
    pass


def build_engine(settings: Optional[Settings] = None) -> AsyncEngine:
    """Create the async engine for the configured database URL."""
    settings = settings or get_settings()
    engine_kwargs: Dict[str, Any] = {"echo": settings.debug}

    # SSL Configuration
    if settings.db_ssl_mode == "require":
        engine_kwargs["connect_args"] = {"ssl": "require"}

    if "postgresql" in settings.database_url:
        engine_kwargs.update({
            "pool_size": settings.database_pool_size,
            "max_overflow": settings.database_max_overflow,
            "pool_pre_ping": True,
        })

    return create_async_engine(settings.database_url, **engine_kwargs)


engine = build_engine()

# Session factory
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


