"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore", # Allow extra env vars without failing
    )

    # App
    app_name: str = "ClinicDesk"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    # Secret key MUST be provided via environment (e.g. SECRET_KEY in .env)
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # API
    api_prefix: str = "/api/v1"
    allowed_origins: list[str] = ["http://localhost:3000"]
    # Peers allowed to set X-Forwarded-For (load balancer / ingress addresses)
    trusted_proxies: list[str] = []

    # Database
    database_url: str = "sqlite+aiosqlite:///./clinicdesk.db"
    db_ssl_mode: str = "disable" # "require" for production
    database_pool_size: int = 5
    database_max_overflow: int = 10

    # Multi-tenancy
    default_clinic_id: str = "default"

    # Audit & retention
    # Fallback when no active policy covers a data category (~7 years, regulated health data)
    default_retention_days: int = 2555
    seed_retention_policies_on_startup: bool = True
    audit_cleanup_enabled: bool = True
    audit_cleanup_interval_seconds: int = 86400
    audit_trail_default_limit: int = 100
    audit_trail_max_limit: int = 1000


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
