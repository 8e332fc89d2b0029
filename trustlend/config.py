"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache) — single instance per process
    - reminder_rate_limit_hours is non-negative; 0 disables reminder throttling

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all non-secret settings: works out-of-the-box with docker-compose
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Database
    database_url: str = (
        "postgresql+asyncpg://trustlend:trustlend@db:5432/trustlend"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosting providers hand out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Bounded retries for transient store failures (deadlocks, dropped connections)
    store_max_attempts: int = Field(3, ge=1)

    # Reminders
    reminder_rate_limit_hours: int = Field(24, ge=0)
    reminder_sweep_enabled: bool = True
    reminder_sweep_interval_seconds: int = Field(60, ge=1)
    reminder_sweep_startup_delay_seconds: int = Field(10, ge=0)

    # Verification codes
    verification_code_ttl_minutes: int = Field(10, ge=1)

    # Email: console delivery when smtp_host is unset
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_user: str | None = None
    smtp_password: str | None = None
    smtp_timeout_seconds: int = 15
    email_from: str = "Trust Lending <noreply@example.com>"

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
