"""Application configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Workflow timing settings are validated at load time;
DATABASE_URL may be empty, in which case SQL-backed endpoints answer 503.
"""

from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment and .env.

    All settings are optional with defaults; validate_workflow_settings
    checks the deadline unit and reminder limits.
    """

    # App
    app_name: str = "docflow"
    app_version: str = "1.0.0"
    debug: bool = False

    # Database (Postgres via SQLAlchemy async + asyncpg)
    database_url: str = ""
    database_echo: bool = False
    # Create missing tables on startup (development and tests)
    database_create_schema: bool = False
    # Optional pool/driver overrides (None = use defaults in database.py)
    db_pool_size: int | None = None
    db_max_overflow: int | None = None
    db_query_cache_size: int | None = None
    db_command_timeout: int | None = None
    db_disable_jit: bool = True

    # CORS
    allowed_origins: str = "http://localhost:3000,http://localhost:8080"

    # Acting user: set by the authenticating gateway in front of the service
    actor_header_name: str = "X-User-ID"

    # Workflow timing. Fixed deadlines, formula results and the SLA warning
    # threshold are all expressed in deadline_unit.
    deadline_unit: str = "hours"
    reminder_interval_hours: int = 24
    max_reminders: int = 3
    sweep_batch_size: int = 200

    # Request / middleware
    request_timeout_seconds: int = 60
    request_id_header: str = "X-Request-ID"
    correlation_id_header: str = "X-Correlation-ID"

    # OpenTelemetry
    telemetry_enabled: bool = True
    telemetry_exporter: str = "console"
    telemetry_otlp_endpoint: str | None = None
    telemetry_sample_rate: float = 1.0
    telemetry_environment: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_workflow_settings(self) -> "Settings":
        """Validate deadline unit and reminder/sweep limits."""
        if self.deadline_unit not in ("hours", "days"):
            raise ValueError(
                f"deadline_unit must be 'hours' or 'days', got: {self.deadline_unit!r}"
            )
        if self.reminder_interval_hours < 1:
            raise ValueError("REMINDER_INTERVAL_HOURS must be at least 1")
        if self.max_reminders < 0:
            raise ValueError("MAX_REMINDERS must not be negative")
        if self.sweep_batch_size < 1:
            raise ValueError("SWEEP_BATCH_SIZE must be at least 1")
        return self

    @property
    def sql_configured(self) -> bool:
        """Return whether a Postgres DATABASE_URL is set."""
        return bool(self.database_url)


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
