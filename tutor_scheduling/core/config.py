# tutor_scheduling/core/config.py
import logging
import os
from datetime import timedelta

import pytz
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


class Settings(BaseSettings):
    environment: str = Field(default="development", description="Deployment environment name")
    log_level: str = Field(default="INFO", description="Root log level for the API process")

    # Database
    database_url: str = Field(
        default="sqlite+pysqlite:///./tutor_scheduling.db",
        description="SQLAlchemy URL of the window/booking store",
    )
    database_echo: bool = False
    auto_create_tables: bool = Field(
        default=True,
        description="Create tables at startup (local/dev convenience; use migrations elsewhere)",
    )

    # Redis slot mutex (contention shedding only, the unique index is the guarantee)
    redis_url: str = "redis://localhost:6379/0"
    slot_lock_enabled: bool = True
    slot_lock_ttl_seconds: int = Field(default=30, ge=1, le=600)
    slot_lock_namespace: str = "tutor_scheduling"

    # Scheduling rules
    min_lead_time_minutes: int = Field(
        default=60,
        ge=0,
        description="Minimum minutes between now and a slot start for it to be bookable",
    )
    contiguity_tolerance_seconds: int = Field(
        default=60,
        ge=0,
        le=3600,
        description="Max gap between back-to-back slots for them to form a run",
    )
    max_consecutive_count: int = Field(default=8, ge=1, le=24)
    display_timezone: str = Field(
        default="America/Bogota",
        description="Timezone whose calendar dates are used to group slots by day",
    )

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("display_timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            pytz.timezone(value)
        except pytz.UnknownTimeZoneError as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> str:
        normalized = str(value or "INFO").strip().upper()
        if normalized not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError("LOG_LEVEL must be one of DEBUG, INFO, WARNING, ERROR, CRITICAL")
        return normalized

    @property
    def min_lead_time(self) -> timedelta:
        return timedelta(minutes=self.min_lead_time_minutes)

    @property
    def contiguity_tolerance(self) -> timedelta:
        return timedelta(seconds=self.contiguity_tolerance_seconds)

    @property
    def is_production(self) -> bool:
        return self.environment.strip().lower() in {"prod", "production"}


settings = Settings()
