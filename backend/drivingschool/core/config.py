# backend/drivingschool/core/config.py
import logging
import os
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
import pytz


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


class Settings(BaseSettings):
    environment: Literal["development", "test", "staging", "production"] = Field(
        default="development",
        description="Deployment environment name",
    )
    log_level: str = Field(default="INFO", description="Root log level")

    database_url: str = Field(
        default="sqlite:///./drivingschool.db",
        description="SQLAlchemy database URL",
    )
    database_echo: bool = False

    # Naive lesson times are interpreted in this zone unless the instructor has their own
    school_timezone: str = Field(default="Europe/London", description="IANA timezone of the school")

    # Auto-scheduling
    slot_step_minutes: int = Field(default=15, gt=0, description="Sliding window step")
    default_scheduling_window_days: int = Field(default=30, gt=0)
    max_suggestions: int = Field(default=20, gt=0)
    max_candidate_windows: int = Field(
        default=5000,
        gt=0,
        description="Hard cap on lesson windows evaluated per auto-schedule request",
    )
    auto_schedule_timeout_seconds: float = Field(default=10.0, gt=0)
    high_workload_threshold: int = 10
    low_workload_threshold: int = 5

    # Recurrence
    monthly_recurrence_mode: Literal["fixed_30_days", "calendar_month"] = "fixed_30_days"
    max_recurrence_instances: int = Field(
        default=366,
        gt=0,
        description="Recurring slots that would expand past this many instances are rejected",
    )

    # Insights
    insights_lookback_days: int = Field(default=30, gt=0)
    popular_courses_limit: int = Field(default=10, gt=0)

    # Booking commit lock
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis holding the per-instructor, per-date booking locks",
    )
    lock_namespace: str = "drivingschool"
    booking_lock_ttl_seconds: int = Field(default=30, gt=0)

    is_testing: bool = False

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("school_timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        if v not in pytz.all_timezones_set:
            raise ValueError(f"Unknown timezone: {v}")
        return v

    @model_validator(mode="after")
    def validate_workload_thresholds(self) -> "Settings":
        if self.low_workload_threshold > self.high_workload_threshold:
            raise ValueError("low_workload_threshold must not exceed high_workload_threshold")
        return self

    def get_database_url(self) -> str:
        """Get the appropriate database URL based on context."""
        if self.is_testing or is_running_tests():
            return os.getenv("TEST_DATABASE_URL", "sqlite+pysqlite:///:memory:")
        return self.database_url


settings = Settings()
