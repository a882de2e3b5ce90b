# backend/app/core/config.py
import logging
import os
from pathlib import Path
from typing import List, Literal

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import BRAND_NAME, SLOT_HOLDING_DEFAULT


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


_BACKEND_ROOT = Path(__file__).resolve().parents[2]

logger = logging.getLogger(__name__)

# Load backend/.env before Settings reads the environment
load_dotenv(_BACKEND_ROOT / ".env", override=False)


class Settings(BaseSettings):
    """Runtime configuration for the session booking service."""

    app_name: str = Field(default=f"{BRAND_NAME} API")
    environment: Literal["development", "production", "test"] = "development"
    log_level: str = "INFO"
    is_testing: bool = False

    database_url: str = Field(default="sqlite:///./skillswap.db")
    test_database_url: str = Field(default="sqlite://")

    secret_key: SecretStr = Field(default=SecretStr("change-me-in-production"))
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # Lifecycle policy
    cancellation_notice_hours: int = Field(default=2, ge=0)
    session_min_duration_minutes: int = Field(default=15, ge=1)
    session_max_duration_minutes: int = Field(default=480, ge=1)
    conflict_slot_statuses: List[str] = Field(default_factory=lambda: list(SLOT_HOLDING_DEFAULT))
    completion_requires_elapsed: bool = True

    # Listing
    default_page_size: int = Field(default=20, ge=1)
    max_page_size: int = Field(default=100, ge=1)
    upcoming_limit: int = Field(default=50, ge=1)

    # Notification retry loop
    notification_retry_enabled: bool = True
    notification_retry_interval_seconds: float = Field(default=300.0, gt=0)
    notification_max_attempts: int = Field(default=3, ge=1)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.upper()

    @field_validator("conflict_slot_statuses")
    @classmethod
    def _validate_slot_statuses(cls, value: List[str]) -> List[str]:
        allowed = {"pending", "accepted"}
        unknown = set(value) - allowed
        if unknown:
            raise ValueError(f"Unsupported slot-holding statuses: {sorted(unknown)}")
        if not value:
            raise ValueError("At least one slot-holding status is required")
        return value

    @model_validator(mode="after")
    def _validate_duration_bounds(self) -> "Settings":
        if self.session_min_duration_minutes > self.session_max_duration_minutes:
            raise ValueError("session_min_duration_minutes must not exceed the maximum")
        return self

    def get_database_url(self) -> str:
        """Return the database URL for the current mode."""
        if self.is_testing or is_running_tests():
            return self.test_database_url
        return self.database_url


settings = Settings()
