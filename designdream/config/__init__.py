"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from pathlib import Path
from typing import List, Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="designdream-sla", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/designdream",
        description="Database connection URL (async driver)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== SLA Configuration ==========
    sla_config_path: Path = Field(
        default=Path("sla_config.yaml"),
        description="Path to SLA engine configuration YAML file"
    )
    sla_evaluation_interval: int = Field(
        default=60,
        description="Seconds between SLA warning evaluations (0 disables)",
        ge=0
    )
    sla_notification_lookback_hours: int = Field(
        default=24,
        description="How far back completed violations are considered for notification",
        ge=1
    )

    # ========== Email Notifications (Resend) ==========
    resend_api_key: Optional[str] = Field(
        default=None,
        description="Resend API key for SLA notification emails"
    )
    resend_api_url: str = Field(
        default="https://api.resend.com/emails",
        description="Resend send-email endpoint"
    )
    notification_from_email: str = Field(
        default="DesignDream <sla@designdream.is>",
        description="Sender address for SLA notifications"
    )
    notification_recipients: List[str] = Field(
        default_factory=list,
        description="Addresses receiving SLA warning and violation emails"
    )
    notification_timeout_seconds: float = Field(
        default=5.0,
        description="Timeout for email API calls",
        ge=0.1,
        le=30
    )
    app_base_url: str = Field(
        default="http://localhost:3000",
        description="Base URL used to build links to requests in emails"
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production", "testing"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class SLAStatus(str):
    """SLA record lifecycle statuses."""
    ACTIVE = "active"
    PAUSED = "paused"
    MET = "met"
    VIOLATED = "violated"


class WarningLevel(str):
    """Discrete urgency derived from hours remaining."""
    NONE = "none"
    YELLOW = "yellow"
    RED = "red"


class ViolationSeverity(str):
    """How far a violated SLA went over its target."""
    MINOR = "minor"
    MAJOR = "major"
    CRITICAL = "critical"


class NotificationLevel(str):
    """Levels that trigger an outbound notification."""
    YELLOW = "yellow"
    RED = "red"
    VIOLATED = "violated"


# ========== Lists for validation ==========

OPEN_STATUSES = [SLAStatus.ACTIVE, SLAStatus.PAUSED]
TERMINAL_STATUSES = [SLAStatus.MET, SLAStatus.VIOLATED]
VALID_STATUSES = OPEN_STATUSES + TERMINAL_STATUSES
VALID_WARNING_LEVELS = [WarningLevel.NONE, WarningLevel.YELLOW, WarningLevel.RED]
VALID_SEVERITIES = [
    ViolationSeverity.MINOR, ViolationSeverity.MAJOR, ViolationSeverity.CRITICAL
]

# Escalation order used to decide whether a notification is due
NOTIFICATION_RANK = {
    WarningLevel.NONE: 0,
    NotificationLevel.YELLOW: 1,
    NotificationLevel.RED: 2,
    NotificationLevel.VIOLATED: 3,
}

DEFAULT_TARGET_HOURS = 48.0
