"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
- Secure defaults (no API keys in code)
"""

import os
from functools import lru_cache
from typing import Literal, cast
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

# Load environment variables from .env file
load_dotenv()

logger = structlog.get_logger(__name__)


class SchedulingConfig(BaseModel):
    """Appointment grid configuration."""

    timezone: str | None = Field(
        default=None, description="IANA time zone of the clinic; None uses the system zone"
    )

    @field_validator("timezone")
    def validate_timezone(cls, v):
        if v is None:
            return v
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown time zone: {v}") from e
        return v

    def tzinfo(self) -> ZoneInfo | None:
        return ZoneInfo(self.timezone) if self.timezone else None


class AdvisorConfig(BaseModel):
    """Health advisory rule settings."""

    recent_limit: int | None = Field(
        default=None, gt=0, description="Only evaluate the N most recent measurements"
    )
    weight_change_threshold_kg: float = Field(
        default=2.0, gt=0.0, description="Weight change between readings that triggers advice"
    )


class NotificationConfig(BaseModel):
    """Appointment confirmation e-mail settings."""

    enabled: bool = Field(default=True, description="Send booking confirmations")
    resend_api_key: str | None = Field(None, description="Resend API key (optional)")
    api_url: str = Field(default="https://api.resend.com/emails", description="E-mail API endpoint")
    sender: str = Field(
        default="HealthCare <no-reply@yourdomain.com>", description="From address"
    )
    subject: str = Field(default="Appointment Confirmation", description="E-mail subject")
    timeout_seconds: float = Field(
        default=10.0, gt=0.0, description="Timeout for a single confirmation send"
    )

    @field_validator("resend_api_key")
    def validate_api_key(cls, v):
        if not v:
            return None
        if not v.startswith("re_"):
            raise ValueError("Resend API key must start with 're_'")
        return v


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    # Environment
    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    # Component configs
    scheduling: SchedulingConfig = Field(default_factory=SchedulingConfig)
    advisor: AdvisorConfig = Field(default_factory=AdvisorConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = val.strip().upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    def _parse_bool(val: str | None, default: bool) -> bool:
        if val is None:
            return default
        return val.strip().lower() in {"1", "true", "yes", "on"}

    def _optional_int(val: str | None) -> int | None:
        if val is None or not val.strip():
            return None
        return int(val)

    # Detect environment
    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    scheduling_config = SchedulingConfig(timezone=os.getenv("CLINIC_TIMEZONE") or None)

    advisor_config = AdvisorConfig(
        recent_limit=_optional_int(os.getenv("ADVISOR_RECENT_LIMIT")),
        weight_change_threshold_kg=float(os.getenv("WEIGHT_CHANGE_THRESHOLD_KG", "2.0")),
    )

    notification_config = NotificationConfig(
        enabled=_parse_bool(os.getenv("NOTIFICATIONS_ENABLED"), True),
        resend_api_key=os.getenv("RESEND_API_KEY", ""),
        sender=os.getenv("NOTIFICATION_SENDER", "HealthCare <no-reply@yourdomain.com>"),
        timeout_seconds=float(os.getenv("NOTIFICATION_TIMEOUT_SECONDS", "10.0")),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        scheduling=scheduling_config,
        advisor=advisor_config,
        notifications=notification_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def validate_config() -> None:
    """Validate configuration at startup."""
    try:
        config = get_config()
    except Exception as e:
        logger.error("configuration_invalid", error=str(e))
        raise

    logger.info(
        "configuration_loaded",
        environment=config.environment,
        timezone=config.scheduling.timezone or "system",
        email_provider="resend" if config.notifications.resend_api_key else "console",
    )
