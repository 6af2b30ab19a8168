"""
Configuration Module
====================

Application settings and configuration management using Pydantic.
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="health-escalation-service", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    log_level: str = Field(default="INFO", description="Root logging level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Heartbeat ==========
    monitored_components: List[str] = Field(
        default=["api", "storage", "realtime"],
        description="Components that must report in every heartbeat tick"
    )
    heartbeat_retention_hours: float = Field(
        default=24,
        description="Trailing window of heartbeat history kept for the timeline",
        gt=0
    )
    heartbeat_interval_seconds: int = Field(
        default=10,
        description="Seconds between tick deadline checks",
        ge=1
    )
    tick_deadline_seconds: int = Field(
        default=30,
        description="Age after which a partially reported tick is finalized",
        ge=1
    )

    # ========== Escalation ==========
    escalation_sweep_interval_seconds: int = Field(
        default=60,
        description="Seconds between escalation sweeps (0 disables sweeps; tick deadlines still run)",
        ge=0
    )
    business_timezone: str = Field(
        default="UTC",
        description="IANA timezone the business schedule is expressed in"
    )
    default_timezone: str = Field(
        default="UTC",
        description="Fallback timezone when business_timezone cannot be resolved"
    )
    quiet_config_path: Path = Field(
        default=Path("quiet_thresholds.yaml"),
        description="Path to quiet threshold YAML file"
    )
    schedule_config_path: Path = Field(
        default=Path("business_schedule.yaml"),
        description="Path to weekly business schedule YAML file"
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080"],
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
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v

    @field_validator("monitored_components")
    @classmethod
    def validate_components(cls, v: List[str]) -> List[str]:
        """Components must be a non-empty set of distinct names."""
        if not v:
            raise ValueError("monitored_components must not be empty")
        if len(set(v)) != len(v):
            raise ValueError("monitored_components must be unique")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class ComponentStatus(str, Enum):
    """Health of a monitored component. Higher rank is worse."""
    OK = "ok"
    DEGRADED = "degraded"
    DOWN = "down"


class EscalationTier(str, Enum):
    """Quiet-window escalation tiers. Higher rank is more urgent."""
    NONE = "none"
    WARNING = "warning"
    ALERT = "alert"


class RecordOutcome(str, Enum):
    """Reason codes returned by the heartbeat aggregator on record."""
    RECORDED = "recorded"
    OUT_OF_ORDER = "out_of_order"


class CalendarMode(str, Enum):
    """Which threshold pair applied at evaluation time."""
    BUSINESS = "business"
    OFF_HOURS = "off_hours"
    WEEKEND = "weekend"


class Weekday(str, Enum):
    """Weekday keys used by the business schedule, Monday first."""
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"


# ========== Lists for validation ==========

VALID_COMPONENT_STATUSES = [
    ComponentStatus.OK, ComponentStatus.DEGRADED, ComponentStatus.DOWN
]
VALID_ESCALATION_TIERS = [
    EscalationTier.NONE, EscalationTier.WARNING, EscalationTier.ALERT
]
WEEKDAYS = [
    Weekday.MONDAY, Weekday.TUESDAY, Weekday.WEDNESDAY, Weekday.THURSDAY,
    Weekday.FRIDAY, Weekday.SATURDAY, Weekday.SUNDAY
]
QUIET_THRESHOLD_KEYS = [
    "businessWarningHours",
    "businessAlertHours",
    "offHoursWarningHours",
    "offHoursAlertHours",
]
QUIET_THRESHOLD_MIN_HOURS = 1
QUIET_THRESHOLD_MAX_HOURS = 200
TIMELINE_MIN_SEGMENT_MS = 1000
