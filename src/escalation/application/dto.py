"""
Escalation Application DTOs
============================

Data Transfer Objects for the escalation API layer.
"""

from datetime import datetime, timezone
from typing import Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


EscalationTierStr = Literal["none", "warning", "alert"]


# ========== Request DTOs ==========

class CaseActivityRequest(BaseModel):
    """Marks activity on a case."""
    at: Optional[datetime] = Field(None, description="Activity time (defaults to now)")

    @field_validator("at")
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class QuietThresholdUpdateRequest(BaseModel):
    """Partial threshold update; omitted fields keep their current value."""
    model_config = ConfigDict(extra="forbid")

    businessWarningHours: Optional[float] = None
    businessAlertHours: Optional[float] = None
    offHoursWarningHours: Optional[float] = None
    offHoursAlertHours: Optional[float] = None

    def changes(self) -> Dict[str, float]:
        return self.model_dump(exclude_none=True)


# ========== Response DTOs ==========

class QuietThresholdResponse(BaseModel):
    """Current quiet thresholds in hours."""
    businessWarningHours: float
    businessAlertHours: float
    offHoursWarningHours: float
    offHoursAlertHours: float


class CaseActivityResponse(BaseModel):
    case_id: str
    last_activity_at: datetime
    updated: bool = Field(..., description="False when the touch was older than the recorded activity")


class EscalationSummary(BaseModel):
    """Per-tier case counts."""
    total_cases: int
    none_count: int
    warning_count: int
    alert_count: int


class EscalationSweepResponse(BaseModel):
    """Result of one escalation sweep."""
    evaluated_at: datetime
    tiers: Dict[str, EscalationTierStr]
    summary: EscalationSummary
