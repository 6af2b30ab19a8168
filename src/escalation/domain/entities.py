"""
Escalation Domain Entities
===========================

Pure Python domain entities for quiet-window escalation.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from src.config import CalendarMode, EscalationTier


@dataclass
class CaseActivityRecord:
    """
    Last observed activity on an in-flight case.

    Collaborators touch the record on inbound messages or staff actions.
    """

    case_id: str
    last_activity_at: datetime

    def __post_init__(self):
        if not self.case_id:
            raise ValueError("case_id must not be empty")

    def touch(self, at: datetime) -> bool:
        """Move last activity forward. Returns False for a stale touch."""
        if at <= self.last_activity_at:
            return False
        self.last_activity_at = at
        return True


@dataclass(frozen=True)
class QuietEvaluation:
    """Escalation tier for a case plus the context that produced it."""

    case_id: str
    tier: EscalationTier
    elapsed_hours: Optional[float]
    mode: CalendarMode
    warning_hours: float
    alert_hours: float
    message: str
    clock_skew: bool = False

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "case_id": self.case_id,
            "tier": self.tier.value,
            "elapsed_hours": self.elapsed_hours,
            "mode": self.mode.value,
            "warning_hours": self.warning_hours,
            "alert_hours": self.alert_hours,
            "message": self.message,
            "clock_skew": self.clock_skew,
        }
