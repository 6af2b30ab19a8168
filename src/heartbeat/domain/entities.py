"""
Heartbeat Domain Entities
==========================

Pure Python domain entities for component health history.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, Iterable, Mapping, Optional

from src.config import ComponentStatus, RecordOutcome
from src.core.exceptions import ValidationException
from src.core.severity import worst_of


@dataclass(frozen=True)
class HeartbeatSnapshot:
    """
    One timestamped sample of every monitored component's status.

    ``overall`` is derived on every read and never stored, so it cannot
    drift from ``statuses``.
    """

    timestamp: datetime
    statuses: Mapping[str, ComponentStatus]

    def __post_init__(self):
        """Validate snapshot on initialization."""
        if self.timestamp.tzinfo is None:
            raise ValidationException(
                "Snapshot timestamp must be timezone-aware",
                {"timestamp": self.timestamp.isoformat()}
            )
        for name, status in self.statuses.items():
            if not isinstance(status, ComponentStatus):
                raise ValidationException(
                    f"Status for component '{name}' is not a ComponentStatus",
                    {"component": name, "status": repr(status)}
                )
        # Freeze a private copy so callers cannot mutate history behind our back
        object.__setattr__(self, "statuses", dict(self.statuses))

    @property
    def overall(self) -> ComponentStatus:
        """Worst status across all components."""
        return worst_of(self.statuses.values())

    @classmethod
    def unknown(cls, timestamp: datetime, components: Iterable[str]) -> "HeartbeatSnapshot":
        """Snapshot used when no data exists: every component down."""
        return cls(
            timestamp=timestamp,
            statuses={name: ComponentStatus.DOWN for name in components}
        )

    def require_components(self, components: Iterable[str]) -> None:
        """Raise if any expected component is missing or an unknown one is present."""
        expected = set(components)
        present = set(self.statuses)
        missing = sorted(expected - present)
        unexpected = sorted(present - expected)
        if missing or unexpected:
            raise ValidationException(
                "Snapshot does not match the monitored component set",
                {"missing": missing, "unexpected": unexpected}
            )

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "statuses": {name: status.value for name, status in self.statuses.items()},
            "overall": self.overall.value,
        }


@dataclass(frozen=True)
class TimelineSegment:
    """
    A contiguous span of constant overall status inside the timeline window.

    Read-only view derived from the heartbeat history.
    """

    start: datetime
    duration_ms: int
    status: ComponentStatus
    fraction_of_window: float

    @property
    def end(self) -> datetime:
        return self.start + timedelta(milliseconds=self.duration_ms)

    def to_dict(self) -> dict:
        return {
            "start": self.start.isoformat(),
            "duration_ms": self.duration_ms,
            "status": self.status.value,
            "fraction_of_window": self.fraction_of_window,
        }


@dataclass(frozen=True)
class RecordResult:
    """Outcome of offering a snapshot to the aggregator."""

    outcome: RecordOutcome
    snapshot: HeartbeatSnapshot
    reason: Optional[str] = None
    evicted: int = 0
    details: Dict[str, str] = field(default_factory=dict)

    @property
    def accepted(self) -> bool:
        return self.outcome == RecordOutcome.RECORDED
