"""
Heartbeat Application DTOs
===========================

Data Transfer Objects for the heartbeat API layer.

These Pydantic models handle serialization/deserialization and validation
for API requests and responses.
"""

from datetime import datetime, timezone
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from src.heartbeat.domain import HeartbeatSnapshot, TimelineSegment, present, component_tooltip


ComponentStatusStr = Literal["ok", "degraded", "down"]


# ========== Request DTOs ==========

class ComponentReportRequest(BaseModel):
    """A single component status report pushed by a component health check."""
    component: str = Field(..., min_length=1, description="Monitored component name")
    status: str = Field(..., min_length=1, description="Reported status (ok/degraded/down, connected, ...)")
    at: Optional[datetime] = Field(None, description="Observation time (defaults to now)")

    @field_validator("at")
    @classmethod
    def assume_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        """Naive timestamps are taken as UTC."""
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


# ========== Response DTOs ==========

class SnapshotResponse(BaseModel):
    """Current overall status with per-component detail and display hints."""
    timestamp: datetime
    statuses: Dict[str, ComponentStatusStr]
    overall: ComponentStatusStr
    color: str
    label: str
    tooltip: List[str] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, snapshot: HeartbeatSnapshot, order: List[str]) -> "SnapshotResponse":
        hint = present(snapshot.overall)
        return cls(
            timestamp=snapshot.timestamp,
            statuses={name: status.value for name, status in snapshot.statuses.items()},
            overall=snapshot.overall.value,
            color=hint.color,
            label=hint.label,
            tooltip=component_tooltip(snapshot.statuses, order),
        )


class TimelineSegmentResponse(BaseModel):
    """One proportional timeline segment."""
    start: datetime
    duration_ms: int = Field(..., ge=1000)
    status: ComponentStatusStr
    fraction_of_window: float = Field(..., ge=0.0, le=1.0)
    color: str

    @classmethod
    def from_domain(cls, segment: TimelineSegment) -> "TimelineSegmentResponse":
        return cls(
            start=segment.start,
            duration_ms=segment.duration_ms,
            status=segment.status.value,
            fraction_of_window=segment.fraction_of_window,
            color=present(segment.status).color,
        )


class TimelineResponse(BaseModel):
    """Timeline over the trailing window."""
    window_hours: float
    segments: List[TimelineSegmentResponse]


class IngestReportResponse(BaseModel):
    """Result of ingesting one component report."""
    component: str
    status: ComponentStatusStr
    tick_finalized: bool = Field(..., description="Whether this report completed a tick")
    outcome: Optional[str] = Field(None, description="Record outcome when a tick was finalized")
