"""
Heartbeat Application Layer
============================

Contains:
- Services: HeartbeatAggregator (history, current status, timeline)
- DTOs: Data transfer objects for API serialization
"""

from src.heartbeat.application.dto import (
    ComponentReportRequest,
    SnapshotResponse,
    TimelineSegmentResponse,
    TimelineResponse,
    IngestReportResponse,
)
from src.heartbeat.application.services import HeartbeatAggregator

__all__ = [
    # DTOs
    "ComponentReportRequest",
    "SnapshotResponse",
    "TimelineSegmentResponse",
    "TimelineResponse",
    "IngestReportResponse",
    # Services
    "HeartbeatAggregator",
]
