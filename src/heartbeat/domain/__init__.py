"""
Heartbeat Domain Layer
======================

Domain layer for component health history.

Contains:
- Entities: HeartbeatSnapshot, TimelineSegment, RecordResult
- Value Objects: status normalization and presentation hints

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from src.heartbeat.domain.entities import HeartbeatSnapshot, TimelineSegment, RecordResult
from src.heartbeat.domain.value_objects import (
    StatusPresentation,
    normalize_status,
    present,
    component_tooltip,
)

__all__ = [
    # Entities
    "HeartbeatSnapshot",
    "TimelineSegment",
    "RecordResult",
    # Value Objects
    "StatusPresentation",
    "normalize_status",
    "present",
    "component_tooltip",
]
