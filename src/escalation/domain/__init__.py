"""
Escalation Domain Layer
=======================

Domain layer for quiet-window escalation.

Contains:
- Entities: CaseActivityRecord, QuietEvaluation
- Value Objects: QuietThresholdConfig, BusinessSchedule, OpenInterval
- Domain Services: BusinessCalendar, QuietWindowEscalator

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from src.escalation.domain.entities import CaseActivityRecord, QuietEvaluation
from src.escalation.domain.value_objects import (
    QuietThresholdConfig,
    OpenInterval,
    BusinessSchedule,
    BusinessCalendar,
    QuietWindowEscalator,
    resolve_timezone,
    context_label,
    format_quiet_message,
)

__all__ = [
    # Entities
    "CaseActivityRecord",
    "QuietEvaluation",
    # Value Objects & Services
    "QuietThresholdConfig",
    "OpenInterval",
    "BusinessSchedule",
    "BusinessCalendar",
    "QuietWindowEscalator",
    "resolve_timezone",
    "context_label",
    "format_quiet_message",
]
