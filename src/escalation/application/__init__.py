"""
Escalation Application Layer
=============================

Contains:
- DTOs: Data transfer objects for API serialization
"""

from src.escalation.application.dto import (
    CaseActivityRequest,
    QuietThresholdUpdateRequest,
    QuietThresholdResponse,
    CaseActivityResponse,
    EscalationSummary,
    EscalationSweepResponse,
)

__all__ = [
    "CaseActivityRequest",
    "QuietThresholdUpdateRequest",
    "QuietThresholdResponse",
    "CaseActivityResponse",
    "EscalationSummary",
    "EscalationSweepResponse",
]
