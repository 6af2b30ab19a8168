"""
Monitoring Application Layer
=============================

Contains:
- Services: MonitoringSession, the composition root owning heartbeat
  history and case activity
"""

from src.monitoring.application.services import MonitoringSession

__all__ = ["MonitoringSession"]
