"""
Monitoring Infrastructure Layer
================================

- External: APScheduler jobs for tick deadlines and escalation sweeps
"""

from src.monitoring.infrastructure.external import MonitoringScheduler

__all__ = ["MonitoringScheduler"]
