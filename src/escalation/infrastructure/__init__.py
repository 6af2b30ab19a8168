"""
Escalation Infrastructure Layer
================================

- External: threshold file manager (hot-reload, import/export), schedule loader
"""

from src.escalation.infrastructure.external import (
    ConfigFileHandler,
    QuietThresholdManager,
    load_business_schedule,
)

__all__ = [
    "ConfigFileHandler",
    "QuietThresholdManager",
    "load_business_schedule",
]
