"""
Monitoring Interfaces Layer
===========================

Interface adapters (controllers) for the monitoring session.

This is the outermost layer - handles HTTP requests/responses and
delegates to the session.
"""

from src.monitoring.interfaces.controllers import monitoring_router

__all__ = ["monitoring_router"]
