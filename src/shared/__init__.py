"""
Shared Kernel Module
====================

This module contains shared infrastructure used across all bounded
contexts (Heartbeat, Escalation and the Monitoring composition root).

Architecture Pattern: Modular Monolith
- Each module (heartbeat, escalation) is a bounded context
- Shared kernel contains only generic infrastructure
- Domain models are extended within each module

DO NOT add business logic from Heartbeat or Escalation to shared kernel.
"""

__version__ = "1.0.0"
