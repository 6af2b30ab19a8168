"""
Heartbeat Module
================

Bounded Context for component health history.

Responsibilities:
- Keep a bounded, time-ordered history of component snapshots
- Derive the overall status as the worst component status
- Produce proportional timeline segments over a trailing window
- Provide display hints for each status
"""

__version__ = "1.0.0"
