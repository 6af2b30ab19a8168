"""
Monitoring Module
=================

Composition root joining the Heartbeat and Escalation contexts.

Responsibilities:
- Merge component reports into sampling ticks
- Track last activity per case
- Run periodic escalation sweeps
- Expose both contexts over HTTP
"""

__version__ = "1.0.0"
