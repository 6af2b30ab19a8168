"""
Escalation Module
=================

Bounded Context for quiet-window escalation of in-flight cases.

Responsibilities:
- Decide whether an instant falls inside business hours
- Select the business or off-hours threshold pair at evaluation time
- Classify quiet cases into none / warning / alert
- Load, validate, hot-reload, import and export quiet thresholds
"""

__version__ = "1.0.0"
