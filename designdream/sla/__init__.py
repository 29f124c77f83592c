"""
SLA Tracking Module
===================

Bounded Context for business-hour SLA timers on design requests.

Responsibilities:
- Start, pause, resume and complete an SLA timer per request
- Measure elapsed time in business hours only, net of pauses
- Classify open timers as none, yellow or red and finished ones as met or violated
- Email people when a timer escalates
- Provide dashboard and metrics API for SLA visibility
"""

__version__ = "1.0.0"
