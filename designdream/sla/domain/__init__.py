"""
SLA Domain Layer
================

Domain layer for SLA tracking module.

Contains:
- Entities: Core business objects (SLARecord, SLAStatusSnapshot, SLANotification, SLAMetrics)
- Value Objects: Immutable configuration (BusinessHoursConfig, SLAWarningThresholds,
  ViolationSeverityPolicy, SLAConfig)
- Domain Services: Stateless business logic (BusinessCalendar, SLAStateMachine)

This layer has no dependencies on infrastructure - pure Python business logic.
"""

from designdream.sla.domain.entities import (
    SLARecord,
    SLAStatusSnapshot,
    SLANotification,
    SLAMetrics,
)
from designdream.sla.domain.value_objects import (
    BusinessHoursConfig,
    SLAWarningThresholds,
    ViolationSeverityPolicy,
    SLAConfig,
)
from designdream.sla.domain.calendar import BusinessCalendar, compute_business_hours
from designdream.sla.domain.state_machine import SLAStateMachine
from designdream.sla.domain.formatting import time_remaining_display, format_duration

__all__ = [
    # Entities
    "SLARecord",
    "SLAStatusSnapshot",
    "SLANotification",
    "SLAMetrics",
    # Value Objects
    "BusinessHoursConfig",
    "SLAWarningThresholds",
    "ViolationSeverityPolicy",
    "SLAConfig",
    # Domain Services
    "BusinessCalendar",
    "compute_business_hours",
    "SLAStateMachine",
    "time_remaining_display",
    "format_duration",
]
