"""
SLA Domain Entities
====================

Pure Python domain entities for SLA tracking.

Following Domain-Driven Design principles, these entities contain
business logic and are free of infrastructure concerns.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from designdream.config import SLAStatus, OPEN_STATUSES, TERMINAL_STATUSES


@dataclass(frozen=True)
class SLARecord:
    """
    One SLA timer for one client request.

    Records are immutable snapshots: state machine transitions return a new
    record instead of mutating this one.
    """

    # Identity
    id: str
    request_id: str

    # Budget
    target_hours: float

    # Lifecycle
    started_at: datetime
    status: str = SLAStatus.ACTIVE
    paused_at: Optional[datetime] = None
    resumed_at: Optional[datetime] = None
    pause_duration_hours: float = 0.0
    completed_at: Optional[datetime] = None

    # Filled in at completion
    business_hours_elapsed: Optional[float] = None
    total_elapsed_hours: Optional[float] = None
    violation_reason: Optional[str] = None
    violation_severity: Optional[str] = None

    # Bookkeeping
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    version: int = 1

    metadata: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    @property
    def is_open(self) -> bool:
        """Active or paused."""
        return self.status in OPEN_STATUSES

    @property
    def is_terminal(self) -> bool:
        """Met or violated."""
        return self.status in TERMINAL_STATUSES

    @property
    def is_paused(self) -> bool:
        return self.status == SLAStatus.PAUSED

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        def iso(value: Optional[datetime]) -> Optional[str]:
            return value.isoformat() if value else None

        return {
            "id": self.id,
            "request_id": self.request_id,
            "target_hours": self.target_hours,
            "started_at": iso(self.started_at),
            "paused_at": iso(self.paused_at),
            "resumed_at": iso(self.resumed_at),
            "completed_at": iso(self.completed_at),
            "pause_duration_hours": self.pause_duration_hours,
            "business_hours_elapsed": self.business_hours_elapsed,
            "total_elapsed_hours": self.total_elapsed_hours,
            "status": self.status,
            "violation_reason": self.violation_reason,
            "violation_severity": self.violation_severity,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
            "version": self.version,
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class SLAStatusSnapshot:
    """
    Derived view of an SLA record at one instant.

    ``percentage_complete`` is never capped at 100; values above 100 signal
    an overrun.
    """

    sla_id: str
    request_id: str
    status: str
    evaluated_at: datetime
    target_hours: float

    total_elapsed_hours: float
    hours_remaining: float
    percentage_complete: float
    wall_clock_hours: float

    warning_level: str
    is_at_risk: bool
    is_violated: bool

    time_remaining_display: str
    estimated_deadline: Optional[datetime] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        return {
            "sla_id": self.sla_id,
            "request_id": self.request_id,
            "status": self.status,
            "evaluated_at": self.evaluated_at.isoformat(),
            "target_hours": self.target_hours,
            "total_elapsed_hours": self.total_elapsed_hours,
            "hours_remaining": self.hours_remaining,
            "percentage_complete": self.percentage_complete,
            "wall_clock_hours": self.wall_clock_hours,
            "warning_level": self.warning_level,
            "is_at_risk": self.is_at_risk,
            "is_violated": self.is_violated,
            "time_remaining_display": self.time_remaining_display,
            "estimated_deadline": (
                self.estimated_deadline.isoformat() if self.estimated_deadline else None
            ),
        }


@dataclass
class SLANotification:
    """
    SLA notification entity.

    Represents an escalation (yellow, red or violated) that needs to be
    sent to people watching the request.
    """

    id: Optional[str]
    sla_id: str
    request_id: str
    level: str
    hours_remaining: float
    triggered_at: datetime

    notification_sent: bool = False
    notification_sent_at: Optional[datetime] = None

    @property
    def is_notification_pending(self) -> bool:
        """Check if notification still needs to be sent."""
        return not self.notification_sent

    def mark_notification_sent(self, timestamp: datetime) -> None:
        """Mark notification as sent."""
        self.notification_sent = True
        self.notification_sent_at = timestamp


@dataclass(frozen=True)
class SLAMetrics:
    """Aggregate adherence figures across a set of SLA records."""

    total_requests: int
    sla_met: int
    sla_violated: int
    avg_turnaround_hours: float
    sla_adherence_percent: float
    active_slas: int
    at_risk_slas: int

    def to_dict(self) -> dict:
        return {
            "total_requests": self.total_requests,
            "sla_met": self.sla_met,
            "sla_violated": self.sla_violated,
            "avg_turnaround_hours": self.avg_turnaround_hours,
            "sla_adherence_percent": self.sla_adherence_percent,
            "active_slas": self.active_slas,
            "at_risk_slas": self.at_risk_slas,
        }
