"""
SLA Application DTOs
=====================

Data Transfer Objects for SLA API layer.

These Pydantic models handle serialization/deserialization and validation
for API requests and responses. Following YAGNI - only what's needed.
"""

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional, Literal
from datetime import datetime

from designdream.sla.domain import SLAMetrics, SLARecord, SLAStatusSnapshot


# ========== Type Aliases for Literals ==========
SLAStatusStr = Literal["active", "paused", "met", "violated"]
WarningLevelStr = Literal["none", "yellow", "red"]
ViolationSeverityStr = Literal["minor", "major", "critical"]


# ========== Request DTOs ==========

class SLACreateRequest(BaseModel):
    """Request model for starting an SLA timer."""
    request_id: str = Field(..., min_length=1, description="Request being timed")
    target_hours: Optional[float] = Field(
        None, gt=0, description="Business-hour budget (config default when omitted)"
    )


class SLAPauseRequest(BaseModel):
    """Request model for pausing an SLA timer."""
    request_id: str = Field(..., min_length=1)
    reason: Optional[str] = Field(None, max_length=500, description="Why the clock stops")
    actor: Optional[str] = Field(None, description="Who paused the timer")


class SLAResumeRequest(BaseModel):
    """Request model for resuming an SLA timer."""
    request_id: str = Field(..., min_length=1)
    actor: Optional[str] = Field(None, description="Who resumed the timer")


class SLACompleteRequest(BaseModel):
    """Request model for closing an SLA."""
    request_id: str = Field(..., min_length=1)


# ========== Response DTOs ==========

class SLARecordResponse(BaseModel):
    """Response model for a stored SLA record."""
    id: str
    request_id: str
    target_hours: float
    started_at: datetime
    paused_at: Optional[datetime] = None
    resumed_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    pause_duration_hours: float
    business_hours_elapsed: Optional[float] = None
    total_elapsed_hours: Optional[float] = None
    status: SLAStatusStr
    violation_reason: Optional[str] = None
    violation_severity: Optional[ViolationSeverityStr] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    version: int
    metadata: Dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_domain(cls, record: SLARecord) -> "SLARecordResponse":
        """Create from domain entity."""
        return cls(
            id=record.id,
            request_id=record.request_id,
            target_hours=record.target_hours,
            started_at=record.started_at,
            paused_at=record.paused_at,
            resumed_at=record.resumed_at,
            completed_at=record.completed_at,
            pause_duration_hours=record.pause_duration_hours,
            business_hours_elapsed=record.business_hours_elapsed,
            total_elapsed_hours=record.total_elapsed_hours,
            status=record.status,
            violation_reason=record.violation_reason,
            violation_severity=record.violation_severity,
            created_at=record.created_at,
            updated_at=record.updated_at,
            version=record.version,
            metadata=dict(record.metadata),
        )


class SLAStatusResponse(BaseModel):
    """Response model for the live status of an SLA."""
    sla_record: SLARecordResponse
    hours_remaining: float = Field(..., description="Negative once overdue")
    total_elapsed_hours: float = Field(..., description="Business hours charged so far")
    percentage_complete: float = Field(..., description="Exceeds 100 on overrun")
    wall_clock_hours: float
    warning_level: WarningLevelStr
    is_at_risk: bool
    is_violated: bool
    time_remaining_display: str
    estimated_deadline: Optional[datetime] = None
    evaluated_at: datetime

    @classmethod
    def from_domain(cls, record: SLARecord, snapshot: SLAStatusSnapshot) -> "SLAStatusResponse":
        """Create from a record and its computed snapshot."""
        return cls(
            sla_record=SLARecordResponse.from_domain(record),
            hours_remaining=snapshot.hours_remaining,
            total_elapsed_hours=snapshot.total_elapsed_hours,
            percentage_complete=snapshot.percentage_complete,
            wall_clock_hours=snapshot.wall_clock_hours,
            warning_level=snapshot.warning_level,
            is_at_risk=snapshot.is_at_risk,
            is_violated=snapshot.is_violated,
            time_remaining_display=snapshot.time_remaining_display,
            estimated_deadline=snapshot.estimated_deadline,
            evaluated_at=snapshot.evaluated_at,
        )


class SLATransitionResponse(BaseModel):
    """Response model for create/pause/resume/complete."""
    success: bool = True
    sla_record: SLARecordResponse
    message: str


class DashboardResponse(BaseModel):
    """Response model for the open-SLA dashboard."""
    items: List[SLAStatusResponse] = Field(..., description="Open SLAs, most urgent first")
    total_count: int = Field(..., description="Open SLAs across all pages")
    at_risk_count: int = Field(..., description="Open SLAs at or below the yellow threshold, across all pages")
    overdue_count: int


class SLAMetricsResponse(BaseModel):
    """Response model for SLA adherence metrics."""
    total_requests: int
    sla_met: int
    sla_violated: int
    avg_turnaround_hours: float
    sla_adherence_percent: float
    active_slas: int
    at_risk_slas: int

    @classmethod
    def from_domain(cls, metrics: SLAMetrics) -> "SLAMetricsResponse":
        """Create from domain aggregate."""
        return cls(**metrics.to_dict())
