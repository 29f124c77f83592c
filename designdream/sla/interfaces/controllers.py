"""
SLA Controllers (API Routes)
=============================

FastAPI routes for SLA tracking endpoints.

Controllers are thin - they delegate to application services. Domain
exceptions propagate to the application exception handler, which maps
them to HTTP status codes.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from designdream.core import ConfigurationException
from designdream.infrastructure.database import get_session
from designdream.shared.infrastructure.logging import get_logger
from designdream.sla.application import (
    DashboardResponse,
    ISLAConfigProvider,
    SLACompleteRequest,
    SLACreateRequest,
    SLAMetricsResponse,
    SLAPauseRequest,
    SLARecordResponse,
    SLAResumeRequest,
    SLAService,
    SLAStatusResponse,
    SLATransitionResponse,
)
from designdream.sla.infrastructure import SQLAlchemySLARecordRepository

logger = get_logger(__name__)
router = APIRouter(prefix="/sla", tags=["SLA Tracking"])


# ========== Example payloads for Swagger ==========

SLA_RECORD_EXAMPLE = {
    "id": "5b0d7c1e-6f0a-4a53-9d55-0e8c0f1f6a10",
    "request_id": "REQ-1042",
    "target_hours": 48.0,
    "started_at": "2025-01-06T14:00:00Z",
    "paused_at": None,
    "resumed_at": None,
    "completed_at": None,
    "pause_duration_hours": 0.0,
    "business_hours_elapsed": None,
    "total_elapsed_hours": None,
    "status": "active",
    "violation_reason": None,
    "violation_severity": None,
    "created_at": "2025-01-06T14:00:00Z",
    "updated_at": "2025-01-06T14:00:00Z",
    "version": 1,
    "metadata": {}
}

SLA_STATUS_EXAMPLE = {
    "sla_record": SLA_RECORD_EXAMPLE,
    "hours_remaining": 40.0,
    "total_elapsed_hours": 8.0,
    "percentage_complete": 16.67,
    "wall_clock_hours": 24.0,
    "warning_level": "none",
    "is_at_risk": False,
    "is_violated": False,
    "time_remaining_display": "5d remaining",
    "estimated_deadline": "2025-01-14T14:00:00-05:00",
    "evaluated_at": "2025-01-07T14:00:00Z"
}


# ========== Dependencies ==========

def get_now() -> datetime:
    """Current instant; overridden in tests to pin the clock."""
    return datetime.now(timezone.utc)


def get_config_provider(request: Request) -> ISLAConfigProvider:
    """SLA config manager created during application startup."""
    provider = getattr(request.app.state, "sla_config_manager", None)
    if provider is None:
        raise ConfigurationException("SLA configuration is not loaded")
    return provider


async def get_sla_service(
    session: AsyncSession = Depends(get_session),
    config_provider: ISLAConfigProvider = Depends(get_config_provider)
) -> SLAService:
    """Get SLA service instance."""
    record_repo = SQLAlchemySLARecordRepository(session)
    return SLAService(record_repo, config_provider)


# ========== Route Handlers ==========

@router.post(
    "",
    response_model=SLATransitionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start an SLA timer",
    description="""
    Start the business-hour SLA timer for a request.

    `target_hours` falls back to the configured default (48 business hours)
    when omitted. A request may have only one active or paused SLA at a time;
    a second start returns **409**.
    """,
    responses={409: {"description": "Request already has an open SLA"}}
)
async def create_sla(
    body: SLACreateRequest,
    now: datetime = Depends(get_now),
    sla_service: SLAService = Depends(get_sla_service)
):
    record = await sla_service.start(body.request_id, now, target_hours=body.target_hours)
    return SLATransitionResponse(
        sla_record=SLARecordResponse.from_domain(record),
        message=f"SLA started for request {record.request_id}"
    )


@router.get(
    "/dashboard",
    response_model=DashboardResponse,
    summary="Get SLA dashboard",
    description="""
    Active and paused SLAs with live status, most urgent first.

    **Query Parameters:**
    - `limit`: Results per page (default: 100, max: 1000)
    - `offset`: Page offset for pagination (default: 0)

    **Warning levels:**
    - `none`: comfortably inside the budget
    - `yellow`: at or below the yellow threshold (default 12 hours left)
    - `red`: at or below the red threshold (default 0 hours left)
    """
)
async def get_dashboard(
    limit: int = Query(100, ge=1, le=1000, description="Results per page"),
    offset: int = Query(0, ge=0, description="Page offset"),
    now: datetime = Depends(get_now),
    sla_service: SLAService = Depends(get_sla_service)
):
    rows, open_snapshots = await sla_service.dashboard(now, limit=limit, offset=offset)
    items = [SLAStatusResponse.from_domain(record, snapshot) for record, snapshot in rows]

    return DashboardResponse(
        items=items,
        total_count=len(open_snapshots),
        at_risk_count=sum(1 for snapshot in open_snapshots if snapshot.is_at_risk),
        overdue_count=sum(1 for snapshot in open_snapshots if snapshot.hours_remaining < 0),
    )


@router.get(
    "/metrics",
    response_model=SLAMetricsResponse,
    summary="Get SLA adherence metrics",
    description="""
    Adherence across every SLA ever recorded.

    `sla_adherence_percent` is met / (met + violated) * 100, and 0 when
    nothing has finished yet. `avg_turnaround_hours` averages business hours
    over finished SLAs.
    """
)
async def get_metrics(
    now: datetime = Depends(get_now),
    sla_service: SLAService = Depends(get_sla_service)
):
    metrics = await sla_service.metrics(now)
    return SLAMetricsResponse.from_domain(metrics)


@router.get(
    "/{request_id}",
    response_model=SLAStatusResponse,
    summary="Get SLA status for a request",
    description="""
    Live status of the request's most recent SLA.

    Returns remaining business hours (negative once overdue), percentage
    complete (not capped at 100), warning level and a human readable
    time-remaining string.
    """,
    responses={
        200: {
            "description": "SLA status",
            "content": {"application/json": {"example": SLA_STATUS_EXAMPLE}}
        },
        404: {"description": "Request has no SLA"}
    }
)
async def get_sla_status(
    request_id: str,
    now: datetime = Depends(get_now),
    sla_service: SLAService = Depends(get_sla_service)
):
    record, snapshot = await sla_service.get_status(request_id, now)
    return SLAStatusResponse.from_domain(record, snapshot)


@router.post(
    "/pause",
    response_model=SLATransitionResponse,
    summary="Pause an SLA timer",
    description="Stop the clock while the request waits on someone outside the team.",
    responses={
        404: {"description": "Request has no SLA"},
        409: {"description": "SLA is not active or already finished"}
    }
)
async def pause_sla(
    body: SLAPauseRequest,
    now: datetime = Depends(get_now),
    sla_service: SLAService = Depends(get_sla_service)
):
    record = await sla_service.pause(body.request_id, now, reason=body.reason, actor=body.actor)
    return SLATransitionResponse(
        sla_record=SLARecordResponse.from_domain(record),
        message=f"SLA paused for request {record.request_id}"
    )


@router.post(
    "/resume",
    response_model=SLATransitionResponse,
    summary="Resume an SLA timer",
    description="Restart the clock; business hours spent paused are excluded.",
    responses={
        404: {"description": "Request has no SLA"},
        409: {"description": "SLA is not paused or already finished"}
    }
)
async def resume_sla(
    body: SLAResumeRequest,
    now: datetime = Depends(get_now),
    sla_service: SLAService = Depends(get_sla_service)
):
    record = await sla_service.resume(body.request_id, now, actor=body.actor)
    return SLATransitionResponse(
        sla_record=SLARecordResponse.from_domain(record),
        message=f"SLA resumed for request {record.request_id}"
    )


@router.post(
    "/complete",
    response_model=SLATransitionResponse,
    summary="Complete an SLA",
    description="""
    Close the SLA as `met` or `violated`.

    Elapsed business hours at or under the target count as met. A paused
    SLA can be completed directly; the open pause is folded in first.
    """,
    responses={
        404: {"description": "Request has no SLA"},
        409: {"description": "SLA already finished"}
    }
)
async def complete_sla(
    body: SLACompleteRequest,
    now: datetime = Depends(get_now),
    sla_service: SLAService = Depends(get_sla_service)
):
    record = await sla_service.complete(body.request_id, now)
    return SLATransitionResponse(
        sla_record=SLARecordResponse.from_domain(record),
        message=f"SLA {record.status} for request {record.request_id}"
    )


# Export router for inclusion in main app
sla_router = router
