"""
SLA Application Layer
======================

Application layer for SLA tracking module.

Contains:
- Services: Orchestrate business logic and coordinate with repositories
- DTOs: Data transfer objects for API serialization

This layer depends on the domain layer and repository interfaces,
but not on concrete infrastructure implementations.
"""

from designdream.sla.application.dto import (
    SLACreateRequest,
    SLAPauseRequest,
    SLAResumeRequest,
    SLACompleteRequest,
    SLARecordResponse,
    SLAStatusResponse,
    SLATransitionResponse,
    DashboardResponse,
    SLAMetricsResponse,
)
from designdream.sla.application.services import (
    SLAService,
    SLAMonitorService,
    ISLARecordRepository,
    ISLANotificationRepository,
    ISLAConfigProvider,
    INotificationDispatcher,
)

__all__ = [
    # DTOs
    "SLACreateRequest",
    "SLAPauseRequest",
    "SLAResumeRequest",
    "SLACompleteRequest",
    "SLARecordResponse",
    "SLAStatusResponse",
    "SLATransitionResponse",
    "DashboardResponse",
    "SLAMetricsResponse",
    # Services
    "SLAService",
    "SLAMonitorService",
    # Repository Interfaces
    "ISLARecordRepository",
    "ISLANotificationRepository",
    "ISLAConfigProvider",
    "INotificationDispatcher",
]
