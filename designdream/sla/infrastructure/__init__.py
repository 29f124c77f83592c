"""
SLA Infrastructure Layer
=========================

Infrastructure implementations for SLA tracking:
- Models: SQLAlchemy ORM models
- Repositories: Data access layer
- External: External service integrations (Resend email, config watcher, scheduler)
"""

from designdream.sla.infrastructure.models import SLARecordModel, SLANotificationModel
from designdream.sla.infrastructure.repositories import (
    SQLAlchemySLARecordRepository,
    SQLAlchemyNotificationRepository,
)
from designdream.sla.infrastructure.external import (
    SLAConfigManager,
    CircuitBreaker,
    ResendEmailClient,
    SLAScheduler,
)

__all__ = [
    "SLARecordModel",
    "SLANotificationModel",
    "SQLAlchemySLARecordRepository",
    "SQLAlchemyNotificationRepository",
    "SLAConfigManager",
    "CircuitBreaker",
    "ResendEmailClient",
    "SLAScheduler",
]
