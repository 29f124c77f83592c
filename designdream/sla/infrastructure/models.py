"""
SLA Infrastructure Models
==========================

SQLAlchemy ORM models for SLA module.

These are the database representations of our domain entities.
They belong in the infrastructure layer, not the domain layer.
"""

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON, Boolean, DateTime, Float, Index, Integer, String, Text, Uuid, text
)
from sqlalchemy.orm import Mapped, mapped_column

from designdream.infrastructure.database import Base
from designdream.config import SLAStatus

OPEN_STATUS_CLAUSE = text("status IN ('active', 'paused')")


class SLARecordModel(Base):
    """
    Database model for SLARecord entity.

    Maps to the 'sla_records' table.
    """
    __tablename__ = "sla_records"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Request being timed
    request_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)

    # Budget and lifecycle
    target_hours: Mapped[float] = mapped_column(Float, nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=SLAStatus.ACTIVE)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    paused_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    resumed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    pause_duration_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)

    # Final figures
    business_hours_elapsed: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    total_elapsed_hours: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    violation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    violation_severity: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    # Optimistic concurrency
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    # "metadata" is reserved on declarative classes
    extra: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, nullable=False, default=dict)

    __table_args__ = (
        # At most one active or paused record per request
        Index(
            "uq_sla_records_open_request",
            "request_id",
            unique=True,
            postgresql_where=OPEN_STATUS_CLAUSE,
            sqlite_where=OPEN_STATUS_CLAUSE,
        ),
        Index("ix_sla_records_status_completed", "status", "completed_at"),
    )


class SLANotificationModel(Base):
    """
    Database model for SLANotification entity.

    Maps to the 'sla_notifications' table.
    """
    __tablename__ = "sla_notifications"

    # Primary key
    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)

    # Record reference
    sla_id: Mapped[UUID] = mapped_column(Uuid, nullable=False, index=True)
    request_id: Mapped[str] = mapped_column(String(255), nullable=False)

    # Escalation details
    level: Mapped[str] = mapped_column(String(20), nullable=False)  # yellow, red or violated
    hours_remaining: Mapped[float] = mapped_column(Float, nullable=False)
    triggered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc)
    )

    # Notification tracking
    notification_sent: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    notification_sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
