"""
SLA Infrastructure Repositories
=================================

Concrete implementations of repository interfaces using SQLAlchemy.

This layer contains the data access logic - how we store and retrieve
entities from the database. Transitions are written with a
compare-and-swap on the ``version`` column so two callers acting on the
same record cannot both win.
"""

from dataclasses import replace
from datetime import datetime
from typing import List, Optional, Sequence
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from designdream.config import NOTIFICATION_RANK, WarningLevel
from designdream.core import (
    ConcurrentModificationException,
    DuplicateActiveSLAException,
    RepositoryException,
)
from designdream.sla.application import ISLANotificationRepository, ISLARecordRepository
from designdream.sla.domain import SLANotification, SLARecord
from designdream.sla.domain.calendar import as_utc
from designdream.sla.infrastructure.models import SLANotificationModel, SLARecordModel


def _utc_or_none(value: Optional[datetime]) -> Optional[datetime]:
    return as_utc(value) if value is not None else None


def _parse_uuid(value: str) -> Optional[UUID]:
    try:
        return UUID(value)
    except (ValueError, TypeError):
        return None


class SQLAlchemySLARecordRepository(ISLARecordRepository):
    """
    SQLAlchemy implementation of the SLA record store.

    Handles persistence of SLARecord entities using async SQLAlchemy.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def get_by_id(self, sla_id: str) -> Optional[SLARecord]:
        """Get record by internal ID."""
        record_uuid = _parse_uuid(sla_id)
        if record_uuid is None:
            return None

        stmt = select(SLARecordModel).where(SLARecordModel.id == record_uuid)
        return await self._fetch_one(stmt)

    async def get_open_by_request_id(self, request_id: str) -> Optional[SLARecord]:
        """Get the active or paused record for a request."""
        stmt = (
            select(SLARecordModel)
            .where(
                SLARecordModel.request_id == request_id,
                SLARecordModel.status.in_(["active", "paused"]),
            )
            .order_by(SLARecordModel.started_at.desc())
            .limit(1)
        )
        return await self._fetch_one(stmt)

    async def get_latest_by_request_id(self, request_id: str) -> Optional[SLARecord]:
        """Get the most recently started record for a request."""
        stmt = (
            select(SLARecordModel)
            .where(SLARecordModel.request_id == request_id)
            .order_by(SLARecordModel.started_at.desc(), SLARecordModel.created_at.desc())
            .limit(1)
        )
        return await self._fetch_one(stmt)

    async def list_by_status(
        self,
        statuses: Sequence[str],
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[SLARecord]:
        """List records with the given statuses, oldest first."""
        stmt = (
            select(SLARecordModel)
            .where(SLARecordModel.status.in_(list(statuses)))
            .order_by(SLARecordModel.started_at.asc())
            .offset(offset)
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        return await self._fetch_all(stmt)

    async def list_completed_since(
        self,
        statuses: Sequence[str],
        since: datetime
    ) -> List[SLARecord]:
        """List terminal records completed at or after ``since``."""
        stmt = (
            select(SLARecordModel)
            .where(
                SLARecordModel.status.in_(list(statuses)),
                SLARecordModel.completed_at >= as_utc(since),
            )
            .order_by(SLARecordModel.completed_at.asc())
        )
        return await self._fetch_all(stmt)

    async def create(self, record: SLARecord) -> SLARecord:
        """
        Insert a new record.

        Raises:
            DuplicateActiveSLAException: The open-record index rejected it
        """
        model = SLARecordModel(id=UUID(record.id), **self._column_values(record))
        model.version = record.version

        self._session.add(model)
        try:
            await self._session.flush()
        except IntegrityError as e:
            await self._session.rollback()
            raise DuplicateActiveSLAException(record.request_id) from e

        return record

    async def save_transition(self, previous: SLARecord, updated: SLARecord) -> SLARecord:
        """
        Compare-and-swap update keyed on (id, version).

        Raises:
            ConcurrentModificationException: The stored version moved on
        """
        record_uuid = _parse_uuid(previous.id)
        if record_uuid is None:
            raise RepositoryException(f"Invalid SLA ID: {previous.id}")

        next_version = previous.version + 1
        values = self._column_values(updated)
        values["version"] = next_version

        stmt = (
            update(SLARecordModel)
            .where(
                SLARecordModel.id == record_uuid,
                SLARecordModel.version == previous.version,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)

        if result.rowcount == 0:
            raise ConcurrentModificationException(previous.id, previous.version)

        await self._session.flush()
        return replace(updated, version=next_version)

    async def _fetch_one(self, stmt) -> Optional[SLARecord]:
        result = await self._session.execute(stmt.execution_options(populate_existing=True))
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def _fetch_all(self, stmt) -> List[SLARecord]:
        result = await self._session.execute(stmt.execution_options(populate_existing=True))
        return [self._to_domain(model) for model in result.scalars().all()]

    @staticmethod
    def _column_values(record: SLARecord) -> dict:
        """Mapped attribute values for a record, timestamps in UTC."""
        return {
            "request_id": record.request_id,
            "target_hours": record.target_hours,
            "status": record.status,
            "started_at": as_utc(record.started_at),
            "paused_at": _utc_or_none(record.paused_at),
            "resumed_at": _utc_or_none(record.resumed_at),
            "completed_at": _utc_or_none(record.completed_at),
            "pause_duration_hours": record.pause_duration_hours,
            "business_hours_elapsed": record.business_hours_elapsed,
            "total_elapsed_hours": record.total_elapsed_hours,
            "violation_reason": record.violation_reason,
            "violation_severity": record.violation_severity,
            "created_at": as_utc(record.created_at or record.started_at),
            "updated_at": as_utc(record.updated_at or record.started_at),
            "extra": dict(record.metadata),
        }

    @staticmethod
    def _to_domain(model: SLARecordModel) -> SLARecord:
        """Convert ORM row to domain entity."""
        return SLARecord(
            id=str(model.id),
            request_id=model.request_id,
            target_hours=model.target_hours,
            started_at=as_utc(model.started_at),
            status=model.status,
            paused_at=_utc_or_none(model.paused_at),
            resumed_at=_utc_or_none(model.resumed_at),
            pause_duration_hours=model.pause_duration_hours,
            completed_at=_utc_or_none(model.completed_at),
            business_hours_elapsed=model.business_hours_elapsed,
            total_elapsed_hours=model.total_elapsed_hours,
            violation_reason=model.violation_reason,
            violation_severity=model.violation_severity,
            created_at=_utc_or_none(model.created_at),
            updated_at=_utc_or_none(model.updated_at),
            version=model.version,
            metadata=dict(model.extra or {}),
        )


class SQLAlchemyNotificationRepository(ISLANotificationRepository):
    """
    SQLAlchemy implementation of SLA notification repository.

    Handles persistence of SLANotification entities.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    async def create(self, notification: SLANotification) -> SLANotification:
        """Create new notification."""
        model = SLANotificationModel(
            id=uuid4() if not notification.id else UUID(notification.id),
            sla_id=UUID(notification.sla_id),
            request_id=notification.request_id,
            level=notification.level,
            hours_remaining=notification.hours_remaining,
            triggered_at=as_utc(notification.triggered_at),
            notification_sent=notification.notification_sent,
            notification_sent_at=_utc_or_none(notification.notification_sent_at),
        )

        self._session.add(model)
        await self._session.flush()

        # Update notification with generated ID
        notification.id = str(model.id)

        return notification

    async def get_last_level(self, sla_id: str) -> Optional[str]:
        """Highest level already recorded for a record."""
        sla_uuid = _parse_uuid(sla_id)
        if sla_uuid is None:
            return None

        stmt = select(SLANotificationModel.level).where(SLANotificationModel.sla_id == sla_uuid)
        result = await self._session.execute(stmt)
        levels = result.scalars().all()
        if not levels:
            return None
        return max(levels, key=lambda level: NOTIFICATION_RANK.get(level, NOTIFICATION_RANK[WarningLevel.NONE]))

    async def get_pending(self, sla_id: Optional[str] = None) -> List[SLANotification]:
        """Get notifications that haven't been sent yet."""
        stmt = select(SLANotificationModel).where(SLANotificationModel.notification_sent.is_(False))

        if sla_id:
            sla_uuid = _parse_uuid(sla_id)
            if sla_uuid is None:
                return []
            stmt = stmt.where(SLANotificationModel.sla_id == sla_uuid)

        stmt = stmt.order_by(SLANotificationModel.triggered_at.asc())

        result = await self._session.execute(stmt)
        return [
            SLANotification(
                id=str(model.id),
                sla_id=str(model.sla_id),
                request_id=model.request_id,
                level=model.level,
                hours_remaining=model.hours_remaining,
                triggered_at=as_utc(model.triggered_at),
                notification_sent=model.notification_sent,
                notification_sent_at=_utc_or_none(model.notification_sent_at),
            )
            for model in result.scalars().all()
        ]

    async def mark_sent(self, notification_id: str, sent_at: datetime) -> None:
        """Mark notification as sent."""
        notification_uuid = _parse_uuid(notification_id)
        if notification_uuid is None:
            raise RepositoryException(f"Invalid notification ID: {notification_id}")

        stmt = select(SLANotificationModel).where(SLANotificationModel.id == notification_uuid)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()

        if not model:
            raise RepositoryException(f"Notification {notification_id} not found")

        model.notification_sent = True
        model.notification_sent_at = as_utc(sent_at)
        await self._session.flush()
