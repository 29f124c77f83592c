"""
SLA Application Services
=========================

Application services orchestrate business logic and coordinate between
domain entities and repositories.

Following SOLID principles:
- Single Responsibility: Each service has one clear purpose
- Dependency Inversion: Depend on abstractions (repositories), not concrete implementations

The state machine is pure; these services load the record, apply the
transition and hand the result to the store as a compare-and-swap update.
``now`` is always supplied by the caller.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import List, Optional, Sequence, Tuple
from uuid import uuid4

from designdream.config import (
    SLAStatus, OPEN_STATUSES, VALID_STATUSES
)
from designdream.core import ResourceNotFoundException
from designdream.shared.infrastructure.logging import get_logger
from designdream.sla.domain import (
    SLAConfig,
    SLAMetrics,
    SLANotification,
    SLARecord,
    SLAStateMachine,
    SLAStatusSnapshot,
)

logger = get_logger(__name__)


# ========== Repository Interfaces (Dependency Inversion) ==========

class ISLARecordRepository(ABC):
    """Interface for SLA record data access."""

    @abstractmethod
    async def get_by_id(self, sla_id: str) -> Optional[SLARecord]:
        """Get record by internal ID."""

    @abstractmethod
    async def get_open_by_request_id(self, request_id: str) -> Optional[SLARecord]:
        """Get the active or paused record for a request."""

    @abstractmethod
    async def get_latest_by_request_id(self, request_id: str) -> Optional[SLARecord]:
        """Get the most recently started record for a request, any status."""

    @abstractmethod
    async def list_by_status(
        self,
        statuses: Sequence[str],
        limit: Optional[int] = None,
        offset: int = 0
    ) -> List[SLARecord]:
        """List records whose status is in ``statuses``."""

    @abstractmethod
    async def list_completed_since(
        self,
        statuses: Sequence[str],
        since: datetime
    ) -> List[SLARecord]:
        """List terminal records completed at or after ``since``."""

    @abstractmethod
    async def create(self, record: SLARecord) -> SLARecord:
        """Insert a new record."""

    @abstractmethod
    async def save_transition(self, previous: SLARecord, updated: SLARecord) -> SLARecord:
        """
        Persist ``updated`` only if the stored record is still ``previous``.

        Raises:
            ConcurrentModificationException: The stored version moved on
        """


class ISLANotificationRepository(ABC):
    """Interface for SLA notification data access."""

    @abstractmethod
    async def create(self, notification: SLANotification) -> SLANotification:
        """Create new notification."""

    @abstractmethod
    async def get_last_level(self, sla_id: str) -> Optional[str]:
        """Highest level already recorded for a record."""

    @abstractmethod
    async def get_pending(self, sla_id: Optional[str] = None) -> List[SLANotification]:
        """Get notifications that haven't been sent yet."""

    @abstractmethod
    async def mark_sent(self, notification_id: str, sent_at: datetime) -> None:
        """Mark notification as sent."""


class ISLAConfigProvider(ABC):
    """Interface for SLA configuration access."""

    @abstractmethod
    def get_config(self) -> SLAConfig:
        """Get current SLA configuration."""


class INotificationDispatcher(ABC):
    """Interface for delivering SLA notifications to people."""

    @abstractmethod
    async def send(
        self,
        notification: SLANotification,
        record: SLARecord,
        snapshot: SLAStatusSnapshot
    ) -> bool:
        """Deliver a notification; True when it was accepted downstream."""


# ========== Application Services ==========

class SLAService:
    """
    Service for SLA lifecycle operations and status queries.

    Coordinates between domain logic and data access.
    """

    def __init__(
        self,
        record_repository: ISLARecordRepository,
        config_provider: ISLAConfigProvider
    ):
        self._record_repo = record_repository
        self._config_provider = config_provider

    async def start(
        self,
        request_id: str,
        now: datetime,
        target_hours: Optional[float] = None
    ) -> SLARecord:
        """
        Start the SLA timer for a request.

        Args:
            request_id: Request being timed
            now: Current time
            target_hours: Business-hour budget (config default when omitted)

        Raises:
            DuplicateActiveSLAException: Request already has an open record
        """
        config = self._config_provider.get_config()
        target = target_hours if target_hours is not None else config.default_target_hours

        existing = await self._record_repo.get_open_by_request_id(request_id)
        record = SLAStateMachine.create(
            request_id,
            target,
            now,
            open_records=[existing] if existing else [],
        )
        saved = await self._record_repo.create(record)

        logger.info(
            "SLA timer started",
            extra={"sla_id": saved.id, "request_id": request_id, "target_hours": target}
        )
        return saved

    async def pause(
        self,
        request_id: str,
        now: datetime,
        reason: Optional[str] = None,
        actor: Optional[str] = None
    ) -> SLARecord:
        """Pause the request's SLA timer."""
        record = await self._get_latest(request_id)
        updated = SLAStateMachine.pause(record, now, reason=reason, actor=actor)
        saved = await self._record_repo.save_transition(record, updated)

        logger.info(
            "SLA timer paused",
            extra={"sla_id": saved.id, "request_id": request_id, "reason": saved.metadata.get("pause_reason")}
        )
        return saved

    async def resume(
        self,
        request_id: str,
        now: datetime,
        actor: Optional[str] = None
    ) -> SLARecord:
        """Resume the request's paused SLA timer."""
        config = self._config_provider.get_config()
        record = await self._get_latest(request_id)
        updated = SLAStateMachine.resume(record, now, config.get_business_hours(), actor=actor)
        saved = await self._record_repo.save_transition(record, updated)

        logger.info(
            "SLA timer resumed",
            extra={
                "sla_id": saved.id,
                "request_id": request_id,
                "pause_duration_hours": saved.pause_duration_hours,
            }
        )
        return saved

    async def complete(self, request_id: str, now: datetime) -> SLARecord:
        """Close the request's SLA as met or violated."""
        config = self._config_provider.get_config()
        record = await self._get_latest(request_id)
        updated = SLAStateMachine.complete(
            record,
            now,
            config.get_business_hours(),
            config.get_severity_policy(),
        )
        saved = await self._record_repo.save_transition(record, updated)

        log = logger.warning if saved.status == SLAStatus.VIOLATED else logger.info
        log(
            "SLA completed",
            extra={
                "sla_id": saved.id,
                "request_id": request_id,
                "status": saved.status,
                "business_hours_elapsed": saved.business_hours_elapsed,
                "violation_severity": saved.violation_severity,
            }
        )
        return saved

    async def get_status(
        self,
        request_id: str,
        now: datetime
    ) -> Tuple[SLARecord, SLAStatusSnapshot]:
        """
        Current status of the request's latest SLA record.

        Raises:
            ResourceNotFoundException: Request has no SLA record
        """
        record = await self._get_latest(request_id)
        return record, self._snapshot(record, now)

    async def dashboard(
        self,
        now: datetime,
        limit: Optional[int] = None,
        offset: int = 0
    ) -> Tuple[List[Tuple[SLARecord, SLAStatusSnapshot]], List[SLAStatusSnapshot]]:
        """
        Open records with their status, most urgent first.

        Urgency depends on ``now``, so every open record is ranked before the
        page is cut.

        Returns:
            (page of (record, snapshot) rows, snapshots of every open record)
        """
        records = await self._record_repo.list_by_status(OPEN_STATUSES)
        rows = [(record, self._snapshot(record, now)) for record in records]
        rows.sort(key=lambda row: row[1].hours_remaining)

        end = None if limit is None else offset + limit
        return rows[offset:end], [snapshot for _, snapshot in rows]

    async def metrics(self, now: datetime) -> SLAMetrics:
        """Adherence metrics across every stored record."""
        config = self._config_provider.get_config()
        records = await self._record_repo.list_by_status(VALID_STATUSES)
        return SLAStateMachine.summarize(
            records, now, config.get_business_hours(), config.get_warning_thresholds()
        )

    def _snapshot(self, record: SLARecord, now: datetime) -> SLAStatusSnapshot:
        config = self._config_provider.get_config()
        return SLAStateMachine.get_status(
            record, now, config.get_business_hours(), config.get_warning_thresholds()
        )

    async def _get_latest(self, request_id: str) -> SLARecord:
        record = await self._record_repo.get_latest_by_request_id(request_id)
        if record is None:
            raise ResourceNotFoundException("SLA record for request", request_id)
        return record


class SLAMonitorService:
    """
    Service for detecting warning-level escalations and notifying people.

    Run periodically; each escalation (none -> yellow -> red -> violated)
    is recorded once per record. Notifications whose dispatch failed stay
    pending and are retried at the start of the next run.
    """

    def __init__(
        self,
        record_repository: ISLARecordRepository,
        notification_repository: ISLANotificationRepository,
        config_provider: ISLAConfigProvider,
        dispatcher: INotificationDispatcher,
        lookback_hours: int = 24
    ):
        self._record_repo = record_repository
        self._notification_repo = notification_repository
        self._config_provider = config_provider
        self._dispatcher = dispatcher
        self._lookback = timedelta(hours=lookback_hours)

    async def evaluate(self, now: datetime) -> dict:
        """
        Evaluate open records and recent violations.

        Returns:
            Summary of evaluation results
        """
        config = self._config_provider.get_config()
        business_hours = config.get_business_hours()
        thresholds = config.get_warning_thresholds()

        retried = await self._redeliver_pending(now, business_hours, thresholds)

        records = await self._record_repo.list_by_status(OPEN_STATUSES)
        records += await self._record_repo.list_completed_since(
            [SLAStatus.VIOLATED], now - self._lookback
        )

        created = 0
        sent = 0

        for record in records:
            snapshot = SLAStateMachine.get_status(record, now, business_hours, thresholds)
            level = SLAStateMachine.notification_level(record, snapshot)
            previous = await self._notification_repo.get_last_level(record.id)

            if not SLAStateMachine.should_notify(level, previous):
                continue

            notification = SLANotification(
                id=str(uuid4()),
                sla_id=record.id,
                request_id=record.request_id,
                level=level,
                hours_remaining=snapshot.hours_remaining,
                triggered_at=now,
            )
            notification = await self._notification_repo.create(notification)
            created += 1

            if await self._dispatcher.send(notification, record, snapshot):
                await self._notification_repo.mark_sent(notification.id, now)
                sent += 1

        summary = {
            "records_evaluated": len(records),
            "notifications_created": created,
            "notifications_sent": sent,
            "notifications_redelivered": retried,
        }
        logger.info("SLA evaluation complete", extra=summary)
        return summary

    async def _redeliver_pending(self, now: datetime, business_hours, thresholds) -> int:
        """
        Retry notifications whose earlier dispatch failed.

        Returns:
            Number of pending notifications delivered on this run
        """
        delivered = 0
        for notification in await self._notification_repo.get_pending():
            record = await self._record_repo.get_by_id(notification.sla_id)
            if record is None:
                logger.warning(
                    "Pending notification has no SLA record",
                    extra={"notification_id": notification.id, "sla_id": notification.sla_id}
                )
                continue

            snapshot = SLAStateMachine.get_status(record, now, business_hours, thresholds)
            if await self._dispatcher.send(notification, record, snapshot):
                await self._notification_repo.mark_sent(notification.id, now)
                delivered += 1

        return delivered
