"""
SLA State Machine
=================

Lifecycle of one SLA record::

    active --pause--> paused --resume--> active
    active|paused --complete--> met | violated

``met`` and ``violated`` are terminal. Every function takes ``now``
explicitly and returns a new record; nothing here reads a clock, logs or
touches storage.
"""

from dataclasses import replace
from datetime import datetime, timedelta
from typing import Iterable, Optional
from uuid import uuid4

from designdream.config import (
    SLAStatus, WarningLevel, NotificationLevel, NOTIFICATION_RANK
)
from designdream.core import (
    AlreadyTerminalException,
    DuplicateActiveSLAException,
    InvalidTransitionException,
    ValidationException,
)
from designdream.sla.domain.calendar import BusinessCalendar, as_utc, to_hours, to_timedelta
from designdream.sla.domain.entities import SLAMetrics, SLARecord, SLAStatusSnapshot
from designdream.sla.domain.formatting import time_remaining_display
from designdream.sla.domain.value_objects import (
    BusinessHoursConfig,
    SLAWarningThresholds,
    ViolationSeverityPolicy,
)


class SLAStateMachine:
    """
    Pure transition and status functions for SLA records.

    Stateless utility class: callers persist whatever it returns.
    """

    # ========== Transitions ==========

    @staticmethod
    def create(
        request_id: str,
        target_hours: float,
        now: datetime,
        open_records: Iterable[SLARecord] = (),
        started_at: Optional[datetime] = None,
        sla_id: Optional[str] = None
    ) -> SLARecord:
        """
        Start a new SLA timer for a request.

        Args:
            request_id: The unit of work being timed
            target_hours: Business-hour budget (must be positive)
            now: Current time
            open_records: Records already known for this request
            started_at: When the timer began (defaults to ``now``)
            sla_id: Identifier to use (a new UUID when omitted)

        Raises:
            DuplicateActiveSLAException: An active or paused record exists
            ValidationException: target_hours is not positive
        """
        if target_hours <= 0:
            raise ValidationException(
                "target_hours must be positive",
                {"target_hours": target_hours}
            )

        for existing in open_records:
            if existing.request_id == request_id and existing.is_open:
                raise DuplicateActiveSLAException(request_id, existing.id)

        return SLARecord(
            id=sla_id or str(uuid4()),
            request_id=request_id,
            target_hours=float(target_hours),
            started_at=as_utc(started_at or now),
            status=SLAStatus.ACTIVE,
            created_at=as_utc(now),
            updated_at=as_utc(now),
            metadata={},
        )

    @staticmethod
    def pause(
        record: SLARecord,
        now: datetime,
        reason: Optional[str] = None,
        actor: Optional[str] = None
    ) -> SLARecord:
        """
        Stop the clock: active -> paused.

        Raises:
            AlreadyTerminalException: Record is met or violated
            InvalidTransitionException: Record is not active
        """
        SLAStateMachine._ensure_status(record, "pause", SLAStatus.ACTIVE)

        now = as_utc(now)
        metadata = dict(record.metadata)
        metadata["pause_reason"] = reason or "Manual pause"
        if actor:
            metadata["paused_by"] = actor

        return replace(
            record,
            status=SLAStatus.PAUSED,
            paused_at=now,
            updated_at=now,
            metadata=metadata,
        )

    @staticmethod
    def resume(
        record: SLARecord,
        now: datetime,
        config: BusinessHoursConfig,
        actor: Optional[str] = None
    ) -> SLARecord:
        """
        Restart the clock: paused -> active.

        The business hours spent paused are added to ``pause_duration_hours``.

        Raises:
            AlreadyTerminalException: Record is met or violated
            InvalidTransitionException: Record is not paused
        """
        SLAStateMachine._ensure_status(record, "resume", SLAStatus.PAUSED)

        now = as_utc(now)
        paused = BusinessCalendar.business_time(record.paused_at, now, config)
        pause_total = to_timedelta(record.pause_duration_hours) + paused
        metadata = dict(record.metadata)
        metadata["last_pause_duration_hours"] = to_hours(paused)
        if actor:
            metadata["resumed_by"] = actor

        return replace(
            record,
            status=SLAStatus.ACTIVE,
            paused_at=None,
            resumed_at=now,
            pause_duration_hours=to_hours(pause_total),
            updated_at=now,
            metadata=metadata,
        )

    @staticmethod
    def complete(
        record: SLARecord,
        now: datetime,
        config: BusinessHoursConfig,
        severity_policy: Optional[ViolationSeverityPolicy] = None
    ) -> SLARecord:
        """
        Finish the work: active|paused -> met|violated.

        A pause still open at completion is folded into
        ``pause_duration_hours`` first.

        Raises:
            AlreadyTerminalException: Record is met or violated
        """
        SLAStateMachine._ensure_status(
            record, "complete", SLAStatus.ACTIVE, SLAStatus.PAUSED
        )

        now = as_utc(now)
        severity_policy = severity_policy or ViolationSeverityPolicy()

        pause_total = to_timedelta(record.pause_duration_hours)
        if record.is_paused:
            pause_total += BusinessCalendar.business_time(record.paused_at, now, config)

        # Compare in exact durations; hours are for reporting only
        elapsed_time = BusinessCalendar.business_time(record.started_at, now, config) - pause_total
        elapsed = to_hours(elapsed_time)
        wall_clock = BusinessCalendar.total_hours(record.started_at, now)

        if elapsed_time <= to_timedelta(record.target_hours):
            status = SLAStatus.MET
            reason = None
            severity = None
        else:
            status = SLAStatus.VIOLATED
            reason = (
                f"Completed after {elapsed:.1f} business hours "
                f"against a {record.target_hours:g} hour target"
            )
            severity = severity_policy.classify(elapsed, record.target_hours)

        return replace(
            record,
            status=status,
            paused_at=None,
            pause_duration_hours=to_hours(pause_total),
            completed_at=now,
            business_hours_elapsed=elapsed,
            total_elapsed_hours=wall_clock,
            violation_reason=reason,
            violation_severity=severity,
            updated_at=now,
        )

    @staticmethod
    def _ensure_status(record: SLARecord, operation: str, *allowed: str) -> None:
        if record.is_terminal:
            raise AlreadyTerminalException(record.id, operation, record.status)
        if record.status not in allowed:
            raise InvalidTransitionException(record.id, operation, record.status)

    # ========== Status ==========

    @staticmethod
    def elapsed_business_time(
        record: SLARecord,
        now: datetime,
        config: BusinessHoursConfig
    ) -> timedelta:
        """
        Business time charged against the target so far.

        Time spent paused, including a pause that is still open, is excluded.
        Terminal records are measured up to ``completed_at``.
        """
        if record.is_terminal:
            end = record.completed_at
        else:
            end = as_utc(now)

        elapsed = BusinessCalendar.business_time(record.started_at, end, config)
        elapsed -= to_timedelta(record.pause_duration_hours)
        if record.is_paused:
            elapsed -= BusinessCalendar.business_time(record.paused_at, end, config)
        return elapsed

    @staticmethod
    def elapsed_business_hours(
        record: SLARecord,
        now: datetime,
        config: BusinessHoursConfig
    ) -> float:
        """Business hours charged against the target so far."""
        return to_hours(SLAStateMachine.elapsed_business_time(record, now, config))

    @staticmethod
    def warning_level(hours_remaining: float, thresholds: SLAWarningThresholds) -> str:
        """Classify hours remaining as none, yellow or red."""
        if hours_remaining <= thresholds.red_hours_remaining:
            return WarningLevel.RED
        if hours_remaining <= thresholds.yellow_hours_remaining:
            return WarningLevel.YELLOW
        return WarningLevel.NONE

    @staticmethod
    def get_status(
        record: SLARecord,
        now: datetime,
        config: BusinessHoursConfig,
        thresholds: SLAWarningThresholds
    ) -> SLAStatusSnapshot:
        """
        Compute the live (or final) status of a record.

        A paused record reports the level frozen at its pause; the level is
        not softened for paused records.
        """
        now = as_utc(now)
        elapsed_time = SLAStateMachine.elapsed_business_time(record, now, config)
        remaining = to_timedelta(record.target_hours) - elapsed_time
        elapsed = to_hours(elapsed_time)
        hours_remaining = to_hours(remaining)
        percentage = max(0.0, elapsed / record.target_hours * 100)

        if record.is_terminal:
            is_violated = record.status == SLAStatus.VIOLATED
            wall_clock = BusinessCalendar.total_hours(record.started_at, record.completed_at)
        else:
            is_violated = remaining < timedelta(0)
            wall_clock = BusinessCalendar.total_hours(record.started_at, now)

        estimated_deadline = None
        if record.status == SLAStatus.ACTIVE and hours_remaining > 0:
            estimated_deadline = BusinessCalendar.add_business_hours(now, hours_remaining, config)

        return SLAStatusSnapshot(
            sla_id=record.id,
            request_id=record.request_id,
            status=record.status,
            evaluated_at=now,
            target_hours=record.target_hours,
            total_elapsed_hours=elapsed,
            hours_remaining=hours_remaining,
            percentage_complete=percentage,
            wall_clock_hours=wall_clock,
            warning_level=SLAStateMachine.warning_level(hours_remaining, thresholds),
            is_at_risk=hours_remaining <= thresholds.yellow_hours_remaining,
            is_violated=is_violated,
            time_remaining_display=time_remaining_display(hours_remaining, config.hours_per_day),
            estimated_deadline=estimated_deadline,
        )

    # ========== Notifications ==========

    @staticmethod
    def notification_level(record: SLARecord, snapshot: SLAStatusSnapshot) -> str:
        """Level a notification dispatcher should act on for this record."""
        if record.status == SLAStatus.VIOLATED:
            return NotificationLevel.VIOLATED
        if record.status == SLAStatus.MET:
            return WarningLevel.NONE
        return snapshot.warning_level

    @staticmethod
    def should_notify(current_level: str, previous_level: Optional[str] = None) -> bool:
        """
        True only when the level escalates (none -> yellow -> red -> violated).

        Args:
            current_level: Level computed now
            previous_level: Highest level already notified (None if never)
        """
        previous_rank = NOTIFICATION_RANK.get(previous_level or WarningLevel.NONE, 0)
        return NOTIFICATION_RANK.get(current_level, 0) > previous_rank

    # ========== Aggregates ==========

    @staticmethod
    def summarize(
        records: Iterable[SLARecord],
        now: datetime,
        config: BusinessHoursConfig,
        thresholds: SLAWarningThresholds
    ) -> SLAMetrics:
        """Adherence figures over a set of records."""
        completed = []
        active = 0
        at_risk = 0

        for record in records:
            if record.is_terminal:
                completed.append(record)
            else:
                active += 1
                snapshot = SLAStateMachine.get_status(record, now, config, thresholds)
                if snapshot.is_at_risk:
                    at_risk += 1

        met = sum(1 for r in completed if r.status == SLAStatus.MET)
        violated = len(completed) - met

        if completed:
            turnaround = [
                r.business_hours_elapsed
                if r.business_hours_elapsed is not None
                else SLAStateMachine.elapsed_business_hours(r, now, config)
                for r in completed
            ]
            avg_turnaround = round(sum(turnaround) / len(turnaround), 2)
            adherence = round(met / len(completed) * 100, 2)
        else:
            avg_turnaround = 0.0
            adherence = 0.0

        return SLAMetrics(
            total_requests=len(completed),
            sla_met=met,
            sla_violated=violated,
            avg_turnaround_hours=avg_turnaround,
            sla_adherence_percent=adherence,
            active_slas=active,
            at_risk_slas=at_risk,
        )
