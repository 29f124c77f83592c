"""
Business Calendar
=================

Pure functions converting wall-clock intervals into business hours.

Every day's business window is built from local wall-clock times in the
configured zone and only then converted to absolute instants, so days with a
daylight-saving change still count the full local window.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Tuple

from designdream.sla.domain.value_objects import BusinessHoursConfig


def as_utc(instant: datetime) -> datetime:
    """Normalise to an aware UTC datetime; naive values are taken as UTC."""
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def to_hours(duration: timedelta) -> float:
    """Convert a duration to float hours."""
    return duration.total_seconds() / 3600


def to_timedelta(hours: float) -> timedelta:
    """Convert float hours back to a duration, rounded to the microsecond."""
    return timedelta(hours=hours)


class BusinessCalendar:
    """
    Stateless business-hours arithmetic.

    All methods are pure: no clock reads, no I/O.
    """

    @staticmethod
    def is_work_day(day: date, config: BusinessHoursConfig) -> bool:
        """Check a calendar date against ``work_days`` (0 = Sunday)."""
        return (day.weekday() + 1) % 7 in config.work_days

    @staticmethod
    def business_window(day: date, config: BusinessHoursConfig) -> Tuple[datetime, datetime]:
        """
        Absolute UTC bounds of the business window on a local calendar date.

        Args:
            day: Local calendar date in the configured zone
            config: Business hours configuration

        Returns:
            (opens, closes) as aware UTC datetimes
        """
        zone = config.zone
        opens = datetime.combine(day, time(config.start_hour), tzinfo=zone)
        if config.end_hour == 24:
            closes = datetime.combine(day + timedelta(days=1), time(0), tzinfo=zone)
        else:
            closes = datetime.combine(day, time(config.end_hour), tzinfo=zone)
        return opens.astimezone(timezone.utc), closes.astimezone(timezone.utc)

    @staticmethod
    def business_time(
        start: datetime,
        end: datetime,
        config: BusinessHoursConfig
    ) -> timedelta:
        """
        Business time contained in ``[start, end)`` as an exact ``timedelta``.

        Walks local calendar days from the one containing ``start`` to the one
        containing ``end`` and sums the overlap with each work day's window.

        Args:
            start: Interval start
            end: Interval end
            config: Business hours configuration

        Returns:
            Business time (zero when end <= start)
        """
        start = as_utc(start)
        end = as_utc(end)
        if end <= start:
            return timedelta(0)

        zone = config.zone
        day = start.astimezone(zone).date()
        last_day = end.astimezone(zone).date()
        total = timedelta(0)

        while day <= last_day:
            if BusinessCalendar.is_work_day(day, config):
                opens, closes = BusinessCalendar.business_window(day, config)
                overlap_start = max(start, opens)
                overlap_end = min(end, closes)
                if overlap_end > overlap_start:
                    total += overlap_end - overlap_start
            day += timedelta(days=1)

        return total

    @staticmethod
    def compute_business_hours(
        start: datetime,
        end: datetime,
        config: BusinessHoursConfig
    ) -> float:
        """Business hours contained in ``[start, end)`` (0.0 when end <= start)."""
        return to_hours(BusinessCalendar.business_time(start, end, config))

    @staticmethod
    def total_hours(start: datetime, end: datetime) -> float:
        """Raw wall-clock hours between two instants (negative if reversed)."""
        return (as_utc(end) - as_utc(start)).total_seconds() / 3600

    @staticmethod
    def is_business_hour(instant: datetime, config: BusinessHoursConfig) -> bool:
        """Check whether an instant falls inside business hours."""
        local = as_utc(instant).astimezone(config.zone)
        return (
            BusinessCalendar.is_work_day(local.date(), config)
            and config.start_hour <= local.hour < config.end_hour
        )

    @staticmethod
    def next_business_hour(instant: datetime, config: BusinessHoursConfig) -> datetime:
        """
        First top-of-hour strictly after ``instant`` that is a business hour.

        Returns:
            Aware datetime in the configured zone
        """
        zone = config.zone
        local = as_utc(instant).astimezone(zone)
        candidate = local.replace(minute=0, second=0, microsecond=0, tzinfo=None) + timedelta(hours=1)

        while True:
            on_work_day = BusinessCalendar.is_work_day(candidate.date(), config)
            if on_work_day and config.start_hour <= candidate.hour < config.end_hour:
                return candidate.replace(tzinfo=zone)

            if not on_work_day or candidate.hour >= config.end_hour:
                candidate = datetime.combine(
                    candidate.date() + timedelta(days=1), time(config.start_hour)
                )
            else:
                candidate = datetime.combine(candidate.date(), time(config.start_hour))

    @staticmethod
    def add_business_hours(
        start: datetime,
        hours: float,
        config: BusinessHoursConfig
    ) -> datetime:
        """
        Instant at which ``hours`` business hours have accumulated from ``start``.

        Inverse of ``compute_business_hours``: for a result ``d``,
        ``compute_business_hours(start, d) == hours``.

        Returns:
            Aware datetime in the configured zone
        """
        start = as_utc(start)
        zone = config.zone
        if hours <= 0:
            return start.astimezone(zone)

        remaining = timedelta(hours=hours)
        day = start.astimezone(zone).date()

        while True:
            if BusinessCalendar.is_work_day(day, config):
                opens, closes = BusinessCalendar.business_window(day, config)
                window_start = max(start, opens)
                if closes > window_start:
                    available = closes - window_start
                    if remaining <= available:
                        return (window_start + remaining).astimezone(zone)
                    remaining -= available
            day += timedelta(days=1)


compute_business_hours = BusinessCalendar.compute_business_hours
