"""
Business Calendar Tests
=======================

Unit tests for business-hours arithmetic:
- compute_business_hours overlap rules
- Weekend and after-hours exclusion
- Daylight-saving days in a real timezone
- is_business_hour / next_business_hour / add_business_hours
"""

from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from designdream.sla.domain import BusinessCalendar, BusinessHoursConfig, compute_business_hours

from tests.helpers import (
    FRIDAY, MONDAY, NEXT_MONDAY, SATURDAY, SUNDAY, TUESDAY, WEDNESDAY, utc
)


pytestmark = pytest.mark.unit

NEW_YORK = ZoneInfo("America/New_York")


class TestComputeBusinessHours:
    """Tests for compute_business_hours."""

    def test_full_business_day(self, business_hours):
        """Mon 09:00 to Mon 17:00 is exactly one business day."""
        assert compute_business_hours(utc(*MONDAY, 9), utc(*MONDAY, 17), business_hours) == 8.0

    def test_midnight_to_midnight_counts_only_the_window(self, business_hours):
        """Mon 00:00 to Tue 00:00 also yields exactly 8 hours."""
        assert compute_business_hours(utc(*MONDAY), utc(*TUESDAY), business_hours) == 8.0

    def test_weekend_contributes_nothing(self, business_hours):
        """Sat 00:00 to Mon 00:00 yields zero."""
        assert compute_business_hours(utc(*SATURDAY), utc(*NEXT_MONDAY), business_hours) == 0.0

    def test_friday_evening_to_monday_morning_is_zero(self, business_hours):
        assert compute_business_hours(utc(*FRIDAY, 17), utc(*NEXT_MONDAY, 9), business_hours) == 0.0

    def test_partial_overlap_at_both_ends(self, business_hours):
        """Only the portion inside business hours is counted."""
        # Arrange
        start = utc(*MONDAY, 7, 30)   # before opening
        end = utc(*MONDAY, 12, 15)

        # Act
        hours = compute_business_hours(start, end, business_hours)

        # Assert
        assert hours == pytest.approx(3.25)

    def test_full_working_week(self, business_hours):
        assert compute_business_hours(utc(*MONDAY, 9), utc(*FRIDAY, 17), business_hours) == 40.0

    def test_reversed_or_empty_interval_is_zero(self, business_hours):
        assert compute_business_hours(utc(*MONDAY, 12), utc(*MONDAY, 12), business_hours) == 0.0
        assert compute_business_hours(utc(*MONDAY, 12), utc(*MONDAY, 10), business_hours) == 0.0

    def test_naive_datetimes_are_treated_as_utc(self, business_hours):
        naive = compute_business_hours(
            datetime(2024, 1, 8, 9), datetime(2024, 1, 8, 13), business_hours
        )
        assert naive == 4.0

    def test_is_pure(self, business_hours):
        start, end = utc(*MONDAY, 10), utc(*WEDNESDAY, 15)
        first = compute_business_hours(start, end, business_hours)
        second = compute_business_hours(start, end, business_hours)
        assert first == second == 7 + 8 + 6

    def test_monotonic_in_end(self, business_hours):
        """For a fixed start, hours never decrease as the end moves forward."""
        start = utc(*MONDAY, 11)
        previous = 0.0
        end = start
        while end <= utc(*NEXT_MONDAY, 12):
            hours = compute_business_hours(start, end, business_hours)
            assert hours >= previous
            previous = hours
            end += timedelta(minutes=45)

    def test_custom_work_days(self):
        """A Sunday-to-Thursday week counts Sunday and skips Friday."""
        config = BusinessHoursConfig(work_days={0, 1, 2, 3, 4}, timezone="UTC")
        assert compute_business_hours(utc(*SUNDAY, 0), utc(*SUNDAY, 23), config) == 8.0
        assert compute_business_hours(utc(*FRIDAY, 0), utc(*FRIDAY, 23), config) == 0.0

    def test_window_ending_at_midnight(self):
        config = BusinessHoursConfig(start_hour=20, end_hour=24, timezone="UTC")
        assert compute_business_hours(utc(*MONDAY), utc(*TUESDAY, 12), config) == 4.0

    def test_zone_offset_shifts_the_window(self):
        """New York 9-17 in January is 14:00-22:00 UTC."""
        config = BusinessHoursConfig(timezone="America/New_York")
        assert compute_business_hours(utc(*MONDAY, 14), utc(*MONDAY, 22), config) == 8.0
        assert compute_business_hours(utc(*MONDAY, 9), utc(*MONDAY, 14), config) == 0.0


class TestDaylightSaving:
    """Business windows are local wall-clock times on clock-change days."""

    EVERY_DAY = {0, 1, 2, 3, 4, 5, 6}

    def test_spring_forward_day_keeps_local_window(self):
        """2024-03-10: New York skips 02:00-03:00; 9-17 local is still 8 hours."""
        config = BusinessHoursConfig(work_days=self.EVERY_DAY, timezone="America/New_York")
        start = datetime(2024, 3, 10, 0, tzinfo=NEW_YORK)
        end = datetime(2024, 3, 11, 0, tzinfo=NEW_YORK)

        assert compute_business_hours(start, end, config) == 8.0

    def test_fall_back_day_keeps_local_window(self):
        """2024-11-03: New York repeats 01:00-02:00; 9-17 local is still 8 hours."""
        config = BusinessHoursConfig(work_days=self.EVERY_DAY, timezone="America/New_York")
        start = datetime(2024, 11, 3, 0, tzinfo=NEW_YORK)
        end = datetime(2024, 11, 4, 0, tzinfo=NEW_YORK)

        assert compute_business_hours(start, end, config) == 8.0

    def test_all_day_window_on_short_day_is_23_hours(self):
        config = BusinessHoursConfig(
            work_days=self.EVERY_DAY, start_hour=0, end_hour=24, timezone="America/New_York"
        )
        start = datetime(2024, 3, 10, 0, tzinfo=NEW_YORK)
        end = datetime(2024, 3, 11, 0, tzinfo=NEW_YORK)

        assert compute_business_hours(start, end, config) == 23.0

    def test_window_moves_in_utc_across_the_change(self):
        """Before the change 09:00 local is 14:00 UTC, after it is 13:00 UTC."""
        config = BusinessHoursConfig(timezone="America/New_York")
        friday_before = datetime(2024, 3, 8, 14, tzinfo=timezone.utc)
        monday_after = datetime(2024, 3, 11, 13, tzinfo=timezone.utc)

        assert BusinessCalendar.is_business_hour(friday_before, config)
        assert BusinessCalendar.is_business_hour(monday_after, config)
        assert not BusinessCalendar.is_business_hour(monday_after - timedelta(minutes=1), config)


class TestBusinessHourQueries:
    """Tests for is_business_hour and next_business_hour."""

    def test_is_business_hour_bounds(self, business_hours):
        assert BusinessCalendar.is_business_hour(utc(*MONDAY, 9), business_hours)
        assert BusinessCalendar.is_business_hour(utc(*MONDAY, 16, 59), business_hours)
        assert not BusinessCalendar.is_business_hour(utc(*MONDAY, 17), business_hours)
        assert not BusinessCalendar.is_business_hour(utc(*SATURDAY, 10), business_hours)

    def test_next_business_hour_is_strictly_after(self, business_hours):
        assert BusinessCalendar.next_business_hour(utc(*MONDAY, 9), business_hours) == utc(*MONDAY, 10)

    def test_next_business_hour_before_opening(self, business_hours):
        assert BusinessCalendar.next_business_hour(utc(*MONDAY, 8, 15), business_hours) == utc(*MONDAY, 9)

    def test_next_business_hour_skips_weekend(self, business_hours):
        assert BusinessCalendar.next_business_hour(utc(*FRIDAY, 16, 30), business_hours) == utc(*NEXT_MONDAY, 9)
        assert BusinessCalendar.next_business_hour(utc(*SATURDAY, 10), business_hours) == utc(*NEXT_MONDAY, 9)

    def test_next_business_hour_is_zone_aware(self):
        config = BusinessHoursConfig(timezone="America/New_York")
        result = BusinessCalendar.next_business_hour(utc(*MONDAY, 12), config)

        assert result.tzinfo is not None
        assert result == datetime(2024, 1, 8, 9, tzinfo=NEW_YORK)


class TestAddBusinessHours:
    """Tests for add_business_hours."""

    def test_within_one_day(self, business_hours):
        assert BusinessCalendar.add_business_hours(utc(*MONDAY, 9), 3, business_hours) == utc(*MONDAY, 12)

    def test_exactly_to_closing(self, business_hours):
        assert BusinessCalendar.add_business_hours(utc(*MONDAY, 9), 8, business_hours) == utc(*MONDAY, 17)

    def test_rolls_over_weekend(self, business_hours):
        assert BusinessCalendar.add_business_hours(utc(*FRIDAY, 15), 4, business_hours) == utc(*NEXT_MONDAY, 11)

    def test_start_outside_hours(self, business_hours):
        assert BusinessCalendar.add_business_hours(utc(*SATURDAY, 12), 1.5, business_hours) == utc(*NEXT_MONDAY, 10, 30)

    def test_non_positive_hours_return_start(self, business_hours):
        assert BusinessCalendar.add_business_hours(utc(*MONDAY, 20), 0, business_hours) == utc(*MONDAY, 20)

    def test_inverse_of_compute(self, business_hours):
        start = utc(*MONDAY, 13, 20)
        deadline = BusinessCalendar.add_business_hours(start, 27.5, business_hours)
        assert compute_business_hours(start, deadline, business_hours) == pytest.approx(27.5)


class TestTotalHours:
    def test_wall_clock_hours(self):
        assert BusinessCalendar.total_hours(utc(*MONDAY, 9), utc(*TUESDAY, 21)) == 36.0
