"""
SLA Value Objects
==================

Immutable value objects for SLA domain.

Value objects are defined by their attributes rather than an identity.
They are immutable and can be freely shared.
"""

from dataclasses import dataclass, field
from functools import cached_property
from typing import FrozenSet, List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, Field

from designdream.config import DEFAULT_TARGET_HOURS, ViolationSeverity
from designdream.core import InvalidConfigException


@dataclass(frozen=True)
class BusinessHoursConfig:
    """
    Business calendar: which weekdays count and the daily working window.

    Weekdays use 0 = Sunday .. 6 = Saturday. The window is
    ``[start_hour, end_hour)`` in local wall-clock time of ``timezone``.
    """
    work_days: FrozenSet[int] = field(default_factory=lambda: frozenset({1, 2, 3, 4, 5}))
    start_hour: int = 9
    end_hour: int = 17
    timezone: str = "America/New_York"

    def __post_init__(self):
        """Validate calendar on initialization."""
        object.__setattr__(self, "work_days", frozenset(self.work_days))

        if not self.work_days:
            raise InvalidConfigException("work_days must not be empty")

        invalid_days = sorted(d for d in self.work_days if not 0 <= d <= 6)
        if invalid_days:
            raise InvalidConfigException(
                f"work_days must be between 0 (Sunday) and 6 (Saturday), got {invalid_days}",
                {"work_days": invalid_days}
            )

        if not 0 <= self.start_hour < self.end_hour <= 24:
            raise InvalidConfigException(
                "business hours require 0 <= start_hour < end_hour <= 24",
                {"start_hour": self.start_hour, "end_hour": self.end_hour}
            )

        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise InvalidConfigException(
                f"Unknown timezone: {self.timezone}",
                {"timezone": self.timezone}
            ) from e

    @cached_property
    def zone(self) -> ZoneInfo:
        """Resolved IANA zone."""
        return ZoneInfo(self.timezone)

    @property
    def hours_per_day(self) -> int:
        """Length of one business day in hours."""
        return self.end_hour - self.start_hour


@dataclass(frozen=True)
class SLAWarningThresholds:
    """Remaining-hours cutoffs for the yellow and red warning levels."""
    yellow_hours_remaining: float = 12.0
    red_hours_remaining: float = 0.0

    def __post_init__(self):
        if self.red_hours_remaining > self.yellow_hours_remaining:
            raise InvalidConfigException(
                "red_hours_remaining cannot exceed yellow_hours_remaining",
                {
                    "yellow_hours_remaining": self.yellow_hours_remaining,
                    "red_hours_remaining": self.red_hours_remaining,
                }
            )


@dataclass(frozen=True)
class ViolationSeverityPolicy:
    """
    Maps the overrun ratio of a violated SLA to a severity.

    ratio = (elapsed - target) / target

    - minor: ratio <= minor_overrun_ratio (default 25% over)
    - major: ratio <= major_overrun_ratio (default 100% over)
    - critical: anything beyond
    """
    minor_overrun_ratio: float = 0.25
    major_overrun_ratio: float = 1.0

    def __post_init__(self):
        if self.minor_overrun_ratio < 0 or self.minor_overrun_ratio > self.major_overrun_ratio:
            raise InvalidConfigException(
                "severity cutoffs require 0 <= minor_overrun_ratio <= major_overrun_ratio",
                {
                    "minor_overrun_ratio": self.minor_overrun_ratio,
                    "major_overrun_ratio": self.major_overrun_ratio,
                }
            )

    def classify(self, elapsed_hours: float, target_hours: float) -> str:
        """Severity for a record that finished with ``elapsed_hours``."""
        ratio = (elapsed_hours - target_hours) / target_hours
        if ratio <= self.minor_overrun_ratio:
            return ViolationSeverity.MINOR
        if ratio <= self.major_overrun_ratio:
            return ViolationSeverity.MAJOR
        return ViolationSeverity.CRITICAL


# ========== YAML configuration ==========

class BusinessHoursSettings(BaseModel):
    """Business calendar section of the SLA config file."""
    work_days: List[int] = Field(default_factory=lambda: [1, 2, 3, 4, 5])
    start_hour: int = Field(default=9)
    end_hour: int = Field(default=17)
    timezone: str = Field(default="America/New_York")


class WarningThresholdSettings(BaseModel):
    """Warning threshold section of the SLA config file."""
    yellow_hours_remaining: float = Field(default=12.0)
    red_hours_remaining: float = Field(default=0.0)


class ViolationSeveritySettings(BaseModel):
    """Severity cutoff section of the SLA config file."""
    minor_overrun_ratio: float = Field(default=0.25)
    major_overrun_ratio: float = Field(default=1.0)


class SLAConfig(BaseModel):
    """
    SLA engine configuration loaded from YAML.

    Holds the raw sections as parsed from the file; the domain value objects
    are built (and validated) through the accessor methods.
    """
    default_target_hours: float = Field(
        default=DEFAULT_TARGET_HOURS,
        gt=0,
        description="Business-hour budget used when a request does not specify one"
    )
    business_hours: BusinessHoursSettings = Field(default_factory=BusinessHoursSettings)
    warning_thresholds: WarningThresholdSettings = Field(default_factory=WarningThresholdSettings)
    violation_severity: ViolationSeveritySettings = Field(default_factory=ViolationSeveritySettings)

    def get_business_hours(self) -> BusinessHoursConfig:
        """Business calendar as a validated value object."""
        return BusinessHoursConfig(
            work_days=frozenset(self.business_hours.work_days),
            start_hour=self.business_hours.start_hour,
            end_hour=self.business_hours.end_hour,
            timezone=self.business_hours.timezone,
        )

    def get_warning_thresholds(self) -> SLAWarningThresholds:
        """Warning thresholds as a validated value object."""
        return SLAWarningThresholds(
            yellow_hours_remaining=self.warning_thresholds.yellow_hours_remaining,
            red_hours_remaining=self.warning_thresholds.red_hours_remaining,
        )

    def get_severity_policy(self) -> ViolationSeverityPolicy:
        """Severity cutoffs as a validated value object."""
        return ViolationSeverityPolicy(
            minor_overrun_ratio=self.violation_severity.minor_overrun_ratio,
            major_overrun_ratio=self.violation_severity.major_overrun_ratio,
        )

    def validate_sections(self) -> None:
        """Build every value object once so a malformed file fails fast."""
        self.get_business_hours()
        self.get_warning_thresholds()
        self.get_severity_policy()
