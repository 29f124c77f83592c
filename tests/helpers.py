"""Shared test helpers: fixed dates, a static config provider and a clock."""

from datetime import datetime, timezone

from designdream.sla.application import ISLAConfigProvider
from designdream.sla.domain import SLAConfig


def utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    """Aware UTC datetime shorthand."""
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


# Week of Monday 2024-01-08 .. Monday 2024-01-15
MONDAY = (2024, 1, 8)
TUESDAY = (2024, 1, 9)
WEDNESDAY = (2024, 1, 10)
THURSDAY = (2024, 1, 11)
FRIDAY = (2024, 1, 12)
SATURDAY = (2024, 1, 13)
SUNDAY = (2024, 1, 14)
NEXT_MONDAY = (2024, 1, 15)


class StaticConfigProvider(ISLAConfigProvider):
    """Config provider returning a fixed SLAConfig."""

    def __init__(self, config: SLAConfig):
        self.config = config

    def get_config(self) -> SLAConfig:
        return self.config


class Clock:
    """Mutable 'now' handed to the HTTP application."""

    def __init__(self, now: datetime):
        self.now = now

    def set(self, now: datetime) -> None:
        self.now = now
