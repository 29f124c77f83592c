"""
SLA display helpers.

Human-readable renderings of remaining and elapsed time.
"""

import math


def time_remaining_display(hours_remaining: float, hours_per_day: int = 8) -> str:
    """
    Render business hours remaining, counting days as business days.

    Examples:
        20.0 -> "2d 4h remaining"   (8 hour business days)
        16.0 -> "2d remaining"
        0.5  -> "30m remaining"
    """
    if hours_remaining <= 0:
        return "SLA deadline passed"

    days = math.floor(hours_remaining / hours_per_day)
    hours = math.floor(hours_remaining % hours_per_day)

    if days > 0 and hours > 0:
        return f"{days}d {hours}h remaining"
    if days > 0:
        return f"{days}d remaining"
    if hours > 0:
        return f"{hours}h remaining"

    minutes = math.floor((hours_remaining % 1) * 60)
    return f"{minutes}m remaining"


def format_duration(hours: float) -> str:
    """Render a duration in calendar terms (24 hour days)."""
    if hours < 1:
        return f"{round(hours * 60)} minutes"
    if hours < 24:
        return f"{hours:.1f} hours"

    days = math.floor(hours / 24)
    remaining_hours = hours % 24
    return f"{days}d {remaining_hours:.0f}h"
