from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..common.datetime_utils import to_local
from ..system_config.model import AttendanceWindow

_MINUTES_PER_DAY = 24 * 60


@dataclass(frozen=True)
class WindowDecision:
    allowed: bool
    local_time: datetime


def format_hour(hour: int) -> str:
    """19 -> '7 PM', 0 -> '12 AM', 12 -> '12 PM'."""
    suffix = "AM" if hour < 12 else "PM"
    h12 = hour % 12 or 12
    return f"{h12} {suffix}"


def is_within_window(now: datetime, window: AttendanceWindow, grace_minutes: int) -> WindowDecision:
    """start <= now < end + grace, in the window's timezone.

    A window whose end hour is not after its start hour runs past midnight.
    """
    local = to_local(now, window.timezone)
    if not window.enabled:
        return WindowDecision(allowed=True, local_time=local)

    minute_of_day = local.hour * 60 + local.minute
    start = window.start_hour * 60
    end = window.end_hour * 60 + max(0, int(grace_minutes))

    if window.end_hour > window.start_hour:
        # grace may carry a same-day window past midnight
        allowed = start <= minute_of_day < end or minute_of_day < end - _MINUTES_PER_DAY
    else:
        # Overnight: [start, 24:00) + [00:00, end + grace)
        allowed = minute_of_day >= start or minute_of_day < end
    return WindowDecision(allowed=allowed, local_time=local)


def describe_window(window: AttendanceWindow) -> str:
    return f"between {format_hour(window.start_hour)} and {format_hour(window.end_hour)} ({window.timezone})"
