from __future__ import annotations

from datetime import date, datetime, timedelta

import pytz

from ..core.exceptions import ValidationError


def now_utc() -> datetime:
    """Current UTC time (aware).

    Note: Wrapped so tests can patch/mock easier.
    """
    return datetime.now(pytz.utc)


def get_timezone(name: str):
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        raise ValidationError(f"Unknown timezone: {name}")


def ensure_utc(value: datetime) -> datetime:
    """Normalise to aware UTC; naive values are taken to already be UTC."""
    if value.tzinfo is None:
        return pytz.utc.localize(value)
    return value.astimezone(pytz.utc)


def to_local(value: datetime, tz_name: str) -> datetime:
    return ensure_utc(value).astimezone(get_timezone(tz_name))


def local_date(value: datetime, tz_name: str) -> date:
    return to_local(value, tz_name).date()


def start_of_local_day(value: datetime, tz_name: str) -> datetime:
    """UTC instant at which the local calendar day containing `value` starts."""
    tz = get_timezone(tz_name)
    day = to_local(value, tz_name).date()
    midnight = tz.localize(datetime(day.year, day.month, day.day))
    return midnight.astimezone(pytz.utc)


def parse_iso_datetime(value: str, field_name: str) -> datetime:
    """Parse an ISO-8601 string into aware UTC."""
    v = (value or "").strip()
    if not v:
        raise ValidationError(f"{field_name} is required")
    if v.endswith("Z"):
        v = v[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(v)
    except ValueError:
        raise ValidationError(f"Invalid date format for {field_name}")
    return ensure_utc(parsed)


def parse_iso_date(value: str, field_name: str) -> date:
    """YYYY-MM-DD calendar day."""
    v = (value or "").strip()
    if not v:
        raise ValidationError(f"{field_name} is required")
    try:
        return date.fromisoformat(v)
    except ValueError:
        raise ValidationError(f"Invalid date format for {field_name}")


def format_late_duration(delta: timedelta) -> str:
    """'1h 30m late' / '12m late', minutes floored."""
    total_minutes = int(delta.total_seconds() // 60)
    hours, minutes = divmod(total_minutes, 60)
    if hours > 0:
        return f"{hours}h {minutes}m late"
    return f"{minutes}m late"
