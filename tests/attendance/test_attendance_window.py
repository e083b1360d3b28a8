from datetime import datetime

import pytest
import pytz

from src.hostel_gatepass.hostel_gatepass.attendance.window import describe_window, format_hour, is_within_window
from src.hostel_gatepass.hostel_gatepass.system_config.model import AttendanceWindow

EVENING_IST = AttendanceWindow(enabled=True, start_hour=19, end_hour=22, timezone="Asia/Kolkata")
OVERNIGHT_UTC = AttendanceWindow(enabled=True, start_hour=22, end_hour=2, timezone="UTC")


def at_utc(hour, minute):
    return pytz.utc.localize(datetime(2025, 3, 10, hour, minute))


@pytest.mark.parametrize(
    "utc_time,allowed",
    [
        ((13, 29), False),  # 18:59 IST
        ((13, 30), True),  # 19:00 IST
        ((16, 29), True),  # 21:59 IST
        ((16, 34), True),  # 22:04 IST, inside grace
        ((16, 35), False),  # 22:05 IST, grace exhausted
        ((4, 0), False),  # 09:30 IST
    ],
)
def test_evening_window_with_grace(utc_time, allowed):
    decision = is_within_window(at_utc(*utc_time), EVENING_IST, grace_minutes=5)
    assert decision.allowed is allowed


def test_local_time_is_reported_in_window_timezone():
    decision = is_within_window(at_utc(14, 30), EVENING_IST, grace_minutes=0)
    assert (decision.local_time.hour, decision.local_time.minute) == (20, 0)


def test_zero_grace_closes_at_end_hour():
    assert is_within_window(at_utc(16, 30), EVENING_IST, grace_minutes=0).allowed is False


def test_disabled_window_allows_any_time():
    disabled = AttendanceWindow(enabled=False, start_hour=19, end_hour=22, timezone="Asia/Kolkata")
    assert is_within_window(at_utc(4, 0), disabled, grace_minutes=0).allowed is True


@pytest.mark.parametrize(
    "utc_time,allowed",
    [((21, 59), False), ((22, 0), True), ((23, 30), True), ((1, 0), True), ((2, 4), True), ((2, 5), False), ((12, 0), False)],
)
def test_overnight_window_wraps_past_midnight(utc_time, allowed):
    assert is_within_window(at_utc(*utc_time), OVERNIGHT_UTC, grace_minutes=5).allowed is allowed


def test_format_hour():
    assert format_hour(19) == "7 PM"
    assert format_hour(0) == "12 AM"
    assert format_hour(12) == "12 PM"
    assert format_hour(9) == "9 AM"


def test_describe_window():
    assert describe_window(EVENING_IST) == "between 7 PM and 10 PM (Asia/Kolkata)"


LATE_UTC = AttendanceWindow(enabled=True, start_hour=21, end_hour=23, timezone="UTC")


@pytest.mark.parametrize(
    "utc_time,allowed",
    [
        ((23, 59), True),
        ((0, 15), True),  # grace runs past midnight
        ((0, 29), True),
        ((0, 30), False),
        ((20, 59), False),
    ],
)
def test_grace_carries_same_day_window_past_midnight(utc_time, allowed):
    assert is_within_window(at_utc(*utc_time), LATE_UTC, grace_minutes=90).allowed is allowed
