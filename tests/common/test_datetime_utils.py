from datetime import date, datetime, timedelta

import pytest
import pytz

from src.hostel_gatepass.hostel_gatepass.common.datetime_utils import (
    ensure_utc,
    format_late_duration,
    get_timezone,
    local_date,
    parse_iso_date,
    parse_iso_datetime,
    start_of_local_day,
)
from src.hostel_gatepass.hostel_gatepass.core.exceptions import ValidationError


def test_parse_iso_accepts_z_suffix_and_offsets():
    assert parse_iso_datetime("2025-03-10T06:00:00Z", "From date") == pytz.utc.localize(datetime(2025, 3, 10, 6))
    assert parse_iso_datetime("2025-03-10T11:30:00+05:30", "From date") == pytz.utc.localize(datetime(2025, 3, 10, 6))


@pytest.mark.parametrize("raw", ["", "   ", "tomorrow", "2025-13-40"])
def test_parse_iso_rejects_garbage(raw):
    with pytest.raises(ValidationError):
        parse_iso_datetime(raw, "From date")


def test_naive_values_are_taken_as_utc():
    assert ensure_utc(datetime(2025, 1, 1, 12)).tzinfo is not None
    assert ensure_utc(datetime(2025, 1, 1, 12)).hour == 12


def test_local_day_boundaries_in_kolkata():
    # 19:00 UTC is already the next day in India
    late_evening = pytz.utc.localize(datetime(2025, 3, 10, 19, 0))
    assert local_date(late_evening, "Asia/Kolkata") == date(2025, 3, 11)
    assert start_of_local_day(late_evening, "Asia/Kolkata") == pytz.utc.localize(datetime(2025, 3, 10, 18, 30))


def test_unknown_timezone_is_a_validation_error():
    with pytest.raises(ValidationError):
        get_timezone("Nowhere/Special")


@pytest.mark.parametrize(
    "delta, text",
    [
        (timedelta(minutes=12, seconds=59), "12m late"),
        (timedelta(hours=1, minutes=30), "1h 30m late"),
        (timedelta(hours=26), "26h 0m late"),
    ],
)
def test_late_duration_format(delta, text):
    assert format_late_duration(delta) == text


def test_parse_iso_date():
    assert parse_iso_date(" 2025-03-10 ", "Date") == date(2025, 3, 10)
    for raw in ("", "10/03/2025", "2025-02-30"):
        with pytest.raises(ValidationError):
            parse_iso_date(raw, "Date")
