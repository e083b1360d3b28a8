from datetime import timedelta

import pytest

from src.hostel_gatepass.hostel_gatepass.core.enums import PassRule, PassStatus
from src.hostel_gatepass.hostel_gatepass.core.exceptions import PassRuleViolation, ValidationError
from src.hostel_gatepass.hostel_gatepass.gatepass.validator import PassRequestValidator
from src.hostel_gatepass.hostel_gatepass.system_config.model import SystemConfig
from tests.fakes import FakeActivityLogRepo, FakeGatePassRepo, SOLO_RESIDENT_ID, utc

NOW = utc(2025, 3, 10, 4, 0)  # 09:30 IST
FROM = utc(2025, 3, 10, 6, 0)
TO = utc(2025, 3, 12, 6, 0)


@pytest.fixture
def passes():
    return FakeGatePassRepo(FakeActivityLogRepo())


def check(passes, from_date, to_date, config=None):
    PassRequestValidator(passes).check(
        resident_id=SOLO_RESIDENT_ID, from_date=from_date, to_date=to_date, config=config or SystemConfig(), now=NOW
    )


def add_pass(passes, from_date, to_date, status):
    return passes.create(
        resident_id=SOLO_RESIDENT_ID, reason="home", from_date=from_date, to_date=to_date, status=status, created_at=NOW
    )


def rule_of(excinfo):
    return excinfo.value.rule


def test_valid_request_passes(passes):
    check(passes, FROM, TO)


def test_range_must_be_forward(passes):
    with pytest.raises(PassRuleViolation) as exc:
        check(passes, TO, FROM)
    assert rule_of(exc) == PassRule.INVALID_RANGE
    assert str(exc.value) == "From date must be before to date"

    with pytest.raises(PassRuleViolation):
        check(passes, FROM, FROM)


def test_rule_violation_is_a_validation_error(passes):
    with pytest.raises(ValidationError):
        check(passes, TO, FROM)


def test_past_start_uses_facility_day(passes):
    # 01:30 IST on the 10th: same local day as now, even though it is the 9th in UTC
    check(passes, utc(2025, 3, 9, 20, 0), TO)

    with pytest.raises(PassRuleViolation) as exc:
        check(passes, utc(2025, 3, 9, 18, 0), TO)  # 23:30 IST on the 9th
    assert rule_of(exc) == PassRule.PAST_START
    assert str(exc.value) == "From date cannot be in the past"


def test_duration_limit(passes):
    check(passes, FROM, FROM + timedelta(days=14))

    with pytest.raises(PassRuleViolation) as exc:
        check(passes, FROM, FROM + timedelta(days=14, minutes=1))
    assert rule_of(exc) == PassRule.TOO_LONG
    assert str(exc.value) == "Gate pass cannot exceed 14 days"


def test_too_many_pending(passes):
    for offset in range(3):
        start = FROM + timedelta(days=20 + offset * 2)
        add_pass(passes, start, start + timedelta(days=1), PassStatus.PENDING_SUPERVISOR)

    with pytest.raises(PassRuleViolation) as exc:
        check(passes, FROM, TO)
    assert rule_of(exc) == PassRule.TOO_MANY_PENDING
    assert "3 pending gate passes" in str(exc.value)


def test_pending_limit_ignores_decided_passes(passes):
    for offset in range(3):
        start = FROM + timedelta(days=20 + offset * 2)
        add_pass(passes, start, start + timedelta(days=1), PassStatus.REJECTED)
    check(passes, FROM, TO)


def test_overlap_with_active_pass(passes):
    add_pass(passes, FROM, TO, PassStatus.APPROVED)

    with pytest.raises(PassRuleViolation) as exc:
        check(passes, FROM + timedelta(days=1), TO + timedelta(days=1))
    assert rule_of(exc) == PassRule.OVERLAPPING
    assert str(exc.value) == "You already have a pass for this period"


def test_adjacent_windows_do_not_overlap(passes):
    add_pass(passes, FROM, TO, PassStatus.PENDING_GUARDIAN)
    check(passes, TO, TO + timedelta(days=1))


def test_rejected_pass_does_not_block_same_period(passes):
    add_pass(passes, FROM, TO, PassStatus.REJECTED)
    check(passes, FROM, TO)


def test_pending_limit_is_checked_before_overlap(passes):
    for _ in range(3):
        add_pass(passes, FROM, TO, PassStatus.PENDING_SUPERVISOR)
    with pytest.raises(PassRuleViolation) as exc:
        check(passes, FROM, TO)
    assert rule_of(exc) == PassRule.TOO_MANY_PENDING
