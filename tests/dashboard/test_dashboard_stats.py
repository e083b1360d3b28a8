from datetime import timedelta

import pytest

from src.hostel_gatepass.hostel_gatepass.core.enums import Role
from src.hostel_gatepass.hostel_gatepass.core.exceptions import AuthorizationError
from src.hostel_gatepass.hostel_gatepass.users.model import User
from tests.fakes import LINKED_RESIDENT_ID, SOLO_RESIDENT_ID, build_world, utc

NOW = utc(2025, 3, 10, 4, 0)
FROM = utc(2025, 3, 10, 6, 0)
TO = utc(2025, 3, 12, 6, 0)
EVENING = utc(2025, 3, 10, 15, 0)  # 20:30 IST


def test_empty_hostel_reports_zero_percentage():
    world = build_world()
    world.users._users.clear()

    stats = world.dashboard.warden_stats(actor=world.supervisor, now=EVENING)
    assert stats == {
        "totalStudents": 0,
        "studentsOut": 0,
        "studentsInside": 0,
        "todayAttendance": 0,
        "attendancePercentage": 0,
        "pendingPasses": 0,
    }


def test_stats_combine_passes_and_todays_attendance():
    world = build_world()
    world.service.submit(actor=world.linked_resident, reason="wedding", from_date=FROM, to_date=TO, now=NOW)
    solo = world.service.submit(actor=world.solo_resident, reason="clinic", from_date=FROM, to_date=TO, now=NOW)
    world.service.supervisor_approve(pass_id=solo.pass_id, actor=world.supervisor, now=NOW)
    world.service.record_exit(pass_id=solo.pass_id, actor=world.gate, now=FROM + timedelta(hours=1))

    # yesterday's mark is not today's attendance
    world.recorder.manual_mark(actor=world.supervisor, resident_id=SOLO_RESIDENT_ID, now=EVENING - timedelta(days=1))
    world.recorder.manual_mark(actor=world.supervisor, resident_id=LINKED_RESIDENT_ID, now=EVENING)

    stats = world.dashboard.warden_stats(actor=world.admin, now=EVENING)
    assert stats == {
        "totalStudents": 2,
        "studentsOut": 1,
        "studentsInside": 1,
        "todayAttendance": 1,
        "attendancePercentage": 50,
        "pendingPasses": 1,
    }


def test_inactive_residents_are_not_counted():
    world = build_world()
    world.users.add(User(12, "Kabir Rao", Role.RESIDENT, is_active=False))

    assert world.dashboard.warden_stats(actor=world.supervisor, now=EVENING)["totalStudents"] == 2


@pytest.mark.parametrize("who", ["gate", "solo_resident", "guardian"])
def test_stats_are_for_wardens_only(who):
    world = build_world()
    with pytest.raises(AuthorizationError):
        world.dashboard.warden_stats(actor=getattr(world, who), now=EVENING)
