from datetime import timedelta

import pytest

from src.hostel_gatepass.hostel_gatepass.common.pagination import page_params
from src.hostel_gatepass.hostel_gatepass.core.enums import PassStatus
from src.hostel_gatepass.hostel_gatepass.core.exceptions import AuthorizationError
from tests.fakes import LINKED_RESIDENT_ID, SOLO_RESIDENT_ID, build_world, utc

NOW = utc(2025, 3, 10, 4, 0)
FROM = utc(2025, 3, 10, 6, 0)
TO = utc(2025, 3, 12, 6, 0)


@pytest.fixture
def world():
    w = build_world()
    w.linked_pass = w.service.submit(actor=w.linked_resident, reason="wedding", from_date=FROM, to_date=TO, now=NOW)
    w.solo_pass = w.service.submit(actor=w.solo_resident, reason="clinic", from_date=FROM, to_date=TO, now=NOW)
    return w


def test_supervisor_pending_excludes_guardian_stage_by_default(world):
    rows = world.service.list_pending_for_supervisor(actor=world.supervisor)
    assert [r["id"] for r in rows] == [world.solo_pass.pass_id]
    assert rows[0]["resident"]["name"] == "Diya Patel"

    both = world.service.list_pending_for_supervisor(actor=world.supervisor, include_guardian_pending=True)
    assert {r["id"] for r in both} == {world.solo_pass.pass_id, world.linked_pass.pass_id}


def test_guardian_pending_is_scoped_to_linked_residents(world):
    rows = world.service.list_pending_for_guardian(actor=world.guardian)
    assert [r["residentId"] for r in rows] == [LINKED_RESIDENT_ID]
    assert world.service.list_pending_for_guardian(actor=world.other_guardian) == []


def test_guardian_history_rejects_unlinked_resident(world):
    data = world.service.list_guardian_history(actor=world.guardian, params=page_params())
    assert [p["id"] for p in data["passes"]] == [world.linked_pass.pass_id]

    with pytest.raises(AuthorizationError):
        world.service.list_guardian_history(actor=world.guardian, params=page_params(), resident_id=SOLO_RESIDENT_ID)


def test_unlinked_guardian_history_is_empty(world):
    data = world.service.list_guardian_history(actor=world.other_guardian, params=page_params())
    assert data["passes"] == []
    assert data["pagination"]["total"] == 0


def test_my_passes_and_full_history(world):
    mine = world.service.list_my_passes(actor=world.solo_resident, params=page_params())
    assert [p["id"] for p in mine["passes"]] == [world.solo_pass.pass_id]

    everything = world.service.list_history(actor=world.supervisor, params=page_params(1, 1))
    assert everything["pagination"] == {
        "total": 2,
        "page": 1,
        "limit": 1,
        "pages": 2,
        "hasNext": True,
        "hasPrev": False,
    }

    filtered = world.service.list_history(actor=world.gate, params=page_params(), resident_id=LINKED_RESIDENT_ID)
    assert [p["id"] for p in filtered["passes"]] == [world.linked_pass.pass_id]


def test_get_pass_visibility(world):
    pid = world.linked_pass.pass_id
    assert world.service.get_pass(pass_id=pid, actor=world.linked_resident).pass_id == pid
    assert world.service.get_pass(pass_id=pid, actor=world.guardian).pass_id == pid
    assert world.service.get_pass(pass_id=pid, actor=world.gate).pass_id == pid

    with pytest.raises(AuthorizationError):
        world.service.get_pass(pass_id=pid, actor=world.solo_resident)
    with pytest.raises(AuthorizationError):
        world.service.get_pass(pass_id=pid, actor=world.other_guardian)


def test_current_pass_is_the_approved_one_covering_now(world):
    world.service.supervisor_approve(pass_id=world.solo_pass.pass_id, actor=world.supervisor, now=NOW)
    assert world.service.current_pass(actor=world.solo_resident, now=NOW) is None
    current = world.service.current_pass(actor=world.solo_resident, now=FROM + timedelta(hours=1))
    assert current.pass_id == world.solo_pass.pass_id
    assert world.service.current_pass(actor=world.linked_resident, now=FROM + timedelta(hours=1)) is None


def test_students_outside_flags_expired_passes(world):
    pid = world.solo_pass.pass_id
    world.service.supervisor_approve(pass_id=pid, actor=world.supervisor, now=NOW)
    world.service.record_exit(pass_id=pid, actor=world.gate, now=FROM + timedelta(hours=1))

    during = world.service.students_outside(actor=world.gate, now=FROM + timedelta(hours=2))
    assert [(r["id"], r["isExpired"], r["isPassValid"]) for r in during] == [(pid, False, True)]

    after = world.service.students_outside(actor=world.gate, now=TO + timedelta(hours=1))
    assert after[0]["isExpired"] is True
    assert after[0]["isPassValid"] is False

    with pytest.raises(AuthorizationError):
        world.service.students_outside(actor=world.solo_resident)


def test_todays_entries_use_facility_day_and_flag_late(world):
    pid = world.solo_pass.pass_id
    world.service.supervisor_approve(pass_id=pid, actor=world.supervisor, now=NOW)
    world.service.record_exit(pass_id=pid, actor=world.gate, now=FROM + timedelta(hours=1))
    back = TO + timedelta(minutes=45)
    world.service.record_entry(pass_id=pid, actor=world.gate, now=back)

    rows = world.service.todays_entries(actor=world.supervisor, now=back + timedelta(hours=1))
    assert len(rows) == 1
    assert rows[0]["isLate"] is True
    assert rows[0]["lateDuration"] == "45m late"

    next_day = world.service.todays_entries(actor=world.supervisor, now=back + timedelta(days=1))
    assert next_day == []


def test_pass_dict_shape(world):
    data = world.solo_pass.to_dict()
    assert data["status"] == PassStatus.PENDING_SUPERVISOR.value
    assert data["fromDate"] == FROM.isoformat()
    assert data["qrValue"] is None
