import pytest

from src.hostel_gatepass.hostel_gatepass.core.enums import ContactKind
from src.hostel_gatepass.hostel_gatepass.core.exceptions import AuthorizationError, ValidationError
from src.hostel_gatepass.hostel_gatepass.system_config.service import ConfigUpdate, SystemConfigService
from tests.fakes import ADMIN_ID, FakeSystemConfigRepo, build_world, utc


def test_missing_config_is_created_with_defaults():
    repo = FakeSystemConfigRepo()
    config = SystemConfigService(repo).get()

    assert repo.saves == 1
    assert config.reference.latitude == pytest.approx(28.986701)
    assert config.geofence_radius_meters == 50
    assert (config.attendance_window.start_hour, config.attendance_window.end_hour) == (19, 22)
    assert config.attendance_window.timezone == "Asia/Kolkata"
    assert config.policy.max_gate_pass_days == 14
    assert config.policy.max_pending_passes == 3
    assert config.policy.attendance_grace_minutes == 5


def test_partial_update_keeps_untouched_fields():
    world = build_world()
    now = utc(2025, 3, 1, 8, 0)
    updated = world.configs.update(
        actor=world.admin,
        changes=ConfigUpdate(geofence_radius_meters=120, window_start_hour=18, max_pending_passes=5),
        now=now,
    )

    assert updated.geofence_radius_meters == 120
    assert updated.attendance_window.start_hour == 18
    assert updated.attendance_window.end_hour == 22
    assert updated.policy.max_pending_passes == 5
    assert updated.policy.max_gate_pass_days == 14
    assert updated.updated_by == ADMIN_ID
    assert updated.updated_at == now
    assert world.configs.get() == updated


@pytest.mark.parametrize(
    "changes",
    [
        ConfigUpdate(latitude=95),
        ConfigUpdate(longitude=-200),
        ConfigUpdate(geofence_radius_meters=0),
        ConfigUpdate(window_start_hour=24),
        ConfigUpdate(window_end_hour=-1),
        ConfigUpdate(timezone="Mars/Olympus"),
        ConfigUpdate(max_gate_pass_days=0),
        ConfigUpdate(max_pending_passes=0),
        ConfigUpdate(attendance_grace_minutes=-5),
        ConfigUpdate(reference_name="  "),
        ConfigUpdate(emergency_contacts=[{"name": "Desk", "phone": "1", "type": "unknown"}]),
    ],
)
def test_invalid_updates_are_rejected_and_not_saved(changes):
    world = build_world()
    before = world.configs.get()
    with pytest.raises(ValidationError):
        world.configs.update(actor=world.admin, changes=changes)
    assert world.configs.get() == before


def test_only_admin_updates():
    world = build_world()
    with pytest.raises(AuthorizationError):
        world.configs.update(actor=world.supervisor, changes=ConfigUpdate(geofence_radius_meters=80))


def test_emergency_contacts_replace_list():
    world = build_world()
    updated = world.configs.update(
        actor=world.admin,
        changes=ConfigUpdate(emergency_contacts=[{"name": "Night Warden", "phone": "+91 9999", "type": "warden"}]),
    )
    assert len(updated.emergency_contacts) == 1
    assert updated.emergency_contacts[0].kind == ContactKind.WARDEN
    assert updated.as_dict()["emergencyContacts"] == [{"name": "Night Warden", "phone": "+91 9999", "type": "warden"}]


def test_as_dict_shape():
    data = build_world().configs.get().as_dict()
    assert data["attendanceWindow"] == {"enabled": True, "startHour": 19, "endHour": 22, "timezone": "Asia/Kolkata"}
    assert data["appConfig"]["maxGatePassDays"] == 14
