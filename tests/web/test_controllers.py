from datetime import datetime, timedelta

import pytest
import pytz

from src.hostel_gatepass.hostel_gatepass.main import create_app
from src.hostel_gatepass.hostel_gatepass.system_config.model import AttendanceWindow, SystemConfig
from tests.fakes import GUARDIAN_ID, LINKED_RESIDENT_ID, SOLO_RESIDENT_ID, build_world


@pytest.fixture
def world():
    return build_world(config=SystemConfig(attendance_window=AttendanceWindow(enabled=False)))


@pytest.fixture
def client(world, monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    app = create_app(container=world.container())
    return app.test_client()


def login(client, actor):
    with client.session_transaction() as sess:
        sess["user_id"] = actor.user_id
        sess["role"] = actor.role.value


def _window():
    start = datetime.now(pytz.utc) + timedelta(hours=2)
    return start.isoformat(), (start + timedelta(days=1)).isoformat()


def _submit(client, actor):
    login(client, actor)
    from_date, to_date = _window()
    resp = client.post("/api/gatepass", json={"reason": "family visit", "fromDate": from_date, "toDate": to_date})
    assert resp.status_code == 201
    return resp.get_json()["data"]["id"]


def test_anonymous_request_is_401(client):
    resp = client.get("/api/gatepass")
    assert resp.status_code == 401
    assert resp.get_json() == {"success": False, "message": "Authentication required"}


def test_wrong_role_is_403(client, world):
    login(client, world.guardian)
    assert client.post("/api/gatepass", json={}).status_code == 403


def test_validation_failure_is_400(client, world):
    login(client, world.solo_resident)
    resp = client.post("/api/gatepass", json={"reason": "", "fromDate": "x", "toDate": "y"})
    assert resp.status_code == 400
    assert resp.get_json()["success"] is False


def test_unknown_pass_is_404(client, world):
    login(client, world.supervisor)
    resp = client.get("/api/gatepass/4242")
    assert resp.status_code == 404
    assert resp.get_json()["message"] == "Gate pass not found"


def test_full_flow_through_http(client, world):
    pass_id = _submit(client, world.linked_resident)

    login(client, world.supervisor)
    # still waiting on the guardian
    assert client.put(f"/api/gatepass/{pass_id}/approve").status_code == 409

    login(client, world.guardian)
    pending = client.get("/api/guardian/pending-passes").get_json()["data"]
    assert [p["id"] for p in pending] == [pass_id]
    resp = client.put(f"/api/guardian/passes/{pass_id}/approve")
    assert resp.get_json()["data"]["status"] == "PENDING_SUPERVISOR"

    login(client, world.supervisor)
    resp = client.put(f"/api/gatepass/{pass_id}/approve")
    assert resp.status_code == 200
    token = resp.get_json()["data"]["qrValue"]
    assert token.startswith("GP-")

    login(client, world.gate)
    resp = client.post("/api/gatepass/validate", json={"qrValue": token})
    body = resp.get_json()
    assert resp.status_code == 200
    assert body["data"]["outcome"] == "NOT_STARTED"
    assert body["data"]["valid"] is False

    resp = client.post("/api/gatepass/validate", json={"qrValue": "GP-0000000000000000"})
    assert resp.get_json()["data"]["outcome"] == "INVALID"
    assert resp.get_json()["message"] == "Invalid or expired pass"


def test_admin_override_via_body(client, world):
    pass_id = _submit(client, world.linked_resident)

    login(client, world.admin)
    assert client.put(f"/api/gatepass/{pass_id}/approve").status_code == 409
    resp = client.put(f"/api/gatepass/{pass_id}/approve", json={"override": True, "note": "guardian on phone"})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["status"] == "APPROVED"


def test_qr_png_only_after_approval(client, world):
    pass_id = _submit(client, world.solo_resident)
    assert client.get(f"/api/gatepass/{pass_id}/qr.png").status_code == 404

    login(client, world.supervisor)
    client.put(f"/api/gatepass/{pass_id}/approve")

    login(client, world.solo_resident)
    resp = client.get(f"/api/gatepass/{pass_id}/qr.png")
    assert resp.status_code == 200
    assert resp.mimetype == "image/png"
    assert resp.data[:8] == b"\x89PNG\r\n\x1a\n"


def test_attendance_mark_geofence_and_duplicate(client, world):
    login(client, world.solo_resident)
    far = client.post("/api/attendance/mark", json={"latitude": 28.6139, "longitude": 77.2090})
    assert far.status_code == 403
    assert "away from the hostel" in far.get_json()["message"]

    missing = client.post("/api/attendance/mark", json={"latitude": 28.986701})
    assert missing.status_code == 400

    first = client.post("/api/attendance/mark", json={"latitude": 28.986701, "longitude": 77.152050})
    assert first.status_code == 201
    again = client.post("/api/attendance/mark", json={"latitude": 28.986701, "longitude": 77.152050})
    assert again.status_code == 200
    assert again.get_json()["message"] == "Attendance already marked for today."


def test_guardian_links_admin_endpoints(client, world):
    login(client, world.admin)
    resp = client.post(
        "/api/admin/links", json={"guardianId": GUARDIAN_ID, "residentId": SOLO_RESIDENT_ID, "relationship": "Mother"}
    )
    assert resp.status_code == 201
    link_id = resp.get_json()["data"]["id"]

    dup = client.post(
        "/api/admin/links", json={"guardianId": GUARDIAN_ID, "residentId": LINKED_RESIDENT_ID, "relationship": "Father"}
    )
    assert dup.status_code == 409

    bad = client.post("/api/admin/links", json={"guardianId": GUARDIAN_ID, "residentId": SOLO_RESIDENT_ID, "relationship": "Uncle"})
    assert bad.status_code == 400

    assert client.delete(f"/api/admin/links/{link_id}").status_code == 200
    assert client.get("/api/admin/links?status=inactive").get_json()["data"]["pagination"]["total"] == 1


def test_config_round_trip_for_admin_only(client, world):
    login(client, world.supervisor)
    assert client.get("/api/admin/config").status_code == 403

    login(client, world.admin)
    resp = client.put("/api/admin/config", json={"geofenceRadiusMeters": 75, "appConfig": {"maxPendingPasses": 2}})
    assert resp.status_code == 200
    data = client.get("/api/admin/config").get_json()["data"]
    assert data["geofenceRadiusMeters"] == 75
    assert data["appConfig"]["maxPendingPasses"] == 2

    bad = client.put("/api/admin/config", json={"attendanceWindow": {"startHour": 30}})
    assert bad.status_code == 400


def test_unknown_route_keeps_json_shape(client):
    resp = client.get("/api/nope")
    assert resp.status_code == 404
    assert resp.get_json()["success"] is False


def test_resident_logs_route_scopes_by_role(client, world):
    pass_id = _submit(client, world.solo_resident)
    login(client, world.supervisor)
    client.put(f"/api/gatepass/{pass_id}/approve")
    world.service.record_exit(pass_id=pass_id, actor=world.gate, now=datetime.now(pytz.utc) + timedelta(hours=3))

    login(client, world.solo_resident)
    # a resident asking for someone else still gets their own ledger
    resp = client.get(f"/api/gatepass/logs/resident/{LINKED_RESIDENT_ID}")
    assert resp.status_code == 200
    assert [row["gatePassId"] for row in resp.get_json()["data"]] == [pass_id]

    login(client, world.gate)
    resp = client.get(f"/api/gatepass/logs/resident/{SOLO_RESIDENT_ID}?limit=5")
    assert resp.status_code == 200
    assert len(resp.get_json()["data"]) == 1

    login(client, world.guardian)
    assert client.get(f"/api/gatepass/logs/resident/{SOLO_RESIDENT_ID}").status_code == 403


def test_warden_dashboard_and_attendance_roster(client, world):
    _submit(client, world.linked_resident)
    login(client, world.supervisor)
    assert client.post(f"/api/attendance/manual/{SOLO_RESIDENT_ID}").status_code == 201

    stats = client.get("/api/admin/warden/dashboard-stats").get_json()["data"]
    assert stats["totalStudents"] == 2
    assert stats["pendingPasses"] == 1
    assert stats["todayAttendance"] == 1
    assert stats["attendancePercentage"] == 50

    roster = client.get(f"/api/admin/attendance?residentId={SOLO_RESIDENT_ID}").get_json()["data"]
    assert [row["resident"]["name"] for row in roster["attendance"]] == ["Diya Patel"]
    assert roster["pagination"]["limit"] == 50

    empty = client.get("/api/admin/attendance?date=2001-01-01").get_json()["data"]
    assert empty["attendance"] == []
    assert client.get("/api/admin/attendance?date=01/02/2025").status_code == 400

    login(client, world.gate)
    assert client.get("/api/admin/warden/dashboard-stats").status_code == 403
    assert client.get("/api/admin/attendance").status_code == 403
