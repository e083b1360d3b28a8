from __future__ import annotations

from flask import Flask, request

from ..common.datetime_utils import parse_iso_date
from ..common.web import ok, page_from_request, roles_required
from ..core.enums import Role
from ..container import Container

_WARDENS = (Role.SUPERVISOR, Role.ADMIN)


def register(app: Flask, container: Container) -> None:
    @app.route("/api/admin/warden/dashboard-stats", methods=["GET"], endpoint="admin_dashboard_stats")
    @roles_required(*_WARDENS)
    def dashboard_stats(actor):
        return ok(container.dashboard_service.warden_stats(actor=actor), "Dashboard stats retrieved")

    @app.route("/api/admin/attendance", methods=["GET"], endpoint="admin_attendance")
    @roles_required(*_WARDENS)
    def attendance_roster(actor):
        raw_date = request.args.get("date")
        day = parse_iso_date(raw_date, "Date") if raw_date else None
        data = container.attendance_recorder.list_for_staff(
            actor=actor,
            params=page_from_request(default_limit=50),
            day=day,
            resident_id=request.args.get("residentId", type=int),
        )
        return ok(data, "Attendance records retrieved")
