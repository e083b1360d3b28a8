from __future__ import annotations

from flask import Flask

from ..common.web import json_body, ok, page_from_request, roles_required
from ..core.enums import Role
from ..core.exceptions import ValidationError
from ..container import Container


def register(app: Flask, container: Container) -> None:
    recorder = container.attendance_recorder

    @app.route("/api/attendance", methods=["GET"], endpoint="attendance_history")
    @roles_required(Role.RESIDENT)
    def history(actor):
        return ok(recorder.history(actor=actor, params=page_from_request()), "Attendance retrieved")

    @app.route("/api/attendance/mark", methods=["POST"], endpoint="attendance_mark")
    @roles_required(Role.RESIDENT)
    def mark(actor):
        body = json_body()
        if body.get("latitude") is None or body.get("longitude") is None:
            raise ValidationError("Location access is required to mark attendance. Please enable GPS.")

        result = recorder.mark(actor=actor, latitude=body.get("latitude"), longitude=body.get("longitude"))
        if result.already_marked:
            return ok(result.record.to_dict(), "Attendance already marked for today.")
        return ok(
            result.record.to_dict(),
            f"Attendance marked successfully! You were {result.distance_meters}m from the hostel.",
            201,
        )

    @app.route("/api/attendance/today", methods=["GET"], endpoint="attendance_today")
    @roles_required(Role.RESIDENT)
    def today(actor):
        return ok(recorder.today_status(actor=actor), "Today attendance status")

    @app.route("/api/attendance/stats", methods=["GET"], endpoint="attendance_stats")
    @roles_required(Role.RESIDENT)
    def stats(actor):
        return ok(recorder.monthly_stats(actor=actor), "Attendance stats retrieved")

    @app.route("/api/attendance/manual/<int:resident_id>", methods=["POST"], endpoint="attendance_manual")
    @roles_required(Role.SUPERVISOR, Role.ADMIN)
    def manual(actor, resident_id: int):
        result = recorder.manual_mark(actor=actor, resident_id=resident_id)
        if result.already_marked:
            return ok(result.record.to_dict(), "Attendance already marked for this resident today")
        return ok(result.record.to_dict(), "Attendance marked", 201)
