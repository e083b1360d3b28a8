from __future__ import annotations

from flask import Flask

from ..common.web import json_body, ok, roles_required
from ..core.enums import Role
from ..container import Container
from .service import ConfigUpdate


def _changes_from(body: dict) -> ConfigUpdate:
    """Accepts the same nested shape that GET returns."""
    ref = body.get("referencePoint") or {}
    window = body.get("attendanceWindow") or {}
    app_config = body.get("appConfig") or {}
    return ConfigUpdate(
        latitude=ref.get("latitude"),
        longitude=ref.get("longitude"),
        reference_name=ref.get("name"),
        geofence_radius_meters=body.get("geofenceRadiusMeters"),
        window_enabled=window.get("enabled"),
        window_start_hour=window.get("startHour"),
        window_end_hour=window.get("endHour"),
        timezone=window.get("timezone"),
        max_gate_pass_days=app_config.get("maxGatePassDays"),
        max_pending_passes=app_config.get("maxPendingPasses"),
        attendance_grace_minutes=app_config.get("attendanceGracePeriod"),
        emergency_contacts=body.get("emergencyContacts"),
    )


def register(app: Flask, container: Container) -> None:
    configs = container.system_config_service

    @app.route("/api/admin/config", methods=["GET"], endpoint="admin_config")
    @roles_required(Role.ADMIN)
    def get_config(actor):
        return ok(configs.get().as_dict(), "System configuration retrieved")

    @app.route("/api/admin/config", methods=["PUT"], endpoint="admin_config_update")
    @roles_required(Role.ADMIN)
    def update_config(actor):
        updated = configs.update(actor=actor, changes=_changes_from(json_body()))
        return ok(updated.as_dict(), "System configuration updated")
