from __future__ import annotations

from flask import Flask, request

from ..common.web import json_body, ok, page_from_request, roles_required
from ..core.enums import LinkStatus, Relationship, Role
from ..core.exceptions import ValidationError
from ..container import Container

_LINK_MANAGERS = (Role.ADMIN, Role.SUPERVISOR)


def _parse_relationship(value: object) -> Relationship:
    try:
        return Relationship(str(value or "").strip())
    except ValueError:
        allowed = ", ".join(r.value for r in Relationship)
        raise ValidationError(f"Relationship must be one of: {allowed}")


def _parse_link_status(value: object):
    if not value:
        return None
    try:
        return LinkStatus(str(value))
    except ValueError:
        raise ValidationError("Invalid link status")


def register(app: Flask, container: Container) -> None:
    registry = container.guardian_registry
    passes = container.gatepass_service
    attendance = container.attendance_recorder

    # ---------------- Guardian ----------------
    @app.route("/api/guardian/children", methods=["GET"], endpoint="guardian_children")
    @roles_required(Role.GUARDIAN)
    def children(actor):
        return ok(registry.list_children(actor=actor), "Linked residents retrieved")

    @app.route("/api/guardian/pending-passes", methods=["GET"], endpoint="guardian_pending_passes")
    @roles_required(Role.GUARDIAN)
    def pending_passes(actor):
        return ok(passes.list_pending_for_guardian(actor=actor), "Pending gate passes")

    @app.route("/api/guardian/passes", methods=["GET"], endpoint="guardian_passes")
    @roles_required(Role.GUARDIAN)
    def pass_history(actor):
        data = passes.list_guardian_history(
            actor=actor, params=page_from_request(), resident_id=request.args.get("residentId", type=int)
        )
        return ok(data, "Gate pass history")

    @app.route("/api/guardian/passes/<int:pass_id>/approve", methods=["PUT", "POST"], endpoint="guardian_approve")
    @roles_required(Role.GUARDIAN)
    def approve(actor, pass_id: int):
        gate_pass = passes.guardian_approve(pass_id=pass_id, actor=actor)
        return ok(gate_pass.to_dict(), "Gate pass approved. Sent to supervisor for final approval.")

    @app.route("/api/guardian/passes/<int:pass_id>/reject", methods=["PUT", "POST"], endpoint="guardian_reject")
    @roles_required(Role.GUARDIAN)
    def reject(actor, pass_id: int):
        body = json_body()
        gate_pass = passes.guardian_reject(pass_id=pass_id, actor=actor, reason=body.get("reason"))
        return ok(gate_pass.to_dict(), "Gate pass rejected")

    @app.route("/api/guardian/children/<int:resident_id>/attendance", methods=["GET"], endpoint="guardian_child_attendance")
    @roles_required(Role.GUARDIAN)
    def child_attendance(actor, resident_id: int):
        data = attendance.child_history(actor=actor, resident_id=resident_id, params=page_from_request(default_limit=30))
        return ok(data, "Attendance retrieved")

    @app.route("/api/guardian/today-attendance", methods=["GET"], endpoint="guardian_today_attendance")
    @roles_required(Role.GUARDIAN)
    def today_attendance(actor):
        return ok(attendance.children_today(actor=actor), "Today's attendance")

    # ---------------- Admin: links ----------------
    @app.route("/api/admin/links", methods=["GET"], endpoint="admin_links")
    @roles_required(*_LINK_MANAGERS)
    def list_links(actor):
        status = _parse_link_status(request.args.get("status"))
        return ok(registry.list_links(actor=actor, params=page_from_request(), status=status), "Links retrieved")

    @app.route("/api/admin/links", methods=["POST"], endpoint="admin_link_create")
    @roles_required(*_LINK_MANAGERS)
    def create_link(actor):
        body = json_body()
        try:
            guardian_id = int(body.get("guardianId"))
            resident_id = int(body.get("residentId"))
        except (TypeError, ValueError):
            raise ValidationError("guardianId and residentId are required")
        link = registry.link(
            actor=actor,
            guardian_id=guardian_id,
            resident_id=resident_id,
            relationship=_parse_relationship(body.get("relationship")),
        )
        return ok(registry.to_dict(link), "Guardian linked", 201)

    @app.route("/api/admin/links/<int:link_id>", methods=["DELETE"], endpoint="admin_link_delete")
    @roles_required(*_LINK_MANAGERS)
    def delete_link(actor, link_id: int):
        registry.unlink(actor=actor, link_id=link_id)
        return ok(None, "Guardian link removed")
