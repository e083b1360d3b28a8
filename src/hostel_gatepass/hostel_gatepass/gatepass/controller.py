from __future__ import annotations

import io

import qrcode
from flask import Flask, request, send_file

from ..common.datetime_utils import parse_iso_datetime
from ..common.web import arg_flag, fail, json_body, login_required, ok, page_from_request, roles_required
from ..core.constants import DEFAULT_LOG_PAGE_LIMIT
from ..core.enums import Role
from ..container import Container
from .transitions import AdminOverride

_APPROVERS = (Role.SUPERVISOR, Role.ADMIN)
_GATE = (Role.GATE_STAFF, Role.ADMIN)
_STAFF = (Role.GATE_STAFF, Role.SUPERVISOR, Role.ADMIN)


def render_qr_png(value: str) -> io.BytesIO:
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=10,
        border=2,
    )
    qr.add_data(value)
    qr.make(fit=True)
    img = qr.make_image(fill_color="black", back_color="white")

    buf = io.BytesIO()
    img.save(buf, format="PNG")
    buf.seek(0)
    return buf


def _override_from(actor, body: dict):
    """Admins pass {"override": true, "note": ...} to decide out of order."""
    if actor.is_admin and body.get("override"):
        return AdminOverride(note=str(body.get("note") or ""))
    return None


def register(app: Flask, container: Container) -> None:
    service = container.gatepass_service

    # ---------------- Resident ----------------
    @app.route("/api/gatepass", methods=["GET"], endpoint="gatepass_mine")
    @roles_required(Role.RESIDENT)
    def my_passes(actor):
        data = service.list_my_passes(actor=actor, params=page_from_request())
        return ok(data, "Gate passes retrieved")

    @app.route("/api/gatepass", methods=["POST"], endpoint="gatepass_submit")
    @roles_required(Role.RESIDENT)
    def submit(actor):
        body = json_body()
        gate_pass = service.submit(
            actor=actor,
            reason=str(body.get("reason") or ""),
            from_date=parse_iso_datetime(str(body.get("fromDate") or ""), "From date"),
            to_date=parse_iso_datetime(str(body.get("toDate") or ""), "To date"),
        )
        return ok(gate_pass.to_dict(), "Gate pass request submitted", 201)

    @app.route("/api/gatepass/current", methods=["GET"], endpoint="gatepass_current")
    @roles_required(Role.RESIDENT)
    def current(actor):
        gate_pass = service.current_pass(actor=actor)
        return ok(gate_pass.to_dict() if gate_pass else None, "Current gate pass")

    @app.route("/api/gatepass/<int:pass_id>", methods=["GET"], endpoint="gatepass_detail")
    @login_required
    def detail(actor, pass_id: int):
        return ok(service.get_pass(pass_id=pass_id, actor=actor).to_dict(), "Gate pass retrieved")

    @app.route("/api/gatepass/<int:pass_id>/qr.png", methods=["GET"], endpoint="gatepass_qr_image")
    @login_required
    def qr_image(actor, pass_id: int):
        gate_pass = service.get_pass(pass_id=pass_id, actor=actor)
        if not gate_pass.qr_token:
            return fail("Gate pass has no QR code yet", 404)
        return send_file(render_qr_png(gate_pass.qr_token), mimetype="image/png")

    # ---------------- Supervisor ----------------
    @app.route("/api/gatepass/pending", methods=["GET"], endpoint="gatepass_pending")
    @roles_required(*_APPROVERS)
    def pending(actor):
        rows = service.list_pending_for_supervisor(actor=actor, include_guardian_pending=arg_flag("includeGuardian"))
        return ok(rows, "Pending gate passes")

    @app.route("/api/gatepass/all", methods=["GET"], endpoint="gatepass_all")
    @roles_required(*_STAFF)
    def all_passes(actor):
        resident_id = request.args.get("residentId", type=int)
        data = service.list_history(actor=actor, params=page_from_request(), resident_id=resident_id)
        return ok(data, "Gate passes retrieved")

    @app.route("/api/gatepass/<int:pass_id>/approve", methods=["PUT", "POST"], endpoint="gatepass_approve")
    @roles_required(*_APPROVERS)
    def approve(actor, pass_id: int):
        body = json_body()
        gate_pass = service.supervisor_approve(pass_id=pass_id, actor=actor, override=_override_from(actor, body))
        return ok(gate_pass.to_dict(), "Gate pass approved")

    @app.route("/api/gatepass/<int:pass_id>/reject", methods=["PUT", "POST"], endpoint="gatepass_reject")
    @roles_required(*_APPROVERS)
    def reject(actor, pass_id: int):
        body = json_body()
        gate_pass = service.supervisor_reject(
            pass_id=pass_id,
            actor=actor,
            reason=body.get("reason"),
            override=_override_from(actor, body),
        )
        return ok(gate_pass.to_dict(), "Gate pass rejected")

    # ---------------- Gate ----------------
    @app.route("/api/gatepass/validate", methods=["POST"], endpoint="gatepass_validate")
    @roles_required(*_GATE)
    def validate(actor):
        body = json_body()
        result = service.validate_token(qr_token=str(body.get("qrValue") or ""), actor=actor)
        payload = {
            "valid": result.valid,
            "outcome": result.outcome.value,
            "gatePass": result.gate_pass.to_dict() if result.gate_pass else None,
            "residentOutside": result.resident_outside,
        }
        # Non-valid outcomes are answers, not errors; the body says which.
        return ok(payload, result.message)

    @app.route("/api/gatepass/<int:pass_id>/exit", methods=["POST"], endpoint="gatepass_exit")
    @roles_required(*_GATE)
    def mark_exit(actor, pass_id: int):
        gate_pass = service.record_exit(pass_id=pass_id, actor=actor)
        return ok(gate_pass.to_dict(), "Exit recorded")

    @app.route("/api/gatepass/<int:pass_id>/entry", methods=["POST"], endpoint="gatepass_entry")
    @roles_required(*_GATE)
    def mark_entry(actor, pass_id: int):
        result = service.record_entry(pass_id=pass_id, actor=actor)
        message = f"Entry recorded ({result.late_note})" if result.is_late else "Entry recorded"
        data = {"gatePass": result.gate_pass.to_dict(), "isLate": result.is_late, "lateNote": result.late_note}
        return ok(data, message)

    @app.route("/api/gatepass/students-out", methods=["GET"], endpoint="gatepass_students_out")
    @roles_required(*_STAFF)
    def students_out(actor):
        return ok(service.students_outside(actor=actor), "Residents currently outside")

    @app.route("/api/gatepass/recent-entries", methods=["GET"], endpoint="gatepass_recent_entries")
    @roles_required(*_STAFF)
    def recent_entries(actor):
        return ok(service.todays_entries(actor=actor), "Today's entries")

    @app.route("/api/gatepass/logs", methods=["GET"], endpoint="gatepass_logs")
    @roles_required(*_STAFF)
    def logs(actor):
        data = container.activity_log_service.list_events(
            actor=actor, params=page_from_request(default_limit=DEFAULT_LOG_PAGE_LIMIT)
        )
        return ok(data, "Gate logs retrieved")

    @app.route("/api/gatepass/logs/resident/<int:resident_id>", methods=["GET"], endpoint="gatepass_resident_logs")
    @login_required
    def resident_logs(actor, resident_id: int):
        # residents always get their own ledger, whatever id they ask for
        limit = page_from_request(default_limit=DEFAULT_LOG_PAGE_LIMIT).limit
        rows = container.activity_log_service.list_for_resident(actor=actor, resident_id=resident_id, limit=limit)
        return ok(rows, "Gate logs retrieved")

    @app.route("/api/gatepass/<int:pass_id>/logs", methods=["GET"], endpoint="gatepass_pass_logs")
    @roles_required(*_STAFF)
    def pass_logs(actor, pass_id: int):
        return ok(container.activity_log_service.list_for_pass(actor=actor, pass_id=pass_id), "Gate logs retrieved")
