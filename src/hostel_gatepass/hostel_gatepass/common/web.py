from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Optional

from flask import Flask, jsonify, request, session

from ..core.actor import Actor
from ..core.enums import Role
from ..core.exceptions import (
    AuthorizationError,
    DomainError,
    DuplicateKeyError,
    InvalidTransitionError,
    NotFoundError,
    OutsideGeofenceError,
    ValidationError,
)
from .pagination import PageParams, page_params

logger = logging.getLogger(__name__)

# Most specific first; OutsideGeofenceError is a ValidationError.
_STATUS_BY_ERROR = (
    (OutsideGeofenceError, 403),
    (AuthorizationError, 403),
    (NotFoundError, 404),
    (InvalidTransitionError, 409),
    (DuplicateKeyError, 409),
    (ValidationError, 400),
)


def status_for(exc: DomainError) -> int:
    for kind, status in _STATUS_BY_ERROR:
        if isinstance(exc, kind):
            return status
    return 400


def ok(data: Any = None, message: str = "OK", status: int = 200):
    return jsonify({"success": True, "message": message, "data": data}), status


def fail(message: str, status: int):
    return jsonify({"success": False, "message": message}), status


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(DomainError)
    def _domain_error(exc: DomainError):
        return fail(str(exc), status_for(exc))

    @app.errorhandler(Exception)
    def _unexpected(exc: Exception):
        # Let Flask render its own HTTP errors (404 route, 405, ...).
        code = getattr(exc, "code", None)
        if isinstance(code, int):
            return fail(getattr(exc, "description", str(exc)), code)
        logger.exception("Unhandled error on %s %s", request.method, request.path)
        return fail("Internal server error", 500)


def current_actor() -> Optional[Actor]:
    """Actor from the session populated by the external auth layer."""
    if "user_id" not in session or "role" not in session:
        return None
    try:
        return Actor(user_id=int(session["user_id"]), role=Role(session["role"]))
    except (TypeError, ValueError):
        return None


def login_required(view):
    @wraps(view)
    def wrapper(*args, **kwargs):
        actor = current_actor()
        if actor is None:
            return fail("Authentication required", 401)
        return view(actor, *args, **kwargs)

    return wrapper


def roles_required(*roles: Role):
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            actor = current_actor()
            if actor is None:
                return fail("Authentication required", 401)
            if actor.role not in roles:
                return fail("You do not have permission for this action", 403)
            return view(actor, *args, **kwargs)

        return wrapper

    return decorator


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def page_from_request(default_limit: int = 20) -> PageParams:
    return page_params(request.args.get("page"), request.args.get("limit"), default_limit=default_limit)


def arg_flag(name: str) -> bool:
    return (request.args.get(name) or "").strip().lower() in ("1", "true", "yes")
