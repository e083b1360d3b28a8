from __future__ import annotations

from ..common.pagination import PageParams, page_meta
from ..core.actor import Actor, require_role
from ..core.enums import Role
from ..users.repository import UserRepository
from .repository import ActivityLogRepository

_STAFF = (Role.GATE_STAFF, Role.SUPERVISOR, Role.ADMIN)


class ActivityLogService:
    """Audit queries over the exit/entry ledger."""

    def __init__(self, events: ActivityLogRepository, users: UserRepository):
        self._events = events
        self._users = users

    def list_events(self, *, actor: Actor, params: PageParams) -> dict:
        require_role(actor, *_STAFF)
        events = self._events.list_events(limit=params.limit, offset=params.offset)
        total = self._events.count_events()
        users = self._users.get_many({e.resident_id for e in events} | {e.marked_by for e in events})

        rows: list[dict] = []
        for e in events:
            row = e.to_dict()
            resident = users.get(e.resident_id)
            marker = users.get(e.marked_by)
            row["resident"] = resident.summary() if resident else None
            row["markedByName"] = marker.full_name if marker else None
            rows.append(row)
        return {"logs": rows, "pagination": page_meta(total, params).as_dict()}

    def list_for_pass(self, *, actor: Actor, pass_id: int) -> list[dict]:
        require_role(actor, *_STAFF)
        return [e.to_dict() for e in self._events.list_for_pass(int(pass_id))]

    def list_for_resident(self, *, actor: Actor, resident_id: int, limit: int = 50) -> list[dict]:
        if actor.role == Role.RESIDENT:
            resident_id = actor.user_id
        else:
            require_role(actor, *_STAFF)
        return [e.to_dict() for e in self._events.list_for_resident(int(resident_id), limit=int(limit))]
