from __future__ import annotations

from datetime import datetime
from typing import Optional, Sequence

from ..core.enums import GateAction
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_db_datetime, to_db_datetime
from .model import GatePassEvent
from .repository import ActivityLogRepository

_COLUMNS = "event_id, pass_id, resident_id, action, event_time, marked_by, is_late, note"


def insert_event(
    cur,
    *,
    pass_id: int,
    resident_id: int,
    action: GateAction,
    at: datetime,
    marked_by: int,
    is_late: bool = False,
    note: Optional[str] = None,
) -> int:
    """Append one event on an open cursor, so it commits with the caller's transaction."""
    cur.execute(
        """
        INSERT INTO gate_pass_events(pass_id, resident_id, action, event_time, marked_by, is_late, note)
        VALUES(%s,%s,%s,%s,%s,%s,%s)
        """,
        (int(pass_id), int(resident_id), action.value, to_db_datetime(at), int(marked_by), int(is_late), note),
    )
    return int(cur.lastrowid)


def _row_to_event(r: dict) -> GatePassEvent:
    return GatePassEvent(
        event_id=int(r["event_id"]),
        pass_id=int(r["pass_id"]),
        resident_id=int(r["resident_id"]),
        action=GateAction(r["action"]),
        event_time=from_db_datetime(r["event_time"]),
        marked_by=int(r["marked_by"]),
        is_late=bool(r.get("is_late")),
        note=r.get("note"),
    )


class MySQLActivityLogRepository(ActivityLogRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_events(self, *, limit: int, offset: int = 0) -> Sequence[GatePassEvent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM gate_pass_events
                ORDER BY event_time DESC, event_id DESC
                LIMIT %s OFFSET %s
                """,
                (int(limit), int(offset)),
            )
            return [_row_to_event(r) for r in fetchall(cur)]

    def count_events(self) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM gate_pass_events")
            return int(fetchone(cur)["n"])

    def list_for_pass(self, pass_id: int) -> Sequence[GatePassEvent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM gate_pass_events WHERE pass_id=%s ORDER BY event_time DESC, event_id DESC",
                (int(pass_id),),
            )
            return [_row_to_event(r) for r in fetchall(cur)]

    def list_for_resident(self, resident_id: int, *, limit: int) -> Sequence[GatePassEvent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM gate_pass_events
                WHERE resident_id=%s
                ORDER BY event_time DESC, event_id DESC
                LIMIT %s
                """,
                (int(resident_id), int(limit)),
            )
            return [_row_to_event(r) for r in fetchall(cur)]
