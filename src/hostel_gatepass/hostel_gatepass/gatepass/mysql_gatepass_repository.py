from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Sequence

from ..activity.mysql_activity_log_repository import insert_event
from ..core.enums import GateAction, PassStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_db_datetime, in_clause, to_db_datetime
from .model import GatePass
from .repository import GatePassRepository

_COLUMNS = """
    pass_id, resident_id, reason, from_date, to_date, status, created_at, qr_token,
    guardian_approved_by, guardian_approved_at, guardian_rejection_reason,
    approved_by, approved_at, rejected_by, rejection_reason,
    validated_by, validated_at, exit_time, exit_marked_by, entry_time, entry_marked_by
"""


def _row_to_pass(r: dict) -> GatePass:
    return GatePass(
        pass_id=int(r["pass_id"]),
        resident_id=int(r["resident_id"]),
        reason=r["reason"],
        from_date=from_db_datetime(r["from_date"]),
        to_date=from_db_datetime(r["to_date"]),
        status=PassStatus(r["status"]),
        created_at=from_db_datetime(r["created_at"]),
        qr_token=r.get("qr_token"),
        guardian_approved_by=r.get("guardian_approved_by"),
        guardian_approved_at=from_db_datetime(r.get("guardian_approved_at")),
        guardian_rejection_reason=r.get("guardian_rejection_reason"),
        approved_by=r.get("approved_by"),
        approved_at=from_db_datetime(r.get("approved_at")),
        rejected_by=r.get("rejected_by"),
        rejection_reason=r.get("rejection_reason"),
        validated_by=r.get("validated_by"),
        validated_at=from_db_datetime(r.get("validated_at")),
        exit_time=from_db_datetime(r.get("exit_time")),
        exit_marked_by=r.get("exit_marked_by"),
        entry_time=from_db_datetime(r.get("entry_time")),
        entry_marked_by=r.get("entry_marked_by"),
    )


def _values(statuses: Sequence[PassStatus]) -> list[str]:
    return [s.value for s in statuses]


class MySQLGatePassRepository(GatePassRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def create(
        self,
        *,
        resident_id: int,
        reason: str,
        from_date: datetime,
        to_date: datetime,
        status: PassStatus,
        created_at: datetime,
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO gate_passes(resident_id, reason, from_date, to_date, status, created_at)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(resident_id),
                    reason,
                    to_db_datetime(from_date),
                    to_db_datetime(to_date),
                    status.value,
                    to_db_datetime(created_at),
                ),
            )
            return int(cur.lastrowid)

    def get(self, pass_id: int) -> Optional[GatePass]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM gate_passes WHERE pass_id=%s", (int(pass_id),))
            r = fetchone(cur)
            return _row_to_pass(r) if r else None

    def get_approved_by_token(self, qr_token: str) -> Optional[GatePass]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM gate_passes WHERE qr_token=%s AND status=%s",
                (qr_token, PassStatus.APPROVED.value),
            )
            r = fetchone(cur)
            return _row_to_pass(r) if r else None

    def count_pending(self, *, resident_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT COUNT(*) AS n FROM gate_passes WHERE resident_id=%s AND status IN (%s,%s)",
                (int(resident_id), PassStatus.PENDING_GUARDIAN.value, PassStatus.PENDING_SUPERVISOR.value),
            )
            return int(fetchone(cur)["n"])

    def find_overlapping(
        self, *, resident_id: int, from_date: datetime, to_date: datetime, statuses: Sequence[PassStatus]
    ) -> Optional[GatePass]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM gate_passes
                WHERE resident_id=%s
                  AND status IN ({in_clause(statuses)})
                  AND from_date < %s AND %s < to_date
                LIMIT 1
                """,
                tuple([int(resident_id)] + _values(statuses) + [to_db_datetime(to_date), to_db_datetime(from_date)]),
            )
            r = fetchone(cur)
            return _row_to_pass(r) if r else None

    def guardian_approve(self, *, pass_id: int, guardian_id: int, at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE gate_passes
                SET status=%s, guardian_approved_by=%s, guardian_approved_at=%s
                WHERE pass_id=%s AND status=%s
                """,
                (
                    PassStatus.PENDING_SUPERVISOR.value,
                    int(guardian_id),
                    to_db_datetime(at),
                    int(pass_id),
                    PassStatus.PENDING_GUARDIAN.value,
                ),
            )
            return cur.rowcount > 0

    def guardian_reject(self, *, pass_id: int, guardian_id: int, reason: str, at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE gate_passes
                SET status=%s, guardian_approved_by=%s, guardian_approved_at=%s, guardian_rejection_reason=%s
                WHERE pass_id=%s AND status=%s
                """,
                (
                    PassStatus.REJECTED.value,
                    int(guardian_id),
                    to_db_datetime(at),
                    reason,
                    int(pass_id),
                    PassStatus.PENDING_GUARDIAN.value,
                ),
            )
            return cur.rowcount > 0

    def approve(
        self, *, pass_id: int, expected: Sequence[PassStatus], qr_token: str, approved_by: int, at: datetime
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                UPDATE gate_passes
                SET status=%s, qr_token=%s, approved_by=%s, approved_at=%s
                WHERE pass_id=%s AND status IN ({in_clause(expected)}) AND qr_token IS NULL
                """,
                tuple(
                    [PassStatus.APPROVED.value, qr_token, int(approved_by), to_db_datetime(at), int(pass_id)]
                    + _values(expected)
                ),
            )
            return cur.rowcount > 0

    def reject(
        self, *, pass_id: int, expected: Sequence[PassStatus], rejected_by: int, reason: str, at: datetime
    ) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                UPDATE gate_passes
                SET status=%s, rejected_by=%s, rejection_reason=%s
                WHERE pass_id=%s AND status IN ({in_clause(expected)})
                """,
                tuple([PassStatus.REJECTED.value, int(rejected_by), reason, int(pass_id)] + _values(expected)),
            )
            return cur.rowcount > 0

    def stamp_validation(self, *, pass_id: int, validated_by: int, at: datetime) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE gate_passes SET validated_by=%s, validated_at=%s WHERE pass_id=%s",
                (int(validated_by), to_db_datetime(at), int(pass_id)),
            )

    def mark_exit(self, *, pass_id: int, marked_by: int, at: datetime) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE gate_passes
                SET exit_time=%s, exit_marked_by=%s, entry_time=NULL, entry_marked_by=NULL
                WHERE pass_id=%s AND status=%s AND to_date >= %s
                  AND NOT (exit_time IS NOT NULL AND entry_time IS NULL)
                """,
                (to_db_datetime(at), int(marked_by), int(pass_id), PassStatus.APPROVED.value, to_db_datetime(at)),
            )
            if cur.rowcount == 0:
                return False
            cur.execute("SELECT resident_id FROM gate_passes WHERE pass_id=%s", (int(pass_id),))
            resident_id = int(fetchone(cur)["resident_id"])
            insert_event(cur, pass_id=pass_id, resident_id=resident_id, action=GateAction.EXIT, at=at, marked_by=marked_by)
            return True

    def mark_entry(self, *, pass_id: int, marked_by: int, at: datetime, is_late: bool, note: Optional[str]) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE gate_passes
                SET entry_time=%s, entry_marked_by=%s
                WHERE pass_id=%s AND exit_time IS NOT NULL AND entry_time IS NULL
                """,
                (to_db_datetime(at), int(marked_by), int(pass_id)),
            )
            if cur.rowcount == 0:
                return False
            cur.execute("SELECT resident_id FROM gate_passes WHERE pass_id=%s", (int(pass_id),))
            resident_id = int(fetchone(cur)["resident_id"])
            insert_event(
                cur,
                pass_id=pass_id,
                resident_id=resident_id,
                action=GateAction.ENTRY,
                at=at,
                marked_by=marked_by,
                is_late=is_late,
                note=note,
            )
            return True

    def list_by_status(
        self,
        *,
        statuses: Sequence[PassStatus],
        resident_ids: Optional[Iterable[int]] = None,
        limit: int = 200,
    ) -> Sequence[GatePass]:
        clauses = [f"status IN ({in_clause(statuses)})"]
        params: list[object] = _values(statuses)
        if resident_ids is not None:
            ids = [int(i) for i in resident_ids]
            if not ids:
                return []
            clauses.append(f"resident_id IN ({in_clause(ids)})")
            params.extend(ids)
        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM gate_passes WHERE {where} ORDER BY created_at DESC, pass_id DESC LIMIT %s",
                tuple(params + [int(limit)]),
            )
            return [_row_to_pass(r) for r in fetchall(cur)]

    def count_by_status(self, *, statuses: Sequence[PassStatus]) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT COUNT(*) AS n FROM gate_passes WHERE status IN ({in_clause(statuses)})",
                tuple(_values(statuses)),
            )
            return int(fetchone(cur)["n"])

    def _resident_filter(self, resident_ids: Optional[Iterable[int]]) -> tuple[str, list[object]]:
        if resident_ids is None:
            return "1=1", []
        ids = [int(i) for i in resident_ids]
        if not ids:
            return "1=0", []
        return f"resident_id IN ({in_clause(ids)})", list(ids)

    def list_history(
        self, *, resident_ids: Optional[Iterable[int]] = None, limit: int = 20, offset: int = 0
    ) -> Sequence[GatePass]:
        where, params = self._resident_filter(resident_ids)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM gate_passes
                WHERE {where}
                ORDER BY created_at DESC, pass_id DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params + [int(limit), int(offset)]),
            )
            return [_row_to_pass(r) for r in fetchall(cur)]

    def count_history(self, *, resident_ids: Optional[Iterable[int]] = None) -> int:
        where, params = self._resident_filter(resident_ids)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS n FROM gate_passes WHERE {where}", tuple(params))
            return int(fetchone(cur)["n"])

    def find_current(self, *, resident_id: int, at: datetime) -> Optional[GatePass]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM gate_passes
                WHERE resident_id=%s AND status=%s AND from_date <= %s AND to_date >= %s
                ORDER BY from_date
                LIMIT 1
                """,
                (int(resident_id), PassStatus.APPROVED.value, to_db_datetime(at), to_db_datetime(at)),
            )
            r = fetchone(cur)
            return _row_to_pass(r) if r else None

    def list_outside(self) -> Sequence[GatePass]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM gate_passes
                WHERE exit_time IS NOT NULL AND entry_time IS NULL
                ORDER BY exit_time DESC
                """
            )
            return [_row_to_pass(r) for r in fetchall(cur)]

    def list_entries_since(self, since: datetime) -> Sequence[GatePass]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM gate_passes WHERE entry_time >= %s ORDER BY entry_time DESC",
                (to_db_datetime(since),),
            )
            return [_row_to_pass(r) for r in fetchall(cur)]
