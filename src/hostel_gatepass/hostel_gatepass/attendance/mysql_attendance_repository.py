from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Mapping, Optional, Sequence

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_db_datetime, in_clause, to_db_datetime
from .model import AttendanceRecord
from .repository import AttendanceRepository

_COLUMNS = (
    "record_id, resident_id, attendance_date, marked_at, latitude, longitude, "
    "distance_meters, manual_entry, marked_by"
)


def _row_to_record(r: dict) -> AttendanceRecord:
    return AttendanceRecord(
        record_id=int(r["record_id"]),
        resident_id=int(r["resident_id"]),
        attendance_date=r["attendance_date"],
        marked_at=from_db_datetime(r["marked_at"]),
        latitude=float(r["latitude"]) if r.get("latitude") is not None else None,
        longitude=float(r["longitude"]) if r.get("longitude") is not None else None,
        distance_meters=int(r["distance_meters"]) if r.get("distance_meters") is not None else None,
        manual_entry=bool(r.get("manual_entry")),
        marked_by=int(r["marked_by"]) if r.get("marked_by") is not None else None,
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def insert(
        self,
        *,
        resident_id: int,
        attendance_date: date,
        marked_at: datetime,
        latitude: Optional[float],
        longitude: Optional[float],
        distance_meters: Optional[int],
        manual_entry: bool,
        marked_by: Optional[int],
    ) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO attendance_records(
                    resident_id, attendance_date, marked_at, latitude, longitude,
                    distance_meters, manual_entry, marked_by
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    int(resident_id),
                    attendance_date,
                    to_db_datetime(marked_at),
                    latitude,
                    longitude,
                    distance_meters,
                    1 if manual_entry else 0,
                    marked_by,
                ),
            )
            return int(cur.lastrowid)

    def get(self, record_id: int) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM attendance_records WHERE record_id=%s", (int(record_id),))
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def get_for_day(self, *, resident_id: int, attendance_date: date) -> Optional[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_records WHERE resident_id=%s AND attendance_date=%s",
                (int(resident_id), attendance_date),
            )
            r = fetchone(cur)
            return _row_to_record(r) if r else None

    def get_for_day_many(self, *, resident_ids: Iterable[int], attendance_date: date) -> Mapping[int, AttendanceRecord]:
        ids = [int(i) for i in resident_ids]
        if not ids:
            return {}
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM attendance_records
                WHERE attendance_date=%s AND resident_id IN ({in_clause(ids)})
                """,
                tuple([attendance_date] + ids),
            )
            return {int(r["resident_id"]): _row_to_record(r) for r in fetchall(cur)}

    def list_history(self, *, resident_id: int, limit: int = 20, offset: int = 0) -> Sequence[AttendanceRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM attendance_records
                WHERE resident_id=%s
                ORDER BY attendance_date DESC
                LIMIT %s OFFSET %s
                """,
                (int(resident_id), int(limit), int(offset)),
            )
            return [_row_to_record(r) for r in fetchall(cur)]

    def count_history(self, *, resident_id: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT COUNT(*) AS n FROM attendance_records WHERE resident_id=%s", (int(resident_id),))
            return int(fetchone(cur)["n"])

    def count_between(self, *, resident_id: int, start: date, end: date) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT COUNT(*) AS n FROM attendance_records
                WHERE resident_id=%s AND attendance_date BETWEEN %s AND %s
                """,
                (int(resident_id), start, end),
            )
            return int(fetchone(cur)["n"])

    @staticmethod
    def _roster_filter(attendance_date: Optional[date], resident_id: Optional[int]) -> tuple[str, list[object]]:
        clauses = ["1=1"]
        params: list[object] = []
        if attendance_date is not None:
            clauses.append("attendance_date=%s")
            params.append(attendance_date)
        if resident_id is not None:
            clauses.append("resident_id=%s")
            params.append(int(resident_id))
        return " AND ".join(clauses), params

    def list_roster(
        self,
        *,
        attendance_date: Optional[date] = None,
        resident_id: Optional[int] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[AttendanceRecord]:
        where, params = self._roster_filter(attendance_date, resident_id)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM attendance_records
                WHERE {where}
                ORDER BY marked_at DESC, record_id DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params + [int(limit), int(offset)]),
            )
            return [_row_to_record(r) for r in fetchall(cur)]

    def count_roster(self, *, attendance_date: Optional[date] = None, resident_id: Optional[int] = None) -> int:
        where, params = self._roster_filter(attendance_date, resident_id)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS n FROM attendance_records WHERE {where}", tuple(params))
            return int(fetchone(cur)["n"])
