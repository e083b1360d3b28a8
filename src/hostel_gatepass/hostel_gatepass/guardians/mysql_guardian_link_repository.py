from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import LinkStatus, Relationship
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone, from_db_datetime
from .model import GuardianLink
from .repository import GuardianLinkRepository

_COLUMNS = "link_id, guardian_id, resident_id, relationship, linked_by, status, created_at"


def _row_to_link(r: dict) -> GuardianLink:
    return GuardianLink(
        link_id=int(r["link_id"]),
        guardian_id=int(r["guardian_id"]),
        resident_id=int(r["resident_id"]),
        relationship=Relationship(r["relationship"]),
        linked_by=int(r["linked_by"]),
        status=LinkStatus(r["status"]),
        created_at=from_db_datetime(r.get("created_at")),
    )


class MySQLGuardianLinkRepository(GuardianLinkRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self, link_id: int) -> Optional[GuardianLink]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_COLUMNS} FROM guardian_links WHERE link_id=%s", (int(link_id),))
            r = fetchone(cur)
            return _row_to_link(r) if r else None

    def find_pair(self, *, guardian_id: int, resident_id: int) -> Optional[GuardianLink]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM guardian_links WHERE guardian_id=%s AND resident_id=%s",
                (int(guardian_id), int(resident_id)),
            )
            r = fetchone(cur)
            return _row_to_link(r) if r else None

    def create(self, *, guardian_id: int, resident_id: int, relationship: Relationship, linked_by: int) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO guardian_links(guardian_id, resident_id, relationship, linked_by, status)
                VALUES(%s,%s,%s,%s,%s)
                """,
                (int(guardian_id), int(resident_id), relationship.value, int(linked_by), LinkStatus.ACTIVE.value),
            )
            return int(cur.lastrowid)

    def reactivate(self, *, link_id: int, relationship: Relationship, linked_by: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE guardian_links
                SET status=%s, relationship=%s, linked_by=%s
                WHERE link_id=%s AND status=%s
                """,
                (LinkStatus.ACTIVE.value, relationship.value, int(linked_by), int(link_id), LinkStatus.INACTIVE.value),
            )
            return cur.rowcount > 0

    def deactivate(self, *, link_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE guardian_links SET status=%s WHERE link_id=%s AND status=%s",
                (LinkStatus.INACTIVE.value, int(link_id), LinkStatus.ACTIVE.value),
            )
            return cur.rowcount > 0

    def has_active_link(self, *, guardian_id: int, resident_id: int) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT 1 AS ok FROM guardian_links
                WHERE guardian_id=%s AND resident_id=%s AND status=%s
                """,
                (int(guardian_id), int(resident_id), LinkStatus.ACTIVE.value),
            )
            return fetchone(cur) is not None

    def active_guardian_ids(self, *, resident_id: int) -> Sequence[int]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT guardian_id FROM guardian_links WHERE resident_id=%s AND status=%s ORDER BY link_id",
                (int(resident_id), LinkStatus.ACTIVE.value),
            )
            return [int(r["guardian_id"]) for r in fetchall(cur)]

    def active_links_for_guardian(self, *, guardian_id: int) -> Sequence[GuardianLink]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM guardian_links WHERE guardian_id=%s AND status=%s ORDER BY link_id",
                (int(guardian_id), LinkStatus.ACTIVE.value),
            )
            return [_row_to_link(r) for r in fetchall(cur)]

    def list_links(self, *, status: Optional[LinkStatus] = None, limit: int = 20, offset: int = 0) -> Sequence[GuardianLink]:
        clauses = ["1=1"]
        params: list[object] = []
        if status is not None:
            clauses.append("status=%s")
            params.append(status.value)
        where = " AND ".join(clauses)

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_COLUMNS} FROM guardian_links
                WHERE {where}
                ORDER BY created_at DESC, link_id DESC
                LIMIT %s OFFSET %s
                """,
                tuple(params + [int(limit), int(offset)]),
            )
            return [_row_to_link(r) for r in fetchall(cur)]

    def count_links(self, *, status: Optional[LinkStatus] = None) -> int:
        with db_cursor(self._conn_factory) as (_, cur):
            if status is None:
                cur.execute("SELECT COUNT(*) AS n FROM guardian_links")
            else:
                cur.execute("SELECT COUNT(*) AS n FROM guardian_links WHERE status=%s", (status.value,))
            return int(fetchone(cur)["n"])
