from __future__ import annotations

from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor


class MySQLNotificationDispatcher:
    """In-app channel: one row per notification, read by the mobile client."""

    def __init__(self, conn_factory: DatabaseConnection, *, kind: str = "gatepass"):
        self._conn_factory = conn_factory
        self._kind = kind

    def notify(
        self,
        user_id: int,
        title: str,
        body: str,
        link: Optional[str] = None,
        related_id: Optional[int] = None,
    ) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO notifications(user_id, kind, title, body, link, related_id)
                VALUES(%s,%s,%s,%s,%s,%s)
                """,
                (int(user_id), self._kind, title, body, link, related_id),
            )
