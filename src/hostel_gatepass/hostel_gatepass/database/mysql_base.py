from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, List, Optional

import pytz
from mysql.connector import errorcode
from mysql.connector.errors import IntegrityError

from ..common.datetime_utils import ensure_utc
from ..core.exceptions import DuplicateKeyError
from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except IntegrityError as exc:
        conn.rollback()
        if exc.errno == errorcode.ER_DUP_ENTRY:
            raise DuplicateKeyError(str(exc.msg), key=duplicate_key_name(str(exc.msg))) from exc
        raise
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def duplicate_key_name(message: str) -> Optional[str]:
    """Extract the index name from "Duplicate entry 'x' for key 'table.uq_name'"."""
    marker = "for key '"
    idx = message.rfind(marker)
    if idx < 0:
        return None
    key = message[idx + len(marker):].rstrip("'")
    return key.split(".")[-1]


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def to_db_datetime(value: Optional[datetime]) -> Optional[datetime]:
    """Aware datetime -> naive UTC for DATETIME columns."""
    if value is None:
        return None
    return ensure_utc(value).replace(tzinfo=None)


def from_db_datetime(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    return pytz.utc.localize(value) if value.tzinfo is None else value.astimezone(pytz.utc)


def in_clause(values) -> str:
    return ",".join(["%s"] * len(values))
