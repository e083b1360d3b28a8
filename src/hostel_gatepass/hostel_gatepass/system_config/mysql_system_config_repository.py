from __future__ import annotations

import json
from typing import Optional

from ..core.constants import SYSTEM_CONFIG_ID
from ..core.enums import ContactKind
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone, from_db_datetime, to_db_datetime
from .model import AttendanceWindow, EmergencyContact, PassPolicy, ReferencePoint, SystemConfig
from .repository import SystemConfigRepository


class MySQLSystemConfigRepository(SystemConfigRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get(self) -> Optional[SystemConfig]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT ref_latitude, ref_longitude, ref_name, geofence_radius_meters,
                       window_enabled, window_start_hour, window_end_hour, window_timezone,
                       max_gate_pass_days, max_pending_passes, attendance_grace_minutes,
                       emergency_contacts, updated_at, updated_by
                FROM system_config
                WHERE config_id=%s
                """,
                (SYSTEM_CONFIG_ID,),
            )
            r = fetchone(cur)
            if not r:
                return None
            contacts = json.loads(r.get("emergency_contacts") or "[]")
            return SystemConfig(
                reference=ReferencePoint(
                    latitude=float(r["ref_latitude"]),
                    longitude=float(r["ref_longitude"]),
                    name=r["ref_name"],
                ),
                geofence_radius_meters=float(r["geofence_radius_meters"]),
                attendance_window=AttendanceWindow(
                    enabled=bool(r["window_enabled"]),
                    start_hour=int(r["window_start_hour"]),
                    end_hour=int(r["window_end_hour"]),
                    timezone=r["window_timezone"],
                ),
                policy=PassPolicy(
                    max_gate_pass_days=int(r["max_gate_pass_days"]),
                    max_pending_passes=int(r["max_pending_passes"]),
                    attendance_grace_minutes=int(r["attendance_grace_minutes"]),
                ),
                emergency_contacts=tuple(
                    EmergencyContact(name=c["name"], phone=c["phone"], kind=ContactKind(c["type"])) for c in contacts
                ),
                updated_at=from_db_datetime(r.get("updated_at")),
                updated_by=r.get("updated_by"),
            )

    def save(self, config: SystemConfig) -> None:
        contacts = json.dumps(
            [{"name": c.name, "phone": c.phone, "type": c.kind.value} for c in config.emergency_contacts]
        )
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO system_config(
                    config_id, ref_latitude, ref_longitude, ref_name, geofence_radius_meters,
                    window_enabled, window_start_hour, window_end_hour, window_timezone,
                    max_gate_pass_days, max_pending_passes, attendance_grace_minutes,
                    emergency_contacts, updated_at, updated_by
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    ref_latitude=VALUES(ref_latitude), ref_longitude=VALUES(ref_longitude),
                    ref_name=VALUES(ref_name), geofence_radius_meters=VALUES(geofence_radius_meters),
                    window_enabled=VALUES(window_enabled), window_start_hour=VALUES(window_start_hour),
                    window_end_hour=VALUES(window_end_hour), window_timezone=VALUES(window_timezone),
                    max_gate_pass_days=VALUES(max_gate_pass_days), max_pending_passes=VALUES(max_pending_passes),
                    attendance_grace_minutes=VALUES(attendance_grace_minutes),
                    emergency_contacts=VALUES(emergency_contacts),
                    updated_at=VALUES(updated_at), updated_by=VALUES(updated_by)
                """,
                (
                    SYSTEM_CONFIG_ID,
                    config.reference.latitude,
                    config.reference.longitude,
                    config.reference.name,
                    config.geofence_radius_meters,
                    int(config.attendance_window.enabled),
                    config.attendance_window.start_hour,
                    config.attendance_window.end_hour,
                    config.attendance_window.timezone,
                    config.policy.max_gate_pass_days,
                    config.policy.max_pending_passes,
                    config.policy.attendance_grace_minutes,
                    contacts,
                    to_db_datetime(config.updated_at),
                    config.updated_by,
                ),
            )
