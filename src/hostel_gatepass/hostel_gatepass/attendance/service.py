from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional

from ..common.datetime_utils import ensure_utc, local_date, now_utc
from ..common.pagination import PageParams, page_meta
from ..core.actor import Actor, require_role
from ..core.enums import Role
from ..core.exceptions import AuthorizationError, DuplicateKeyError, NotFoundError, OutsideGeofenceError, OutsideWindowError
from ..geo.geofence import GeoPoint, evaluate_fence, validate_coordinates
from ..guardians.service import GuardianLinkRegistry
from ..system_config.service import SystemConfigService
from ..users.repository import UserRepository
from .model import AttendanceRecord, MarkResult
from .repository import AttendanceRepository
from .window import describe_window, is_within_window

logger = logging.getLogger(__name__)


class AttendanceRecorder:
    """Daily presence check: at most one record per resident per facility-local day."""

    def __init__(
        self,
        records: AttendanceRepository,
        users: UserRepository,
        links: GuardianLinkRegistry,
        configs: SystemConfigService,
    ):
        self._records = records
        self._users = users
        self._links = links
        self._configs = configs

    def mark(self, *, actor: Actor, latitude: object, longitude: object, now: Optional[datetime] = None) -> MarkResult:
        """Geofence, then window, then insert.

        Raises OutsideGeofenceError / OutsideWindowError; a repeat mark on the
        same day returns the existing record with already_marked=True.
        """
        require_role(actor, Role.RESIDENT, message="Only residents can mark attendance")
        now = ensure_utc(now or now_utc())
        point = validate_coordinates(latitude, longitude)
        config = self._configs.get()

        center = GeoPoint(latitude=config.reference.latitude, longitude=config.reference.longitude)
        fence = evaluate_fence(point, center, config.geofence_radius_meters)
        if not fence.inside:
            radius = _format_meters(config.geofence_radius_meters)
            raise OutsideGeofenceError(
                fence.distance_meters,
                config.geofence_radius_meters,
                f"You are {fence.distance_meters}m away from the hostel. "
                f"Please come within {radius}m of the hostel to mark attendance.",
            )

        window = config.attendance_window
        if not is_within_window(now, window, config.policy.attendance_grace_minutes).allowed:
            raise OutsideWindowError(f"Attendance can only be marked {describe_window(window)}.")

        result = self._insert(
            resident_id=actor.user_id,
            now=now,
            tz_name=window.timezone,
            latitude=point.latitude,
            longitude=point.longitude,
            distance_meters=fence.distance_meters,
            manual_entry=False,
            marked_by=None,
        )
        if not result.already_marked:
            logger.info("Attendance marked for resident %s at %sm", actor.user_id, fence.distance_meters)
        return result

    def manual_mark(self, *, actor: Actor, resident_id: int, now: Optional[datetime] = None) -> MarkResult:
        """Staff entry with no coordinates; same one-per-day rule."""
        require_role(actor, Role.SUPERVISOR, Role.ADMIN, message="Only staff can mark attendance manually")
        now = ensure_utc(now or now_utc())
        resident = self._users.get_by_id(int(resident_id))
        if not resident or resident.role != Role.RESIDENT:
            raise NotFoundError("Resident not found")

        config = self._configs.get()
        result = self._insert(
            resident_id=resident.user_id,
            now=now,
            tz_name=config.attendance_window.timezone,
            latitude=None,
            longitude=None,
            distance_meters=None,
            manual_entry=True,
            marked_by=actor.user_id,
        )
        if not result.already_marked:
            logger.info("Manual attendance for resident %s by %s", resident.user_id, actor.user_id)
        return result

    def today_status(self, *, actor: Actor, now: Optional[datetime] = None) -> dict:
        require_role(actor, Role.RESIDENT)
        now = ensure_utc(now or now_utc())
        config = self._configs.get()
        window = config.attendance_window
        record = self._records.get_for_day(resident_id=actor.user_id, attendance_date=local_date(now, window.timezone))
        return {
            "marked": record is not None,
            "attendance": record.to_dict() if record else None,
            "geofence": {
                "hostelName": config.reference.name,
                "radiusMeters": config.geofence_radius_meters,
                "attendanceWindow": (
                    {"start": window.start_hour, "end": window.end_hour, "timezone": window.timezone}
                    if window.enabled
                    else None
                ),
            },
        }

    def history(self, *, actor: Actor, params: PageParams) -> dict:
        require_role(actor, Role.RESIDENT)
        return self._page(actor.user_id, params)

    def monthly_stats(self, *, actor: Actor, now: Optional[datetime] = None) -> dict:
        """Present/absent over the days of the current month elapsed so far."""
        require_role(actor, Role.RESIDENT)
        now = ensure_utc(now or now_utc())
        today = local_date(now, self._configs.get().attendance_window.timezone)
        first = today.replace(day=1)

        total = today.day
        present = min(total, self._records.count_between(resident_id=actor.user_id, start=first, end=today))
        return {
            "present": present,
            "absent": total - present,
            "total": total,
            "percentage": round(present / total * 100) if total else 0,
            "month": today.strftime("%B %Y"),
        }

    def child_history(
        self, *, actor: Actor, resident_id: int, params: PageParams, now: Optional[datetime] = None
    ) -> dict:
        require_role(actor, Role.GUARDIAN)
        if not self._links.has_active_link(actor.user_id, int(resident_id)):
            raise AuthorizationError("You are not authorized to view this resident's attendance")
        now = ensure_utc(now or now_utc())
        today = local_date(now, self._configs.get().attendance_window.timezone)

        data = self._page(int(resident_id), params)
        todays = self._records.get_for_day(resident_id=int(resident_id), attendance_date=today)
        data["todayMarked"] = todays is not None
        data["todayAttendance"] = todays.to_dict() if todays else None
        return data

    def children_today(self, *, actor: Actor, now: Optional[datetime] = None) -> list[dict]:
        require_role(actor, Role.GUARDIAN)
        now = ensure_utc(now or now_utc())
        today = local_date(now, self._configs.get().attendance_window.timezone)

        resident_ids = list(self._links.linked_resident_ids(actor.user_id))
        users = self._users.get_many(resident_ids)
        marked = self._records.get_for_day_many(resident_ids=resident_ids, attendance_date=today)

        out: list[dict] = []
        for resident_id in resident_ids:
            user = users.get(resident_id)
            if not user:
                continue
            record = marked.get(resident_id)
            out.append(
                {
                    "resident": user.summary(),
                    "markedToday": record is not None,
                    "attendanceTime": record.marked_at.isoformat() if record else None,
                }
            )
        return out

    def list_for_staff(
        self,
        *,
        actor: Actor,
        params: PageParams,
        day: Optional[date] = None,
        resident_id: Optional[int] = None,
    ) -> dict:
        """Roster across all residents, newest mark first, each row carrying its resident."""
        require_role(actor, Role.SUPERVISOR, Role.ADMIN)
        resident_id = int(resident_id) if resident_id is not None else None
        records = self._records.list_roster(
            attendance_date=day, resident_id=resident_id, limit=params.limit, offset=params.offset
        )
        total = self._records.count_roster(attendance_date=day, resident_id=resident_id)
        users = self._users.get_many({r.resident_id for r in records})

        rows = []
        for record in records:
            row = record.to_dict()
            user = users.get(record.resident_id)
            row["resident"] = user.summary() if user else None
            rows.append(row)
        return {"attendance": rows, "pagination": page_meta(total, params).as_dict()}

    def _insert(self, *, resident_id: int, now: datetime, tz_name: str, **fields) -> MarkResult:
        day = local_date(now, tz_name)
        try:
            record_id = self._records.insert(resident_id=resident_id, attendance_date=day, marked_at=now, **fields)
        except DuplicateKeyError:
            existing = self._records.get_for_day(resident_id=resident_id, attendance_date=day)
            if existing is None:
                raise
            logger.warning("Attendance already marked for resident %s on %s", resident_id, day.isoformat())
            return MarkResult(record=existing, already_marked=True)
        return MarkResult(record=self._require(record_id))

    def _require(self, record_id: int) -> AttendanceRecord:
        record = self._records.get(record_id)
        if not record:
            raise NotFoundError("Attendance record not found")
        return record

    def _page(self, resident_id: int, params: PageParams) -> dict:
        records = self._records.list_history(resident_id=resident_id, limit=params.limit, offset=params.offset)
        total = self._records.count_history(resident_id=resident_id)
        return {"attendance": [r.to_dict() for r in records], "pagination": page_meta(total, params).as_dict()}


def _format_meters(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"
