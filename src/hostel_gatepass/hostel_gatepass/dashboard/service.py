from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from ..attendance.repository import AttendanceRepository
from ..common.datetime_utils import ensure_utc, local_date, now_utc
from ..core.actor import Actor, require_role
from ..core.enums import PENDING_STATUSES, Role
from ..gatepass.repository import GatePassRepository
from ..system_config.service import SystemConfigService
from ..users.repository import UserRepository

logger = logging.getLogger(__name__)


class DashboardService:
    """Warden headline numbers, read straight off the repositories."""

    def __init__(
        self,
        users: UserRepository,
        passes: GatePassRepository,
        records: AttendanceRepository,
        configs: SystemConfigService,
    ):
        self._users = users
        self._passes = passes
        self._records = records
        self._configs = configs

    def warden_stats(self, *, actor: Actor, now: Optional[datetime] = None) -> dict:
        require_role(actor, Role.SUPERVISOR, Role.ADMIN)
        now = ensure_utc(now or now_utc())
        today = local_date(now, self._configs.get().attendance_window.timezone)

        total = len(self._users.list_by_role(Role.RESIDENT))
        # residents, not passes
        outside = len({p.resident_id for p in self._passes.list_outside()})
        marked = self._records.count_roster(attendance_date=today)
        pending = self._passes.count_by_status(statuses=PENDING_STATUSES)

        logger.debug("dashboard: residents=%s outside=%s marked=%s pending=%s", total, outside, marked, pending)
        return {
            "totalStudents": total,
            "studentsOut": outside,
            "studentsInside": max(0, total - outside),
            "todayAttendance": marked,
            "attendancePercentage": round(marked / total * 100) if total else 0,
            "pendingPasses": pending,
        }
