from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Mapping, Optional, Protocol, Sequence

from .model import AttendanceRecord


class AttendanceRepository(Protocol):
    """(resident_id, attendance_date) is unique; a second insert raises DuplicateKeyError."""

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
        raise NotImplementedError

    def get(self, record_id: int) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_day(self, *, resident_id: int, attendance_date: date) -> Optional[AttendanceRecord]:
        raise NotImplementedError

    def get_for_day_many(self, *, resident_ids: Iterable[int], attendance_date: date) -> Mapping[int, AttendanceRecord]:
        raise NotImplementedError

    def list_history(self, *, resident_id: int, limit: int = 20, offset: int = 0) -> Sequence[AttendanceRecord]:
        raise NotImplementedError

    def count_history(self, *, resident_id: int) -> int:
        raise NotImplementedError

    def count_between(self, *, resident_id: int, start: date, end: date) -> int:
        """Records with start <= attendance_date <= end."""

        raise NotImplementedError

    def list_roster(
        self,
        *,
        attendance_date: Optional[date] = None,
        resident_id: Optional[int] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Sequence[AttendanceRecord]:
        """All residents' records, newest mark first; filters are optional."""

        raise NotImplementedError

    def count_roster(self, *, attendance_date: Optional[date] = None, resident_id: Optional[int] = None) -> int:
        raise NotImplementedError
