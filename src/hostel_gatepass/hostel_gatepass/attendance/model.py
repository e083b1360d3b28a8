from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional


@dataclass(frozen=True)
class AttendanceRecord:
    record_id: int
    resident_id: int
    attendance_date: date
    marked_at: datetime
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    distance_meters: Optional[int] = None
    manual_entry: bool = False
    marked_by: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "id": self.record_id,
            "residentId": self.resident_id,
            "date": self.attendance_date.isoformat(),
            "markedAt": self.marked_at.isoformat(),
            "location": {
                "latitude": self.latitude,
                "longitude": self.longitude,
                "distanceFromHostel": self.distance_meters,
                "manualEntry": self.manual_entry,
            },
            "markedBy": self.marked_by,
        }


@dataclass(frozen=True)
class MarkResult:
    """Outcome of a mark attempt; a repeat mark on the same day is not an error."""

    record: AttendanceRecord
    already_marked: bool = False

    @property
    def distance_meters(self) -> Optional[int]:
        return self.record.distance_meters
