from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Tuple

from ..core import constants
from ..core.enums import ContactKind


@dataclass(frozen=True)
class ReferencePoint:
    latitude: float = constants.DEFAULT_REFERENCE_LATITUDE
    longitude: float = constants.DEFAULT_REFERENCE_LONGITUDE
    name: str = constants.DEFAULT_REFERENCE_NAME


@dataclass(frozen=True)
class AttendanceWindow:
    enabled: bool = True
    start_hour: int = constants.DEFAULT_WINDOW_START_HOUR
    end_hour: int = constants.DEFAULT_WINDOW_END_HOUR
    timezone: str = constants.DEFAULT_TIMEZONE


@dataclass(frozen=True)
class PassPolicy:
    max_gate_pass_days: int = constants.DEFAULT_MAX_GATE_PASS_DAYS
    max_pending_passes: int = constants.DEFAULT_MAX_PENDING_PASSES
    attendance_grace_minutes: int = constants.DEFAULT_GRACE_MINUTES


@dataclass(frozen=True)
class EmergencyContact:
    name: str
    phone: str
    kind: ContactKind


DEFAULT_EMERGENCY_CONTACTS: Tuple[EmergencyContact, ...] = (
    EmergencyContact(name="Warden Office", phone="+91 1234567890", kind=ContactKind.WARDEN),
    EmergencyContact(name="Campus Security", phone="+91 9876543210", kind=ContactKind.SECURITY),
    EmergencyContact(name="Medical Center", phone="+91 1122334455", kind=ContactKind.MEDICAL),
    EmergencyContact(name="Emergency Helpline", phone="112", kind=ContactKind.POLICE),
)


@dataclass(frozen=True)
class SystemConfig:
    """Singleton facility policy, read on every pass request and attendance mark."""

    reference: ReferencePoint = field(default_factory=ReferencePoint)
    geofence_radius_meters: float = constants.DEFAULT_GEOFENCE_RADIUS_METERS
    attendance_window: AttendanceWindow = field(default_factory=AttendanceWindow)
    policy: PassPolicy = field(default_factory=PassPolicy)
    emergency_contacts: Tuple[EmergencyContact, ...] = DEFAULT_EMERGENCY_CONTACTS
    updated_at: Optional[datetime] = None
    updated_by: Optional[int] = None

    def as_dict(self) -> dict:
        return {
            "referencePoint": {
                "latitude": self.reference.latitude,
                "longitude": self.reference.longitude,
                "name": self.reference.name,
            },
            "geofenceRadiusMeters": self.geofence_radius_meters,
            "attendanceWindow": {
                "enabled": self.attendance_window.enabled,
                "startHour": self.attendance_window.start_hour,
                "endHour": self.attendance_window.end_hour,
                "timezone": self.attendance_window.timezone,
            },
            "appConfig": {
                "maxGatePassDays": self.policy.max_gate_pass_days,
                "maxPendingPasses": self.policy.max_pending_passes,
                "attendanceGracePeriod": self.policy.attendance_grace_minutes,
            },
            "emergencyContacts": [
                {"name": c.name, "phone": c.phone, "type": c.kind.value} for c in self.emergency_contacts
            ],
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
            "updatedBy": self.updated_by,
        }
