from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import PassStatus, TokenOutcome


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class GatePass:
    """One resident's exit authorization over [from_date, to_date)."""

    pass_id: int
    resident_id: int
    reason: str
    from_date: datetime
    to_date: datetime
    status: PassStatus
    created_at: datetime
    qr_token: Optional[str] = None
    guardian_approved_by: Optional[int] = None
    guardian_approved_at: Optional[datetime] = None
    guardian_rejection_reason: Optional[str] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejected_by: Optional[int] = None
    rejection_reason: Optional[str] = None
    validated_by: Optional[int] = None
    validated_at: Optional[datetime] = None
    exit_time: Optional[datetime] = None
    exit_marked_by: Optional[int] = None
    entry_time: Optional[datetime] = None
    entry_marked_by: Optional[int] = None

    @property
    def is_outside(self) -> bool:
        """Exited and not yet back."""
        return self.exit_time is not None and self.entry_time is None

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.from_date < end and start < self.to_date

    def to_dict(self) -> dict:
        return {
            "id": self.pass_id,
            "residentId": self.resident_id,
            "reason": self.reason,
            "fromDate": _iso(self.from_date),
            "toDate": _iso(self.to_date),
            "status": self.status.value,
            "qrValue": self.qr_token,
            "guardianApprovedBy": self.guardian_approved_by,
            "guardianApprovedAt": _iso(self.guardian_approved_at),
            "guardianRejectionReason": self.guardian_rejection_reason,
            "approvedBy": self.approved_by,
            "approvedAt": _iso(self.approved_at),
            "rejectedBy": self.rejected_by,
            "rejectionReason": self.rejection_reason,
            "validatedBy": self.validated_by,
            "validatedAt": _iso(self.validated_at),
            "exitTime": _iso(self.exit_time),
            "exitMarkedBy": self.exit_marked_by,
            "entryTime": _iso(self.entry_time),
            "entryMarkedBy": self.entry_marked_by,
            "createdAt": _iso(self.created_at),
        }


@dataclass(frozen=True)
class TokenValidation:
    outcome: TokenOutcome
    message: str
    gate_pass: Optional[GatePass] = None
    resident_outside: bool = False

    @property
    def valid(self) -> bool:
        return self.outcome == TokenOutcome.VALID


@dataclass(frozen=True)
class EntryResult:
    gate_pass: GatePass
    is_late: bool
    late_note: Optional[str] = None
