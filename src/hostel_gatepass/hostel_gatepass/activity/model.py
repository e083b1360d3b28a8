from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import GateAction


@dataclass(frozen=True)
class GatePassEvent:
    """Append-only record of one physical EXIT or ENTRY at the gate."""

    event_id: int
    pass_id: int
    resident_id: int
    action: GateAction
    event_time: datetime
    marked_by: int
    is_late: bool = False
    note: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.event_id,
            "gatePassId": self.pass_id,
            "residentId": self.resident_id,
            "action": self.action.value,
            "timestamp": self.event_time.isoformat(),
            "markedBy": self.marked_by,
            "isLate": self.is_late,
            "note": self.note,
        }
