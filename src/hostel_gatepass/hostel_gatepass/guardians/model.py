from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.enums import LinkStatus, Relationship


@dataclass(frozen=True)
class GuardianLink:
    link_id: int
    guardian_id: int
    resident_id: int
    relationship: Relationship
    linked_by: int
    status: LinkStatus
    created_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == LinkStatus.ACTIVE
