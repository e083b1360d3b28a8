from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import Role


@dataclass(frozen=True)
class User:
    """Directory entry as seen by this service (read-only; identity is owned elsewhere)."""

    user_id: int
    full_name: str
    role: Role
    email: Optional[str] = None
    phone: Optional[str] = None
    room: Optional[str] = None
    roll_no: Optional[str] = None
    is_active: bool = True

    def summary(self) -> dict:
        return {
            "id": self.user_id,
            "name": self.full_name,
            "rollNo": self.roll_no,
            "room": self.room,
            "phone": self.phone,
        }
