from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Account roles. Closed set; every privileged operation names the roles it accepts."""

    RESIDENT = "resident"
    GUARDIAN = "guardian"
    SUPERVISOR = "supervisor"
    GATE_STAFF = "gate_staff"
    ADMIN = "admin"


class PassStatus(str, Enum):
    """Gate pass approval flow: PENDING_GUARDIAN -> PENDING_SUPERVISOR -> APPROVED/REJECTED."""

    PENDING_GUARDIAN = "PENDING_GUARDIAN"
    PENDING_SUPERVISOR = "PENDING_SUPERVISOR"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"

    @property
    def is_pending(self) -> bool:
        return self in (PassStatus.PENDING_GUARDIAN, PassStatus.PENDING_SUPERVISOR)

    @property
    def is_terminal(self) -> bool:
        return self in (PassStatus.APPROVED, PassStatus.REJECTED)


PENDING_STATUSES = (PassStatus.PENDING_GUARDIAN, PassStatus.PENDING_SUPERVISOR)
ACTIVE_STATUSES = (PassStatus.PENDING_GUARDIAN, PassStatus.PENDING_SUPERVISOR, PassStatus.APPROVED)


class GateAction(str, Enum):
    EXIT = "EXIT"
    ENTRY = "ENTRY"


class LinkStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class Relationship(str, Enum):
    FATHER = "Father"
    MOTHER = "Mother"
    GUARDIAN = "Guardian"


class TokenOutcome(str, Enum):
    """Result of scanning a QR token at the gate."""

    VALID = "VALID"
    INVALID = "INVALID"
    EXPIRED = "EXPIRED"
    NOT_STARTED = "NOT_STARTED"


class PassRule(str, Enum):
    """Request-time rules checked before a pass is created."""

    INVALID_RANGE = "INVALID_RANGE"
    PAST_START = "PAST_START"
    TOO_LONG = "TOO_LONG"
    TOO_MANY_PENDING = "TOO_MANY_PENDING"
    OVERLAPPING = "OVERLAPPING"


class ContactKind(str, Enum):
    WARDEN = "warden"
    SECURITY = "security"
    MEDICAL = "medical"
    POLICE = "police"
    OTHER = "other"
