"""Approval state machine for gate passes.

    PENDING_GUARDIAN --guardian approve--> PENDING_SUPERVISOR --supervisor approve--> APPROVED
          |                                        |
          +-----------guardian/supervisor reject---+--------------------------------> REJECTED

APPROVED and REJECTED are terminal. The only relaxations are the ones listed
in _OVERRIDE_SOURCES, and they apply only when an AdminOverride is supplied.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Optional

from ..core.enums import PassStatus
from ..core.exceptions import InvalidTransitionError


class Transition(str, Enum):
    GUARDIAN_APPROVE = "GUARDIAN_APPROVE"
    GUARDIAN_REJECT = "GUARDIAN_REJECT"
    SUPERVISOR_APPROVE = "SUPERVISOR_APPROVE"
    SUPERVISOR_REJECT = "SUPERVISOR_REJECT"


@dataclass(frozen=True)
class AdminOverride:
    """Explicit admin bypass of the normal approval order."""

    note: Optional[str] = None


_PG = PassStatus.PENDING_GUARDIAN
_PS = PassStatus.PENDING_SUPERVISOR

_SOURCES: dict[Transition, FrozenSet[PassStatus]] = {
    Transition.GUARDIAN_APPROVE: frozenset({_PG}),
    Transition.GUARDIAN_REJECT: frozenset({_PG}),
    Transition.SUPERVISOR_APPROVE: frozenset({_PS}),
    Transition.SUPERVISOR_REJECT: frozenset({_PS}),
}

_OVERRIDE_SOURCES: dict[Transition, FrozenSet[PassStatus]] = {
    # skip the guardian step
    Transition.SUPERVISOR_APPROVE: frozenset({_PG, _PS}),
    # force-cancel anything not yet terminal
    Transition.SUPERVISOR_REJECT: frozenset({_PG, _PS}),
}

_TARGETS: dict[Transition, PassStatus] = {
    Transition.GUARDIAN_APPROVE: _PS,
    Transition.GUARDIAN_REJECT: PassStatus.REJECTED,
    Transition.SUPERVISOR_APPROVE: PassStatus.APPROVED,
    Transition.SUPERVISOR_REJECT: PassStatus.REJECTED,
}

LEGAL_EDGES: FrozenSet[tuple[PassStatus, PassStatus]] = frozenset(
    {(src, _TARGETS[t]) for t, sources in _SOURCES.items() for src in sources}
    | {(src, _TARGETS[t]) for t, sources in _OVERRIDE_SOURCES.items() for src in sources}
)


def source_statuses(transition: Transition, override: Optional[AdminOverride] = None) -> FrozenSet[PassStatus]:
    if override is not None and transition in _OVERRIDE_SOURCES:
        return _OVERRIDE_SOURCES[transition]
    return _SOURCES[transition]


def check_transition(
    current: PassStatus, transition: Transition, override: Optional[AdminOverride] = None
) -> PassStatus:
    """Return the target status or raise with a message naming why the move is illegal."""
    if current in source_statuses(transition, override):
        return _TARGETS[transition]

    if current.is_terminal:
        raise InvalidTransitionError(f"Gate pass is already {current.value.lower()}")
    if transition in (Transition.GUARDIAN_APPROVE, Transition.GUARDIAN_REJECT):
        raise InvalidTransitionError("Gate pass is not awaiting guardian approval")
    raise InvalidTransitionError("Gate pass is not pending supervisor approval")
