from __future__ import annotations

from typing import Protocol, Sequence

from .model import GatePassEvent


class ActivityLogRepository(Protocol):
    """Read side of the gate event ledger. Events are written by the pass repository."""

    def list_events(self, *, limit: int, offset: int = 0) -> Sequence[GatePassEvent]:
        raise NotImplementedError

    def count_events(self) -> int:
        raise NotImplementedError

    def list_for_pass(self, pass_id: int) -> Sequence[GatePassEvent]:
        raise NotImplementedError

    def list_for_resident(self, resident_id: int, *, limit: int) -> Sequence[GatePassEvent]:
        raise NotImplementedError
