from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional, Protocol, Sequence

from ..core.enums import PassStatus
from .model import GatePass


class GatePassRepository(Protocol):
    """Storage for passes.

    Every mutating method is a single conditional update on the expected prior
    state and returns False when that state no longer holds. `qr_token` is
    backed by a unique index; a clash raises DuplicateKeyError.
    """

    def create(
        self,
        *,
        resident_id: int,
        reason: str,
        from_date: datetime,
        to_date: datetime,
        status: PassStatus,
        created_at: datetime,
    ) -> int:
        raise NotImplementedError

    def get(self, pass_id: int) -> Optional[GatePass]:
        raise NotImplementedError

    def get_approved_by_token(self, qr_token: str) -> Optional[GatePass]:
        raise NotImplementedError

    # Request-time rule support
    def count_pending(self, *, resident_id: int) -> int:
        raise NotImplementedError

    def find_overlapping(
        self, *, resident_id: int, from_date: datetime, to_date: datetime, statuses: Sequence[PassStatus]
    ) -> Optional[GatePass]:
        raise NotImplementedError

    # Transitions
    def guardian_approve(self, *, pass_id: int, guardian_id: int, at: datetime) -> bool:
        raise NotImplementedError

    def guardian_reject(self, *, pass_id: int, guardian_id: int, reason: str, at: datetime) -> bool:
        raise NotImplementedError

    def approve(
        self, *, pass_id: int, expected: Sequence[PassStatus], qr_token: str, approved_by: int, at: datetime
    ) -> bool:
        raise NotImplementedError

    def reject(
        self, *, pass_id: int, expected: Sequence[PassStatus], rejected_by: int, reason: str, at: datetime
    ) -> bool:
        raise NotImplementedError

    def stamp_validation(self, *, pass_id: int, validated_by: int, at: datetime) -> None:
        raise NotImplementedError

    # Physical events; each also appends to the activity log in the same transaction
    def mark_exit(self, *, pass_id: int, marked_by: int, at: datetime) -> bool:
        """APPROVED, to_date >= at and not currently outside -> set exit, clear entry."""

        raise NotImplementedError

    def mark_entry(self, *, pass_id: int, marked_by: int, at: datetime, is_late: bool, note: Optional[str]) -> bool:
        """Exit outstanding -> set entry."""

        raise NotImplementedError

    # Queries
    def list_by_status(
        self,
        *,
        statuses: Sequence[PassStatus],
        resident_ids: Optional[Iterable[int]] = None,
        limit: int = 200,
    ) -> Sequence[GatePass]:
        raise NotImplementedError

    def list_history(
        self, *, resident_ids: Optional[Iterable[int]] = None, limit: int = 20, offset: int = 0
    ) -> Sequence[GatePass]:
        raise NotImplementedError

    def count_history(self, *, resident_ids: Optional[Iterable[int]] = None) -> int:
        raise NotImplementedError

    def count_by_status(self, *, statuses: Sequence[PassStatus]) -> int:
        raise NotImplementedError

    def find_current(self, *, resident_id: int, at: datetime) -> Optional[GatePass]:
        """APPROVED pass whose window contains `at`."""

        raise NotImplementedError

    def list_outside(self) -> Sequence[GatePass]:
        """exit_time set and entry_time unset, newest exit first."""

        raise NotImplementedError

    def list_entries_since(self, since: datetime) -> Sequence[GatePass]:
        raise NotImplementedError
