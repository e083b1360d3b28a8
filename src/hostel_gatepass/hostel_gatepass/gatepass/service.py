from __future__ import annotations

import logging
import secrets
from dataclasses import replace
from datetime import datetime
from typing import Callable, Iterable, Optional, Sequence

from ..common.datetime_utils import ensure_utc, format_late_duration, local_date, now_utc, start_of_local_day
from ..common.pagination import PageParams, page_meta
from ..common.validators import require_non_empty
from ..core.actor import Actor, require_role
from ..core.constants import QR_TOKEN_BYTES, QR_TOKEN_PREFIX
from ..core.enums import PENDING_STATUSES, PassStatus, Role, TokenOutcome
from ..core.exceptions import (
    AuthorizationError,
    DuplicateKeyError,
    InvalidTransitionError,
    NotFoundError,
    PassExpiredError,
)
from ..guardians.service import GuardianLinkRegistry
from ..notifications.dispatcher import BestEffortNotifier
from ..system_config.service import SystemConfigService
from ..users.repository import UserRepository
from .model import EntryResult, GatePass, TokenValidation
from .repository import GatePassRepository
from .transitions import AdminOverride, Transition, check_transition, source_statuses
from .validator import PassRequestValidator

logger = logging.getLogger(__name__)

QR_TOKEN_KEY = "uq_gate_passes_qr_token"
PASS_LINK = "/gate-pass"

_GATE = (Role.GATE_STAFF, Role.ADMIN)
_STAFF = (Role.GATE_STAFF, Role.SUPERVISOR, Role.ADMIN)


def generate_qr_token() -> str:
    return f"{QR_TOKEN_PREFIX}{secrets.token_hex(QR_TOKEN_BYTES).upper()}"


class GatePassService:
    """Gate pass lifecycle: request, guardian and supervisor decisions, gate events.

    Every transition reads the pass, checks legality, then writes through a
    conditional update on the expected prior state. When that update misses,
    the pass is re-read so the caller gets the reason it lost the race.
    Notifications go through a BestEffortNotifier and never affect the result.
    """

    def __init__(
        self,
        passes: GatePassRepository,
        users: UserRepository,
        links: GuardianLinkRegistry,
        configs: SystemConfigService,
        notifier: BestEffortNotifier,
        *,
        validator: Optional[PassRequestValidator] = None,
        token_factory: Callable[[], str] = generate_qr_token,
    ):
        self._passes = passes
        self._users = users
        self._links = links
        self._configs = configs
        self._notifier = notifier
        self._validator = validator or PassRequestValidator(passes)
        self._token_factory = token_factory

    # ---------------- Request ----------------
    def submit(
        self,
        *,
        actor: Actor,
        reason: str,
        from_date: datetime,
        to_date: datetime,
        now: Optional[datetime] = None,
    ) -> GatePass:
        require_role(actor, Role.RESIDENT, message="Only residents can request a gate pass")
        now = ensure_utc(now or now_utc())
        reason = require_non_empty(reason, "Reason")
        from_date = ensure_utc(from_date)
        to_date = ensure_utc(to_date)

        config = self._configs.get()
        self._validator.check(resident_id=actor.user_id, from_date=from_date, to_date=to_date, config=config, now=now)

        has_guardian = self._links.has_any_active_guardian(actor.user_id)
        status = PassStatus.PENDING_GUARDIAN if has_guardian else PassStatus.PENDING_SUPERVISOR

        pass_id = self._passes.create(
            resident_id=actor.user_id,
            reason=reason,
            from_date=from_date,
            to_date=to_date,
            status=status,
            created_at=now,
        )
        gate_pass = self._require(pass_id)
        logger.info("Gate pass %s requested by resident %s (%s)", pass_id, actor.user_id, status.value)

        name = self._display_name(actor.user_id)
        if has_guardian:
            self._notify_guardians(
                actor.user_id, "Gate Pass Awaiting Your Approval", f"{name} has requested a gate pass: {reason}", pass_id
            )
        else:
            self._notify_supervisors(
                "New Gate Pass Pending", f"Gate pass from {name} is waiting for approval.", pass_id
            )
        return gate_pass

    # ---------------- Guardian decisions ----------------
    def guardian_approve(self, *, pass_id: int, actor: Actor, now: Optional[datetime] = None) -> GatePass:
        now = ensure_utc(now or now_utc())
        gate_pass = self._load_for_guardian(pass_id, actor, verb="approve")
        check_transition(gate_pass.status, Transition.GUARDIAN_APPROVE)

        if not self._passes.guardian_approve(pass_id=gate_pass.pass_id, guardian_id=actor.user_id, at=now):
            self._raise_lost_race(gate_pass.pass_id, Transition.GUARDIAN_APPROVE)
        logger.info("Gate pass %s approved by guardian %s", gate_pass.pass_id, actor.user_id)

        self._notifier.notify(
            gate_pass.resident_id,
            "Guardian Approved Gate Pass",
            "Your guardian has approved your gate pass. Now waiting for supervisor approval.",
            PASS_LINK,
            gate_pass.pass_id,
        )
        name = self._display_name(gate_pass.resident_id)
        self._notify_supervisors(
            "New Gate Pass Pending", f"Gate pass from {name} is waiting for approval.", gate_pass.pass_id
        )
        return self._require(gate_pass.pass_id)

    def guardian_reject(
        self, *, pass_id: int, actor: Actor, reason: Optional[str] = None, now: Optional[datetime] = None
    ) -> GatePass:
        now = ensure_utc(now or now_utc())
        gate_pass = self._load_for_guardian(pass_id, actor, verb="reject")
        check_transition(gate_pass.status, Transition.GUARDIAN_REJECT)

        stored_reason = reason if reason and reason.strip() else "Rejected by guardian"
        if not self._passes.guardian_reject(
            pass_id=gate_pass.pass_id, guardian_id=actor.user_id, reason=stored_reason, at=now
        ):
            self._raise_lost_race(gate_pass.pass_id, Transition.GUARDIAN_REJECT)
        logger.info("Gate pass %s rejected by guardian %s", gate_pass.pass_id, actor.user_id)

        self._notifier.notify(
            gate_pass.resident_id,
            "Gate Pass Rejected",
            f"Your guardian has rejected your gate pass. Reason: {reason or 'No reason provided'}",
            PASS_LINK,
            gate_pass.pass_id,
        )
        return self._require(gate_pass.pass_id)

    # ---------------- Supervisor decisions ----------------
    def supervisor_approve(
        self,
        *,
        pass_id: int,
        actor: Actor,
        override: Optional[AdminOverride] = None,
        now: Optional[datetime] = None,
    ) -> GatePass:
        now = ensure_utc(now or now_utc())
        self._check_supervisor(actor, override)
        gate_pass = self._require(pass_id)
        check_transition(gate_pass.status, Transition.SUPERVISOR_APPROVE, override)
        expected = sorted(source_statuses(Transition.SUPERVISOR_APPROVE, override), key=lambda s: s.value)

        token = self._approve_with_unique_token(gate_pass.pass_id, expected, actor, now)
        logger.info(
            "Gate pass %s approved by %s%s (token %s)",
            gate_pass.pass_id,
            actor.user_id,
            " with admin override" if override else "",
            token,
        )

        self._notifier.notify(
            gate_pass.resident_id,
            "Gate Pass Approved",
            "Your gate pass has been approved. Show the QR code at the gate.",
            PASS_LINK,
            gate_pass.pass_id,
        )
        return self._require(gate_pass.pass_id)

    def supervisor_reject(
        self,
        *,
        pass_id: int,
        actor: Actor,
        reason: Optional[str] = None,
        override: Optional[AdminOverride] = None,
        now: Optional[datetime] = None,
    ) -> GatePass:
        now = ensure_utc(now or now_utc())
        self._check_supervisor(actor, override)
        gate_pass = self._require(pass_id)
        check_transition(gate_pass.status, Transition.SUPERVISOR_REJECT, override)
        expected = sorted(source_statuses(Transition.SUPERVISOR_REJECT, override), key=lambda s: s.value)

        stored_reason = reason if reason and reason.strip() else "Rejected by supervisor"
        if not self._passes.reject(
            pass_id=gate_pass.pass_id, expected=expected, rejected_by=actor.user_id, reason=stored_reason, at=now
        ):
            self._raise_lost_race(gate_pass.pass_id, Transition.SUPERVISOR_REJECT, override)
        logger.info(
            "Gate pass %s rejected by %s%s", gate_pass.pass_id, actor.user_id, " with admin override" if override else ""
        )

        self._notifier.notify(
            gate_pass.resident_id,
            "Gate Pass Rejected",
            "Your gate pass request has been rejected.",
            PASS_LINK,
            gate_pass.pass_id,
        )
        return self._require(gate_pass.pass_id)

    # ---------------- Gate ----------------
    def validate_token(self, *, qr_token: str, actor: Actor, now: Optional[datetime] = None) -> TokenValidation:
        require_role(actor, *_GATE, message="Only gate staff can validate passes")
        now = ensure_utc(now or now_utc())
        token = require_non_empty(qr_token, "QR value")

        gate_pass = self._passes.get_approved_by_token(token)
        if gate_pass is None:
            return TokenValidation(outcome=TokenOutcome.INVALID, message="Invalid or expired pass")

        if now > gate_pass.to_date:
            outside = gate_pass.is_outside
            if outside:
                logger.warning("Expired pass %s scanned while resident %s is outside", gate_pass.pass_id, gate_pass.resident_id)
            return TokenValidation(
                outcome=TokenOutcome.EXPIRED,
                message="Pass expired - Resident is still outside!" if outside else "Pass has expired",
                gate_pass=gate_pass,
                resident_outside=outside,
            )

        if now < gate_pass.from_date:
            tz_name = self._configs.get().attendance_window.timezone
            starts = local_date(gate_pass.from_date, tz_name).isoformat()
            return TokenValidation(
                outcome=TokenOutcome.NOT_STARTED,
                message=f"Pass not valid yet - starts on {starts}",
                gate_pass=gate_pass,
            )

        try:
            self._passes.stamp_validation(pass_id=gate_pass.pass_id, validated_by=actor.user_id, at=now)
            gate_pass = replace(gate_pass, validated_by=actor.user_id, validated_at=now)
        except Exception:
            logger.exception("Could not record validation stamp on pass %s", gate_pass.pass_id)
        return TokenValidation(outcome=TokenOutcome.VALID, message="Gate pass validated", gate_pass=gate_pass)

    def record_exit(self, *, pass_id: int, actor: Actor, now: Optional[datetime] = None) -> GatePass:
        require_role(actor, *_GATE, message="Only gate staff can record exits")
        now = ensure_utc(now or now_utc())
        gate_pass = self._require(pass_id)
        self._check_exit(gate_pass, now)

        if not self._passes.mark_exit(pass_id=gate_pass.pass_id, marked_by=actor.user_id, at=now):
            self._check_exit(self._require(gate_pass.pass_id), now)
            raise InvalidTransitionError("Gate pass was updated by someone else; please retry")
        logger.info("Exit recorded on pass %s for resident %s by %s", gate_pass.pass_id, gate_pass.resident_id, actor.user_id)

        self._notifier.notify(
            gate_pass.resident_id,
            "Exit Recorded",
            "Your exit has been recorded. Have a safe trip!",
            PASS_LINK,
            gate_pass.pass_id,
        )
        return self._require(gate_pass.pass_id)

    def record_entry(self, *, pass_id: int, actor: Actor, now: Optional[datetime] = None) -> EntryResult:
        require_role(actor, *_GATE, message="Only gate staff can record entries")
        now = ensure_utc(now or now_utc())
        gate_pass = self._require(pass_id)
        self._check_entry(gate_pass)

        is_late = now > gate_pass.to_date
        late_note = format_late_duration(now - gate_pass.to_date) if is_late else None

        if not self._passes.mark_entry(
            pass_id=gate_pass.pass_id, marked_by=actor.user_id, at=now, is_late=is_late, note=late_note
        ):
            self._check_entry(self._require(gate_pass.pass_id))
            raise InvalidTransitionError("Gate pass was updated by someone else; please retry")

        if is_late:
            logger.warning("Late return on pass %s: %s", gate_pass.pass_id, late_note)
            self._notifier.notify(
                gate_pass.resident_id,
                "Late Return Recorded",
                f"You returned {late_note}. Entry has been recorded.",
                PASS_LINK,
                gate_pass.pass_id,
            )
        else:
            logger.info("Entry recorded on pass %s by %s", gate_pass.pass_id, actor.user_id)
            self._notifier.notify(
                gate_pass.resident_id, "Welcome Back!", "Your return has been recorded.", PASS_LINK, gate_pass.pass_id
            )
        return EntryResult(gate_pass=self._require(gate_pass.pass_id), is_late=is_late, late_note=late_note)

    # ---------------- Queries ----------------
    def get_pass(self, *, pass_id: int, actor: Actor) -> GatePass:
        gate_pass = self._require(pass_id)
        if actor.role == Role.RESIDENT and gate_pass.resident_id != actor.user_id:
            raise AuthorizationError("You can only view your own gate passes")
        if actor.role == Role.GUARDIAN and not self._links.has_active_link(actor.user_id, gate_pass.resident_id):
            raise AuthorizationError("You are not linked to this resident")
        return gate_pass

    def list_my_passes(self, *, actor: Actor, params: PageParams) -> dict:
        require_role(actor, Role.RESIDENT)
        return self._page([actor.user_id], params)

    def current_pass(self, *, actor: Actor, now: Optional[datetime] = None) -> Optional[GatePass]:
        require_role(actor, Role.RESIDENT)
        return self._passes.find_current(resident_id=actor.user_id, at=ensure_utc(now or now_utc()))

    def list_pending_for_supervisor(self, *, actor: Actor, include_guardian_pending: bool = False) -> list[dict]:
        require_role(actor, Role.SUPERVISOR, Role.ADMIN)
        statuses = PENDING_STATUSES if include_guardian_pending else (PassStatus.PENDING_SUPERVISOR,)
        return self._with_residents(self._passes.list_by_status(statuses=statuses, limit=500))

    def list_pending_for_guardian(self, *, actor: Actor) -> list[dict]:
        require_role(actor, Role.GUARDIAN)
        resident_ids = self._links.linked_resident_ids(actor.user_id)
        passes = self._passes.list_by_status(statuses=(PassStatus.PENDING_GUARDIAN,), resident_ids=resident_ids)
        return self._with_residents(passes)

    def list_history(self, *, actor: Actor, params: PageParams, resident_id: Optional[int] = None) -> dict:
        require_role(actor, Role.SUPERVISOR, Role.ADMIN, Role.GATE_STAFF)
        return self._page(None if resident_id is None else [int(resident_id)], params)

    def list_guardian_history(self, *, actor: Actor, params: PageParams, resident_id: Optional[int] = None) -> dict:
        require_role(actor, Role.GUARDIAN)
        linked = list(self._links.linked_resident_ids(actor.user_id))
        if resident_id is not None:
            if int(resident_id) not in linked:
                raise AuthorizationError("You are not linked to this resident")
            linked = [int(resident_id)]
        return self._page(linked, params)

    def students_outside(self, *, actor: Actor, now: Optional[datetime] = None) -> list[dict]:
        require_role(actor, *_STAFF)
        now = ensure_utc(now or now_utc())
        passes = self._passes.list_outside()
        rows = self._with_residents(passes)
        for row, gate_pass in zip(rows, passes):
            row["isPassValid"] = gate_pass.status == PassStatus.APPROVED and gate_pass.to_date >= now
            row["isExpired"] = gate_pass.to_date < now
        return rows

    def todays_entries(self, *, actor: Actor, now: Optional[datetime] = None) -> list[dict]:
        require_role(actor, *_STAFF)
        now = ensure_utc(now or now_utc())
        tz_name = self._configs.get().attendance_window.timezone
        passes = self._passes.list_entries_since(start_of_local_day(now, tz_name))
        rows = self._with_residents(passes)
        for row, gate_pass in zip(rows, passes):
            is_late = gate_pass.entry_time is not None and gate_pass.entry_time > gate_pass.to_date
            row["isLate"] = is_late
            row["lateDuration"] = format_late_duration(gate_pass.entry_time - gate_pass.to_date) if is_late else ""
        return rows

    # ---------------- Internals ----------------
    def _require(self, pass_id: int) -> GatePass:
        gate_pass = self._passes.get(int(pass_id))
        if not gate_pass:
            raise NotFoundError("Gate pass not found")
        return gate_pass

    def _load_for_guardian(self, pass_id: int, actor: Actor, *, verb: str) -> GatePass:
        require_role(actor, Role.GUARDIAN, message=f"Only guardians can {verb} at this step")
        gate_pass = self._require(pass_id)
        if not self._links.has_active_link(actor.user_id, gate_pass.resident_id):
            raise AuthorizationError(f"You are not authorized to {verb} this gate pass")
        return gate_pass

    @staticmethod
    def _check_supervisor(actor: Actor, override: Optional[AdminOverride]) -> None:
        if override is not None:
            require_role(actor, Role.ADMIN, message="Only an admin can override the approval order")
        else:
            require_role(actor, Role.SUPERVISOR, Role.ADMIN, message="Only supervisors can decide gate passes")

    def _approve_with_unique_token(
        self, pass_id: int, expected: Sequence[PassStatus], actor: Actor, now: datetime
    ) -> str:
        for attempt in range(2):
            token = self._token_factory()
            try:
                ok = self._passes.approve(
                    pass_id=pass_id, expected=expected, qr_token=token, approved_by=actor.user_id, at=now
                )
            except DuplicateKeyError as exc:
                if exc.key not in (None, QR_TOKEN_KEY):
                    raise
                if attempt == 1:
                    raise DuplicateKeyError(
                        "Could not issue a unique QR token; please retry", key=QR_TOKEN_KEY
                    ) from exc
                logger.warning("QR token collision on pass %s; regenerating", pass_id)
                continue
            if not ok:
                self._raise_lost_race(pass_id, Transition.SUPERVISOR_APPROVE)
            return token
        raise DuplicateKeyError("Could not issue a unique QR token; please retry", key=QR_TOKEN_KEY)

    def _raise_lost_race(
        self, pass_id: int, transition: Transition, override: Optional[AdminOverride] = None
    ) -> None:
        current = self._require(pass_id)
        check_transition(current.status, transition, override)
        raise InvalidTransitionError("Gate pass was updated by someone else; please retry")

    @staticmethod
    def _check_exit(gate_pass: GatePass, now: datetime) -> None:
        if gate_pass.status != PassStatus.APPROVED:
            raise InvalidTransitionError("Gate pass is not approved")
        if now > gate_pass.to_date:
            raise PassExpiredError("Gate pass has expired")
        if gate_pass.is_outside:
            raise InvalidTransitionError("Resident already exited and has not returned yet")

    @staticmethod
    def _check_entry(gate_pass: GatePass) -> None:
        if gate_pass.exit_time is None:
            raise InvalidTransitionError("Resident has not exited yet")
        if gate_pass.entry_time is not None:
            raise InvalidTransitionError("Resident already inside. Need to exit first.")

    def _page(self, resident_ids: Optional[Iterable[int]], params: PageParams) -> dict:
        passes = self._passes.list_history(resident_ids=resident_ids, limit=params.limit, offset=params.offset)
        total = self._passes.count_history(resident_ids=resident_ids)
        return {"passes": self._with_residents(passes), "pagination": page_meta(total, params).as_dict()}

    def _with_residents(self, passes: Sequence[GatePass]) -> list[dict]:
        users = self._users.get_many(p.resident_id for p in passes)
        rows: list[dict] = []
        for p in passes:
            row = p.to_dict()
            user = users.get(p.resident_id)
            row["resident"] = user.summary() if user else None
            rows.append(row)
        return rows

    def _display_name(self, user_id: int) -> str:
        """Name for notification text only; falls back when the directory is unreachable."""
        try:
            user = self._users.get_by_id(user_id)
        except Exception:
            logger.exception("Could not resolve display name for user %s", user_id)
            user = None
        return user.full_name if user else f"Resident #{user_id}"

    def _notify_guardians(self, resident_id: int, title: str, body: str, pass_id: int) -> None:
        try:
            guardian_ids = list(self._links.active_guardian_ids(resident_id))
        except Exception:
            logger.exception("Could not resolve guardians to notify about pass %s", pass_id)
            return
        self._notifier.notify_many(guardian_ids, title, body, PASS_LINK, pass_id)

    def _notify_supervisors(self, title: str, body: str, pass_id: int) -> None:
        try:
            supervisor_ids = [u.user_id for u in self._users.list_by_role(Role.SUPERVISOR)]
        except Exception:
            logger.exception("Could not resolve supervisors to notify about pass %s", pass_id)
            return
        self._notifier.notify_many(supervisor_ids, title, body, PASS_LINK, pass_id)
