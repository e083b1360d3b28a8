from __future__ import annotations

from datetime import datetime, timedelta

from ..common.datetime_utils import local_date
from ..core.enums import ACTIVE_STATUSES, PassRule
from ..core.exceptions import PassRuleViolation
from ..system_config.model import SystemConfig
from .repository import GatePassRepository


class PassRequestValidator:
    """Request-time business rules, run before a pass is created.

    Each broken rule raises PassRuleViolation with its own rule and message.
    """

    def __init__(self, passes: GatePassRepository):
        self._passes = passes

    def check(
        self,
        *,
        resident_id: int,
        from_date: datetime,
        to_date: datetime,
        config: SystemConfig,
        now: datetime,
    ) -> None:
        tz_name = config.attendance_window.timezone

        if from_date >= to_date:
            raise PassRuleViolation(PassRule.INVALID_RANGE, "From date must be before to date")

        if local_date(from_date, tz_name) < local_date(now, tz_name):
            raise PassRuleViolation(PassRule.PAST_START, "From date cannot be in the past")

        max_days = config.policy.max_gate_pass_days
        if to_date - from_date > timedelta(days=max_days):
            raise PassRuleViolation(PassRule.TOO_LONG, f"Gate pass cannot exceed {max_days} days")

        max_pending = config.policy.max_pending_passes
        if self._passes.count_pending(resident_id=resident_id) >= max_pending:
            raise PassRuleViolation(
                PassRule.TOO_MANY_PENDING,
                f"You already have {max_pending} pending gate passes. Wait for them to be processed.",
            )

        clash = self._passes.find_overlapping(
            resident_id=resident_id, from_date=from_date, to_date=to_date, statuses=ACTIVE_STATUSES
        )
        if clash is not None:
            raise PassRuleViolation(PassRule.OVERLAPPING, "You already have a pass for this period")
