from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional, Sequence

from ..common.datetime_utils import get_timezone, now_utc
from ..common.validators import require_in_range, require_int_in_range, require_non_empty, require_number
from ..core.actor import Actor, require_role
from ..core.enums import ContactKind, Role
from ..core.exceptions import ValidationError
from .model import EmergencyContact, SystemConfig
from .repository import SystemConfigRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConfigUpdate:
    """Partial update; None means 'leave unchanged'."""

    latitude: Optional[float] = None
    longitude: Optional[float] = None
    reference_name: Optional[str] = None
    geofence_radius_meters: Optional[float] = None
    window_enabled: Optional[bool] = None
    window_start_hour: Optional[int] = None
    window_end_hour: Optional[int] = None
    timezone: Optional[str] = None
    max_gate_pass_days: Optional[int] = None
    max_pending_passes: Optional[int] = None
    attendance_grace_minutes: Optional[int] = None
    emergency_contacts: Optional[Sequence[dict]] = None


class SystemConfigService:
    def __init__(self, configs: SystemConfigRepository):
        self._configs = configs

    def get(self) -> SystemConfig:
        config = self._configs.get()
        if config is None:
            config = SystemConfig()
            self._configs.save(config)
            logger.info("Created default system configuration")
        return config

    def update(self, *, actor: Actor, changes: ConfigUpdate, now: Optional[datetime] = None) -> SystemConfig:
        require_role(actor, Role.ADMIN, message="Only an admin can change system configuration")
        current = self.get()

        reference = current.reference
        if changes.latitude is not None:
            reference = replace(reference, latitude=require_in_range(changes.latitude, "Latitude", -90, 90))
        if changes.longitude is not None:
            reference = replace(reference, longitude=require_in_range(changes.longitude, "Longitude", -180, 180))
        if changes.reference_name is not None:
            reference = replace(reference, name=require_non_empty(changes.reference_name, "Reference name"))

        radius = current.geofence_radius_meters
        if changes.geofence_radius_meters is not None:
            radius = require_number(changes.geofence_radius_meters, "Geofence radius")
            if radius <= 0:
                raise ValidationError("Geofence radius must be greater than 0")

        window = current.attendance_window
        if changes.window_enabled is not None:
            window = replace(window, enabled=bool(changes.window_enabled))
        if changes.window_start_hour is not None:
            window = replace(window, start_hour=require_int_in_range(changes.window_start_hour, "Start hour", 0, 23))
        if changes.window_end_hour is not None:
            window = replace(window, end_hour=require_int_in_range(changes.window_end_hour, "End hour", 0, 23))
        if changes.timezone is not None:
            get_timezone(changes.timezone)
            window = replace(window, timezone=changes.timezone)

        policy = current.policy
        if changes.max_gate_pass_days is not None:
            policy = replace(
                policy, max_gate_pass_days=require_int_in_range(changes.max_gate_pass_days, "Max gate pass days", 1, 365)
            )
        if changes.max_pending_passes is not None:
            policy = replace(
                policy, max_pending_passes=require_int_in_range(changes.max_pending_passes, "Max pending passes", 1, 100)
            )
        if changes.attendance_grace_minutes is not None:
            policy = replace(
                policy,
                attendance_grace_minutes=require_int_in_range(changes.attendance_grace_minutes, "Grace period", 0, 180),
            )

        contacts = current.emergency_contacts
        if changes.emergency_contacts is not None:
            contacts = tuple(self._parse_contact(c) for c in changes.emergency_contacts)

        updated = SystemConfig(
            reference=reference,
            geofence_radius_meters=radius,
            attendance_window=window,
            policy=policy,
            emergency_contacts=contacts,
            updated_at=now or now_utc(),
            updated_by=actor.user_id,
        )
        self._configs.save(updated)
        logger.info("System configuration updated by user %s", actor.user_id)
        return updated

    @staticmethod
    def _parse_contact(raw: dict) -> EmergencyContact:
        try:
            kind = ContactKind(str(raw.get("type", "other")))
        except ValueError:
            raise ValidationError("Invalid emergency contact type")
        return EmergencyContact(
            name=require_non_empty(raw.get("name", ""), "Contact name"),
            phone=require_non_empty(raw.get("phone", ""), "Contact phone"),
            kind=kind,
        )
