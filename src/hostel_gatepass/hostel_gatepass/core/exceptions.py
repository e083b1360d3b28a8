from __future__ import annotations

from typing import Optional

from .enums import PassRule


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or out of range."""


class PassRuleViolation(ValidationError):
    """Raised when a gate pass request breaks one of the request-time rules."""

    def __init__(self, rule: PassRule, message: str):
        super().__init__(message)
        self.rule = rule


class OutsideGeofenceError(ValidationError):
    """Raised when attendance is attempted from outside the fence."""

    def __init__(self, distance_meters: int, radius_meters: float, message: str):
        super().__init__(message)
        self.distance_meters = distance_meters
        self.radius_meters = radius_meters


class OutsideWindowError(ValidationError):
    """Raised when attendance is attempted outside the daily window."""


class NotFoundError(DomainError):
    """Raised when an id does not resolve."""


class InvalidTransitionError(DomainError):
    """Raised when an action is attempted from a status that does not permit it."""


class AuthorizationError(DomainError):
    """Raised when an actor lacks the role or relationship an action requires."""


class DuplicateKeyError(DomainError):
    """Raised by repositories when a unique index rejects a write."""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class PassExpiredError(InvalidTransitionError):
    """Raised when a gate action is attempted after the pass's validity window."""
