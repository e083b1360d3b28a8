from __future__ import annotations

import math

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_number(value: object, field_name: str) -> float:
    """Accept ints/floats (not bools) that are finite."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{field_name} must be a number")
    number = float(value)
    if not math.isfinite(number):
        raise ValidationError(f"{field_name} must be a finite number")
    return number


def require_in_range(value: object, field_name: str, low: float, high: float) -> float:
    number = require_number(value, field_name)
    if number < low or number > high:
        raise ValidationError(f"{field_name} must be between {low:g} and {high:g}")
    return number


def require_int_in_range(value: object, field_name: str, low: int, high: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field_name} must be an integer")
    if value < low or value > high:
        raise ValidationError(f"{field_name} must be between {low} and {high}")
    return value
