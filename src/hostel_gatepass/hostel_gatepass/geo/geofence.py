"""Geofence evaluation on a spherical Earth (haversine)."""

from __future__ import annotations

import math
from dataclasses import dataclass

from ..common.validators import require_in_range
from ..core.constants import EARTH_RADIUS_METERS


@dataclass(frozen=True)
class GeoPoint:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class FenceDecision:
    inside: bool
    distance_meters: int


def validate_coordinates(latitude: object, longitude: object) -> GeoPoint:
    """Out-of-range or non-finite input is a caller error, never clamped."""
    lat = require_in_range(latitude, "Latitude", -90, 90)
    lon = require_in_range(longitude, "Longitude", -180, 180)
    return GeoPoint(latitude=lat, longitude=lon)


def distance_meters(a: GeoPoint, b: GeoPoint) -> float:
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    d_phi = math.radians(b.latitude - a.latitude)
    d_lambda = math.radians(b.longitude - a.longitude)

    h = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return EARTH_RADIUS_METERS * c


def evaluate_fence(point: GeoPoint, center: GeoPoint, radius_meters: float) -> FenceDecision:
    distance = distance_meters(point, center)
    return FenceDecision(inside=distance <= radius_meters, distance_meters=int(round(distance)))
