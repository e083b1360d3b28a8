import math

import pytest

from src.hostel_gatepass.hostel_gatepass.core.exceptions import ValidationError
from src.hostel_gatepass.hostel_gatepass.geo.geofence import GeoPoint, distance_meters, evaluate_fence, validate_coordinates

CENTER = GeoPoint(28.986701, 77.152050)
METERS_PER_DEGREE = math.pi * 6_371_000 / 180


def north_of(center: GeoPoint, meters: float) -> GeoPoint:
    return GeoPoint(center.latitude + meters / METERS_PER_DEGREE, center.longitude)


def test_distance_is_zero_for_same_point():
    assert distance_meters(CENTER, CENTER) == 0


def test_distance_along_meridian_matches_arc_length():
    assert distance_meters(CENTER, north_of(CENTER, 1000)) == pytest.approx(1000, abs=0.01)


def test_distance_is_symmetric():
    other = GeoPoint(28.6139, 77.2090)
    assert distance_meters(CENTER, other) == pytest.approx(distance_meters(other, CENTER))


def test_fence_rejects_75m_with_rounded_distance():
    decision = evaluate_fence(north_of(CENTER, 75), CENTER, 50)
    assert decision.inside is False
    assert decision.distance_meters == 75


def test_fence_accepts_40m():
    decision = evaluate_fence(north_of(CENTER, 40), CENTER, 50)
    assert decision.inside is True
    assert decision.distance_meters == 40


def test_fence_boundary_is_inclusive():
    assert evaluate_fence(north_of(CENTER, 49.999), CENTER, 50).inside is True
    assert evaluate_fence(north_of(CENTER, 50.5), CENTER, 50).inside is False


@pytest.mark.parametrize(
    "lat,lon",
    [(91, 0), (-90.0001, 0), (0, 180.5), (0, -181), (float("nan"), 0), (0, float("inf")), ("28.5", 0), (None, 0), (True, 0)],
)
def test_invalid_coordinates_are_rejected(lat, lon):
    with pytest.raises(ValidationError):
        validate_coordinates(lat, lon)


def test_valid_coordinates_accept_ints_and_extremes():
    assert validate_coordinates(28, 77) == GeoPoint(28.0, 77.0)
    assert validate_coordinates(-90, 180) == GeoPoint(-90.0, 180.0)
