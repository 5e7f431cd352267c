import math

import pytest

from tourplanner.models.domain import GeoCoordinate
from tourplanner.services.geospatial import (
    distance_km,
    format_distance,
    haversine_km,
    km_to_miles,
    miles_to_km,
    round_half_up,
)


@pytest.mark.parametrize(
    "point",
    [GeoCoordinate(0.0, 0.0), GeoCoordinate(40.7128, -74.006), GeoCoordinate(-33.87, 151.21), GeoCoordinate(90.0, 180.0)],
)
def test_distance_to_self_is_zero(point: GeoCoordinate) -> None:
    assert distance_km(point, point) == 0.0


@pytest.mark.parametrize(
    "a, b",
    [
        (GeoCoordinate(40.0, -100.0), GeoCoordinate(39.0, -80.0)),
        (GeoCoordinate(51.5074, -0.1278), GeoCoordinate(48.8566, 2.3522)),
        (GeoCoordinate(-12.3456, 170.0), GeoCoordinate(12.3456, -170.0)),
    ],
)
def test_distance_is_symmetric(a: GeoCoordinate, b: GeoCoordinate) -> None:
    assert distance_km(a, b) == distance_km(b, a)


def test_one_degree_of_longitude_at_equator() -> None:
    assert distance_km(GeoCoordinate(0.0, 0.0), GeoCoordinate(0.0, 1.0)) == pytest.approx(111.19, abs=0.5)


def test_distance_matches_haversine() -> None:
    a, b = GeoCoordinate(40.0, -100.0), GeoCoordinate(41.0, -90.0)
    assert distance_km(a, b) == pytest.approx(haversine_km(40.0, -100.0, 41.0, -90.0))


def test_coordinate_rejects_out_of_range_values() -> None:
    with pytest.raises(ValueError):
        GeoCoordinate(91.0, 0.0)
    with pytest.raises(ValueError):
        GeoCoordinate(0.0, -181.0)


def test_from_optional_treats_missing_or_invalid_as_none() -> None:
    assert GeoCoordinate.from_optional(None, 10.0) is None
    assert GeoCoordinate.from_optional(10.0, None) is None
    assert GeoCoordinate.from_optional(120.0, 10.0) is None
    assert GeoCoordinate.from_optional(math.nan, 10.0) is None
    assert GeoCoordinate.from_optional("12.5", "-3") == GeoCoordinate(12.5, -3.0)


def test_unit_conversions_round_trip() -> None:
    assert km_to_miles(100.0) == pytest.approx(62.1371)
    assert miles_to_km(km_to_miles(42.0)) == pytest.approx(42.0)


def test_format_distance() -> None:
    assert format_distance(0.85) == "850 m"
    assert format_distance(12.34) == "12.3 km"
    assert format_distance(12.34, "mi") == "7.7 mi"


@pytest.mark.parametrize("value, expected", [(0.5, 1), (2.5, 3), (12.4, 12), (-12.5, -12), (-0.6, -1)])
def test_round_half_up(value: float, expected: int) -> None:
    assert round_half_up(value) == expected
