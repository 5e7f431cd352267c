from datetime import date, timedelta
from typing import Optional

import pytest

from tourplanner.models.domain import GeoCoordinate, Venue, VenueAssignment
from tourplanner.models.status import VenueStatus
from tourplanner.services.geospatial import distance_km
from tourplanner.services.routing import scoring
from tourplanner.services.routing.metrics import (
    compute_metrics,
    coordinate_errors,
    estimate_travel_minutes,
    incoming_travel,
)
from tourplanner.services.routing.models import Route, RouteStop


def _stop(
    aid: str,
    lat: Optional[float],
    lon: Optional[float],
    status: VenueStatus = VenueStatus.POTENTIAL,
    day: Optional[date] = None,
) -> RouteStop:
    venue = Venue(id=f"V{aid}", name=f"Venue {aid}", city="City", coordinate=GeoCoordinate.from_optional(lat, lon))
    return RouteStop(VenueAssignment(id=aid, tour_id="T1", venue_id=venue.id, status=status, date=day), venue)


def _route(*stops: RouteStop) -> Route:
    return Route(tour_id="T1", stops=tuple(stops))


def test_single_leg_distance_and_estimated_time() -> None:
    metrics = compute_metrics(_route(_stop("A", 0.0, 0.0), _stop("B", 0.0, 1.0)), average_speed_kmh=80)

    assert metrics.total_distance_km == pytest.approx(111.19, abs=0.5)
    assert metrics.total_travel_time_minutes == pytest.approx(metrics.total_distance_km / 80 * 60)
    assert metrics.unrouted_count == 0
    assert len(metrics.legs) == 1
    assert metrics.legs[0].source == "estimate"


def test_provided_leg_time_overrides_estimate() -> None:
    route = _route(_stop("A", 0.0, 0.0), _stop("B", 0.0, 1.0), _stop("C", 0.0, 2.0))
    metrics = compute_metrics(route, average_speed_kmh=80, leg_times={("A", "B"): 120.0})

    assert metrics.legs[0].travel_time_minutes == 120.0
    assert metrics.legs[0].source == "provided"
    assert metrics.legs[1].travel_time_minutes == pytest.approx(estimate_travel_minutes(metrics.legs[1].distance_km, 80))
    assert metrics.total_travel_time_minutes == pytest.approx(120.0 + metrics.legs[1].travel_time_minutes)


def test_missing_coordinate_legs_are_flagged_not_dropped() -> None:
    route = _route(_stop("A", 0.0, 0.0), _stop("X", None, None), _stop("B", 0.0, 1.0))
    metrics = compute_metrics(route)

    assert metrics.total_distance_km == 0.0
    assert metrics.total_travel_time_minutes == 0.0
    assert metrics.unrouted_count == 2
    assert [segment.missing_assignment_ids for segment in metrics.unrouted_segments] == [("X",), ("X",)]
    assert len(route) == 3


def test_coordinate_errors_are_soft() -> None:
    route = _route(_stop("A", 0.0, 0.0), _stop("X", None, None))
    errors = coordinate_errors(route)

    assert len(errors) == 1
    notice = errors[0].to_notice()
    assert notice["error"] == "InvalidCoordinateError"
    assert notice["assignment_id"] == "X"
    assert notice["next_action"] == "fix_data"


def test_cancelled_stops_are_not_travelled() -> None:
    route = _route(
        _stop("A", 0.0, 0.0),
        _stop("C", 10.0, 10.0, status=VenueStatus.CANCELLED),
        _stop("B", 0.0, 1.0),
    )
    metrics = compute_metrics(route)

    assert metrics.total_distance_km == pytest.approx(distance_km(GeoCoordinate(0.0, 0.0), GeoCoordinate(0.0, 1.0)))
    assert [(leg.from_assignment_id, leg.to_assignment_id) for leg in metrics.legs] == [("A", "B")]


def test_recompute_is_deterministic() -> None:
    start = date(2024, 6, 1)
    route = _route(
        _stop("A", 40.0, -100.0, day=start),
        _stop("B", 41.0, -90.0, day=start + timedelta(days=2)),
        _stop("C", 39.0, -80.0, day=start + timedelta(days=3)),
    )
    assert compute_metrics(route) == compute_metrics(route)


def test_incoming_travel_maps_each_leg_to_its_destination() -> None:
    metrics = compute_metrics(_route(_stop("A", 0.0, 0.0), _stop("B", 0.0, 1.0)))
    travel = incoming_travel(metrics)

    assert set(travel) == {"B"}
    assert travel["B"][0] == pytest.approx(metrics.total_distance_km)


def test_non_positive_speed_is_rejected() -> None:
    with pytest.raises(ValueError):
        compute_metrics(_route(_stop("A", 0.0, 0.0)), average_speed_kmh=0)


def test_score_is_bounded_integer() -> None:
    metrics = compute_metrics(_route(_stop("A", 0.0, 0.0), _stop("B", 0.0, 1.0)))
    assert isinstance(metrics.optimization_score, int)
    assert 0 <= metrics.optimization_score <= 100


def test_optimization_score_penalties_and_bonuses() -> None:
    assert scoring.optimization_score(0, 0) == 100
    assert scoring.optimization_score(5000, 20000) == 60
    assert scoring.optimization_score(
        5000, 20000, gap_filling_quality=100, geographic_clustering=100, schedule_efficiency=100, date_coverage=100
    ) == 100
    assert scoring.optimization_score(1000, 2500, geographic_clustering=50) == 90


def test_score_components() -> None:
    start = date(2024, 6, 1)
    assert scoring.geographic_clustering([GeoCoordinate(0.0, 0.0)]) == 50
    assert scoring.geographic_clustering(
        [GeoCoordinate(0.0, 0.0), GeoCoordinate(0.0, 0.1), GeoCoordinate(0.0, 0.2)]
    ) == 100
    assert scoring.schedule_efficiency([start]) == 40
    assert scoring.schedule_efficiency([start, start + timedelta(days=1)]) == 100
    assert scoring.schedule_efficiency([start, start + timedelta(days=30)]) == 0
    assert scoring.date_coverage([]) == 0
    assert scoring.date_coverage([start, None]) == 50


def test_score_halves_round_up() -> None:
    start = date(2024, 6, 1)
    assert scoring.date_coverage([start] + [None] * 7) == 13
    assert scoring.optimization_score(150, 0) == 99
