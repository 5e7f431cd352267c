"""Aggregate leg distances and travel times over an ordered route."""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Optional, Sequence

from ...config import settings
from ...errors import InvalidCoordinateError
from ...models.domain import GeoCoordinate
from ...models.status import VenueStatus
from ..geospatial import distance_km
from . import scoring
from .models import Route, RouteLeg, RouteMetrics, RouteStop, UnroutedSegment

logger = logging.getLogger(__name__)

LegKey = tuple[str, str]


def estimate_travel_minutes(leg_distance_km: float, average_speed_kmh: float) -> float:
    return leg_distance_km / average_speed_kmh * 60.0


def travelled_stops(route: Route, excluded_statuses: Iterable[str] | None = None) -> list[RouteStop]:
    """Stops that are actually visited, in route order."""
    excluded = {
        VenueStatus.parse(status)
        for status in (settings.metrics_excluded_statuses if excluded_statuses is None else excluded_statuses)
    }
    return [stop for stop in route.stops if stop.assignment.status not in excluded]


def compute_metrics(
    route: Route,
    *,
    average_speed_kmh: Optional[float] = None,
    leg_times: Optional[Mapping[LegKey, float]] = None,
    excluded_statuses: Iterable[str] | None = None,
) -> RouteMetrics:
    """Walk consecutive stops and total up distance, time and score.

    Legs touching a stop without a coordinate contribute nothing and are reported in
    ``unrouted_segments``. ``leg_times`` may carry authoritative minutes for a leg keyed
    by ``(from_assignment_id, to_assignment_id)``; other legs are estimated from the
    average speed.
    """
    speed = average_speed_kmh if average_speed_kmh is not None else settings.average_speed_kmh
    if speed <= 0:
        raise ValueError(f"Average speed must be positive, got {speed}.")
    provided = leg_times or {}
    stops = travelled_stops(route, excluded_statuses)

    total_distance = 0.0
    total_minutes = 0.0
    legs: list[RouteLeg] = []
    unrouted: list[UnroutedSegment] = []

    for current, nxt in zip(stops, stops[1:]):
        from_id, to_id = current.assignment.id, nxt.assignment.id
        if current.coordinate is None or nxt.coordinate is None:
            missing = tuple(stop.assignment.id for stop in (current, nxt) if stop.coordinate is None)
            unrouted.append(UnroutedSegment(from_id, to_id, missing))
            continue

        leg_distance = distance_km(current.coordinate, nxt.coordinate)
        if (from_id, to_id) in provided:
            minutes = float(provided[(from_id, to_id)])
            source = "provided"
        else:
            minutes = estimate_travel_minutes(leg_distance, speed)
            source = "estimate"
        total_distance += leg_distance
        total_minutes += minutes
        legs.append(RouteLeg(from_id, to_id, leg_distance, minutes, source))

    if unrouted:
        logger.warning(
            f"Tour {route.tour_id}: {len(unrouted)} leg(s) skipped because a venue has no coordinate"
        )

    coordinates = [stop.coordinate for stop in stops]
    dates = [stop.assignment.date for stop in stops]
    score = scoring.optimization_score(
        total_distance,
        total_minutes,
        geographic_clustering=scoring.geographic_clustering(coordinates),
        schedule_efficiency=scoring.schedule_efficiency(dates),
        date_coverage=scoring.date_coverage(dates),
    )

    return RouteMetrics(
        total_distance_km=total_distance,
        total_travel_time_minutes=total_minutes,
        optimization_score=score,
        legs=tuple(legs),
        unrouted_segments=tuple(unrouted),
    )


def coordinate_errors(route: Route) -> list[InvalidCoordinateError]:
    """Soft errors for every stop lacking a coordinate. Never raises."""
    return [
        InvalidCoordinateError(
            f"Venue '{stop.venue.name}' has no location data and is left out of distances and the map.",
            assignment_id=stop.assignment.id,
        )
        for stop in route.stops
        if stop.coordinate is None
    ]


def incoming_travel(metrics: RouteMetrics) -> dict[str, tuple[float, float]]:
    """Map each assignment id to the (distance km, minutes) of the leg arriving at it."""
    return {leg.to_assignment_id: (leg.distance_km, leg.travel_time_minutes) for leg in metrics.legs}


def path_distance_km(coordinates: Sequence[Optional[GeoCoordinate]]) -> float:
    """Sum of consecutive leg distances, skipping legs with a missing coordinate."""
    total = 0.0
    for current, nxt in zip(coordinates, coordinates[1:]):
        if current is not None and nxt is not None:
            total += distance_km(current, nxt)
    return total
