"""Serializers for tour route outputs."""

from __future__ import annotations

import csv
import io

from ..routing.metrics import incoming_travel
from ..routing.models import OptimizationResult, Route, RouteMetrics


def _stop_rows(route: Route, metrics: RouteMetrics) -> list[dict]:
    travel = incoming_travel(metrics)
    rows = []
    for stop in route.stops:
        assignment = stop.assignment
        distance, minutes = travel.get(assignment.id, (None, None))
        rows.append(
            {
                "sequence": assignment.sequence,
                "assignment_id": assignment.id,
                "venue_id": assignment.venue_id,
                "venue_name": stop.venue.name,
                "city": stop.venue.city,
                "status": assignment.status.value,
                "date": assignment.date.isoformat() if assignment.date else None,
                "latitude": stop.coordinate.latitude if stop.coordinate else None,
                "longitude": stop.coordinate.longitude if stop.coordinate else None,
                "distance_from_prev_km": round(distance, 2) if distance is not None else None,
                "travel_time_from_prev_min": round(minutes, 1) if minutes is not None else None,
            }
        )
    return rows


def route_to_json(route: Route, metrics: RouteMetrics) -> dict:
    return {
        "tour_id": route.tour_id,
        "total_distance_km": metrics.total_distance_km,
        "total_travel_time_minutes": metrics.total_travel_time_minutes,
        "optimization_score": metrics.optimization_score,
        "unrouted_count": metrics.unrouted_count,
        "stops": _stop_rows(route, metrics),
    }


def optimization_result_to_json(result: OptimizationResult) -> dict:
    payload = route_to_json(result.route, result.metrics)
    payload.update(
        {
            "source": result.source,
            "label": result.label,
            "reasoning": result.reasoning,
            "suggested_skips": result.suggested_skips,
        }
    )
    return payload


def route_to_csv(route: Route, metrics: RouteMetrics) -> str:
    buffer = io.StringIO()
    fieldnames = [
        "tour_id",
        "sequence",
        "assignment_id",
        "venue_id",
        "venue_name",
        "city",
        "status",
        "date",
        "latitude",
        "longitude",
        "distance_from_prev_km",
        "travel_time_from_prev_min",
    ]
    writer = csv.DictWriter(buffer, fieldnames=fieldnames)
    writer.writeheader()
    for row in _stop_rows(route, metrics):
        writer.writerow({"tour_id": route.tour_id, **row})
    return buffer.getvalue()
