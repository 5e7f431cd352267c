"""Project tour assignments into map markers, route polylines and viewports."""

from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Optional, Sequence

from ...models.domain import Venue, VenueAssignment
from ...models.status import SUGGESTED_STATUSES, VenueStatus
from ..routing.metrics import coordinate_errors, travelled_stops
from ..routing.models import FillVenueSuggestion, OptimizationResult, Route
from ..routing.sequence import display_order
from .models import MapMarker, MapOverlay
from .viewport import fit_viewport


def project(assignment: VenueAssignment, venue: Venue, *, in_tour: bool = True) -> MapMarker:
    return MapMarker(
        id=assignment.id,
        venue_id=venue.id,
        coordinate=venue.coordinate,
        label=venue.name,
        status=assignment.status,
        is_suggested=assignment.status in SUGGESTED_STATUSES or not in_tour,
        date=assignment.date,
        sequence=assignment.sequence,
    )


def project_suggestion(suggestion: FillVenueSuggestion) -> MapMarker:
    status = suggestion.status or VenueStatus.SUGGESTED
    return MapMarker(
        id=suggestion.assignment_id or f"suggestion-{suggestion.venue.id}",
        venue_id=suggestion.venue.id,
        coordinate=suggestion.venue.coordinate,
        label=suggestion.venue.name,
        status=status,
        is_suggested=status in SUGGESTED_STATUSES or not suggestion.in_tour,
        date=suggestion.suggested_date,
        sequence=suggestion.suggested_sequence,
    )


def order_markers(markers: Sequence[MapMarker]) -> list[MapMarker]:
    """Display order for a marker set, numbered densely from 0."""
    ordered = display_order(markers, sequence_of=lambda m: m.sequence, date_of=lambda m: m.date)
    return [replace(marker, sequence=index) for index, marker in enumerate(ordered)]


def route_overlay(
    route: Route,
    *,
    extra_suggestions: Iterable[FillVenueSuggestion] = (),
    padding_px: Optional[int] = None,
) -> MapOverlay:
    """Markers, polyline and viewport for a route, optionally with not-yet-booked suggestions."""
    markers = [project(stop.assignment, stop.venue) for stop in route.stops]
    markers.extend(project_suggestion(suggestion) for suggestion in extra_suggestions if not suggestion.in_tour)
    ordered = order_markers(markers)

    polyline = [stop.coordinate for stop in travelled_stops(route) if stop.coordinate is not None]
    viewport = fit_viewport((marker.coordinate for marker in ordered), padding_px)
    notices = [error.to_notice() for error in coordinate_errors(route)]
    return MapOverlay(markers=ordered, polyline=polyline, viewport=viewport, notices=notices)


def preview_overlay(result: OptimizationResult, *, padding_px: Optional[int] = None) -> MapOverlay:
    return route_overlay(
        result.route,
        extra_suggestions=result.potential_fill_venues,
        padding_px=padding_px,
    )
