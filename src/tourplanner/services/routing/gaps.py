"""Suggest catalog venues that fill schedule gaps between dated shows."""

from __future__ import annotations

from datetime import timedelta
from typing import Iterable

from ...models.domain import Venue
from ..geospatial import distance_km, round_half_up
from .metrics import travelled_stops
from .models import FillVenueSuggestion, Route
from .sequence import DetourThresholds, recommend_hold


def _max_fills(days_between: int) -> int:
    if days_between > 14:
        return 5
    if days_between > 7:
        return 3
    return 1


def suggest_gap_fills(
    route: Route,
    candidates: Iterable[Venue],
    *,
    min_days_between_shows: int = 1,
    thresholds: DetourThresholds | None = None,
) -> list[FillVenueSuggestion]:
    """Rank venues not yet in the tour for each gap between consecutive dated stops.

    A candidate qualifies for a gap when its detour ratio, the distance via the
    candidate over the direct distance, stays below the hold3 threshold. Suggested
    dates are spread evenly across the gap.
    """
    limits = thresholds or DetourThresholds.from_settings()
    in_tour = set(route.venue_ids())
    pool = [venue for venue in candidates if venue.id not in in_tour and venue.coordinate is not None]
    stops = [
        stop
        for stop in travelled_stops(route)
        if stop.coordinate is not None and stop.assignment.date is not None
    ]

    suggestions: list[FillVenueSuggestion] = []
    used: set[str] = set()
    for current, nxt in zip(stops, stops[1:]):
        days_between = (nxt.assignment.date - current.assignment.date).days
        if days_between <= min_days_between_shows:
            continue
        direct = distance_km(current.coordinate, nxt.coordinate)
        if direct <= 0:
            continue

        scored = []
        for venue in pool:
            if venue.id in used:
                continue
            via = distance_km(current.coordinate, venue.coordinate) + distance_km(venue.coordinate, nxt.coordinate)
            ratio = via / direct
            if ratio < limits.hold3_max:
                scored.append((ratio, venue.id, venue))
        scored.sort(key=lambda item: (item[0], item[1]))
        chosen = scored[: _max_fills(days_between)]

        for position, (ratio, _, venue) in enumerate(chosen, start=1):
            offset = round_half_up(days_between * position / (len(chosen) + 1))
            used.add(venue.id)
            suggestions.append(
                FillVenueSuggestion(
                    venue=venue,
                    suggested_date=current.assignment.date + timedelta(days=offset),
                    detour_ratio=ratio,
                    status=recommend_hold(ratio, limits),
                    in_tour=False,
                )
            )
    return suggestions
