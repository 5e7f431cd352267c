"""Optimization score heuristics.

The score is a 0-100 summary of route efficiency: distance and travel time
penalties offset by bonuses for geographic clustering, schedule spacing and
date coverage.
"""

from __future__ import annotations

from datetime import date
from typing import Optional, Sequence

from ...models.domain import GeoCoordinate
from ..geospatial import distance_km, round_half_up

_CLUSTER_POINTS = ((50, 10), (100, 8), (200, 6), (300, 4), (500, 2))


def optimization_score(
    total_distance_km: float,
    total_travel_time_minutes: float,
    *,
    gap_filling_quality: float = 0,
    geographic_clustering: float = 0,
    schedule_efficiency: float = 0,
    date_coverage: float = 0,
) -> int:
    distance_penalty = min(20.0, total_distance_km / 100)
    time_penalty = min(20.0, total_travel_time_minutes / 500)
    gap_bonus = min(15.0, gap_filling_quality * 0.15)
    cluster_bonus = min(10.0, geographic_clustering * 0.1)
    schedule_bonus = min(15.0, schedule_efficiency * 0.15)
    date_bonus = min(15.0, date_coverage * 0.15)

    score = 100 - distance_penalty - time_penalty + gap_bonus + cluster_bonus + schedule_bonus + date_bonus
    return max(0, min(100, round_half_up(score)))


def geographic_clustering(coordinates: Sequence[Optional[GeoCoordinate]]) -> int:
    """Score 0-100 for how close each interior stop is to both of its neighbours."""
    if len(coordinates) < 3:
        return 50

    points = 0
    max_points = (len(coordinates) - 2) * 10
    for prev, current, nxt in zip(coordinates, coordinates[1:], coordinates[2:]):
        if prev is None or current is None or nxt is None:
            continue
        worst = max(distance_km(current, prev), distance_km(current, nxt))
        for limit, award in _CLUSTER_POINTS:
            if worst < limit:
                points += award
                break
    return round_half_up(points / max_points * 100)


def schedule_efficiency(dates: Sequence[Optional[date]]) -> int:
    """Score 0-100 for how tightly consecutive show dates are spaced."""
    dated = sorted(day for day in dates if day is not None)
    if len(dated) < 2:
        return 40

    points = 0
    max_points = (len(dated) - 1) * 10
    for current, nxt in zip(dated, dated[1:]):
        points += _spacing_points((nxt - current).days)
    return round_half_up(points / max_points * 100)


def date_coverage(dates: Sequence[Optional[date]]) -> int:
    if not dates:
        return 0
    dated = sum(1 for day in dates if day is not None)
    return round_half_up(dated / len(dates) * 100)


def _spacing_points(days_between: int) -> int:
    if days_between == 1:
        return 10
    if days_between == 2:
        return 9
    if days_between == 3:
        return 7
    if days_between <= 5:
        return 5
    if days_between <= 7:
        return 3
    if days_between <= 14:
        return 1
    return 0
