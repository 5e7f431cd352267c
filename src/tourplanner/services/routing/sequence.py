"""Route ordering, optimization-result validation and the local fallback ordering.

Confirmed assignments are anchors: no ordering produced or accepted here ever
changes their relative order. Flexible assignments (everything else that is not
cancelled) may move.
"""

from __future__ import annotations

import logging
from collections import defaultdict, deque
from dataclasses import dataclass, replace
from datetime import date
from typing import Callable, Iterable, Mapping, Optional, Sequence, TypeVar

from ...config import settings
from ...errors import ApplyConflict, InsufficientDataError
from ...models.domain import Venue, VenueAssignment
from ...models.status import VenueStatus, hold_for_rank, is_fixed_anchor, is_terminal
from ..geospatial import distance_km
from .metrics import compute_metrics, path_distance_km, travelled_stops
from .models import DateConflict, FillVenueSuggestion, OptimizationResult, Route, RouteStop

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class DetourThresholds:
    """Upper bounds (exclusive) of the detour ratio for hold1, hold2 and hold3."""

    hold1_max: float = 1.1
    hold2_max: float = 1.3
    hold3_max: float = 1.5

    @classmethod
    def from_settings(cls) -> "DetourThresholds":
        return cls(settings.detour_hold1_max, settings.detour_hold2_max, settings.detour_hold3_max)


@dataclass(frozen=True, slots=True)
class SequencePolicy:
    anchor_statuses: frozenset[VenueStatus] = frozenset({VenueStatus.CONFIRMED})
    thresholds: DetourThresholds = DetourThresholds()
    min_dated_assignments: int = 2
    min_reorderable_assignments: int = 3

    @classmethod
    def from_settings(cls) -> "SequencePolicy":
        return cls(
            anchor_statuses=frozenset(VenueStatus.parse(status) for status in settings.anchor_statuses),
            thresholds=DetourThresholds.from_settings(),
            min_dated_assignments=settings.min_dated_assignments,
            min_reorderable_assignments=settings.min_reorderable_assignments,
        )

    def is_anchor(self, status: VenueStatus) -> bool:
        return is_fixed_anchor(status) or status in self.anchor_statuses


def recommend_hold(detour_ratio: float, thresholds: DetourThresholds | None = None) -> VenueStatus:
    """Map a detour ratio to a recommended priority hold (lower ratio, higher priority)."""
    limits = thresholds or DetourThresholds.from_settings()
    if detour_ratio < limits.hold1_max:
        return hold_for_rank(1)
    if detour_ratio < limits.hold2_max:
        return hold_for_rank(2)
    if detour_ratio < limits.hold3_max:
        return hold_for_rank(3)
    return hold_for_rank(4)


def display_order(
    items: Sequence[T],
    *,
    sequence_of: Callable[[T], Optional[int]],
    date_of: Callable[[T], Optional[date]],
) -> list[T]:
    """Order by stored sequence, placing items without one by date, else by input order.

    Items that carry a sequence always keep their sequence order among themselves. An
    unsequenced dated item goes in front of the first sequenced item with a later date.
    Unsequenced undated items follow in their input order; sorting is stable throughout.
    """
    sequenced = sorted((item for item in items if sequence_of(item) is not None), key=sequence_of)
    loose = [item for item in items if sequence_of(item) is None]
    dated = deque(sorted((item for item in loose if date_of(item) is not None), key=date_of))
    undated = [item for item in loose if date_of(item) is None]

    ordered: list[T] = []
    for item in sequenced:
        day = date_of(item)
        while dated and day is not None and date_of(dated[0]) < day:
            ordered.append(dated.popleft())
        ordered.append(item)
    ordered.extend(dated)
    ordered.extend(undated)
    return ordered


def build_route(tour_id: str, rows: Iterable[tuple[VenueAssignment, Venue]]) -> Route:
    stops = [RouteStop(assignment, venue) for assignment, venue in rows]
    ordered = display_order(
        stops,
        sequence_of=lambda stop: stop.assignment.sequence,
        date_of=lambda stop: stop.assignment.date,
    )
    return Route(tour_id=tour_id, stops=tuple(ordered))


def renumber(route: Route) -> Route:
    """Dense 0-based sequence numbers in current route order."""
    stops = tuple(
        RouteStop(replace(stop.assignment, sequence=index), stop.venue)
        for index, stop in enumerate(route.stops)
    )
    return Route(tour_id=route.tour_id, stops=stops)


def anchor_order(route: Route, policy: SequencePolicy) -> list[str]:
    return [stop.assignment.id for stop in route.stops if policy.is_anchor(stop.assignment.status)]


def check_preconditions(route: Route, policy: SequencePolicy | None = None) -> None:
    policy = policy or SequencePolicy.from_settings()
    dated = [
        stop
        for stop in route.stops
        if stop.coordinate is not None and stop.assignment.date is not None and not is_terminal(stop.assignment.status)
    ]
    if len(dated) < policy.min_dated_assignments:
        raise InsufficientDataError(
            f"Optimization needs at least {policy.min_dated_assignments} venues with both a location "
            f"and a date; tour {route.tour_id} has {len(dated)}."
        )


def reorderable_stops(route: Route) -> list[RouteStop]:
    return [
        stop for stop in route.stops if stop.coordinate is not None and not is_terminal(stop.assignment.status)
    ]


def fallback_order(route: Route, policy: SequencePolicy | None = None) -> Route:
    """Deterministic longitude-based ordering around fixed anchors.

    Anchors keep their relative order. Each flexible stop with a coordinate is placed
    next to its nearest anchor: after it when the stop lies east of the anchor, before
    it otherwise. Stops sharing a slot run west to east. Flexible stops without a
    coordinate follow, then cancelled stops, both in their existing order.
    """
    policy = policy or SequencePolicy.from_settings()
    anchors: list[RouteStop] = []
    flexible: list[RouteStop] = []
    unlocated: list[RouteStop] = []
    cancelled: list[RouteStop] = []
    for stop in route.stops:
        status = stop.assignment.status
        if is_terminal(status):
            cancelled.append(stop)
        elif policy.is_anchor(status):
            anchors.append(stop)
        elif stop.coordinate is None:
            unlocated.append(stop)
        else:
            flexible.append(stop)

    slots: list[list[RouteStop]] = [[] for _ in range(len(anchors) + 1)]
    located_anchors = [(index, stop) for index, stop in enumerate(anchors) if stop.coordinate is not None]
    for stop in flexible:
        if not located_anchors:
            slots[-1].append(stop)
            continue
        nearest_index, nearest = min(
            located_anchors,
            key=lambda item: (distance_km(stop.coordinate, item[1].coordinate), item[0]),
        )
        if stop.coordinate.longitude >= nearest.coordinate.longitude:
            slots[nearest_index + 1].append(stop)
        else:
            slots[nearest_index].append(stop)

    ordered: list[RouteStop] = []
    for index, slot in enumerate(slots):
        ordered.extend(sorted(slot, key=lambda stop: stop.coordinate.longitude))
        if index < len(anchors):
            ordered.append(anchors[index])
    ordered.extend(unlocated)
    ordered.extend(cancelled)
    return renumber(Route(tour_id=route.tour_id, stops=tuple(ordered)))


def detour_ratios(route: Route) -> dict[str, Optional[float]]:
    """Route distance with each stop divided by route distance without it."""
    stops = travelled_stops(route)
    baseline = path_distance_km([stop.coordinate for stop in stops])
    ratios: dict[str, Optional[float]] = {}
    for index, stop in enumerate(stops):
        if stop.coordinate is None:
            ratios[stop.assignment.id] = None
            continue
        without = path_distance_km([other.coordinate for pos, other in enumerate(stops) if pos != index])
        ratios[stop.assignment.id] = baseline / without if without > 0 else None
    return ratios


def find_date_conflicts(route: Route) -> list[DateConflict]:
    seen: dict[date, str] = {}
    conflicts: list[DateConflict] = []
    for stop in route.stops:
        day = stop.assignment.date
        if day is None or is_terminal(stop.assignment.status):
            continue
        if day in seen:
            conflicts.append(DateConflict(stop.assignment.id, seen[day], day))
        else:
            seen[day] = stop.assignment.id
    return conflicts


def flexible_suggestions(route: Route, policy: SequencePolicy) -> list[FillVenueSuggestion]:
    ratios = detour_ratios(route)
    suggestions = []
    for stop in route.stops:
        status = stop.assignment.status
        if policy.is_anchor(status) or is_terminal(status):
            continue
        ratio = ratios.get(stop.assignment.id)
        suggestions.append(
            FillVenueSuggestion(
                venue=stop.venue,
                suggested_date=stop.assignment.date,
                suggested_sequence=stop.assignment.sequence,
                detour_ratio=ratio,
                status=recommend_hold(ratio, policy.thresholds) if ratio is not None else None,
                in_tour=True,
                assignment_id=stop.assignment.id,
            )
        )
    return suggestions


def build_fallback_result(route: Route, policy: SequencePolicy | None = None) -> OptimizationResult:
    """Produce the local fallback OptimizationResult for a tour.

    Raises ``InsufficientDataError`` when too few venues carry a location and a date.
    With too few reorderable venues the original order is returned unchanged.
    """
    policy = policy or SequencePolicy.from_settings()
    check_preconditions(route, policy)

    if len(reorderable_stops(route)) < policy.min_reorderable_assignments:
        proposed = renumber(route)
        logger.info(f"Tour {route.tour_id}: too few reorderable venues, keeping original order")
        return OptimizationResult(
            tour_id=route.tour_id,
            route=proposed,
            metrics=compute_metrics(proposed),
            source="no_op",
            potential_fill_venues=flexible_suggestions(proposed, policy),
            date_conflicts=find_date_conflicts(proposed),
            reasoning="Fewer than "
            f"{policy.min_reorderable_assignments} venues can be reordered; the current order is kept.",
        )

    proposed = fallback_order(route, policy)
    logger.info(f"Tour {route.tour_id}: built local fallback ordering for {len(proposed)} venues")
    return OptimizationResult(
        tour_id=route.tour_id,
        route=proposed,
        metrics=compute_metrics(proposed),
        source="local_fallback",
        potential_fill_venues=flexible_suggestions(proposed, policy),
        date_conflicts=find_date_conflicts(proposed),
        reasoning=(
            "Confirmed venues keep their order; other venues are placed next to the nearest confirmed "
            "venue and ordered west to east. This is a simple heuristic, not a routing optimization."
        ),
    )


def validate_proposed_order(
    current: Route,
    proposed_venue_ids: Sequence[str],
    policy: SequencePolicy | None = None,
) -> Route:
    """Check a proposed venue ordering against the tour's current assignments.

    Raises ``ApplyConflict`` when the venue sets differ or an anchor moved relative to
    another anchor. Returns the proposed route with dense sequence numbers.
    """
    policy = policy or SequencePolicy.from_settings()
    proposed_ids = [str(venue_id) for venue_id in proposed_venue_ids]

    current_counts: dict[str, int] = defaultdict(int)
    for venue_id in current.venue_ids():
        current_counts[venue_id] += 1
    proposed_counts: dict[str, int] = defaultdict(int)
    for venue_id in proposed_ids:
        proposed_counts[venue_id] += 1

    if proposed_counts != current_counts:
        missing = sorted(set(current_counts) - set(proposed_counts))
        unexpected = sorted(set(proposed_counts) - set(current_counts))
        duplicated = sorted(
            venue_id
            for venue_id, count in proposed_counts.items()
            if venue_id in current_counts and count > current_counts[venue_id]
        )
        raise ApplyConflict(
            f"Optimization result for tour {current.tour_id} no longer matches its venues "
            f"(missing: {missing or 'none'}, unexpected: {unexpected or 'none'}, "
            f"duplicated: {duplicated or 'none'}). Re-run optimization."
        )

    pending: dict[str, list[RouteStop]] = defaultdict(list)
    for stop in current.stops:
        pending[stop.assignment.venue_id].append(stop)
    ordered = tuple(pending[venue_id].pop(0) for venue_id in proposed_ids)
    proposed = Route(tour_id=current.tour_id, stops=ordered)

    if anchor_order(proposed, policy) != anchor_order(current, policy):
        raise ApplyConflict(
            f"Optimization result for tour {current.tour_id} changes the order of confirmed venues. "
            "Re-run optimization."
        )
    return renumber(proposed)


def apply_suggested_dates(route: Route, suggested_dates: Mapping[str, date]) -> Route:
    """Overwrite dates of flexible stops from a ``venue_id -> date`` mapping.

    Anchored (confirmed) dates are never changed.
    """
    if not suggested_dates:
        return route
    stops = []
    for stop in route.stops:
        new_date = suggested_dates.get(stop.assignment.venue_id)
        if new_date is not None and not is_fixed_anchor(stop.assignment.status):
            stop = RouteStop(replace(stop.assignment, date=new_date), stop.venue)
        stops.append(stop)
    return Route(tour_id=route.tour_id, stops=tuple(stops))
