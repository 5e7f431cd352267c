"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Literal, Optional

from ...models.domain import GeoCoordinate, Venue, VenueAssignment
from ...models.status import VenueStatus

ResultSource = Literal["remote", "remote_degraded", "local_fallback", "no_op"]

FALLBACK_LABEL = "Local fallback ordering (longitude heuristic, not a routing optimization)"


@dataclass(frozen=True, slots=True)
class RouteStop:
    assignment: VenueAssignment
    venue: Venue

    @property
    def coordinate(self) -> Optional[GeoCoordinate]:
        return self.venue.coordinate


@dataclass(frozen=True, slots=True)
class Route:
    """Ordered stops of one tour."""

    tour_id: str
    stops: tuple[RouteStop, ...]

    def __len__(self) -> int:
        return len(self.stops)

    def assignments(self) -> list[VenueAssignment]:
        return [stop.assignment for stop in self.stops]

    def venue_ids(self) -> list[str]:
        return [stop.assignment.venue_id for stop in self.stops]


@dataclass(frozen=True, slots=True)
class RouteLeg:
    from_assignment_id: str
    to_assignment_id: str
    distance_km: float
    travel_time_minutes: float
    source: Literal["estimate", "provided"] = "estimate"


@dataclass(frozen=True, slots=True)
class UnroutedSegment:
    from_assignment_id: str
    to_assignment_id: str
    missing_assignment_ids: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class RouteMetrics:
    total_distance_km: float
    total_travel_time_minutes: float
    optimization_score: Optional[int] = None
    legs: tuple[RouteLeg, ...] = ()
    unrouted_segments: tuple[UnroutedSegment, ...] = ()

    @property
    def unrouted_count(self) -> int:
        return len(self.unrouted_segments)


@dataclass(frozen=True, slots=True)
class MetricsComparison:
    distance_improvement_pct: int
    time_improvement_pct: int
    score_delta: Optional[int]


@dataclass(frozen=True, slots=True)
class FillVenueSuggestion:
    venue: Venue
    suggested_date: Optional[date] = None
    suggested_sequence: Optional[int] = None
    detour_ratio: Optional[float] = None
    status: Optional[VenueStatus] = None
    in_tour: bool = True
    assignment_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class DateConflict:
    assignment_id: str
    conflicts_with: str
    date: date


@dataclass(slots=True)
class OptimizationResult:
    """A proposed ordering for a tour, from the remote optimizer or the local fallback."""

    tour_id: str
    route: Route
    metrics: RouteMetrics
    source: ResultSource
    potential_fill_venues: list[FillVenueSuggestion] = field(default_factory=list)
    suggested_skips: list[str] = field(default_factory=list)
    date_conflicts: list[DateConflict] = field(default_factory=list)
    reasoning: str = ""
    remote_estimates: dict = field(default_factory=dict)

    @property
    def is_fallback(self) -> bool:
        return self.source == "local_fallback"

    @property
    def label(self) -> str:
        match self.source:
            case "local_fallback":
                return FALLBACK_LABEL
            case "remote_degraded":
                return "Remote optimizer (degraded to its own fallback)"
            case "no_op":
                return "Original order (too few venues to reorder)"
            case _:
                return "Remote optimizer"
