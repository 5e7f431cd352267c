"""Tour route orchestration service."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from functools import lru_cache
from typing import Callable, Iterable, Literal, Mapping, Optional, Sequence

from ...config import settings
from ...errors import RemoteOptimizationUnavailable, TourNotFound
from ...models.domain import GeoCoordinate, Venue
from ...models.status import VenueStatus, status_breakdown
from ...persistence import AssignmentUpdate, TourRepository, get_repository
from ...persistence.filesystem import ExportStorage
from ...schemas.optimization import OptimizationPreferences, RemoteOptimizationResponse
from ...schemas.tours import (
    ApplyResponse,
    ComparisonModel,
    CoordinateModel,
    DateConflictModel,
    FillSuggestionModel,
    GapFillResponse,
    LegModel,
    MapOverlayResponse,
    MarkerModel,
    MetricsModel,
    OptimizeResponse,
    RouteSummaryResponse,
    StopModel,
    ViewportModel,
)
from ..export.geojson import overlay_to_geojson
from ..geospatial import format_distance
from ..maps.models import MapOverlay
from ..maps.projection import preview_overlay, route_overlay
from ..outputs.route_formatter import optimization_result_to_json, route_to_csv
from .cache import OptimizationCache
from .comparison import compare_metrics
from .gaps import suggest_gap_fills
from .metrics import compute_metrics, coordinate_errors, incoming_travel
from .models import FillVenueSuggestion, MetricsComparison, OptimizationResult, Route, RouteMetrics, RouteStop
from .optimizer_client import OptimizerClient
from .registry import OptimizationRegistry
from .sequence import (
    SequencePolicy,
    apply_suggested_dates,
    build_fallback_result,
    build_route,
    check_preconditions,
    find_date_conflicts,
    flexible_suggestions,
    validate_proposed_order,
)

logger = logging.getLogger(__name__)

OptimizeMethod = Literal["auto", "remote", "local"]


@dataclass(frozen=True, slots=True)
class DisplayPreferences:
    """Display preferences, loaded once and passed to whatever renders output."""

    view_mode: Literal["map", "list", "split"] = "map"
    distance_unit: Literal["km", "mi"] = "km"

    @classmethod
    def from_settings(cls) -> "DisplayPreferences":
        return cls(view_mode=settings.default_view_mode, distance_unit=settings.distance_unit)


def _coordinate_model(coordinate: Optional[GeoCoordinate]) -> Optional[CoordinateModel]:
    if coordinate is None:
        return None
    return CoordinateModel(latitude=coordinate.latitude, longitude=coordinate.longitude)


def _metrics_model(metrics: RouteMetrics, display: DisplayPreferences) -> MetricsModel:
    return MetricsModel(
        total_distance_km=metrics.total_distance_km,
        total_travel_time_minutes=metrics.total_travel_time_minutes,
        optimization_score=metrics.optimization_score,
        unrouted_count=metrics.unrouted_count,
        formatted_distance=format_distance(metrics.total_distance_km, display.distance_unit),
        legs=[
            LegModel(
                from_assignment_id=leg.from_assignment_id,
                to_assignment_id=leg.to_assignment_id,
                distance_km=leg.distance_km,
                travel_time_minutes=leg.travel_time_minutes,
                source=leg.source,
            )
            for leg in metrics.legs
        ],
    )


def _stop_models(route: Route, metrics: Optional[RouteMetrics] = None) -> list[StopModel]:
    # Travel fields come from the recomputed legs when metrics are given.
    travel = incoming_travel(metrics) if metrics is not None else None
    stops = []
    for stop in route.stops:
        assignment = stop.assignment
        if travel is None:
            distance, minutes = assignment.travel_distance_from_previous, assignment.travel_time_from_previous
        else:
            distance, minutes = travel.get(assignment.id, (None, None))
        stops.append(
            StopModel(
                assignment_id=assignment.id,
                venue_id=assignment.venue_id,
                name=stop.venue.name,
                city=stop.venue.city,
                status=assignment.status,
                date=assignment.date,
                sequence=assignment.sequence,
                has_coordinate=stop.coordinate is not None,
                travel_distance_from_previous=distance,
                travel_time_from_previous=minutes,
            )
        )
    return stops


def _suggestion_model(suggestion: FillVenueSuggestion) -> FillSuggestionModel:
    return FillSuggestionModel(
        venue_id=suggestion.venue.id,
        name=suggestion.venue.name,
        city=suggestion.venue.city,
        assignment_id=suggestion.assignment_id,
        in_tour=suggestion.in_tour,
        suggested_date=suggestion.suggested_date,
        suggested_sequence=suggestion.suggested_sequence,
        detour_ratio=suggestion.detour_ratio,
        recommended_status=suggestion.status,
    )


def _comparison_model(comparison: MetricsComparison) -> ComparisonModel:
    return ComparisonModel(
        distance_improvement_pct=comparison.distance_improvement_pct,
        time_improvement_pct=comparison.time_improvement_pct,
        score_delta=comparison.score_delta,
    )


def _overlay_model(tour_id: str, overlay: MapOverlay) -> MapOverlayResponse:
    viewport = None
    if overlay.viewport is not None:
        viewport = ViewportModel(
            south_west=_coordinate_model(overlay.viewport.south_west),
            north_east=_coordinate_model(overlay.viewport.north_east),
            padding_px=overlay.viewport.padding_px,
        )
    return MapOverlayResponse(
        tour_id=tour_id,
        markers=[
            MarkerModel(
                id=marker.id,
                venue_id=marker.venue_id,
                coordinate=_coordinate_model(marker.coordinate),
                label=marker.label,
                status=marker.status,
                color=marker.status.info.color,
                is_suggested=marker.is_suggested,
                date=marker.date,
                sequence=marker.sequence,
            )
            for marker in overlay.markers
        ],
        polyline=[_coordinate_model(coordinate) for coordinate in overlay.polyline],
        viewport=viewport,
        notices=overlay.notices,
    )


def _remote_estimates(response: RemoteOptimizationResponse) -> dict:
    estimates = {
        "estimated_distance_reduction": response.estimated_distance_reduction,
        "estimated_time_savings": response.estimated_time_savings,
    }
    if response.calculated_metrics is not None:
        estimates["calculated_metrics"] = response.calculated_metrics.model_dump()
    if response.ai_error is not None:
        estimates["ai_error"] = response.ai_error
    return estimates


class TourRouteService:
    """Loads tours, runs optimizations and applies accepted routes."""

    def __init__(
        self,
        repository: TourRepository,
        *,
        policy: SequencePolicy | None = None,
        cache: OptimizationCache | None = None,
        registry: OptimizationRegistry | None = None,
        client_factory: Callable[[], OptimizerClient] = OptimizerClient,
        display: DisplayPreferences | None = None,
        storage_factory: Callable[[], ExportStorage] = ExportStorage,
    ) -> None:
        self.repository = repository
        self.policy = policy or SequencePolicy.from_settings()
        self.cache = cache or OptimizationCache(settings.optimization_cache_ttl_seconds)
        self.registry = registry or OptimizationRegistry()
        self.client_factory = client_factory
        self.display = display or DisplayPreferences.from_settings()
        self.storage_factory = storage_factory

    def load_route(self, tour_id: str) -> Route:
        records = self.repository.list_tour_rows(tour_id)
        if not records:
            raise TourNotFound(f"Tour {tour_id} has no venues.")
        return build_route(tour_id, (record.to_domain() for record in records))

    def summarize_route(self, tour_id: str) -> RouteSummaryResponse:
        route = self.load_route(tour_id)
        metrics = compute_metrics(route)
        return RouteSummaryResponse(
            tour_id=tour_id,
            view_mode=self.display.view_mode,
            stops=_stop_models(route),
            metrics=_metrics_model(metrics, self.display),
            status_breakdown=status_breakdown(stop.assignment.status for stop in route.stops),
            notices=[error.to_notice() for error in coordinate_errors(route)],
        )

    def map_overlay(self, tour_id: str, preview: OptimizationResult | None = None) -> MapOverlay:
        if preview is not None:
            return preview_overlay(preview)
        return route_overlay(self.load_route(tour_id))

    def build_map(self, tour_id: str, preview: OptimizationResult | None = None) -> MapOverlayResponse:
        return _overlay_model(tour_id, self.map_overlay(tour_id, preview))

    def build_geojson(self, tour_id: str) -> dict:
        return overlay_to_geojson(self.map_overlay(tour_id), tour_id)

    def _remote_result(
        self,
        route: Route,
        preferences: OptimizationPreferences,
        catalog: Callable[[], Iterable[Venue]],
    ) -> OptimizationResult:
        client = self.client_factory()
        response = client.optimize(route.tour_id, preferences)

        proposed = validate_proposed_order(route, response.optimized_sequence, self.policy)
        proposed = apply_suggested_dates(proposed, response.suggested_dates)

        suggestions = flexible_suggestions(proposed, self.policy)
        in_tour = set(proposed.venue_ids())
        outside = [venue_id for venue_id in response.recommended_venues if venue_id not in in_tour]
        if outside:
            venues = {venue.id: venue for venue in catalog()}
            for venue_id in outside:
                venue = venues.get(venue_id)
                if venue is None:
                    logger.warning(f"Tour {route.tour_id}: recommended venue {venue_id} is not in the catalog")
                    continue
                suggestions.append(
                    FillVenueSuggestion(
                        venue=venue,
                        suggested_date=response.suggested_dates.get(venue_id),
                        status=VenueStatus.SUGGESTED,
                        in_tour=False,
                    )
                )

        source = "remote_degraded" if response.degraded else "remote"
        if response.degraded:
            logger.warning(f"Tour {route.tour_id}: remote optimizer degraded to its own fallback: {response.ai_error}")
        return OptimizationResult(
            tour_id=route.tour_id,
            route=proposed,
            metrics=compute_metrics(proposed),
            source=source,
            potential_fill_venues=suggestions,
            suggested_skips=[venue_id for venue_id in response.suggested_skips if venue_id in in_tour],
            date_conflicts=find_date_conflicts(proposed),
            reasoning=response.reasoning,
            remote_estimates=_remote_estimates(response),
        )

    def _cached_result(self, route: Route, preferences: OptimizationPreferences) -> Optional[OptimizationResult]:
        cached = self.cache.get(route.tour_id, preferences)
        if cached is None:
            return None
        if sorted(cached.route.venue_ids()) != sorted(route.venue_ids()):
            self.cache.invalidate(route.tour_id)
            return None
        logger.info(f"Tour {route.tour_id}: using cached optimization result")
        return cached

    def _write_route(self, current: Route, proposed: Route) -> RouteMetrics:
        """Persist sequence, date and travel fields for every stop in one atomic write."""
        metrics = compute_metrics(proposed)
        travel = incoming_travel(metrics)
        updates = []
        for stop in proposed.stops:
            distance, minutes = travel.get(stop.assignment.id, (None, None))
            updates.append(
                AssignmentUpdate(
                    assignment_id=stop.assignment.id,
                    sequence=stop.assignment.sequence,
                    date=stop.assignment.date,
                    travel_distance_from_previous=distance,
                    travel_time_from_previous=minutes,
                )
            )
        self.repository.apply_route(current.tour_id, updates, current.venue_ids())
        self.cache.invalidate(current.tour_id)
        return metrics

    def _export(self, result: OptimizationResult) -> str:
        storage = self.storage_factory()
        run_dir = storage.make_run_directory(prefix=f"tour_{result.tour_id}")
        storage.write_json(run_dir / "route.json", optimization_result_to_json(result))
        storage.write_csv(run_dir / "route.csv", route_to_csv(result.route, result.metrics))
        storage.write_json(run_dir / "route.geojson", overlay_to_geojson(preview_overlay(result), result.tour_id))
        logger.info(f"Tour {result.tour_id}: exported optimization result to {run_dir}")
        return str(run_dir)

    def optimize_tour(
        self,
        tour_id: str,
        preferences: OptimizationPreferences | None = None,
        *,
        method: OptimizeMethod = "auto",
        apply: bool = False,
        persist: bool = False,
    ) -> OptimizeResponse:
        """Produce (and optionally apply) an optimized ordering for a tour.

        ``method="auto"`` tries the remote optimizer and falls back to the local
        ordering when it is unavailable; ``"remote"`` propagates the failure;
        ``"local"`` never calls out. Only one optimization per tour runs at a time.
        If the request is cancelled before it completes, the result is discarded.
        """
        preferences = preferences or OptimizationPreferences()
        route = self.load_route(tour_id)
        check_preconditions(route, self.policy)

        ticket = self.registry.begin(tour_id)
        logger.info(f"Tour {tour_id}: optimization started (method={method})")
        try:
            original_metrics = compute_metrics(route)
            notices = [error.to_notice() for error in coordinate_errors(route)]

            result: Optional[OptimizationResult] = None
            if method != "local":
                result = self._cached_result(route, preferences)
                if result is None:
                    try:
                        result = self._remote_result(route, preferences, self.repository.list_catalog_venues)
                        self.cache.set(tour_id, preferences, result)
                    except RemoteOptimizationUnavailable as exc:
                        if method == "remote":
                            raise
                        logger.warning(f"Tour {tour_id}: remote optimizer unavailable, using local fallback: {exc}")
                        notices.append(exc.to_notice())
            if result is None:
                result = build_fallback_result(route, self.policy)

            comparison = compare_metrics(original_metrics, result.metrics)

            if not self.registry.commit(ticket):
                logger.warning(f"Tour {tour_id}: optimization was cancelled, discarding result")
                return OptimizeResponse(
                    tour_id=tour_id,
                    status="discarded",
                    source=result.source,
                    label=result.label,
                    is_fallback=result.is_fallback,
                    notices=notices,
                )

            status = "preview"
            if apply:
                self._write_route(route, result.route)
                status = "applied"
                logger.info(f"Tour {tour_id}: applied {result.source} ordering")

            export_path = self._export(result) if persist else None
            logger.info(
                f"Tour {tour_id}: optimization finished ({result.source}, "
                f"distance {comparison.distance_improvement_pct}% better)"
            )
            return OptimizeResponse(
                tour_id=tour_id,
                status=status,
                source=result.source,
                label=result.label,
                is_fallback=result.is_fallback,
                reasoning=result.reasoning,
                stops=_stop_models(result.route, result.metrics),
                optimized_sequence=result.route.venue_ids(),
                suggested_dates={
                    stop.assignment.venue_id: stop.assignment.date
                    for stop in result.route.stops
                    if stop.assignment.date is not None
                },
                metrics=_metrics_model(result.metrics, self.display),
                original_metrics=_metrics_model(original_metrics, self.display),
                comparison=_comparison_model(comparison),
                potential_fill_venues=[_suggestion_model(item) for item in result.potential_fill_venues],
                suggested_skips=result.suggested_skips,
                date_conflicts=[
                    DateConflictModel(
                        assignment_id=conflict.assignment_id,
                        conflicts_with=conflict.conflicts_with,
                        date=conflict.date,
                    )
                    for conflict in result.date_conflicts
                ],
                remote_estimates=result.remote_estimates,
                map=self.build_map(tour_id, result),
                export_path=export_path,
                notices=notices,
            )
        finally:
            self.registry.finish(ticket)

    def cancel_optimization(self, tour_id: str) -> bool:
        cancelled = self.registry.cancel(tour_id)
        if cancelled:
            logger.info(f"Tour {tour_id}: optimization cancellation requested")
        return cancelled

    def apply_optimization(
        self,
        tour_id: str,
        ordered_venue_ids: Sequence[str],
        suggested_dates: Mapping[str, date] | None = None,
    ) -> ApplyResponse:
        """Validate an ordering against the tour's current venues and apply it atomically."""
        current = self.load_route(tour_id)
        original_metrics = compute_metrics(current)
        proposed = validate_proposed_order(current, ordered_venue_ids, self.policy)
        proposed = apply_suggested_dates(proposed, suggested_dates or {})
        metrics = self._write_route(current, proposed)
        logger.info(f"Tour {tour_id}: applied ordering of {len(proposed)} venues")
        return ApplyResponse(
            tour_id=tour_id,
            applied=True,
            stops=_stop_models(proposed, metrics),
            metrics=_metrics_model(metrics, self.display),
            original_metrics=_metrics_model(original_metrics, self.display),
            comparison=_comparison_model(compare_metrics(original_metrics, metrics)),
            notices=[error.to_notice() for error in coordinate_errors(proposed)],
        )

    def gap_fills(self, tour_id: str, min_days_between_shows: int = 1) -> GapFillResponse:
        route = self.load_route(tour_id)
        suggestions = suggest_gap_fills(
            route,
            self.repository.list_catalog_venues(),
            min_days_between_shows=min_days_between_shows,
            thresholds=self.policy.thresholds,
        )
        return GapFillResponse(tour_id=tour_id, suggestions=[_suggestion_model(item) for item in suggestions])

    def update_status(self, tour_id: str, assignment_id: str, status: VenueStatus) -> StopModel:
        record = self.repository.update_status(tour_id, assignment_id, status)
        self.cache.invalidate(tour_id)
        assignment, venue = record.to_domain()
        logger.info(f"Tour {tour_id}: assignment {assignment_id} is now {assignment.status.value}")
        return _stop_models(Route(tour_id=tour_id, stops=(RouteStop(assignment, venue),)))[0]

    def optimizer_health(self) -> dict:
        try:
            client = self.client_factory()
        except RemoteOptimizationUnavailable as exc:
            return {"status": "not_configured", "message": exc.message}
        return client.check_health()


@lru_cache()
def get_route_service() -> TourRouteService:
    return TourRouteService(get_repository())
