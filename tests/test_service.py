from datetime import date
from pathlib import Path

import pytest

from tourplanner.errors import (
    ApplyConflict,
    InsufficientDataError,
    OptimizationInProgress,
    RemoteOptimizationUnavailable,
    TourNotFound,
)
from tourplanner.models.status import VenueStatus
from tourplanner.persistence.filesystem import ExportStorage
from tourplanner.persistence.repository import InMemoryTourRepository
from tourplanner.schemas.optimization import OptimizationPreferences, RemoteOptimizationResponse
from tourplanner.schemas.tours import TourVenueRecord, VenueRow
from tourplanner.services.routing.cache import OptimizationCache
from tourplanner.services.routing.models import FALLBACK_LABEL
from tourplanner.services.routing.registry import OptimizationRegistry
from tourplanner.services.routing.sequence import SequencePolicy
from tourplanner.services.routing.service import DisplayPreferences, TourRouteService


def _record(aid, venue_id, lat, lon, status="potential", day=None, sequence=None, tour_id="T1"):
    return TourVenueRecord.model_validate(
        {
            "tour_venue": {
                "id": aid,
                "tour_id": tour_id,
                "venue_id": venue_id,
                "status": status,
                "date": day,
                "sequence": sequence,
            },
            "venue": {"id": venue_id, "name": f"Venue {venue_id}", "city": "City", "latitude": lat, "longitude": lon},
        }
    )


def _repository() -> InMemoryTourRepository:
    return InMemoryTourRepository(
        [
            _record("A", "VA", 40.0, -100.0, "confirmed", date(2024, 7, 1), 0),
            _record("C", "VC", 39.0, -80.0, "confirmed", date(2024, 7, 5), 1),
            _record("B", "VB", 41.0, -90.0),
            _record("X", "VX", None, None, "hold2"),
        ],
        catalog=[VenueRow(id="VN", name="Catalog venue", city="Town", latitude=40.5, longitude=-95.0)],
    )


def _unavailable():
    raise RemoteOptimizationUnavailable("Remote optimization service is not configured.")


class DummyOptimizer:
    def __init__(self, response: RemoteOptimizationResponse, on_call=None) -> None:
        self.response = response
        self.on_call = on_call
        self.calls = 0

    def optimize(self, tour_id, preferences):
        self.calls += 1
        if self.on_call is not None:
            self.on_call()
        return self.response

    def check_health(self) -> dict:
        return {"status": "healthy"}


def _service(repository=None, client_factory=_unavailable, **kwargs) -> TourRouteService:
    return TourRouteService(
        repository or _repository(),
        policy=SequencePolicy(),
        cache=kwargs.pop("cache", OptimizationCache(3600)),
        client_factory=client_factory,
        display=DisplayPreferences(),
        **kwargs,
    )


def _remote(sequence, **extra) -> RemoteOptimizationResponse:
    return RemoteOptimizationResponse(optimized_sequence=sequence, **extra)


def test_summarize_route_keeps_unlocated_venues() -> None:
    summary = _service().summarize_route("T1")

    assert [stop.assignment_id for stop in summary.stops] == ["A", "C", "B", "X"]
    assert summary.status_breakdown["total"] == 4
    assert summary.status_breakdown["by_status"]["hold2"] == 1
    assert summary.metrics.unrouted_count == 1
    assert [notice["assignment_id"] for notice in summary.notices] == ["X"]
    assert summary.view_mode == "map"


def test_unknown_tour_raises_not_found() -> None:
    with pytest.raises(TourNotFound):
        _service().summarize_route("missing")


def test_auto_falls_back_to_local_ordering_with_visible_label() -> None:
    repository = _repository()
    response = _service(repository).optimize_tour("T1", OptimizationPreferences())

    assert response.status == "preview"
    assert response.source == "local_fallback"
    assert response.is_fallback
    assert response.label == FALLBACK_LABEL
    assert response.optimized_sequence == ["VA", "VB", "VC", "VX"]
    assert any(notice["error"] == "RemoteOptimizationUnavailable" for notice in response.notices)
    assert response.comparison.distance_improvement_pct > 0
    assert response.map is not None
    assert response.map.viewport is not None
    stored = {row.tour_venue.id: row.tour_venue.sequence for row in repository.list_tour_rows("T1")}
    assert stored == {"A": 0, "C": 1, "B": None, "X": None}


def test_remote_method_propagates_unavailability() -> None:
    with pytest.raises(RemoteOptimizationUnavailable):
        _service().optimize_tour("T1", method="remote")


def test_remote_result_is_validated_and_recomputed() -> None:
    optimizer = DummyOptimizer(
        _remote(
            ["VA", "VB", "VC", "VX"],
            suggested_dates={"VB": date(2024, 7, 3), "VA": date(2024, 6, 1)},
            recommended_venues=["VN", "VB", "UNKNOWN"],
            calculated_metrics={"totalDistance": "1.0 km"},
        )
    )
    response = _service(client_factory=lambda: optimizer).optimize_tour("T1")

    assert response.source == "remote"
    assert not response.is_fallback
    assert response.suggested_dates["VB"] == date(2024, 7, 3)
    assert response.suggested_dates["VA"] == date(2024, 7, 1)
    assert response.metrics.total_distance_km > 1000
    assert response.remote_estimates["calculated_metrics"]["total_distance"] == 1.0
    outside = [item for item in response.potential_fill_venues if not item.in_tour]
    assert [item.venue_id for item in outside] == ["VN"]
    assert outside[0].recommended_status is VenueStatus.SUGGESTED


def test_degraded_remote_result_is_labelled() -> None:
    optimizer = DummyOptimizer(_remote(["VA", "VB", "VC", "VX"], ai_error="model unavailable"))
    response = _service(client_factory=lambda: optimizer).optimize_tour("T1")

    assert response.source == "remote_degraded"
    assert response.remote_estimates["ai_error"] == "model unavailable"


def test_remote_result_breaking_anchor_order_is_rejected() -> None:
    optimizer = DummyOptimizer(_remote(["VC", "VB", "VA", "VX"]))
    service = _service(client_factory=lambda: optimizer)

    with pytest.raises(ApplyConflict):
        service.optimize_tour("T1")
    assert not service.registry.is_running("T1")


def test_optimize_and_apply_writes_sequence_and_travel_fields() -> None:
    repository = _repository()
    response = _service(repository).optimize_tour("T1", method="local", apply=True)

    assert response.status == "applied"
    rows = {row.tour_venue.id: row.tour_venue for row in repository.list_tour_rows("T1")}
    assert [rows[aid].sequence for aid in ("A", "B", "C", "X")] == [0, 1, 2, 3]
    assert rows["A"].travel_distance_from_previous is None
    assert rows["B"].travel_distance_from_previous == pytest.approx(852.3, abs=1.0)
    assert rows["C"].travel_time_from_previous == pytest.approx(rows["C"].travel_distance_from_previous / 80 * 60)
    assert rows["X"].travel_distance_from_previous is None


def test_second_optimization_for_same_tour_is_rejected() -> None:
    service = _service()
    ticket = service.registry.begin("T1")

    with pytest.raises(OptimizationInProgress):
        service.optimize_tour("T1", method="local")

    service.registry.finish(ticket)
    assert service.optimize_tour("T1", method="local").status == "preview"


def test_cancelled_optimization_is_discarded_not_applied() -> None:
    repository = _repository()
    service = _service(repository)
    optimizer = DummyOptimizer(_remote(["VA", "VB", "VC", "VX"]), on_call=lambda: service.cancel_optimization("T1"))
    service.client_factory = lambda: optimizer

    response = service.optimize_tour("T1", apply=True)

    assert response.status == "discarded"
    stored = {row.tour_venue.id: row.tour_venue.sequence for row in repository.list_tour_rows("T1")}
    assert stored == {"A": 0, "C": 1, "B": None, "X": None}
    assert not service.registry.is_running("T1")
    assert not service.cancel_optimization("T1")


def test_insufficient_data_is_reported_before_any_work() -> None:
    repository = InMemoryTourRepository(
        [
            _record("A", "VA", 40.0, -100.0, "confirmed", date(2024, 7, 1), 0),
            _record("B", "VB", 41.0, -90.0),
        ]
    )
    service = _service(repository)

    with pytest.raises(InsufficientDataError):
        service.optimize_tour("T1")
    assert not service.registry.is_running("T1")


def test_remote_results_are_cached_until_applied() -> None:
    optimizer = DummyOptimizer(_remote(["VA", "VB", "VC", "VX"]))
    service = _service(client_factory=lambda: optimizer)

    service.optimize_tour("T1")
    service.optimize_tour("T1")
    assert optimizer.calls == 1

    service.optimize_tour("T1", OptimizationPreferences(optimization_goal="time"))
    assert optimizer.calls == 2

    service.apply_optimization("T1", ["VA", "VB", "VC", "VX"])
    service.optimize_tour("T1")
    assert optimizer.calls == 3


def test_apply_rejects_stale_result_without_partial_write() -> None:
    repository = _repository()
    service = _service(repository)
    repository.remove("B")

    with pytest.raises(ApplyConflict):
        service.apply_optimization("T1", ["VA", "VB", "VC", "VX"])

    stored = {row.tour_venue.id: row.tour_venue.sequence for row in repository.list_tour_rows("T1")}
    assert stored == {"A": 0, "C": 1, "X": None}


def test_apply_optimization_reports_comparison() -> None:
    repository = _repository()
    response = _service(repository).apply_optimization(
        "T1", ["VA", "VB", "VC", "VX"], {"VB": date(2024, 7, 3)}
    )

    assert response.applied
    assert [stop.sequence for stop in response.stops] == [0, 1, 2, 3]
    assert response.comparison.distance_improvement_pct > 0
    rows = {row.tour_venue.id: row.tour_venue for row in repository.list_tour_rows("T1")}
    assert rows["B"].date == date(2024, 7, 3)


def test_persist_writes_exports(tmp_path: Path) -> None:
    service = _service(storage_factory=lambda: ExportStorage(root=tmp_path))
    response = service.optimize_tour("T1", method="local", persist=True)

    run_dir = Path(response.export_path)
    assert run_dir.parent == tmp_path / "exports"
    assert {path.name for path in run_dir.iterdir()} == {"route.json", "route.csv", "route.geojson"}


def test_gap_fills_use_catalog_venues() -> None:
    response = _service().gap_fills("T1", min_days_between_shows=1)

    assert [item.venue_id for item in response.suggestions] == ["VN"]
    assert not response.suggestions[0].in_tour


def test_update_status_invalidates_cache() -> None:
    optimizer = DummyOptimizer(_remote(["VA", "VB", "VC", "VX"]))
    service = _service(client_factory=lambda: optimizer)
    service.optimize_tour("T1")

    stop = service.update_status("T1", "B", VenueStatus.HOLD1)
    service.optimize_tour("T1")

    assert stop.status is VenueStatus.HOLD1
    assert optimizer.calls == 2


def test_optimizer_health_when_not_configured() -> None:
    assert _service().optimizer_health()["status"] == "not_configured"


def test_cancel_during_apply_is_refused_once_result_is_committed() -> None:
    repository = _repository()
    service = _service(repository)
    cancel_results = []
    apply_route = repository.apply_route

    def apply_and_try_cancel(tour_id, updates, expected_venue_ids):
        cancel_results.append(service.cancel_optimization(tour_id))
        apply_route(tour_id, updates, expected_venue_ids)

    repository.apply_route = apply_and_try_cancel

    response = service.optimize_tour("T1", method="local", apply=True)

    assert response.status == "applied"
    assert cancel_results == [False]
    stored = {row.tour_venue.id: row.tour_venue.sequence for row in repository.list_tour_rows("T1")}
    assert stored == {"A": 0, "B": 1, "C": 2, "X": 3}


def test_registry_commit_and_cancel_are_exclusive() -> None:
    registry = OptimizationRegistry()

    ticket = registry.begin("T1")
    assert registry.commit(ticket)
    assert not registry.cancel("T1")
    registry.finish(ticket)

    ticket = registry.begin("T1")
    assert registry.cancel("T1")
    assert not registry.commit(ticket)
    registry.finish(ticket)
    assert not registry.is_running("T1")
