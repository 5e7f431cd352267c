"""Tour route endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...schemas.tours import (
    ApplyRequest,
    ApplyResponse,
    GapFillRequest,
    GapFillResponse,
    MapOverlayResponse,
    OptimizeRequest,
    OptimizeResponse,
    RouteSummaryResponse,
    StatusUpdateRequest,
    StopModel,
)
from ...services.routing.service import TourRouteService, get_route_service
from ..errors import http_error

router = APIRouter(prefix="/tours", tags=["tours"])


@router.get("/{tour_id}/route", response_model=RouteSummaryResponse)
def get_route(tour_id: str, service: TourRouteService = Depends(get_route_service)) -> RouteSummaryResponse:
    try:
        return service.summarize_route(tour_id)
    except Exception as exc:
        raise http_error(exc, f"load route for tour {tour_id}") from exc


@router.get("/{tour_id}/map")
def get_map(
    tour_id: str,
    format: str = Query(default="overlay", pattern="^(overlay|geojson)$"),
    service: TourRouteService = Depends(get_route_service),
) -> dict:
    """Markers, polyline and viewport for the current route, or the same as GeoJSON."""
    try:
        if format == "geojson":
            return service.build_geojson(tour_id)
        overlay: MapOverlayResponse = service.build_map(tour_id)
        return overlay.model_dump(mode="json")
    except Exception as exc:
        raise http_error(exc, f"build map for tour {tour_id}") from exc


@router.post("/{tour_id}/optimize", response_model=OptimizeResponse, status_code=status.HTTP_200_OK)
def optimize(
    tour_id: str,
    payload: OptimizeRequest | None = None,
    service: TourRouteService = Depends(get_route_service),
) -> OptimizeResponse:
    payload = payload or OptimizeRequest()
    try:
        return service.optimize_tour(
            tour_id,
            payload.preferences,
            method=payload.method,
            apply=payload.apply,
            persist=payload.persist,
        )
    except Exception as exc:
        raise http_error(exc, f"optimize tour {tour_id}") from exc


@router.delete("/{tour_id}/optimize", status_code=status.HTTP_200_OK)
def cancel_optimization(tour_id: str, service: TourRouteService = Depends(get_route_service)) -> dict:
    """Cancel an in-flight optimization; its result is discarded instead of applied."""
    if not service.cancel_optimization(tour_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={
                "error": "NoOptimizationRunning",
                "message": f"No cancellable optimization is running for tour {tour_id}.",
                "next_action": "none",
            },
        )
    return {"tour_id": tour_id, "cancelled": True}


@router.post("/{tour_id}/apply", response_model=ApplyResponse)
def apply(
    tour_id: str,
    payload: ApplyRequest,
    service: TourRouteService = Depends(get_route_service),
) -> ApplyResponse:
    try:
        return service.apply_optimization(tour_id, payload.optimized_sequence, payload.suggested_dates)
    except Exception as exc:
        raise http_error(exc, f"apply route to tour {tour_id}") from exc


@router.post("/{tour_id}/gap-fills", response_model=GapFillResponse)
def gap_fills(
    tour_id: str,
    payload: GapFillRequest | None = None,
    service: TourRouteService = Depends(get_route_service),
) -> GapFillResponse:
    payload = payload or GapFillRequest()
    try:
        return service.gap_fills(tour_id, payload.min_days_between_shows)
    except Exception as exc:
        raise http_error(exc, f"suggest gap fills for tour {tour_id}") from exc


@router.patch("/{tour_id}/assignments/{assignment_id}/status", response_model=StopModel)
def update_status(
    tour_id: str,
    assignment_id: str,
    payload: StatusUpdateRequest,
    service: TourRouteService = Depends(get_route_service),
) -> StopModel:
    try:
        return service.update_status(tour_id, assignment_id, payload.status)
    except Exception as exc:
        raise http_error(exc, f"update status of assignment {assignment_id}") from exc
