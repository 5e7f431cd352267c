"""Health endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from ...services.routing.service import TourRouteService, get_route_service

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/optimizer", status_code=status.HTTP_200_OK)
def health_optimizer(service: TourRouteService = Depends(get_route_service)) -> dict:
    """Check the remote optimization service."""
    return {"service": "optimizer", **service.optimizer_health()}
