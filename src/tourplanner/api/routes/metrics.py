"""Metrics comparison endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from ...schemas.tours import CompareRequest, ComparisonModel
from ...services.routing.comparison import compare_metrics
from ...services.routing.models import RouteMetrics

router = APIRouter(prefix="/metrics", tags=["metrics"])


@router.post("/compare", response_model=ComparisonModel)
def compare(payload: CompareRequest) -> ComparisonModel:
    """Improvement percentages between two metric snapshots. Regressions come back negative."""
    original = RouteMetrics(**payload.original.model_dump())
    optimized = RouteMetrics(**payload.optimized.model_dump())
    comparison = compare_metrics(original, optimized)
    return ComparisonModel(
        distance_improvement_pct=comparison.distance_improvement_pct,
        time_improvement_pct=comparison.time_improvement_pct,
        score_delta=comparison.score_delta,
    )
