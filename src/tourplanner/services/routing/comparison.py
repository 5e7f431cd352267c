"""Before/after comparison of route metrics."""

from __future__ import annotations

import math

from ..geospatial import round_half_up
from .models import MetricsComparison, RouteMetrics


def improvement_pct(original: float, optimized: float) -> int:
    """Percentage reduction from ``original`` to ``optimized``.

    Positive values are improvements, negative values regressions. Regressions are
    returned as-is. A zero (or non-finite) baseline yields 0.
    """
    if original == 0 or not math.isfinite(original) or not math.isfinite(optimized):
        return 0
    return round_half_up((original - optimized) / original * 100)


def compare_metrics(original: RouteMetrics, optimized: RouteMetrics) -> MetricsComparison:
    score_delta = None
    if original.optimization_score is not None and optimized.optimization_score is not None:
        score_delta = optimized.optimization_score - original.optimization_score
    return MetricsComparison(
        distance_improvement_pct=improvement_pct(original.total_distance_km, optimized.total_distance_km),
        time_improvement_pct=improvement_pct(
            original.total_travel_time_minutes, optimized.total_travel_time_minutes
        ),
        score_delta=score_delta,
    )
