import math

import pytest

from tourplanner.services.routing.comparison import compare_metrics, improvement_pct
from tourplanner.services.routing.models import RouteMetrics


@pytest.mark.parametrize("optimized", [0.0, 10.0, 250.5])
def test_zero_baseline_yields_zero(optimized: float) -> None:
    assert improvement_pct(0, optimized) == 0


def test_improvement_and_regression() -> None:
    assert improvement_pct(100, 80) == 20
    assert improvement_pct(80, 100) == -25


def test_non_finite_inputs_yield_zero() -> None:
    assert improvement_pct(math.inf, 10) == 0
    assert improvement_pct(100, math.nan) == 0


def test_compare_metrics_reports_each_dimension() -> None:
    original = RouteMetrics(total_distance_km=100.0, total_travel_time_minutes=80.0, optimization_score=60)
    optimized = RouteMetrics(total_distance_km=80.0, total_travel_time_minutes=100.0, optimization_score=72)

    comparison = compare_metrics(original, optimized)

    assert comparison.distance_improvement_pct == 20
    assert comparison.time_improvement_pct == -25
    assert comparison.score_delta == 12


def test_score_delta_missing_when_either_score_missing() -> None:
    original = RouteMetrics(total_distance_km=100.0, total_travel_time_minutes=80.0)
    optimized = RouteMetrics(total_distance_km=80.0, total_travel_time_minutes=60.0, optimization_score=72)

    assert compare_metrics(original, optimized).score_delta is None


@pytest.mark.parametrize(
    "original, optimized, expected",
    [
        (8, 7, 13),
        (200, 199, 1),
        (8, 9, -12),
        (200, 201, 0),
    ],
)
def test_half_percentages_round_up(original: float, optimized: float, expected: int) -> None:
    assert improvement_pct(original, optimized) == expected
