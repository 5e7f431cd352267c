from datetime import date

import pytest

from tourplanner.models.domain import GeoCoordinate, Venue, VenueAssignment
from tourplanner.models.status import VenueStatus
from tourplanner.services.routing.gaps import suggest_gap_fills
from tourplanner.services.routing.models import Route, RouteStop
from tourplanner.services.routing.sequence import DetourThresholds


def _venue(vid: str, lat: float, lon: float) -> Venue:
    return Venue(id=vid, name=f"Venue {vid}", city="City", coordinate=GeoCoordinate(lat, lon))


def _route(gap_end: date) -> Route:
    first, second = _venue("VA", 0.0, 0.0), _venue("VB", 0.0, 2.0)
    return Route(
        tour_id="T1",
        stops=(
            RouteStop(
                VenueAssignment("A", "T1", "VA", VenueStatus.CONFIRMED, date(2024, 1, 1), 0), first
            ),
            RouteStop(VenueAssignment("B", "T1", "VB", VenueStatus.CONFIRMED, gap_end, 1), second),
        ),
    )


CANDIDATES = [
    _venue("V2", 0.5, 1.0),
    _venue("V1", 0.0, 1.0),
    _venue("FAR", 10.0, 10.0),
    _venue("VA", 0.0, 0.0),
    Venue(id="NOLOC", name="No location", city="City"),
]


def test_gap_fills_rank_by_detour_and_spread_dates() -> None:
    suggestions = suggest_gap_fills(_route(date(2024, 1, 10)), CANDIDATES, thresholds=DetourThresholds())

    assert [suggestion.venue.id for suggestion in suggestions] == ["V1", "V2"]
    assert [suggestion.suggested_date for suggestion in suggestions] == [date(2024, 1, 4), date(2024, 1, 7)]
    assert suggestions[0].detour_ratio == pytest.approx(1.0)
    assert suggestions[0].status is VenueStatus.HOLD1
    assert suggestions[1].status is VenueStatus.HOLD2
    assert all(not suggestion.in_tour for suggestion in suggestions)
    assert all(suggestion.suggested_sequence is None for suggestion in suggestions)


def test_short_gap_gets_a_single_fill() -> None:
    suggestions = suggest_gap_fills(_route(date(2024, 1, 5)), CANDIDATES, thresholds=DetourThresholds())

    assert [suggestion.venue.id for suggestion in suggestions] == ["V1"]
    assert suggestions[0].suggested_date == date(2024, 1, 3)


def test_gap_not_longer_than_minimum_spacing_is_skipped() -> None:
    suggestions = suggest_gap_fills(
        _route(date(2024, 1, 10)), CANDIDATES, min_days_between_shows=9, thresholds=DetourThresholds()
    )
    assert suggestions == []
