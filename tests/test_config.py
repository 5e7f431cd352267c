import pytest
from pydantic import ValidationError

from tourplanner.config import Settings
from tourplanner.services.routing.sequence import DetourThresholds, SequencePolicy
from tourplanner.models.status import VenueStatus


def _settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


def test_defaults() -> None:
    config = _settings()

    assert config.average_speed_kmh == 80.0
    assert config.anchor_statuses == ("confirmed",)
    assert config.metrics_excluded_statuses == ("cancelled",)
    assert (config.detour_hold1_max, config.detour_hold2_max, config.detour_hold3_max) == (1.1, 1.3, 1.5)
    assert config.viewport_padding_px == 50
    assert config.min_dated_assignments == 2
    assert config.min_reorderable_assignments == 3


def test_anchor_statuses_parse_lists_and_always_include_confirmed() -> None:
    assert _settings(anchor_statuses="hold1, Contacted").anchor_statuses == ("confirmed", "hold1", "approached")
    assert _settings(anchor_statuses='["confirmed", "hold1"]').anchor_statuses == ("confirmed", "hold1")


def test_anchor_statuses_from_environment(monkeypatch) -> None:
    monkeypatch.setenv("TOURPLANNER_ANCHOR_STATUSES", "hold1,hold2")
    assert _settings().anchor_statuses == ("confirmed", "hold1", "hold2")


@pytest.mark.parametrize("value", ["booked", "cancelled"])
def test_invalid_anchor_statuses_are_rejected(value: str) -> None:
    with pytest.raises(ValidationError):
        _settings(anchor_statuses=value)


def test_detour_thresholds_must_increase() -> None:
    with pytest.raises(ValidationError):
        _settings(detour_hold1_max=1.5, detour_hold2_max=1.3, detour_hold3_max=1.6)


def test_policy_reads_settings(monkeypatch) -> None:
    from tourplanner import config

    monkeypatch.setattr(config.settings, "anchor_statuses", ("confirmed", "hold1"))
    monkeypatch.setattr(config.settings, "detour_hold1_max", 1.2)

    policy = SequencePolicy.from_settings()

    assert policy.anchor_statuses == frozenset({VenueStatus.CONFIRMED, VenueStatus.HOLD1})
    assert policy.thresholds == DetourThresholds(1.2, 1.3, 1.5)
    assert policy.is_anchor(VenueStatus.HOLD1)
    assert not policy.is_anchor(VenueStatus.HOLD2)
