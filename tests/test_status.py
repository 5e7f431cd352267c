import pytest

from tourplanner.errors import InvalidStatusTransition
from tourplanner.models.status import (
    STATUS_GROUPS,
    STATUS_METADATA,
    StatusGroup,
    VenueStatus,
    can_transition,
    hold_for_rank,
    is_fixed_anchor,
    rank_within_holds,
    status_breakdown,
    transition,
)


def test_every_status_has_group_and_metadata() -> None:
    grouped = [status for members in STATUS_GROUPS.values() for status in members]
    assert sorted(grouped) == sorted(VenueStatus)
    for status in VenueStatus:
        info = STATUS_METADATA[status]
        assert info.display_name
        assert info.color.startswith("#")
        assert status.info is info


def test_groups() -> None:
    assert VenueStatus.POTENTIAL.group is StatusGroup.PLANNING
    assert VenueStatus.NEGOTIATING.group is StatusGroup.CONTACT
    assert VenueStatus.HOLD3.group is StatusGroup.PRIORITY_HOLD
    assert VenueStatus.CANCELLED.group is StatusGroup.CONFIRMATION


def test_parse_is_case_insensitive_and_accepts_legacy_alias() -> None:
    assert VenueStatus.parse("Confirmed") is VenueStatus.CONFIRMED
    assert VenueStatus.parse(" HOLD2 ") is VenueStatus.HOLD2
    assert VenueStatus.parse("contacted") is VenueStatus.APPROACHED
    with pytest.raises(ValueError):
        VenueStatus.parse("booked")


def test_only_confirmed_is_fixed_anchor() -> None:
    assert [status for status in VenueStatus if is_fixed_anchor(status)] == [VenueStatus.CONFIRMED]


def test_hold_ranks() -> None:
    assert [rank_within_holds(status) for status in (VenueStatus.HOLD1, VenueStatus.HOLD4)] == [1, 4]
    assert rank_within_holds(VenueStatus.CONFIRMED) is None
    assert hold_for_rank(2) is VenueStatus.HOLD2
    with pytest.raises(ValueError):
        hold_for_rank(5)


def test_transitions_out_of_cancelled_are_rejected() -> None:
    assert can_transition(VenueStatus.POTENTIAL, VenueStatus.CANCELLED)
    assert can_transition(VenueStatus.CONFIRMED, VenueStatus.HOLD1)
    assert transition(VenueStatus.HOLD2, VenueStatus.CONFIRMED) is VenueStatus.CONFIRMED
    assert not can_transition(VenueStatus.CANCELLED, VenueStatus.CONFIRMED)
    with pytest.raises(InvalidStatusTransition):
        transition(VenueStatus.CANCELLED, VenueStatus.POTENTIAL)


def test_status_breakdown_counts_statuses_and_groups() -> None:
    breakdown = status_breakdown(
        [VenueStatus.CONFIRMED, VenueStatus.CONFIRMED, VenueStatus.HOLD1, VenueStatus.POTENTIAL, VenueStatus.CANCELLED]
    )
    assert breakdown["total"] == 5
    assert breakdown["by_status"]["confirmed"] == 2
    assert breakdown["by_status"]["negotiating"] == 0
    assert breakdown["by_group"] == {
        "planning": 1,
        "contact": 0,
        "priority_hold": 1,
        "confirmation": 3,
    }
