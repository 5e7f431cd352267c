"""Venue assignment statuses, their grouping and display metadata."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional


class StatusGroup(str, Enum):
    PLANNING = "planning"
    CONTACT = "contact"
    PRIORITY_HOLD = "priority_hold"
    CONFIRMATION = "confirmation"


class VenueStatus(str, Enum):
    POTENTIAL = "potential"
    SUGGESTED = "suggested"
    APPROACHED = "approached"
    NEGOTIATING = "negotiating"
    HOLD1 = "hold1"
    HOLD2 = "hold2"
    HOLD3 = "hold3"
    HOLD4 = "hold4"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"

    @classmethod
    def parse(cls, value: "str | VenueStatus") -> "VenueStatus":
        """Parse a status string case-insensitively, accepting legacy aliases."""
        if isinstance(value, VenueStatus):
            return value
        normalized = str(value).strip().lower()
        normalized = _LEGACY_ALIASES.get(normalized, normalized)
        try:
            return cls(normalized)
        except ValueError as exc:
            raise ValueError(f"Unknown venue status '{value}'.") from exc

    @property
    def group(self) -> StatusGroup:
        return _GROUP_BY_STATUS[self]

    @property
    def info(self) -> "StatusInfo":
        return STATUS_METADATA[self]


_LEGACY_ALIASES = {"contacted": "approached"}


@dataclass(frozen=True, slots=True)
class StatusInfo:
    display_name: str
    color: str
    description: str


STATUS_GROUPS: dict[StatusGroup, tuple[VenueStatus, ...]] = {
    StatusGroup.PLANNING: (VenueStatus.POTENTIAL, VenueStatus.SUGGESTED),
    StatusGroup.CONTACT: (VenueStatus.APPROACHED, VenueStatus.NEGOTIATING),
    StatusGroup.PRIORITY_HOLD: (
        VenueStatus.HOLD1,
        VenueStatus.HOLD2,
        VenueStatus.HOLD3,
        VenueStatus.HOLD4,
    ),
    StatusGroup.CONFIRMATION: (VenueStatus.CONFIRMED, VenueStatus.CANCELLED),
}

_GROUP_BY_STATUS = {status: group for group, members in STATUS_GROUPS.items() for status in members}

STATUS_METADATA: dict[VenueStatus, StatusInfo] = {
    VenueStatus.POTENTIAL: StatusInfo(
        "Potential", "#6B7280", "Venue manually added to tour but no contact made yet"
    ),
    VenueStatus.SUGGESTED: StatusInfo("Suggested", "#3B82F6", "Venue suggested by the optimization engine"),
    VenueStatus.APPROACHED: StatusInfo("Approached", "#8B5CF6", "Initial outreach made to venue"),
    VenueStatus.NEGOTIATING: StatusInfo("Negotiating", "#9333EA", "Active discussions about booking"),
    VenueStatus.HOLD1: StatusInfo(
        "Priority 1 Hold", "#F59E0B", "Highest priority artist/band hold (1st position)"
    ),
    VenueStatus.HOLD2: StatusInfo("Priority 2 Hold", "#EAB308", "High priority artist/band hold (2nd position)"),
    VenueStatus.HOLD3: StatusInfo(
        "Priority 3 Hold", "#84CC16", "Medium priority artist/band hold (3rd position)"
    ),
    VenueStatus.HOLD4: StatusInfo("Priority 4 Hold", "#10B981", "Lower priority artist/band hold (4th position)"),
    VenueStatus.CONFIRMED: StatusInfo("Confirmed", "#059669", "Booking is fully confirmed"),
    VenueStatus.CANCELLED: StatusInfo("Cancelled", "#EF4444", "No longer part of the tour"),
}

_HOLD_RANKS = {
    VenueStatus.HOLD1: 1,
    VenueStatus.HOLD2: 2,
    VenueStatus.HOLD3: 3,
    VenueStatus.HOLD4: 4,
}

SUGGESTED_STATUSES = frozenset({VenueStatus.POTENTIAL, VenueStatus.SUGGESTED})
TERMINAL_STATUSES = frozenset({VenueStatus.CANCELLED})
DEFAULT_STATUS = VenueStatus.POTENTIAL


def is_fixed_anchor(status: VenueStatus) -> bool:
    """Confirmed bookings never move during optimization."""
    return status is VenueStatus.CONFIRMED


def rank_within_holds(status: VenueStatus) -> Optional[int]:
    """Return 1-4 for priority holds (1 = highest), ``None`` for anything else."""
    return _HOLD_RANKS.get(status)


def hold_for_rank(rank: int) -> VenueStatus:
    for status, value in _HOLD_RANKS.items():
        if value == rank:
            return status
    raise ValueError(f"Priority hold rank must be between 1 and 4, got {rank}.")


def is_terminal(status: VenueStatus) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: VenueStatus, target: VenueStatus) -> bool:
    """Any status may move to any other, except out of a terminal status."""
    if is_terminal(current):
        return False
    return True


def transition(current: VenueStatus, target: VenueStatus) -> VenueStatus:
    from ..errors import InvalidStatusTransition

    if not can_transition(current, target):
        raise InvalidStatusTransition(
            f"Cannot change status from '{current.value}' to '{target.value}': "
            f"'{current.value}' is terminal."
        )
    return target


def status_breakdown(statuses: Iterable[VenueStatus]) -> dict:
    """Count statuses individually and per group."""
    counts: Counter[VenueStatus] = Counter(statuses)
    by_status = {status.value: counts.get(status, 0) for status in VenueStatus}
    by_group = {
        group.value: sum(counts.get(status, 0) for status in members)
        for group, members in STATUS_GROUPS.items()
    }
    return {"total": sum(counts.values()), "by_status": by_status, "by_group": by_group}
