"""Venue status metadata endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from ...models.status import (
    STATUS_GROUPS,
    VenueStatus,
    is_fixed_anchor,
    is_terminal,
    rank_within_holds,
)
from ...schemas.tours import StatusInfoModel

router = APIRouter(prefix="/statuses", tags=["statuses"])


@router.get("")
def list_statuses() -> dict:
    """Static status table used by rendering clients instead of hardcoded colors."""
    statuses = [
        StatusInfoModel(
            status=item,
            group=item.group.value,
            display_name=item.info.display_name,
            color=item.info.color,
            description=item.info.description,
            hold_rank=rank_within_holds(item),
            is_fixed_anchor=is_fixed_anchor(item),
            is_terminal=is_terminal(item),
        )
        for item in VenueStatus
    ]
    return {
        "statuses": [model.model_dump(mode="json") for model in statuses],
        "groups": {group.value: [item.value for item in members] for group, members in STATUS_GROUPS.items()},
    }
