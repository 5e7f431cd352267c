"""Supabase-backed tour repository."""

from __future__ import annotations

import logging
from typing import Any, Sequence

from supabase import Client

from ..errors import ApplyConflict, TourNotFound
from ..models.domain import Venue
from ..models.status import VenueStatus, transition
from ..schemas.tours import TourVenueRecord, TourVenueRow, VenueRow
from .repository import AssignmentUpdate, check_venue_set

logger = logging.getLogger(__name__)

TOUR_VENUES_TABLE = "tour_venues"
VENUES_TABLE = "venues"
APPLY_ROUTE_RPC = "apply_tour_route"
CONFLICT_MARKER = "APPLY_CONFLICT"


def _split_joined_row(row: dict[str, Any]) -> TourVenueRecord:
    tour_venue = {key: value for key, value in row.items() if key != "venue"}
    return TourVenueRecord(
        tour_venue=TourVenueRow.model_validate(tour_venue),
        venue=VenueRow.model_validate(row.get("venue") or {}),
    )


class SupabaseTourRepository:
    """Reads ``tour_venues`` joined with ``venues``.

    Routes are applied through the ``apply_tour_route`` stored procedure, which checks
    the expected venue ids and updates every assignment in one transaction. The
    procedure raises an error containing ``APPLY_CONFLICT`` when the venue set changed.
    """

    def __init__(self, client: Client) -> None:
        self.client = client

    def list_tour_rows(self, tour_id: str) -> list[TourVenueRecord]:
        response = (
            self.client.table(TOUR_VENUES_TABLE)
            .select(f"*, venue:{VENUES_TABLE}(*)")
            .eq("tour_id", tour_id)
            .execute()
        )
        return [_split_joined_row(row) for row in (response.data or [])]

    def list_catalog_venues(self) -> list[Venue]:
        response = self.client.table(VENUES_TABLE).select("*").execute()
        return [VenueRow.model_validate(row).to_domain() for row in (response.data or [])]

    def apply_route(
        self,
        tour_id: str,
        updates: Sequence[AssignmentUpdate],
        expected_venue_ids: Sequence[str],
    ) -> None:
        # Early check; the procedure repeats it inside the transaction.
        check_venue_set(
            tour_id,
            (record.tour_venue.venue_id for record in self.list_tour_rows(tour_id)),
            expected_venue_ids,
        )
        params = {
            "p_tour_id": tour_id,
            "p_expected_venue_ids": list(expected_venue_ids),
            "p_updates": [update.as_row() for update in updates],
        }
        try:
            self.client.rpc(APPLY_ROUTE_RPC, params).execute()
        except Exception as e:
            if CONFLICT_MARKER in str(e):
                raise ApplyConflict(
                    f"Tour {tour_id} changed since it was optimized. Re-run optimization."
                ) from e
            logger.error(f"Failed to apply route for tour {tour_id}: {e}")
            raise
        logger.info(f"Applied route to tour {tour_id} ({len(updates)} assignments) via {APPLY_ROUTE_RPC}")

    def update_status(self, tour_id: str, assignment_id: str, status: VenueStatus) -> TourVenueRecord:
        records = {record.tour_venue.id: record for record in self.list_tour_rows(tour_id)}
        record = records.get(assignment_id)
        if record is None:
            raise TourNotFound(f"Assignment {assignment_id} not found in tour {tour_id}.")
        new_status = transition(record.tour_venue.status, status)
        (
            self.client.table(TOUR_VENUES_TABLE)
            .update({"status": new_status.value})
            .eq("id", assignment_id)
            .execute()
        )
        return record.model_copy(update={"tour_venue": record.tour_venue.model_copy(update={"status": new_status})})
