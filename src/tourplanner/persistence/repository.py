"""Tour assignment storage."""

from __future__ import annotations

import json
import logging
import threading
from collections import Counter
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Iterable, Optional, Protocol, Sequence

from ..errors import ApplyConflict, TourNotFound
from ..models.domain import Venue
from ..models.status import VenueStatus, transition
from ..schemas.tours import TourVenueRecord, TourVenueRow, VenueRow

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AssignmentUpdate:
    """Fields written for one assignment when a route is applied."""

    assignment_id: str
    sequence: int
    date: Optional[date] = None
    travel_distance_from_previous: Optional[float] = None
    travel_time_from_previous: Optional[float] = None

    def as_row(self) -> dict[str, Any]:
        return {
            "id": self.assignment_id,
            "sequence": self.sequence,
            "date": self.date.isoformat() if self.date else None,
            "travel_distance_from_previous": self.travel_distance_from_previous,
            "travel_time_from_previous": self.travel_time_from_previous,
        }


class TourRepository(Protocol):
    def list_tour_rows(self, tour_id: str) -> list[TourVenueRecord]:
        ...

    def list_catalog_venues(self) -> list[Venue]:
        ...

    def apply_route(
        self,
        tour_id: str,
        updates: Sequence[AssignmentUpdate],
        expected_venue_ids: Sequence[str],
    ) -> None:
        """Write every update or none; raise ``ApplyConflict`` if the tour's venues changed."""
        ...

    def update_status(self, tour_id: str, assignment_id: str, status: VenueStatus) -> TourVenueRecord:
        ...


def check_venue_set(tour_id: str, current_venue_ids: Iterable[str], expected_venue_ids: Iterable[str]) -> None:
    if Counter(current_venue_ids) != Counter(expected_venue_ids):
        raise ApplyConflict(
            f"Tour {tour_id} changed since it was optimized (venues were added or removed). "
            "Re-run optimization."
        )


class InMemoryTourRepository:
    """Process-local repository.

    Writes build a new row table and swap it in under a lock, so readers see either
    the old or the new state of a tour, never a mix.
    """

    def __init__(
        self,
        records: Iterable[TourVenueRecord] = (),
        catalog: Iterable[VenueRow] = (),
    ) -> None:
        self._lock = threading.Lock()
        self._rows: dict[str, TourVenueRow] = {}
        self._venues: dict[str, VenueRow] = {venue.id: venue for venue in catalog}
        for record in records:
            self._rows[record.tour_venue.id] = record.tour_venue
            self._venues.setdefault(record.venue.id, record.venue)

    @classmethod
    def from_file(cls, path: Path) -> "InMemoryTourRepository":
        """Load ``[{tourVenue, venue}, ...]`` or ``{"records": [...], "venues": [...]}``."""
        if not path.exists():
            raise FileNotFoundError(f"Tour data file not found: {path}")
        with path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
        if isinstance(payload, list):
            payload = {"records": payload}
        records = [TourVenueRecord.model_validate(item) for item in payload.get("records", [])]
        catalog = [VenueRow.model_validate(item) for item in payload.get("venues", [])]
        logger.info(f"Loaded {len(records)} tour venue rows and {len(catalog)} catalog venues from {path}")
        return cls(records, catalog)

    def add(self, record: TourVenueRecord) -> None:
        with self._lock:
            rows = dict(self._rows)
            rows[record.tour_venue.id] = record.tour_venue
            self._venues.setdefault(record.venue.id, record.venue)
            self._rows = rows

    def remove(self, assignment_id: str) -> None:
        with self._lock:
            rows = dict(self._rows)
            rows.pop(assignment_id, None)
            self._rows = rows

    def list_tour_rows(self, tour_id: str) -> list[TourVenueRecord]:
        rows = self._rows
        return [
            TourVenueRecord(tour_venue=row, venue=self._venues[row.venue_id])
            for row in rows.values()
            if row.tour_id == tour_id
        ]

    def list_catalog_venues(self) -> list[Venue]:
        return [venue.to_domain() for venue in self._venues.values()]

    def apply_route(
        self,
        tour_id: str,
        updates: Sequence[AssignmentUpdate],
        expected_venue_ids: Sequence[str],
    ) -> None:
        with self._lock:
            current = [row for row in self._rows.values() if row.tour_id == tour_id]
            check_venue_set(tour_id, (row.venue_id for row in current), expected_venue_ids)
            known = {row.id for row in current}
            unknown = [update.assignment_id for update in updates if update.assignment_id not in known]
            if unknown:
                raise ApplyConflict(f"Assignments {unknown} no longer belong to tour {tour_id}. Re-run optimization.")

            rows = dict(self._rows)
            for update in updates:
                rows[update.assignment_id] = rows[update.assignment_id].model_copy(
                    update={
                        "sequence": update.sequence,
                        "date": update.date,
                        "travel_distance_from_previous": update.travel_distance_from_previous,
                        "travel_time_from_previous": update.travel_time_from_previous,
                    }
                )
            self._rows = rows
        logger.info(f"Applied route to tour {tour_id} ({len(updates)} assignments)")

    def update_status(self, tour_id: str, assignment_id: str, status: VenueStatus) -> TourVenueRecord:
        with self._lock:
            row = self._rows.get(assignment_id)
            if row is None or row.tour_id != tour_id:
                raise TourNotFound(f"Assignment {assignment_id} not found in tour {tour_id}.")
            updated = row.model_copy(update={"status": transition(row.status, status)})
            rows = dict(self._rows)
            rows[assignment_id] = updated
            self._rows = rows
        return TourVenueRecord(tour_venue=updated, venue=self._venues[updated.venue_id])
