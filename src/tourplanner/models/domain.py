"""Domain models for venues and their assignments to tours."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import date
from typing import Optional

from .status import DEFAULT_STATUS, VenueStatus


@dataclass(frozen=True, slots=True)
class GeoCoordinate:
    """A fully specified latitude/longitude pair in decimal degrees."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        if not is_valid_coordinate(self.latitude, self.longitude):
            raise ValueError(f"Invalid coordinate ({self.latitude}, {self.longitude}).")

    @classmethod
    def from_optional(cls, latitude: Optional[float], longitude: Optional[float]) -> Optional["GeoCoordinate"]:
        """Build a coordinate, or return ``None`` when either part is missing or out of range."""
        if latitude is None or longitude is None:
            return None
        lat, lon = float(latitude), float(longitude)
        if not is_valid_coordinate(lat, lon):
            return None
        return cls(lat, lon)


def is_valid_coordinate(latitude: float, longitude: float) -> bool:
    if math.isnan(latitude) or math.isnan(longitude):
        return False
    return -90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0


@dataclass(frozen=True, slots=True)
class Venue:
    """Reference data for a venue from the venue catalog."""

    id: str
    name: str
    city: str
    region: Optional[str] = None
    coordinate: Optional[GeoCoordinate] = None
    capacity: Optional[int] = None


@dataclass(frozen=True, slots=True)
class VenueAssignment:
    """A venue's membership in one tour."""

    id: str
    tour_id: str
    venue_id: str
    status: VenueStatus = DEFAULT_STATUS
    date: Optional[date] = None
    sequence: Optional[int] = None
    travel_distance_from_previous: Optional[float] = None
    travel_time_from_previous: Optional[float] = None
    notes: Optional[str] = None
