"""Map rendering descriptors."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Optional

from ...models.domain import GeoCoordinate
from ...models.status import VenueStatus


@dataclass(frozen=True, slots=True)
class MapViewport:
    south_west: GeoCoordinate
    north_east: GeoCoordinate
    padding_px: int


@dataclass(frozen=True, slots=True)
class MapMarker:
    id: str
    venue_id: str
    coordinate: Optional[GeoCoordinate]
    label: str
    status: VenueStatus
    is_suggested: bool
    date: Optional[date] = None
    sequence: Optional[int] = None


@dataclass(slots=True)
class MapOverlay:
    markers: list[MapMarker]
    polyline: list[GeoCoordinate]
    viewport: Optional[MapViewport] = None
    notices: list[dict] = field(default_factory=list)
