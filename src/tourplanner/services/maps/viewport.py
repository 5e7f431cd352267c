"""Bounding-box viewport fitting."""

from __future__ import annotations

from typing import Iterable, Optional

from shapely.geometry import MultiPoint

from ...config import settings
from ...models.domain import GeoCoordinate
from .models import MapViewport


def fit_viewport(
    coordinates: Iterable[Optional[GeoCoordinate]],
    padding_px: Optional[int] = None,
) -> Optional[MapViewport]:
    """Smallest lat/lon box enclosing the given coordinates.

    Missing coordinates are ignored. Returns ``None`` for an empty set; callers keep
    their current viewport in that case.
    """
    points = [(coordinate.longitude, coordinate.latitude) for coordinate in coordinates if coordinate is not None]
    if not points:
        return None

    min_lon, min_lat, max_lon, max_lat = MultiPoint(points).bounds
    return MapViewport(
        south_west=GeoCoordinate(min_lat, min_lon),
        north_east=GeoCoordinate(max_lat, max_lon),
        padding_px=settings.viewport_padding_px if padding_px is None else padding_px,
    )
