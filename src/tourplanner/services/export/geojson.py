"""GeoJSON export of map overlays."""

from __future__ import annotations

from typing import Any, Dict, List

from ...models.domain import GeoCoordinate
from ..maps.models import MapMarker, MapOverlay


def _position(coordinate: GeoCoordinate) -> List[float]:
    # GeoJSON positions are [lon, lat].
    return [coordinate.longitude, coordinate.latitude]


def marker_feature(marker: MapMarker) -> Dict[str, Any]:
    return {
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": _position(marker.coordinate)},
        "properties": {
            "id": marker.id,
            "venue_id": marker.venue_id,
            "label": marker.label,
            "status": marker.status.value,
            "color": marker.status.info.color,
            "is_suggested": marker.is_suggested,
            "date": marker.date.isoformat() if marker.date else None,
            "sequence": marker.sequence,
        },
    }


def overlay_to_geojson(overlay: MapOverlay, tour_id: str) -> Dict[str, Any]:
    """FeatureCollection with one Point per located marker and the route as a LineString.

    Markers without a coordinate are left out; the LineString is only emitted when the
    route has at least two located stops.
    """
    features = [marker_feature(marker) for marker in overlay.markers if marker.coordinate is not None]
    if len(overlay.polyline) >= 2:
        features.append(
            {
                "type": "Feature",
                "geometry": {
                    "type": "LineString",
                    "coordinates": [_position(coordinate) for coordinate in overlay.polyline],
                },
                "properties": {"tour_id": tour_id, "kind": "route"},
            }
        )

    collection: Dict[str, Any] = {"type": "FeatureCollection", "features": features}
    if overlay.viewport is not None:
        south_west, north_east = overlay.viewport.south_west, overlay.viewport.north_east
        collection["bbox"] = [south_west.longitude, south_west.latitude, north_east.longitude, north_east.latitude]
    return collection
