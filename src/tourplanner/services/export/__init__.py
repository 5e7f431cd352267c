"""Export services."""

from .geojson import marker_feature, overlay_to_geojson

__all__ = [
    "marker_feature",
    "overlay_to_geojson",
]
