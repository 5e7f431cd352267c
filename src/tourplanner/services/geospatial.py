"""Geospatial helper functions."""

from __future__ import annotations

import math

from ..models.domain import GeoCoordinate

EARTH_RADIUS_KM = 6371.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def distance_km(a: GeoCoordinate, b: GeoCoordinate) -> float:
    """Great-circle distance between two fully specified coordinates.

    Callers skip legs with a missing coordinate; this function does no null handling.
    """
    if a == b:
        return 0.0
    # Symmetric by construction: always measure from the lexicographically smaller point.
    if (b.latitude, b.longitude) < (a.latitude, a.longitude):
        a, b = b, a
    return haversine_km(a.latitude, a.longitude, b.latitude, b.longitude)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (-12.5 becomes -12)."""
    return math.floor(value + 0.5)


def km_to_miles(km: float) -> float:
    return km * 0.621371


def miles_to_km(miles: float) -> float:
    return miles / 0.621371


def format_distance(distance_km_value: float, unit: str = "km") -> str:
    """Format a distance for display in the requested unit."""
    if unit == "mi":
        return f"{km_to_miles(distance_km_value):.1f} mi"
    if distance_km_value < 1:
        return f"{round_half_up(distance_km_value * 1000)} m"
    return f"{distance_km_value:.1f} km"
