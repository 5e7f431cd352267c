"""Domain models."""

from .domain import GeoCoordinate, Venue, VenueAssignment
from .status import StatusGroup, StatusInfo, VenueStatus

__all__ = [
    "GeoCoordinate",
    "StatusGroup",
    "StatusInfo",
    "Venue",
    "VenueAssignment",
    "VenueStatus",
]
