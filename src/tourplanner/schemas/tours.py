"""Tour request/response schemas."""

from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ..models.domain import GeoCoordinate, Venue, VenueAssignment
from ..models.status import DEFAULT_STATUS, VenueStatus
from .optimization import CamelModel, OptimizationPreferences


class TourVenueRow(CamelModel):
    id: str
    tour_id: str
    venue_id: str
    status: VenueStatus = DEFAULT_STATUS
    date: Optional[dt.date] = None
    sequence: Optional[int] = None
    travel_distance_from_previous: Optional[float] = None
    travel_time_from_previous: Optional[float] = None
    notes: Optional[str] = None

    @field_validator("id", "tour_id", "venue_id", mode="before")
    @classmethod
    def _id_as_string(cls, value: Any) -> str:
        return str(value)

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value: Any) -> VenueStatus:
        if value is None or value == "":
            return DEFAULT_STATUS
        return VenueStatus.parse(value)

    @field_validator("date", mode="before")
    @classmethod
    def _truncate_timestamp(cls, value: Any) -> Any:
        if isinstance(value, str) and len(value) > 10:
            return value[:10]
        return value


class VenueRow(CamelModel):
    id: str
    name: str
    city: str = ""
    region: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    capacity: Optional[int] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_string(cls, value: Any) -> str:
        return str(value)

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def _blank_as_none(cls, value: Any) -> Any:
        if value == "":
            return None
        return value

    def to_domain(self) -> Venue:
        return Venue(
            id=self.id,
            name=self.name,
            city=self.city,
            region=self.region,
            coordinate=GeoCoordinate.from_optional(self.latitude, self.longitude),
            capacity=self.capacity,
        )


class TourVenueRecord(CamelModel):
    """One row from the persistence collaborator: an assignment joined with its venue."""

    tour_venue: TourVenueRow
    venue: VenueRow

    def to_domain(self) -> tuple[VenueAssignment, Venue]:
        row = self.tour_venue
        assignment = VenueAssignment(
            id=row.id,
            tour_id=row.tour_id,
            venue_id=row.venue_id,
            status=row.status,
            date=row.date,
            sequence=row.sequence,
            travel_distance_from_previous=row.travel_distance_from_previous,
            travel_time_from_previous=row.travel_time_from_previous,
            notes=row.notes,
        )
        return assignment, self.venue.to_domain()


class CoordinateModel(BaseModel):
    latitude: float
    longitude: float


class ViewportModel(BaseModel):
    south_west: CoordinateModel
    north_east: CoordinateModel
    padding_px: int


class MarkerModel(BaseModel):
    id: str
    venue_id: str
    coordinate: Optional[CoordinateModel]
    label: str
    status: VenueStatus
    color: str
    is_suggested: bool
    date: Optional[dt.date] = None
    sequence: int


class MapOverlayResponse(BaseModel):
    tour_id: str
    markers: List[MarkerModel]
    polyline: List[CoordinateModel]
    viewport: Optional[ViewportModel] = None
    notices: List[dict] = Field(default_factory=list)


class LegModel(BaseModel):
    from_assignment_id: str
    to_assignment_id: str
    distance_km: float
    travel_time_minutes: float
    source: str


class MetricsModel(BaseModel):
    total_distance_km: float
    total_travel_time_minutes: float
    optimization_score: Optional[int] = Field(None, ge=0, le=100)
    unrouted_count: int = 0
    formatted_distance: Optional[str] = None
    legs: List[LegModel] = Field(default_factory=list)


class StopModel(BaseModel):
    assignment_id: str
    venue_id: str
    name: str
    city: str
    status: VenueStatus
    date: Optional[dt.date] = None
    sequence: Optional[int] = None
    has_coordinate: bool
    travel_distance_from_previous: Optional[float] = None
    travel_time_from_previous: Optional[float] = None


class RouteSummaryResponse(BaseModel):
    tour_id: str
    view_mode: Literal["map", "list", "split"]
    stops: List[StopModel]
    metrics: MetricsModel
    status_breakdown: dict
    notices: List[dict] = Field(default_factory=list)


class FillSuggestionModel(BaseModel):
    venue_id: str
    name: str
    city: str
    assignment_id: Optional[str] = None
    in_tour: bool
    suggested_date: Optional[dt.date] = None
    suggested_sequence: Optional[int] = None
    detour_ratio: Optional[float] = None
    recommended_status: Optional[VenueStatus] = None


class DateConflictModel(BaseModel):
    assignment_id: str
    conflicts_with: str
    date: dt.date


class ComparisonModel(BaseModel):
    distance_improvement_pct: int
    time_improvement_pct: int
    score_delta: Optional[int] = None


class OptimizeRequest(BaseModel):
    method: Literal["auto", "remote", "local"] = "auto"
    preferences: OptimizationPreferences = Field(default_factory=OptimizationPreferences)
    apply: bool = Field(default=False, description="Apply the result when it is still wanted on arrival.")
    persist: bool = Field(default=False, description="Write a GeoJSON/CSV export of the proposal.")


class OptimizeResponse(BaseModel):
    tour_id: str
    status: Literal["preview", "applied", "discarded"]
    source: str
    label: str
    is_fallback: bool
    reasoning: str = ""
    stops: List[StopModel] = Field(default_factory=list)
    optimized_sequence: List[str] = Field(default_factory=list)
    suggested_dates: Dict[str, dt.date] = Field(default_factory=dict)
    metrics: Optional[MetricsModel] = None
    original_metrics: Optional[MetricsModel] = None
    comparison: Optional[ComparisonModel] = None
    potential_fill_venues: List[FillSuggestionModel] = Field(default_factory=list)
    suggested_skips: List[str] = Field(default_factory=list)
    date_conflicts: List[DateConflictModel] = Field(default_factory=list)
    remote_estimates: dict = Field(default_factory=dict)
    map: Optional[MapOverlayResponse] = None
    export_path: Optional[str] = None
    notices: List[dict] = Field(default_factory=list)


class ApplyRequest(BaseModel):
    optimized_sequence: List[str] = Field(..., description="Venue ids in the new order.")
    suggested_dates: Dict[str, dt.date] = Field(default_factory=dict)

    @field_validator("optimized_sequence", mode="before")
    @classmethod
    def _ids_as_strings(cls, value: Any) -> List[str]:
        return [str(item) for item in (value or [])]


class ApplyResponse(BaseModel):
    tour_id: str
    applied: bool
    stops: List[StopModel]
    metrics: MetricsModel
    original_metrics: MetricsModel
    comparison: ComparisonModel
    notices: List[dict] = Field(default_factory=list)


class GapFillRequest(BaseModel):
    min_days_between_shows: int = Field(default=1, ge=0)


class GapFillResponse(BaseModel):
    tour_id: str
    suggestions: List[FillSuggestionModel]


class MetricsInput(BaseModel):
    total_distance_km: float = Field(..., ge=0)
    total_travel_time_minutes: float = Field(..., ge=0)
    optimization_score: Optional[int] = Field(None, ge=0, le=100)


class CompareRequest(BaseModel):
    original: MetricsInput
    optimized: MetricsInput


class StatusInfoModel(BaseModel):
    status: VenueStatus
    group: str
    display_name: str
    color: str
    description: str
    hold_rank: Optional[int] = None
    is_fixed_anchor: bool
    is_terminal: bool


class StatusUpdateRequest(BaseModel):
    status: VenueStatus

    @field_validator("status", mode="before")
    @classmethod
    def _parse_status(cls, value: Any) -> VenueStatus:
        return VenueStatus.parse(value)
