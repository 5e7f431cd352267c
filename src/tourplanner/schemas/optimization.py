"""Wire schemas for the remote tour optimization service."""

from __future__ import annotations

import re
from datetime import date
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

_NUMBER = re.compile(r"-?\d+(?:\.\d+)?")


def _leading_number(value: Any) -> Optional[float]:
    """Accept numbers or strings such as ``"1234.5 km"`` and ``"15%"``."""
    if value is None or value == "":
        return None
    if isinstance(value, (int, float)):
        return float(value)
    match = _NUMBER.search(str(value))
    if not match:
        raise ValueError(f"Unable to parse number from value '{value}'")
    return float(match.group(0))


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OptimizationPreferences(CamelModel):
    optimization_goal: Literal["distance", "time", "balance"] = "balance"
    preferred_regions: List[str] = Field(default_factory=list)
    min_days_between_shows: int = Field(default=1, ge=0)
    max_days_between_shows: int = Field(default=7, ge=0)
    max_travel_distance_per_day: float = Field(default=500.0, ge=0)
    avoid_cities: List[str] = Field(default_factory=list)
    focus_on_artist_fanbase: bool = False
    prioritize_venue_size: Literal["small", "medium", "large", "any"] = "any"


class RemoteOptimizationRequest(CamelModel):
    tour_id: str
    preferences: OptimizationPreferences


class CalculatedMetrics(CamelModel):
    total_distance: Optional[float] = None
    total_travel_time_minutes: Optional[float] = None
    optimized_distance: Optional[float] = None
    optimized_time_minutes: Optional[float] = None

    @field_validator("*", mode="before")
    @classmethod
    def _parse_number(cls, value: Any) -> Optional[float]:
        return _leading_number(value)


class RemoteOptimizationResponse(CamelModel):
    optimized_sequence: List[str]
    suggested_dates: Dict[str, date] = Field(default_factory=dict)
    recommended_venues: List[str] = Field(default_factory=list)
    suggested_skips: List[str] = Field(default_factory=list)
    estimated_distance_reduction: Optional[float] = None
    estimated_time_savings: Optional[float] = None
    reasoning: str = ""
    calculated_metrics: Optional[CalculatedMetrics] = None
    ai_error: Optional[Union[Dict[str, Any], str]] = None

    @field_validator("optimized_sequence", "recommended_venues", "suggested_skips", mode="before")
    @classmethod
    def _ids_as_strings(cls, value: Any) -> List[str]:
        return [str(item) for item in (value or [])]

    @field_validator("suggested_dates", mode="before")
    @classmethod
    def _date_keys_as_strings(cls, value: Any) -> Dict[str, Any]:
        # Timestamps are truncated to their calendar date.
        return {
            str(key): item[:10] if isinstance(item, str) else item for key, item in (value or {}).items()
        }

    @field_validator("estimated_distance_reduction", "estimated_time_savings", mode="before")
    @classmethod
    def _parse_percentage(cls, value: Any) -> Optional[float]:
        return _leading_number(value)

    @property
    def degraded(self) -> bool:
        return self.ai_error is not None
