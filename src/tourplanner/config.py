"""Application configuration and settings management."""

from pathlib import Path
from typing import Annotated, Any, Literal, Optional

import json
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


def _split_env_list(value: Any) -> tuple[str, ...]:
    """Parse a string tuple from an environment value (comma-separated or JSON array)."""
    if isinstance(value, tuple):
        return value
    if isinstance(value, list):
        return tuple(str(item) for item in value)
    if isinstance(value, str):
        # Try JSON first
        try:
            parsed = json.loads(value)
            if isinstance(parsed, list):
                return tuple(str(item) for item in parsed)
        except (json.JSONDecodeError, TypeError):
            pass
        if "," in value:
            return tuple(item.strip() for item in value.split(",") if item.strip())
        if value.strip():
            return (value.strip(),)
    return tuple()


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="TOURPLANNER_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Tour Route Planner API"
    api_prefix: str = "/api"
    data_root: Path = Field(default=Path("data"), description="Root directory for seed data and exports.")
    tour_data_file: Optional[Path] = Field(
        default=None,
        description="JSON file of tour venue rows used to seed the in-memory repository.",
    )
    repository_backend: Literal["memory", "supabase"] = Field(
        default="memory",
        description="Where tour assignments are read from and applied to.",
    )

    # Route metrics
    average_speed_kmh: float = Field(default=80.0, gt=0.0)
    metrics_excluded_statuses: Annotated[tuple[str, ...], NoDecode] = Field(
        default=("cancelled",),
        description="Statuses kept in the route but skipped when accumulating legs.",
    )

    # Sequence builder
    anchor_statuses: Annotated[tuple[str, ...], NoDecode] = Field(
        default=("confirmed",),
        description=(
            "Statuses treated as fixed anchors during optimization. 'confirmed' is always an anchor; "
            "widening this set is pending product clarification."
        ),
    )
    min_dated_assignments: int = Field(default=2, ge=0)
    min_reorderable_assignments: int = Field(default=3, ge=0)
    detour_hold1_max: float = Field(default=1.1, gt=0.0)
    detour_hold2_max: float = Field(default=1.3, gt=0.0)
    detour_hold3_max: float = Field(default=1.5, gt=0.0)

    # Map
    viewport_padding_px: int = Field(default=50, ge=0)
    default_view_mode: Literal["map", "list", "split"] = "map"
    distance_unit: Literal["km", "mi"] = "km"

    # Remote optimization service
    optimizer_base_url: Optional[str] = Field(
        default=None,
        description="Base URL of the remote tour optimization service.",
    )
    optimizer_timeout_seconds: float = Field(default=45.0, gt=0.0)
    optimizer_max_retries: int = Field(default=2, ge=0)
    optimizer_backoff_seconds: float = Field(default=1.0, ge=0.0)
    optimization_cache_ttl_seconds: int = Field(default=3600, ge=0)

    frontend_allowed_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        default=(
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Supabase configuration
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )

    @field_validator("data_root", "tour_data_file", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Optional[Path]:
        if value is None or value == "":
            return None
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator(
        "frontend_allowed_origins",
        "anchor_statuses",
        "metrics_excluded_statuses",
        mode="before",
    )
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        return _split_env_list(value)

    @field_validator("anchor_statuses", "metrics_excluded_statuses")
    @classmethod
    def _validate_statuses(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        from .models.status import VenueStatus

        return tuple(VenueStatus.parse(item).value for item in value)

    @field_validator("anchor_statuses")
    @classmethod
    def _always_anchor_confirmed(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        if "cancelled" in value:
            raise ValueError("'cancelled' is terminal and cannot be an anchor status.")
        if "confirmed" not in value:
            return ("confirmed", *value)
        return value

    @model_validator(mode="after")
    def _check_detour_thresholds(self) -> "Settings":
        if not (self.detour_hold1_max < self.detour_hold2_max < self.detour_hold3_max):
            raise ValueError(
                "Detour thresholds must be strictly increasing "
                f"(got {self.detour_hold1_max}, {self.detour_hold2_max}, {self.detour_hold3_max})."
            )
        return self


settings = Settings()
