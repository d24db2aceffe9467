"""Application configuration and settings management."""

from typing import Any, Literal, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="VISIT_PLANNER_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Visit Planner API"
    api_prefix: str = "/api"
    distance_provider: Literal["auto", "google", "osrm", "haversine"] = Field(
        default="auto",
        description="Precise distance source. 'auto' picks Google, then OSRM, then haversine.",
    )
    google_maps_api_key: Optional[str] = Field(
        default=None,
        description="API key for the Google Distance Matrix service.",
    )
    google_maps_base_url: str = Field(
        default="https://maps.googleapis.com/maps/api/distancematrix/json",
        description="Endpoint of the Google Distance Matrix service.",
    )
    google_travel_mode: Literal["driving", "walking", "bicycling"] = "driving"
    osrm_base_url: Optional[str] = Field(
        default=None,
        description="Base URL for the OSRM routing service (e.g., http://localhost:5000).",
    )
    osrm_profile: Literal["driving", "driving-hgv"] = Field(
        default="driving",
        description="OSRM profile to use when computing travel times.",
    )
    provider_timeout_seconds: float = Field(default=10.0, gt=0.0)
    provider_max_retries: int = Field(default=2, ge=0)
    provider_backoff_seconds: float = Field(default=0.5, ge=0.0)
    provider_max_parallel_requests: int = Field(default=4, ge=1)
    default_start_time: str = Field(default="09:00", pattern=r"^\d{1,2}:\d{2}$")
    default_minutes_per_mile: float = Field(
        default=3.0,
        gt=0.0,
        description="Average travel pace used to turn miles into minutes (3 min/mile is 20 mph).",
    )
    frontend_allowed_origins: tuple[str, ...] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    @field_validator("frontend_allowed_origins", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
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

    def resolved_distance_provider(self) -> str:
        """Return the concrete provider name after resolving 'auto'."""
        if self.distance_provider != "auto":
            return self.distance_provider
        if self.google_maps_api_key:
            return "google"
        if self.osrm_base_url:
            return "osrm"
        return "haversine"


settings = Settings()
