"""Optimization request/response schemas."""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class CoordinateModel(BaseModel):
    latitude: float
    longitude: float


class StopModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = Field(..., min_length=1, description="Stable appointment identifier.")
    latitude: float
    longitude: float
    duration_minutes: int = Field(default=0, ge=0, description="Service time spent at the stop.")
    client: Optional[str] = None
    address: Optional[str] = None
    appointment_type: Optional[str] = None
    notes: Optional[str] = None


class OptimizeRequest(BaseModel):
    stops: List[StopModel]
    origin: Optional[CoordinateModel] = Field(
        default=None,
        description="Fixed start location. When omitted, the first stop is the start.",
    )
    start_time: Optional[str] = Field(default=None, description="Departure time as HH:MM (24-hour).")
    minutes_per_mile: Optional[float] = Field(default=None, gt=0)
    round_trip: bool = Field(
        default=True,
        description="Plan a loop back to the origin. Only effective when an origin is given.",
    )


class ScheduledStopModel(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    position: int
    arrival_time: str
    arrival_day_offset: int = Field(default=0, description="Days after the start day; nonzero once the route passes midnight.")
    distance_from_prev_miles: float
    travel_minutes: int
    duration_minutes: int = 0
    client: Optional[str] = None
    address: Optional[str] = None
    appointment_type: Optional[str] = None
    notes: Optional[str] = None
    is_start: bool = False


class OptimizeResponse(BaseModel):
    order: List[ScheduledStopModel]
    start: Optional[ScheduledStopModel] = None
    total_distance_miles: float
    total_travel_minutes: int
    total_service_minutes: int
    return_time: Optional[str] = None
    return_day_offset: Optional[int] = None
    round_trip: bool
    metadata: dict


class DistanceRequest(BaseModel):
    origin: CoordinateModel
    destination: CoordinateModel


class DistanceResponse(BaseModel):
    distance_miles: float
    duration_minutes: float
    source: str


class DistanceMatrixRequest(BaseModel):
    origins: List[CoordinateModel] = Field(..., min_length=1)
    destinations: List[CoordinateModel] = Field(..., min_length=1)


class DistanceMatrixResponse(BaseModel):
    distance_matrix: List[List[float]]
    duration_matrix: Optional[List[List[Optional[float]]]] = None
    source: str
    fallback_cells: int = 0
