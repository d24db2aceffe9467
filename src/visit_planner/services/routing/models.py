"""Routing domain models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from ...models.domain import Stop


@dataclass(slots=True)
class DistanceMatrix:
    """Distances (miles) and optional durations (minutes), rows=origins, columns=destinations.

    A ``None`` cell means the provider could not resolve that pair.
    """

    distances: List[List[Optional[float]]]
    durations: Optional[List[List[Optional[float]]]] = None
    source: str = "haversine"
    fallback_cells: int = 0

    @property
    def shape(self) -> tuple[int, int]:
        rows = len(self.distances)
        return rows, (len(self.distances[0]) if rows else 0)

    def missing_cells(self) -> list[tuple[int, int]]:
        return [
            (row, col)
            for row, values in enumerate(self.distances)
            for col, value in enumerate(values)
            if value is None
        ]

    def distance(self, row: int, col: int) -> float:
        value = self.distances[row][col]
        if value is None:
            raise ValueError(f"Distance cell ({row}, {col}) is unresolved.")
        return value


@dataclass(slots=True)
class ScheduledStop:
    stop: Optional[Stop]
    stop_id: str
    position: int
    arrival_time: str
    distance_from_prev_miles: float = 0.0
    travel_minutes: int = 0
    is_start: bool = False
    # whole days after the start day; keeps HH:MM arrivals ordered past midnight
    day_offset: int = 0


@dataclass(slots=True)
class Schedule:
    arrival_times: List[str]
    travel_minutes: List[int]
    return_time: Optional[str] = None
    end_time: Optional[str] = None
    arrival_day_offsets: List[int] = field(default_factory=list)
    return_day_offset: Optional[int] = None


@dataclass(slots=True)
class OptimizationResult:
    route: List[ScheduledStop]
    total_distance_miles: float
    total_travel_minutes: int
    total_service_minutes: int
    return_time: Optional[str] = None
    return_day_offset: Optional[int] = None
    start: Optional[ScheduledStop] = None
    round_trip: bool = False
    metadata: dict = field(default_factory=dict)
