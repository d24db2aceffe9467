"""Domain models for appointment stops and coordinates."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Optional

from ..errors import InvalidCoordinateError


@dataclass(frozen=True, slots=True)
class Coordinate:
    latitude: float
    longitude: float

    def as_tuple(self) -> tuple[float, float]:
        return (self.latitude, self.longitude)


@dataclass(slots=True)
class Stop:
    """One appointment to visit.

    Only ``stop_id``, ``location`` and ``service_duration_minutes`` are read by
    the optimizer; the remaining fields are carried through untouched.
    """

    stop_id: str
    location: Coordinate
    service_duration_minutes: int = 0
    client: Optional[str] = None
    address: Optional[str] = None
    appointment_type: Optional[str] = None
    notes: Optional[str] = None
    extra: dict = field(default_factory=dict)


def validate_coordinate(latitude: float, longitude: float) -> Coordinate:
    """Build a Coordinate, rejecting non-finite or out-of-range values."""

    if not (math.isfinite(latitude) and math.isfinite(longitude)):
        raise InvalidCoordinateError(f"Coordinates must be finite numbers, got ({latitude}, {longitude}).")
    if not -90.0 <= latitude <= 90.0:
        raise InvalidCoordinateError(f"Latitude {latitude} is outside [-90, 90].")
    if not -180.0 <= longitude <= 180.0:
        raise InvalidCoordinateError(f"Longitude {longitude} is outside [-180, 180].")
    return Coordinate(latitude=float(latitude), longitude=float(longitude))
