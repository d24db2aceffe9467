"""Turn an ordered route into wall-clock arrival times."""

from __future__ import annotations

import math
from datetime import datetime, time, timedelta
from typing import Optional, Sequence

from ...models.domain import Coordinate, Stop
from ..geospatial import coordinate_distance_miles
from .models import Schedule

CLOCK_FORMAT = "%H:%M"
# Only the time of day is reported; the date anchors arithmetic across midnight.
_REFERENCE_DAY = datetime(2024, 1, 1)


def parse_clock(value: str | time) -> datetime:
    """Parse an ``HH:MM`` string (or a ``time``) onto the reference day."""
    if isinstance(value, time):
        return datetime.combine(_REFERENCE_DAY.date(), value.replace(second=0, microsecond=0))
    try:
        hours_text, minutes_text = value.strip().split(":")
        hours, minutes = int(hours_text), int(minutes_text)
    except (AttributeError, ValueError) as exc:
        raise ValueError(f"Invalid start time '{value}'. Expected HH:MM.") from exc
    if not (0 <= hours <= 23 and 0 <= minutes <= 59):
        raise ValueError(f"Invalid start time '{value}'. Expected HH:MM.")
    return _REFERENCE_DAY.replace(hour=hours, minute=minutes)


def format_clock(moment: datetime) -> str:
    return moment.strftime(CLOCK_FORMAT)


def day_offset(moment: datetime) -> int:
    """Whole days between the reference day and ``moment``."""
    return (moment.date() - _REFERENCE_DAY.date()).days


def travel_minutes(distance_miles: float, minutes_per_mile: float) -> int:
    """Whole minutes needed to cover a distance, always rounded up."""
    # drop float noise before rounding up
    return max(0, math.ceil(round(distance_miles * minutes_per_mile, 9)))


def generate_schedule(
    stops: Sequence[Stop],
    leg_miles: Sequence[float],
    start_time: str | time,
    minutes_per_mile: float = 3.0,
    return_leg_miles: Optional[float] = None,
) -> Schedule:
    """Walk the route accumulating travel and service time.

    ``leg_miles[i]`` is the distance driven to reach ``stops[i]``. When
    ``return_leg_miles`` is given, the drive home after the last service is
    recorded as ``return_time``. Clock strings wrap past midnight, so each
    arrival also carries its day offset from the start day.
    """
    if len(leg_miles) != len(stops):
        raise ValueError(f"Expected {len(stops)} legs, got {len(leg_miles)}.")
    if minutes_per_mile < 0:
        raise ValueError("minutes_per_mile must not be negative.")

    current = parse_clock(start_time)
    arrivals: list[str] = []
    offsets: list[int] = []
    legs: list[int] = []
    for stop, miles in zip(stops, leg_miles):
        minutes = travel_minutes(miles, minutes_per_mile)
        current += timedelta(minutes=minutes)
        arrivals.append(format_clock(current))
        offsets.append(day_offset(current))
        legs.append(minutes)
        current += timedelta(minutes=max(0, stop.service_duration_minutes))

    schedule = Schedule(
        arrival_times=arrivals,
        travel_minutes=legs,
        end_time=format_clock(current),
        arrival_day_offsets=offsets,
    )
    if return_leg_miles is not None and stops:
        current += timedelta(minutes=travel_minutes(return_leg_miles, minutes_per_mile))
        schedule.return_time = format_clock(current)
        schedule.return_day_offset = day_offset(current)
    return schedule


def schedule_route(
    stops: Sequence[Stop],
    start_time: str | time,
    minutes_per_mile: float = 3.0,
    origin: Optional[Coordinate] = None,
    round_trip: bool = False,
) -> Schedule:
    """Schedule an already ordered route using great-circle legs."""
    legs: list[float] = []
    previous = origin
    for stop in stops:
        legs.append(coordinate_distance_miles(previous, stop.location) if previous is not None else 0.0)
        previous = stop.location

    return_leg = None
    if round_trip and origin is not None and stops:
        return_leg = coordinate_distance_miles(stops[-1].location, origin)
    return generate_schedule(stops, legs, start_time, minutes_per_mile, return_leg)
