import random

import pytest

from visit_planner.models.domain import Coordinate, Stop
from visit_planner.services.routing.schedule import (
    generate_schedule,
    parse_clock,
    schedule_route,
    travel_minutes,
)


def _stop(sid: str, lat: float, lon: float, duration: int = 0) -> Stop:
    return Stop(stop_id=sid, location=Coordinate(lat, lon), service_duration_minutes=duration)


def test_generate_schedule_accumulates_travel_and_service():
    stops = [_stop("A", 0, 0, 30), _stop("B", 0, 0, 45)]

    schedule = generate_schedule(stops, [10, 5], "09:00", minutes_per_mile=3, return_leg_miles=2)

    assert schedule.arrival_times == ["09:30", "10:15"]
    assert schedule.travel_minutes == [30, 15]
    assert schedule.end_time == "11:00"
    assert schedule.return_time == "11:06"


def test_travel_time_rounds_up():
    assert travel_minutes(0.1, 3) == 1
    assert travel_minutes(0.0, 3) == 0
    assert travel_minutes(69.0969, 3) == 208

    schedule = generate_schedule([_stop("A", 0, 0)], [0.1], "09:00")
    assert schedule.arrival_times == ["09:01"]
    assert schedule.return_time is None


def test_schedule_wraps_past_midnight():
    schedule = generate_schedule([_stop("A", 0, 0)], [5], "23:50")

    assert schedule.arrival_times == ["00:05"]
    assert schedule.arrival_day_offsets == [1]


@pytest.mark.parametrize("value", ["25:00", "09:61", "9am", ""])
def test_parse_clock_rejects_bad_values(value):
    with pytest.raises(ValueError):
        parse_clock(value)


def test_generate_schedule_requires_one_leg_per_stop():
    with pytest.raises(ValueError):
        generate_schedule([_stop("A", 0, 0)], [], "09:00")


def test_schedule_route_with_origin_and_return():
    origin = Coordinate(0.0, 0.0)
    schedule = schedule_route([_stop("A", 0.0, 1.0, 30)], "09:00", 3.0, origin=origin, round_trip=True)

    # 69.1 miles at 3 min/mile is 208 minutes each way
    assert schedule.arrival_times == ["12:28"]
    assert schedule.return_time == "16:26"


def test_schedule_route_without_origin_starts_at_first_stop():
    schedule = schedule_route([_stop("A", 0.0, 0.0, 15), _stop("B", 0.0, 0.0)], "08:00")

    assert schedule.arrival_times == ["08:00", "08:15"]
    assert schedule.return_time is None


def test_arrival_times_never_decrease():
    rng = random.Random(9)
    stops = [
        _stop(f"S{i}", 40.0 + rng.random() * 0.1, -74.0 + rng.random() * 0.1, rng.randint(0, 30))
        for i in range(10)
    ]

    schedule = schedule_route(stops, "06:00", 3.0, origin=Coordinate(40.05, -74.05), round_trip=True)

    assert schedule.arrival_times == sorted(schedule.arrival_times)
    assert schedule.return_time >= schedule.arrival_times[-1]


def test_arrivals_stay_ordered_across_midnight():
    stops = [_stop("A", 0, 0, 120), _stop("B", 0, 0, 0), _stop("C", 0, 0, 30)]

    schedule = generate_schedule(stops, [0, 0, 10], "23:00", minutes_per_mile=3, return_leg_miles=5)

    assert schedule.arrival_times == ["23:00", "01:00", "01:30"]
    assert schedule.arrival_day_offsets == [0, 1, 1]
    assert schedule.return_time == "02:15"
    assert schedule.return_day_offset == 1
    keys = list(zip(schedule.arrival_day_offsets, schedule.arrival_times))
    assert keys == sorted(keys)


def test_arrival_day_offsets_are_zero_within_the_day():
    schedule = generate_schedule([_stop("A", 0, 0, 30), _stop("B", 0, 0)], [10, 5], "09:00")

    assert schedule.arrival_day_offsets == [0, 0]
    assert schedule.return_day_offset is None
