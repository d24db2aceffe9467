"""Routing orchestration service."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from ...config import settings
from ...errors import EmptyInputError
from ...models.domain import Coordinate, Stop, validate_coordinate
from ...schemas.optimize import (
    CoordinateModel,
    DistanceMatrixRequest,
    DistanceMatrixResponse,
    DistanceRequest,
    DistanceResponse,
    OptimizeRequest,
    OptimizeResponse,
    ScheduledStopModel,
    StopModel,
)
from .distance import DistanceSource, FallbackDistanceSource, HaversineDistanceSource, build_distance_source
from .models import OptimizationResult, ScheduledStop
from .schedule import format_clock, generate_schedule, parse_clock, travel_minutes
from .solver import leg_distances, nearest_neighbor_order, path_distance, round_trip_order

logger = logging.getLogger(__name__)


def _build_node_index(
    stops: Sequence[Stop],
    origin: Optional[Coordinate],
) -> tuple[list[Coordinate], dict[str, int], Optional[int]]:
    """Assign matrix indices once: origin at 0 when present, then stops in input order."""
    coordinates: list[Coordinate] = []
    origin_node: Optional[int] = None
    if origin is not None:
        origin_node = 0
        coordinates.append(origin)

    node_by_stop: dict[str, int] = {}
    for stop in stops:
        if stop.stop_id in node_by_stop:
            raise ValueError(f"Duplicate stop id '{stop.stop_id}'.")
        node_by_stop[stop.stop_id] = len(coordinates)
        coordinates.append(stop.location)
    return coordinates, node_by_stop, origin_node


class RouteOptimizer:
    """Order stops, schedule them and report totals for one optimization call."""

    def __init__(self, distance_source: DistanceSource | None = None) -> None:
        source = distance_source or build_distance_source()
        if not isinstance(source, (FallbackDistanceSource, HaversineDistanceSource)):
            source = FallbackDistanceSource(source)
        self.distance_source = source

    def optimize(
        self,
        stops: Sequence[Stop],
        origin: Optional[Coordinate] = None,
        start_time: Optional[str] = None,
        minutes_per_mile: Optional[float] = None,
        round_trip: bool = True,
    ) -> OptimizationResult:
        if not stops:
            raise EmptyInputError("No appointments found to optimize.")

        start_time = start_time or settings.default_start_time
        start_clock = parse_clock(start_time)
        minutes_per_mile = minutes_per_mile if minutes_per_mile is not None else settings.default_minutes_per_mile
        if minutes_per_mile <= 0:
            raise ValueError("minutes_per_mile must be positive.")

        coordinates, node_by_stop, origin_node = _build_node_index(stops, origin)
        stop_by_node = {node_by_stop[stop.stop_id]: stop for stop in stops}
        stop_nodes = list(node_by_stop.values())

        matrix = self.distance_source.matrix(coordinates, coordinates)
        distances = matrix.distances

        use_round_trip = round_trip and origin_node is not None
        if use_round_trip:
            order = round_trip_order(distances, stop_nodes, origin_node)
        else:
            order = nearest_neighbor_order(distances, stop_nodes, origin_node)

        ordered_stops = [stop_by_node[node] for node in order]
        legs = leg_distances(distances, order, origin_node)
        return_leg = distances[order[-1]][origin_node] if use_round_trip else None
        schedule = generate_schedule(ordered_stops, legs, start_clock.time(), minutes_per_mile, return_leg)

        total_distance = path_distance(distances, order, origin_node, close_loop=use_round_trip)
        route = [
            ScheduledStop(
                stop=stop,
                stop_id=stop.stop_id,
                position=position,
                arrival_time=arrival,
                distance_from_prev_miles=leg,
                travel_minutes=minutes,
                day_offset=offset,
            )
            for position, (stop, arrival, offset, leg, minutes) in enumerate(
                zip(
                    ordered_stops,
                    schedule.arrival_times,
                    schedule.arrival_day_offsets,
                    legs,
                    schedule.travel_minutes,
                ),
                start=1,
            )
        ]
        start = None
        if use_round_trip:
            start = ScheduledStop(
                stop=None,
                stop_id="start",
                position=0,
                arrival_time=format_clock(start_clock),
                is_start=True,
            )

        result = OptimizationResult(
            route=route,
            total_distance_miles=total_distance,
            total_travel_minutes=travel_minutes(total_distance, minutes_per_mile),
            total_service_minutes=sum(stop.service_duration_minutes for stop in stops),
            return_time=schedule.return_time,
            return_day_offset=schedule.return_day_offset,
            start=start,
            round_trip=use_round_trip,
            metadata={
                "strategy": "round_trip_nearest_neighbor" if use_round_trip else "nearest_neighbor",
                "distance_source": matrix.source,
                "fallback_cells": matrix.fallback_cells,
                "stop_count": len(stops),
                "start_time": format_clock(start_clock),
                "end_time": schedule.end_time,
                "minutes_per_mile": minutes_per_mile,
            },
        )
        logger.info(
            f"Optimized {len(stops)} stops ({result.metadata['strategy']}, source={matrix.source}): "
            f"{total_distance:.1f} miles, {result.total_travel_minutes} travel minutes"
        )
        return result


def _to_coordinate(model: CoordinateModel) -> Coordinate:
    return validate_coordinate(model.latitude, model.longitude)


def _to_stop(model: StopModel) -> Stop:
    return Stop(
        stop_id=model.id,
        location=validate_coordinate(model.latitude, model.longitude),
        service_duration_minutes=model.duration_minutes,
        client=model.client,
        address=model.address,
        appointment_type=model.appointment_type,
        notes=model.notes,
        extra=dict(model.model_extra or {}),
    )


def _scheduled_stop_model(scheduled: ScheduledStop) -> ScheduledStopModel:
    stop = scheduled.stop
    if stop is None:
        return ScheduledStopModel(
            id=scheduled.stop_id,
            position=scheduled.position,
            arrival_time=scheduled.arrival_time,
            arrival_day_offset=scheduled.day_offset,
            distance_from_prev_miles=scheduled.distance_from_prev_miles,
            travel_minutes=scheduled.travel_minutes,
            client="Starting Point",
            is_start=scheduled.is_start,
        )
    passthrough = {key: value for key, value in stop.extra.items() if key not in ScheduledStopModel.model_fields}
    return ScheduledStopModel(
        **passthrough,
        id=scheduled.stop_id,
        position=scheduled.position,
        arrival_time=scheduled.arrival_time,
        arrival_day_offset=scheduled.day_offset,
        distance_from_prev_miles=scheduled.distance_from_prev_miles,
        travel_minutes=scheduled.travel_minutes,
        duration_minutes=stop.service_duration_minutes,
        client=stop.client,
        address=stop.address,
        appointment_type=stop.appointment_type,
        notes=stop.notes,
    )


def result_to_response(result: OptimizationResult) -> OptimizeResponse:
    return OptimizeResponse(
        order=[_scheduled_stop_model(scheduled) for scheduled in result.route],
        start=_scheduled_stop_model(result.start) if result.start else None,
        total_distance_miles=result.total_distance_miles,
        total_travel_minutes=result.total_travel_minutes,
        total_service_minutes=result.total_service_minutes,
        return_time=result.return_time,
        return_day_offset=result.return_day_offset,
        round_trip=result.round_trip,
        metadata=result.metadata,
    )


def run_optimization(payload: OptimizeRequest) -> OptimizationResult:
    if not payload.stops:
        raise EmptyInputError("No appointments found to optimize.")
    stops = [_to_stop(model) for model in payload.stops]
    origin = _to_coordinate(payload.origin) if payload.origin else None
    optimizer = RouteOptimizer(build_distance_source())
    return optimizer.optimize(
        stops,
        origin=origin,
        start_time=payload.start_time,
        minutes_per_mile=payload.minutes_per_mile,
        round_trip=payload.round_trip,
    )


def optimize_appointments(payload: OptimizeRequest) -> OptimizeResponse:
    return result_to_response(run_optimization(payload))


def distance_between(payload: DistanceRequest) -> DistanceResponse:
    origin = _to_coordinate(payload.origin)
    destination = _to_coordinate(payload.destination)
    matrix = build_distance_source().matrix([origin], [destination])
    distance = matrix.distance(0, 0)
    if matrix.durations is not None and matrix.durations[0][0] is not None:
        duration = matrix.durations[0][0]
    else:
        duration = distance * settings.default_minutes_per_mile
    return DistanceResponse(distance_miles=distance, duration_minutes=duration, source=matrix.source)


def distance_matrix(payload: DistanceMatrixRequest) -> DistanceMatrixResponse:
    origins = [_to_coordinate(item) for item in payload.origins]
    destinations = [_to_coordinate(item) for item in payload.destinations]
    matrix = build_distance_source().matrix(origins, destinations)
    return DistanceMatrixResponse(
        distance_matrix=matrix.distances,
        duration_matrix=matrix.durations,
        source=matrix.source,
        fallback_cells=matrix.fallback_cells,
    )
