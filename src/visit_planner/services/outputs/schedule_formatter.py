"""Serializers for optimized schedules."""

from __future__ import annotations

import csv
import io

from ..routing.models import OptimizationResult


def result_to_json(result: OptimizationResult) -> dict:
    return {
        "round_trip": result.round_trip,
        "total_distance_miles": result.total_distance_miles,
        "total_travel_minutes": result.total_travel_minutes,
        "total_service_minutes": result.total_service_minutes,
        "return_time": result.return_time,
        "return_day_offset": result.return_day_offset,
        "metadata": result.metadata,
        "order": [
            {
                "id": scheduled.stop_id,
                "position": scheduled.position,
                "arrival_time": scheduled.arrival_time,
                "arrival_day_offset": scheduled.day_offset,
                "distance_from_prev_miles": scheduled.distance_from_prev_miles,
                "travel_minutes": scheduled.travel_minutes,
            }
            for scheduled in result.route
        ],
    }


def result_to_csv(result: OptimizationResult) -> str:
    buffer = io.StringIO()
    fieldnames = [
        "position",
        "id",
        "client",
        "address",
        "arrival_time",
        "distance_from_prev_miles",
        "travel_minutes",
        "service_minutes",
        "arrival_day_offset",
    ]
    writer = csv.DictWriter(buffer, fieldnames=fieldnames)
    writer.writeheader()
    for scheduled in result.route:
        stop = scheduled.stop
        writer.writerow(
            {
                "position": scheduled.position,
                "id": scheduled.stop_id,
                "client": stop.client if stop else "",
                "address": stop.address if stop else "",
                "arrival_time": scheduled.arrival_time,
                "distance_from_prev_miles": f"{scheduled.distance_from_prev_miles:.2f}",
                "travel_minutes": scheduled.travel_minutes,
                "service_minutes": stop.service_duration_minutes if stop else 0,
                "arrival_day_offset": scheduled.day_offset,
            }
        )
    return buffer.getvalue()
