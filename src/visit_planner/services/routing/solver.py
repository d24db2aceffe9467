"""Nearest-neighbor route construction for open paths and round trips.

All functions work on matrix node indices. The caller assigns the indices once
per optimization (origin first, then stops in input order) so that ties are
always broken by input position.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence

Matrix = Sequence[Sequence[float]]


def _nearest_position(
    distances: Matrix,
    current: int,
    candidates: Sequence[int],
    skip: Optional[int] = None,
) -> int:
    """Position in ``candidates`` of the closest node to ``current``; earliest wins ties."""
    best_position = -1
    best_distance = math.inf
    for position, node in enumerate(candidates):
        if node == skip:
            continue
        distance = distances[current][node]
        if best_position < 0 or distance < best_distance:
            best_position = position
            best_distance = distance
    return best_position


def path_distance(
    distances: Matrix,
    order: Sequence[int],
    start_node: Optional[int] = None,
    close_loop: bool = False,
) -> float:
    """Total distance along ``order``, optionally from a start node and back to where the loop began."""
    if not order:
        return 0.0

    total = 0.0
    if start_node is not None:
        total += distances[start_node][order[0]]
    for previous, following in zip(order, order[1:]):
        total += distances[previous][following]
    if close_loop:
        loop_end = start_node if start_node is not None else order[0]
        total += distances[order[-1]][loop_end]
    return total


def leg_distances(distances: Matrix, order: Sequence[int], start_node: Optional[int] = None) -> list[float]:
    """Distance travelled to reach each node of ``order``; the first leg is 0 without a start node."""
    legs: list[float] = []
    previous = start_node
    for node in order:
        legs.append(distances[previous][node] if previous is not None else 0.0)
        previous = node
    return legs


def nearest_neighbor_order(
    distances: Matrix,
    stop_nodes: Sequence[int],
    start_node: Optional[int] = None,
) -> list[int]:
    """Greedy open path.

    Starts at ``start_node`` when given; otherwise the first stop is visited
    first and the walk continues from there.
    """
    unvisited = list(stop_nodes)
    if not unvisited:
        return []

    order: list[int] = []
    if start_node is None:
        current = unvisited.pop(0)
        order.append(current)
    else:
        current = start_node

    while unvisited:
        current = unvisited.pop(_nearest_position(distances, current, unvisited))
        order.append(current)
    return order


def forced_final_order(
    distances: Matrix,
    stop_nodes: Sequence[int],
    start_node: int,
    final_node: int,
) -> list[int]:
    """Nearest-neighbor walk from ``start_node`` that keeps ``final_node`` for last."""
    unvisited = [node for node in stop_nodes if node != final_node]
    order: list[int] = []
    current = start_node
    while unvisited:
        current = unvisited.pop(_nearest_position(distances, current, unvisited))
        order.append(current)
    order.append(final_node)
    return order


def round_trip_candidates(
    distances: Matrix,
    stop_nodes: Sequence[int],
    origin_node: int,
) -> list[tuple[list[int], float]]:
    """One (order, loop distance) candidate per stop forced to be the final destination."""
    candidates: list[tuple[list[int], float]] = []
    for final_node in stop_nodes:
        order = forced_final_order(distances, stop_nodes, origin_node, final_node)
        candidates.append((order, path_distance(distances, order, origin_node, close_loop=True)))
    return candidates


def round_trip_order(
    distances: Matrix,
    stop_nodes: Sequence[int],
    origin_node: Optional[int] = None,
) -> list[int]:
    """Closed loop minimizing origin -> stops -> origin over every forced-final candidate.

    Without an origin, the first stop acts as origin: it is visited first and
    the loop closes back to it.
    """
    nodes = list(stop_nodes)
    if not nodes:
        return []
    if origin_node is None:
        head, rest = nodes[0], nodes[1:]
        if not rest:
            return [head]
        return [head, *round_trip_order(distances, rest, head)]

    best_order: list[int] = []
    best_total = math.inf
    for order, total in round_trip_candidates(distances, nodes, origin_node):
        if not best_order or total < best_total:
            best_order = order
            best_total = total
    return best_order
