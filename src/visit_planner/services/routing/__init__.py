"""Route optimization services."""

from .distance import FallbackDistanceSource, HaversineDistanceSource, build_distance_source
from .service import RouteOptimizer

__all__ = [
    "RouteOptimizer",
    "FallbackDistanceSource",
    "HaversineDistanceSource",
    "build_distance_source",
]
