"""Distance sources and the precise-to-geometric fallback policy."""

from __future__ import annotations

import logging
from typing import Protocol, Sequence

from ...config import Settings, settings
from ...errors import DistanceProviderError, PartialDistanceError
from ...models.domain import Coordinate
from ..geospatial import coordinate_distance_miles
from .models import DistanceMatrix

logger = logging.getLogger(__name__)


class DistanceSource(Protocol):
    name: str

    def matrix(self, origins: Sequence[Coordinate], destinations: Sequence[Coordinate]) -> DistanceMatrix:
        ...


class HaversineDistanceSource:
    """Great-circle distances; always available, never fails."""

    name = "haversine"

    def __init__(self, minutes_per_mile: float | None = None) -> None:
        self.minutes_per_mile = (
            minutes_per_mile if minutes_per_mile is not None else settings.default_minutes_per_mile
        )

    def distance(self, origin: Coordinate, destination: Coordinate) -> float:
        return coordinate_distance_miles(origin, destination)

    def matrix(self, origins: Sequence[Coordinate], destinations: Sequence[Coordinate]) -> DistanceMatrix:
        distances = [[self.distance(origin, dest) for dest in destinations] for origin in origins]
        durations = [[value * self.minutes_per_mile for value in row] for row in distances]
        return DistanceMatrix(distances=distances, durations=durations, source=self.name)


class FallbackDistanceSource:
    """Wrap a precise source so that its failures degrade to a geometric estimate.

    A whole-call failure yields a fully geometric matrix. A per-cell failure
    only replaces the failing cells; the resolved cells keep the precise value.
    """

    def __init__(self, primary: DistanceSource, fallback: HaversineDistanceSource | None = None) -> None:
        self.primary = primary
        self.fallback = fallback or HaversineDistanceSource()
        self.name = primary.name

    def matrix(self, origins: Sequence[Coordinate], destinations: Sequence[Coordinate]) -> DistanceMatrix:
        if not origins or not destinations:
            return self.fallback.matrix(origins, destinations)

        try:
            result = self.primary.matrix(origins, destinations)
        except PartialDistanceError as exc:
            logger.warning(f"{self.primary.name} distance lookup partially failed: {exc}. Patching with haversine.")
            return self._patch(exc.matrix, exc.failed_cells, origins, destinations)
        except DistanceProviderError as exc:
            logger.warning(f"{self.primary.name} distance lookup failed: {exc}. Using haversine fallback.")
            return self._full_fallback(origins, destinations)
        except Exception as exc:
            logger.error(f"Unexpected error from {self.primary.name} distance lookup: {exc}. Using haversine fallback.")
            return self._full_fallback(origins, destinations)

        if result.shape != (len(origins), len(destinations)):
            logger.warning(
                f"{self.primary.name} returned a {result.shape} matrix for "
                f"{len(origins)}x{len(destinations)} coordinates. Using haversine fallback."
            )
            return self._full_fallback(origins, destinations)

        missing = result.missing_cells()
        if missing:
            return self._patch(result, missing, origins, destinations)
        self._fill_durations(result)
        return result

    def _full_fallback(self, origins: Sequence[Coordinate], destinations: Sequence[Coordinate]) -> DistanceMatrix:
        matrix = self.fallback.matrix(origins, destinations)
        matrix.fallback_cells = len(origins) * len(destinations)
        return matrix

    def _patch(
        self,
        matrix: DistanceMatrix,
        cells: Sequence[tuple[int, int]],
        origins: Sequence[Coordinate],
        destinations: Sequence[Coordinate],
    ) -> DistanceMatrix:
        if matrix.shape != (len(origins), len(destinations)):
            return self._full_fallback(origins, destinations)

        for row, col in cells:
            estimate = self.fallback.distance(origins[row], destinations[col])
            matrix.distances[row][col] = estimate
            if matrix.durations is not None:
                matrix.durations[row][col] = estimate * self.fallback.minutes_per_mile

        matrix.fallback_cells = len(cells)
        if cells:
            matrix.source = "mixed"
            logger.info(f"Patched {len(cells)} of {len(origins) * len(destinations)} distance cells with haversine")
        self._fill_durations(matrix)
        return matrix

    def _fill_durations(self, matrix: DistanceMatrix) -> None:
        """Estimate durations the provider left out for pairs it did resolve."""
        if matrix.durations is None:
            return
        for row, values in enumerate(matrix.durations):
            for col, value in enumerate(values):
                if value is None:
                    values[col] = matrix.distances[row][col] * self.fallback.minutes_per_mile


def build_distance_source(config: Settings | None = None) -> DistanceSource:
    """Create the configured distance source, wrapped with the haversine fallback."""

    config = config or settings
    fallback = HaversineDistanceSource(minutes_per_mile=config.default_minutes_per_mile)
    provider = config.resolved_distance_provider()

    try:
        if provider == "google":
            from .google_client import GoogleDistanceMatrixClient

            return FallbackDistanceSource(GoogleDistanceMatrixClient(config=config), fallback)
        if provider == "osrm":
            from .osrm_client import OSRMClient

            return FallbackDistanceSource(OSRMClient(config=config), fallback)
    except ValueError as exc:
        logger.warning(f"Distance provider '{provider}' is not usable: {exc}. Using haversine only.")

    return fallback
