"""Error types raised by the route optimizer."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

if TYPE_CHECKING:
    from .services.routing.models import DistanceMatrix


class EmptyInputError(ValueError):
    """Raised when there are no stops to optimize."""


class InvalidCoordinateError(ValueError):
    """Raised when a latitude/longitude pair is outside the valid range."""


class DistanceProviderError(ConnectionError):
    """The precise distance service failed for the whole request."""


class PartialDistanceError(DistanceProviderError):
    """The distance service answered, but some cells could not be routed.

    ``matrix`` holds every cell the provider did resolve; ``failed_cells``
    lists the (row, column) pairs that are ``None`` in it.
    """

    def __init__(self, matrix: "DistanceMatrix", failed_cells: Sequence[tuple[int, int]]) -> None:
        self.matrix = matrix
        self.failed_cells = list(failed_cells)
        super().__init__(f"{len(self.failed_cells)} distance cell(s) could not be resolved by the provider.")
