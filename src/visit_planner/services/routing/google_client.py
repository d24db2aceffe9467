"""HTTP client for the Google Distance Matrix service."""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Sequence

import httpx

from ...config import Settings, settings
from ...errors import DistanceProviderError, PartialDistanceError
from ...models.domain import Coordinate
from ..geospatial import METERS_TO_MILES
from .models import DistanceMatrix

# Distance Matrix API limits: 25 origins or destinations per request, 100 elements in total.
MAX_LOCATIONS_PER_SIDE = 25
MAX_ELEMENTS_PER_REQUEST = 100
# Top-level statuses worth retrying; anything else non-OK fails immediately.
RETRYABLE_STATUSES = {"OVER_QUERY_LIMIT", "UNKNOWN_ERROR"}

logger = logging.getLogger(__name__)


def _format_locations(coordinates: Sequence[Coordinate]) -> str:
    return "|".join(f"{coord.latitude},{coord.longitude}" for coord in coordinates)


def _chunk_ranges(total: int, size: int) -> list[tuple[int, int]]:
    return [(start, min(start + size, total)) for start in range(0, total, size)]


class GoogleDistanceMatrixClient:
    name = "google"

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        mode: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        max_parallel_requests: int | None = None,
        transport: httpx.BaseTransport | None = None,
        config: Settings | None = None,
    ) -> None:
        config = config or settings
        self.api_key = api_key or config.google_maps_api_key
        if not self.api_key:
            raise ValueError("Google Maps API key is not configured.")
        self.base_url = base_url or config.google_maps_base_url
        self.mode = mode or config.google_travel_mode
        self.timeout = timeout if timeout is not None else config.provider_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else config.provider_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else config.provider_backoff_seconds
        self.max_parallel_requests = max_parallel_requests or config.provider_max_parallel_requests
        self.transport = transport

    def _get_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 5.0)),
            transport=self.transport,
        )

    def _single_request(self, origins: Sequence[Coordinate], destinations: Sequence[Coordinate]) -> dict:
        """Issue one Distance Matrix request, retrying transient failures."""
        params = {
            "origins": _format_locations(origins),
            "destinations": _format_locations(destinations),
            "units": "imperial",
            "mode": self.mode,
            "key": self.api_key,
        }

        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.get(self.base_url, params=params)
                    response.raise_for_status()
                    data = response.json()
                    status = data.get("status")
                    if status == "OK":
                        return data
                    if status not in RETRYABLE_STATUSES:
                        raise DistanceProviderError(
                            f"Google Distance Matrix returned status {status}: {data.get('error_message', '')}".strip()
                        )
                    raise httpx.HTTPError(f"Google Distance Matrix returned status {status}")
                except httpx.TimeoutException as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise DistanceProviderError(
                            f"Google Distance Matrix timed out after {self.max_retries + 1} attempt(s): {e}"
                        ) from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"Distance Matrix timeout, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    time.sleep(wait_time)
                except (httpx.HTTPError, ValueError) as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise DistanceProviderError(f"Google Distance Matrix request failed: {e}") from e
                    logger.debug(f"Distance Matrix error, retrying (attempt {attempt}/{self.max_retries}): {e}")
                    time.sleep(self.backoff_seconds * attempt)
        finally:
            client.close()

    @staticmethod
    def _parse_rows(data: dict, origin_count: int, destination_count: int) -> tuple[list, list]:
        rows = data.get("rows")
        if not isinstance(rows, list) or len(rows) != origin_count:
            raise DistanceProviderError("Google Distance Matrix response has an unexpected number of rows.")

        distances: list[list[float | None]] = []
        durations: list[list[float | None]] = []
        for row in rows:
            elements = row.get("elements") or []
            if len(elements) != destination_count:
                raise DistanceProviderError("Google Distance Matrix response has an unexpected number of elements.")
            distance_row: list[float | None] = []
            duration_row: list[float | None] = []
            for element in elements:
                meters = seconds = None
                if element.get("status") == "OK":
                    try:
                        meters = float(element["distance"]["value"])
                        seconds = float(element["duration"]["value"])
                    except (KeyError, TypeError, ValueError):
                        meters = seconds = None
                # NOT_FOUND / ZERO_RESULTS and malformed elements become per-cell failures.
                if meters is None or meters < 0:
                    distance_row.append(None)
                    duration_row.append(None)
                else:
                    distance_row.append(meters * METERS_TO_MILES)
                    duration_row.append(max(seconds, 0.0) / 60.0)
            distances.append(distance_row)
            durations.append(duration_row)
        return distances, durations

    def _fetch_block(
        self,
        origins: Sequence[Coordinate],
        destinations: Sequence[Coordinate],
    ) -> tuple[list, list]:
        data = self._single_request(origins, destinations)
        return self._parse_rows(data, len(origins), len(destinations))

    def matrix(self, origins: Sequence[Coordinate], destinations: Sequence[Coordinate]) -> DistanceMatrix:
        """Distance (miles) and duration (minutes) matrix, chunked to respect request limits.

        Raises DistanceProviderError when nothing could be fetched and
        PartialDistanceError when some cells or chunks are missing.
        """
        if not origins or not destinations:
            raise ValueError("At least one origin and one destination are required.")

        destination_step = min(MAX_LOCATIONS_PER_SIDE, len(destinations))
        origin_step = max(1, min(MAX_LOCATIONS_PER_SIDE, MAX_ELEMENTS_PER_REQUEST // destination_step))
        origin_ranges = _chunk_ranges(len(origins), origin_step)
        destination_ranges = _chunk_ranges(len(destinations), destination_step)
        blocks = [(o, d) for o in origin_ranges for d in destination_ranges]

        if len(blocks) == 1:
            distances, durations = self._fetch_block(origins, destinations)
        else:
            logger.info(
                f"Chunking Distance Matrix request: {len(origins)}x{len(destinations)} "
                f"into {len(blocks)} requests (parallel: {self.max_parallel_requests})"
            )
            distances = [[None] * len(destinations) for _ in origins]
            durations = [[None] * len(destinations) for _ in origins]
            failed_blocks = 0
            with ThreadPoolExecutor(max_workers=self.max_parallel_requests) as executor:
                future_to_block = {
                    executor.submit(
                        self._fetch_block,
                        origins[o_start:o_end],
                        destinations[d_start:d_end],
                    ): ((o_start, o_end), (d_start, d_end))
                    for (o_start, o_end), (d_start, d_end) in blocks
                }
                for future in as_completed(future_to_block):
                    (o_start, o_end), (d_start, d_end) = future_to_block[future]
                    try:
                        block_distances, block_durations = future.result()
                    except DistanceProviderError as e:
                        failed_blocks += 1
                        logger.warning(
                            f"Distance Matrix chunk [{o_start}:{o_end}] -> [{d_start}:{d_end}] failed: {e}"
                        )
                        continue
                    for local_row, row in enumerate(range(o_start, o_end)):
                        distances[row][d_start:d_end] = block_distances[local_row]
                        durations[row][d_start:d_end] = block_durations[local_row]

            if failed_blocks == len(blocks):
                raise DistanceProviderError(f"All {len(blocks)} Distance Matrix chunk requests failed.")

        matrix = DistanceMatrix(distances=distances, durations=durations, source=self.name)
        failed_cells = matrix.missing_cells()
        if failed_cells:
            raise PartialDistanceError(matrix, failed_cells)
        return matrix


def check_health(client: GoogleDistanceMatrixClient | None = None) -> bool:
    """Probe the service with a minimal two-point request."""
    try:
        client = client or GoogleDistanceMatrixClient()
        sample = [Coordinate(40.7128, -74.0060), Coordinate(40.7306, -73.9352)]
        client._single_request(sample[:1], sample[1:])
        return True
    except (ValueError, DistanceProviderError):
        return False
