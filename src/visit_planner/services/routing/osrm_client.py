"""HTTP client for interacting with OSRM services."""

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

# OSRM table endpoint has URL length limits; sources + destinations per request stay under this.
DEFAULT_MAX_COORDINATES_PER_REQUEST = 80

logger = logging.getLogger(__name__)


class OSRMClient:
    name = "osrm"

    def __init__(
        self,
        base_url: str | None = None,
        profile: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        max_coordinates_per_request: int = DEFAULT_MAX_COORDINATES_PER_REQUEST,
        max_parallel_requests: int | None = None,
        transport: httpx.BaseTransport | None = None,
        config: Settings | None = None,
    ) -> None:
        config = config or settings
        self.base_url = base_url or config.osrm_base_url
        if not self.base_url:
            raise ValueError("OSRM base URL is not configured.")
        self.base_url = self.base_url.rstrip("/")
        self.profile = profile or config.osrm_profile
        self.timeout = timeout if timeout is not None else config.provider_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else config.provider_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else config.provider_backoff_seconds
        self.max_coordinates_per_request = max(2, max_coordinates_per_request)
        self.max_parallel_requests = max_parallel_requests or config.provider_max_parallel_requests
        self.transport = transport

    def _get_client(self) -> httpx.Client:
        return httpx.Client(
            timeout=httpx.Timeout(self.timeout, connect=min(self.timeout, 5.0)),
            transport=self.transport,
        )

    def _table_single_request(self, origins: Sequence[Coordinate], destinations: Sequence[Coordinate]) -> dict:
        """Make a single OSRM table request with origins as sources and destinations as targets."""
        coordinates = [*origins, *destinations]
        coordinate_str = ";".join(f"{coord.longitude},{coord.latitude}" for coord in coordinates)
        params = {
            "annotations": "duration,distance",
            "sources": ";".join(str(i) for i in range(len(origins))),
            "destinations": ";".join(str(i) for i in range(len(origins), len(coordinates))),
        }
        url = f"{self.base_url}/table/v1/{self.profile}/{coordinate_str}"

        client = self._get_client()
        try:
            attempt = 0
            while True:
                try:
                    response = client.get(url, params=params)
                    response.raise_for_status()
                    data = response.json()
                    if data.get("code", "Ok") != "Ok":
                        raise DistanceProviderError(f"OSRM table request failed: {data.get('message', data.get('code'))}")
                    if "durations" not in data or "distances" not in data:
                        raise ValueError("OSRM response missing durations/distances.")
                    return data
                except httpx.HTTPStatusError as e:
                    if e.response.status_code == 414:
                        raise DistanceProviderError(
                            f"OSRM request URL too large ({len(coordinates)} coordinates). "
                            f"Try reducing max_coordinates_per_request (current: {self.max_coordinates_per_request})"
                        ) from e
                    attempt += 1
                    if attempt > self.max_retries:
                        raise DistanceProviderError(f"OSRM returned HTTP {e.response.status_code}") from e
                    time.sleep(self.backoff_seconds * attempt)
                except httpx.TimeoutException as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        logger.warning(f"OSRM request timed out after {self.max_retries} retries: {e}")
                        raise DistanceProviderError(f"OSRM request timed out: {e}") from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"OSRM request timeout, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries})")
                    time.sleep(wait_time)
                except (httpx.HTTPError, ValueError) as e:
                    attempt += 1
                    if attempt > self.max_retries:
                        raise DistanceProviderError(f"Failed to query OSRM service at {self.base_url}: {e}") from e
                    wait_time = self.backoff_seconds * (2 ** (attempt - 1))
                    logger.debug(f"OSRM error, retrying in {wait_time:.1f}s (attempt {attempt}/{self.max_retries}): {e}")
                    time.sleep(wait_time)
        finally:
            client.close()

    def _fetch_block(self, origins: Sequence[Coordinate], destinations: Sequence[Coordinate]) -> tuple[list, list]:
        data = self._table_single_request(origins, destinations)
        raw_distances = data["distances"]
        raw_durations = data["durations"]
        if len(raw_distances) != len(origins) or any(len(row) != len(destinations) for row in raw_distances):
            raise DistanceProviderError("OSRM table response has an unexpected shape.")

        distances = [
            [value * METERS_TO_MILES if value is not None and value >= 0 else None for value in row]
            for row in raw_distances
        ]
        durations = [
            [value / 60.0 if value is not None and distances[i][j] is not None else None for j, value in enumerate(row)]
            for i, row in enumerate(raw_durations)
        ]
        return distances, durations

    def matrix(self, origins: Sequence[Coordinate], destinations: Sequence[Coordinate]) -> DistanceMatrix:
        """Distance (miles) and duration (minutes) matrix; unroutable pairs raise PartialDistanceError."""
        if not origins or not destinations:
            raise ValueError("At least one origin and one destination are required.")

        step = max(1, self.max_coordinates_per_request // 2)
        origin_ranges = [(i, min(i + step, len(origins))) for i in range(0, len(origins), step)]
        destination_ranges = [(i, min(i + step, len(destinations))) for i in range(0, len(destinations), step)]
        blocks = [(o, d) for o in origin_ranges for d in destination_ranges]

        if len(blocks) == 1:
            distances, durations = self._fetch_block(origins, destinations)
        else:
            start_time = time.time()
            logger.info(
                f"Chunking OSRM table request: {len(origins)}x{len(destinations)} coordinates "
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
                        logger.warning(f"Failed to get OSRM data for chunk [{o_start}:{o_end}] -> [{d_start}:{d_end}]: {e}")
                        continue
                    for local_row, row in enumerate(range(o_start, o_end)):
                        distances[row][d_start:d_end] = block_distances[local_row]
                        durations[row][d_start:d_end] = block_durations[local_row]

            if failed_blocks == len(blocks):
                raise DistanceProviderError(f"All {len(blocks)} OSRM chunk requests failed.")
            logger.info(f"Completed OSRM table request: {len(blocks)} chunk requests in {time.time() - start_time:.2f}s")

        matrix = DistanceMatrix(distances=distances, durations=durations, source=self.name)
        failed_cells = matrix.missing_cells()
        if failed_cells:
            raise PartialDistanceError(matrix, failed_cells)
        return matrix


def check_health(client: OSRMClient | None = None) -> bool:
    """Check OSRM service health by making a minimal table request."""
    try:
        client = client or OSRMClient()
        sample = [Coordinate(52.517037, 13.388860), Coordinate(52.496891, 13.385983)]
        client._table_single_request(sample[:1], sample[1:])
        return True
    except (ValueError, DistanceProviderError):
        return False
