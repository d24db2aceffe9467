import httpx
import pytest

from visit_planner.config import Settings
from visit_planner.errors import DistanceProviderError, PartialDistanceError
from visit_planner.models.domain import Coordinate
from visit_planner.services.routing.google_client import GoogleDistanceMatrixClient

POINTS = [Coordinate(40.7128, -74.0060), Coordinate(40.7306, -73.9352)]


def _ok(meters: float = 1609.344, seconds: float = 600) -> dict:
    return {"status": "OK", "distance": {"value": meters}, "duration": {"value": seconds}}


def _client(handler, **kwargs) -> GoogleDistanceMatrixClient:
    return GoogleDistanceMatrixClient(
        api_key="test-key",
        max_retries=kwargs.pop("max_retries", 0),
        backoff_seconds=0,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def test_matrix_converts_units():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"status": "OK", "rows": [{"elements": [_ok(0, 0), _ok()]}]})

    matrix = _client(handler).matrix(POINTS[:1], POINTS)

    assert matrix.source == "google"
    assert matrix.distances[0][0] == 0.0
    assert matrix.distances[0][1] == pytest.approx(1.0, rel=1e-4)
    assert matrix.durations[0][1] == pytest.approx(10.0)
    params = seen[0].url.params
    assert params["units"] == "imperial"
    assert params["origins"] == "40.7128,-74.006"
    assert params["destinations"] == "40.7128,-74.006|40.7306,-73.9352"
    assert params["key"] == "test-key"


def test_unroutable_element_raises_partial_error():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={"status": "OK", "rows": [{"elements": [_ok(0, 0), {"status": "ZERO_RESULTS"}]}]},
        )

    with pytest.raises(PartialDistanceError) as info:
        _client(handler).matrix(POINTS[:1], POINTS)

    assert info.value.failed_cells == [(0, 1)]
    assert info.value.matrix.distances[0][0] == 0.0


def test_denied_request_is_not_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"status": "REQUEST_DENIED", "error_message": "bad key"})

    with pytest.raises(DistanceProviderError):
        _client(handler, max_retries=3).matrix(POINTS, POINTS)
    assert len(calls) == 1


def test_timeout_is_retried_then_reported():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(DistanceProviderError):
        _client(handler, max_retries=1).matrix(POINTS, POINTS)
    assert len(calls) == 2


def test_large_requests_are_chunked():
    calls = []
    origins = [Coordinate(40.0 + i * 0.01, -74.0) for i in range(30)]
    destinations = [Coordinate(41.0, -74.0 + i * 0.01) for i in range(30)]

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        rows = len(request.url.params["origins"].split("|"))
        cols = len(request.url.params["destinations"].split("|"))
        assert rows <= 25 and cols <= 25 and rows * cols <= 100
        return httpx.Response(
            200,
            json={"status": "OK", "rows": [{"elements": [_ok() for _ in range(cols)]} for _ in range(rows)]},
        )

    matrix = _client(handler).matrix(origins, destinations)

    assert matrix.shape == (30, 30)
    assert not matrix.missing_cells()
    assert len(calls) == 16


def test_failed_chunk_marks_its_cells():
    origins = [Coordinate(40.0 + i * 0.01, -74.0) for i in range(8)]
    destinations = [Coordinate(41.0, -74.0 + i * 0.01) for i in range(25)]
    failing_origin = "40.0,-74.0"

    def handler(request: httpx.Request) -> httpx.Response:
        params = request.url.params
        if params["origins"].startswith(failing_origin):
            return httpx.Response(500)
        rows = len(params["origins"].split("|"))
        cols = len(params["destinations"].split("|"))
        return httpx.Response(
            200,
            json={"status": "OK", "rows": [{"elements": [_ok() for _ in range(cols)]} for _ in range(rows)]},
        )

    with pytest.raises(PartialDistanceError) as info:
        _client(handler).matrix(origins, destinations)

    failed_rows = {row for row, _ in info.value.failed_cells}
    assert failed_rows == {0, 1, 2, 3}
    assert len(info.value.failed_cells) == 4 * 25


def test_missing_api_key_is_rejected():
    with pytest.raises(ValueError):
        GoogleDistanceMatrixClient(config=Settings(google_maps_api_key=None))
