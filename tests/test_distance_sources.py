import pytest

from visit_planner.config import Settings
from visit_planner.errors import DistanceProviderError, PartialDistanceError
from visit_planner.models.domain import Coordinate
from visit_planner.services.geospatial import coordinate_distance_miles
from visit_planner.services.routing.distance import (
    FallbackDistanceSource,
    HaversineDistanceSource,
    build_distance_source,
)
from visit_planner.services.routing.google_client import GoogleDistanceMatrixClient
from visit_planner.services.routing.models import DistanceMatrix
from visit_planner.services.routing.osrm_client import OSRMClient

POINTS = [Coordinate(40.7128, -74.0060), Coordinate(40.7306, -73.9352), Coordinate(40.6782, -73.9442)]


class FailingProvider:
    name = "google"

    def __init__(self, error: Exception):
        self.error = error
        self.calls = 0

    def matrix(self, origins, destinations):
        self.calls += 1
        raise self.error


class PartialProvider:
    name = "google"

    def matrix(self, origins, destinations):
        distances = [[10.0 + i + j for j in range(len(destinations))] for i in range(len(origins))]
        distances[0][1] = None
        matrix = DistanceMatrix(distances=distances, source=self.name)
        raise PartialDistanceError(matrix, [(0, 1)])


class StaticProvider:
    name = "osrm"

    def __init__(self, distances):
        self.distances = distances

    def matrix(self, origins, destinations):
        return DistanceMatrix(distances=[list(row) for row in self.distances], source=self.name)


def test_haversine_source_matrix():
    matrix = HaversineDistanceSource(minutes_per_mile=2.0).matrix(POINTS, POINTS)

    assert matrix.shape == (3, 3)
    assert all(matrix.distances[i][i] == 0 for i in range(3))
    assert matrix.distances[0][1] == pytest.approx(matrix.distances[1][0])
    assert matrix.durations[0][1] == pytest.approx(matrix.distances[0][1] * 2.0)
    assert matrix.source == "haversine"


@pytest.mark.parametrize("error", [DistanceProviderError("down"), RuntimeError("boom")])
def test_whole_call_failure_falls_back_to_haversine(error):
    provider = FailingProvider(error)
    matrix = FallbackDistanceSource(provider).matrix(POINTS, POINTS)

    assert provider.calls == 1
    assert matrix.source == "haversine"
    assert matrix.fallback_cells == 9
    assert matrix.distances[0][2] == pytest.approx(coordinate_distance_miles(POINTS[0], POINTS[2]))


def test_partial_failure_patches_only_failing_cells():
    matrix = FallbackDistanceSource(PartialProvider()).matrix(POINTS, POINTS)

    assert matrix.source == "mixed"
    assert matrix.fallback_cells == 1
    assert matrix.distances[0][0] == 10.0
    assert matrix.distances[2][1] == 13.0
    assert matrix.distances[0][1] == pytest.approx(coordinate_distance_miles(POINTS[0], POINTS[1]))


def test_unreported_missing_cells_are_patched():
    provider = StaticProvider([[0.0, None], [2.0, 0.0]])
    matrix = FallbackDistanceSource(provider).matrix(POINTS[:2], POINTS[:2])

    assert matrix.source == "mixed"
    assert matrix.distances[0][1] == pytest.approx(coordinate_distance_miles(POINTS[0], POINTS[1]))
    assert matrix.distances[1][0] == 2.0


def test_wrong_shape_falls_back_to_haversine():
    provider = StaticProvider([[0.0]])
    matrix = FallbackDistanceSource(provider).matrix(POINTS, POINTS)

    assert matrix.source == "haversine"
    assert matrix.shape == (3, 3)


def test_precise_matrix_is_returned_untouched():
    provider = StaticProvider([[0.0, 1.5], [1.7, 0.0]])
    matrix = FallbackDistanceSource(provider).matrix(POINTS[:2], POINTS[:2])

    assert matrix.source == "osrm"
    assert matrix.fallback_cells == 0
    assert matrix.distances == [[0.0, 1.5], [1.7, 0.0]]


def test_build_distance_source_selection():
    assert isinstance(build_distance_source(Settings(distance_provider="haversine")), HaversineDistanceSource)

    google = build_distance_source(Settings(distance_provider="auto", google_maps_api_key="key"))
    assert isinstance(google, FallbackDistanceSource)
    assert isinstance(google.primary, GoogleDistanceMatrixClient)

    osrm = build_distance_source(Settings(distance_provider="osrm", osrm_base_url="http://osrm.local"))
    assert isinstance(osrm.primary, OSRMClient)


def test_build_distance_source_without_credentials_uses_haversine():
    source = build_distance_source(Settings(distance_provider="google", google_maps_api_key=None))

    assert isinstance(source, HaversineDistanceSource)


def test_missing_durations_are_estimated_from_distance():
    class NoDurationProvider:
        name = "osrm"

        def matrix(self, origins, destinations):
            return DistanceMatrix(distances=[[0.0, 2.0], [2.5, 0.0]], durations=[[0.0, None], [4.0, 0.0]], source=self.name)

    fallback = HaversineDistanceSource(minutes_per_mile=3.0)
    matrix = FallbackDistanceSource(NoDurationProvider(), fallback).matrix(POINTS[:2], POINTS[:2])

    assert matrix.source == "osrm"
    assert matrix.fallback_cells == 0
    assert matrix.durations == [[0.0, 6.0], [4.0, 0.0]]
