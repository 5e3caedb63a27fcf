import pytest

from pubcrawl.geo import (
    coordinate_key,
    cumulative_distances,
    haversine_m,
    path_length_m,
    sample_evenly,
    squared_degree_distance,
)
from pubcrawl.models import Coordinate


def test_haversine_london_paris():
    london = Coordinate(51.5074, -0.1278)
    paris = Coordinate(48.8566, 2.3522)
    assert haversine_m(london, paris) == pytest.approx(343_500, rel=0.01)
    assert haversine_m(london, london) == 0.0


def test_squared_degree_distance_ranks_like_haversine_at_city_scale():
    bias = Coordinate(51.5074, -0.1278)
    near = Coordinate(51.4826, -0.0077)
    far = Coordinate(41.0262, -73.6282)
    assert squared_degree_distance(near, bias) < squared_degree_distance(far, bias)


def test_sample_evenly_returns_count_points_strictly_inside():
    path = [Coordinate(51.50, -0.12), Coordinate(51.51, -0.12), Coordinate(51.52, -0.11)]
    points = sample_evenly(path, 4)
    assert len(points) == 4

    start = path[0]
    total = path_length_m(path)
    dists = [haversine_m(start, p) for p in points]
    assert all(0 < d for d in dists)
    assert all(a < b for a, b in zip(dists, dists[1:]))
    assert all(p != path[0] and p != path[-1] for p in points)
    assert dists[-1] < total


def test_sample_evenly_spacing_on_straight_line():
    path = [Coordinate(0.0, 0.0), Coordinate(0.0, 1.0)]
    points = sample_evenly(path, 3)
    assert [round(p.lng, 6) for p in points] == [0.25, 0.5, 0.75]
    assert all(p.lat == 0.0 for p in points)


def test_sample_evenly_zero_length_path_returns_middle_vertex():
    same = Coordinate(51.5, -0.1)
    path = [same, same, same, same, same]
    assert sample_evenly(path, 3) == [path[2]]


def test_sample_evenly_degenerate_inputs():
    assert sample_evenly([Coordinate(51.5, -0.1)], 3) == []
    assert sample_evenly([Coordinate(51.5, -0.1), Coordinate(51.6, -0.1)], 0) == []


def test_sample_evenly_skips_repeated_vertices():
    a = Coordinate(0.0, 0.0)
    b = Coordinate(0.0, 1.0)
    points = sample_evenly([a, a, b, b], 1)
    assert len(points) == 1
    assert points[0].lng == pytest.approx(0.5)


def test_cumulative_distances_monotonic():
    path = [Coordinate(51.50, -0.12), Coordinate(51.50, -0.11), Coordinate(51.51, -0.11)]
    cum = cumulative_distances(path)
    assert cum[0] == 0.0
    assert cum == sorted(cum)
    assert cum[-1] == pytest.approx(path_length_m(path))


def test_coordinate_key_rounds_to_five_decimals():
    assert coordinate_key(Coordinate(51.5174123, -0.1200049)) == "51.51741,-0.12000"
    assert coordinate_key(Coordinate(51.517411, -0.120001)) == coordinate_key(
        Coordinate(51.517414, -0.120004)
    )
