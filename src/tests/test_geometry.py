"""Tests for geographic helpers."""

import math

import pytest

from transitsim_mcp.sim.geometry import (
    cumulative_distances_km,
    haversine_distance_km,
    haversine_distance_m,
    initial_bearing_deg,
)


def test_haversine_one_degree_of_latitude():
    assert haversine_distance_km(53.0, -6.0, 54.0, -6.0) == pytest.approx(111.19, abs=0.01)


def test_haversine_identical_points_is_zero():
    assert haversine_distance_km(53.3498, -6.2603, 53.3498, -6.2603) == 0.0


def test_haversine_near_zero_is_finite():
    d = haversine_distance_m(53.3498, -6.2603, 53.3498 + 1e-12, -6.2603)
    assert math.isfinite(d)
    assert d >= 0.0


def test_haversine_antipodal_points_do_not_produce_nan():
    d = haversine_distance_km(0.0, 0.0, 0.0, 180.0)
    assert d == pytest.approx(math.pi * 6371.0)


def test_cumulative_distances():
    points = [(0.0, 0.0), (0.0, 1.0), (0.0, 1.0), (0.0, 2.0)]
    cumulative = cumulative_distances_km(points)

    assert len(cumulative) == len(points)
    assert cumulative[0] == 0.0
    assert cumulative[1] == cumulative[2]
    assert cumulative == sorted(cumulative)
    assert cumulative[3] == pytest.approx(2 * cumulative[1])


def test_cumulative_distances_empty():
    assert cumulative_distances_km([]) == []
    assert cumulative_distances_km([(1.0, 1.0)]) == [0.0]


@pytest.mark.parametrize("end, expected", [
    ((1.0, 0.0), 0.0),
    ((0.0, 1.0), 90.0),
    ((-1.0, 0.0), 180.0),
    ((0.0, -1.0), 270.0),
])
def test_initial_bearing(end, expected):
    assert initial_bearing_deg(0.0, 0.0, *end) == pytest.approx(expected)

