"""Tests for haversine distance."""

import math

import pytest

from loiter.analysis.geo import haversine_m, is_valid_coordinate


class TestHaversine:
    def test_same_point_is_zero(self):
        assert haversine_m(40.7128, -74.0060, 40.7128, -74.0060) == 0

    @pytest.mark.parametrize("lat,lon", [(0.0, 0.0), (-33.8688, 151.2093), (89.9, 179.9)])
    def test_identity_anywhere(self, lat, lon):
        assert haversine_m(lat, lon, lat, lon) == 0

    def test_symmetric(self):
        a = (51.5074, -0.1278)
        b = (48.8566, 2.3522)
        assert haversine_m(*a, *b) == pytest.approx(haversine_m(*b, *a))

    def test_about_100_metres(self):
        d = haversine_m(40.7128, -74.0060, 40.7137, -74.0060)
        assert 90 <= d <= 110

    def test_new_york_to_los_angeles(self):
        d = haversine_m(40.7128, -74.0060, 34.0522, -118.2437)
        assert 3_900_000 < d < 4_000_000

    def test_half_circumference(self):
        d = haversine_m(0.0, 0.0, 0.0, 180.0)
        assert d == pytest.approx(math.pi * 6_371_000)


class TestValidCoordinate:
    def test_valid(self):
        assert is_valid_coordinate(40.7, -74.0)

    def test_bounds_inclusive(self):
        assert is_valid_coordinate(90.0, 180.0)
        assert is_valid_coordinate(-90.0, -180.0)

    def test_out_of_range(self):
        assert not is_valid_coordinate(91.0, 0.0)
        assert not is_valid_coordinate(0.0, -181.0)

    def test_nan(self):
        assert not is_valid_coordinate(float("nan"), 0.0)
        assert not is_valid_coordinate(0.0, float("inf"))
