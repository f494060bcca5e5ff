"""
Tests for geo utilities
"""

import math
from datetime import datetime, timedelta, timezone

import pytest

from sharetaxi.utils.geo import (
    calculate_distance,
    calculate_distance_km,
    calculate_time_difference,
    format_distance,
    format_time,
    is_valid_coordinates,
    is_within_radius,
)


class TestDistance:

    def test_same_point_is_zero(self):
        assert calculate_distance(12.9716, 77.5946, 12.9716, 77.5946) == 0.0

    def test_symmetric(self):
        a = calculate_distance(12.9716, 77.5946, 13.1986, 77.7066)
        b = calculate_distance(13.1986, 77.7066, 12.9716, 77.5946)
        assert a == pytest.approx(b)

    def test_one_degree_latitude(self):
        assert calculate_distance(0, 0, 1, 0) == pytest.approx(111195, abs=1)

    def test_kilometers(self):
        assert calculate_distance_km(0, 0, 1, 0) == pytest.approx(111.195, abs=0.001)

    def test_within_radius(self):
        assert is_within_radius(12.9716, 77.5946, 12.9720, 77.5950, 100)
        assert not is_within_radius(12.9716, 77.5946, 12.9816, 77.5946, 500)


class TestTimeDifference:

    def test_absolute_minutes(self):
        t1 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
        t2 = t1 + timedelta(minutes=12, seconds=30)

        assert calculate_time_difference(t1, t2) == 12.5
        assert calculate_time_difference(t2, t1) == 12.5

    def test_naive_treated_as_utc(self):
        aware = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
        naive = datetime(2026, 3, 2, 9, 10)

        assert calculate_time_difference(aware, naive) == 10


class TestFormatting:

    @pytest.mark.parametrize("meters,expected", [
        (0, "0m"),
        (450, "450m"),
        (999, "999m"),
        (1000, "1.0km"),
        (1234, "1.2km"),
    ])
    def test_format_distance(self, meters, expected):
        assert format_distance(meters) == expected

    @pytest.mark.parametrize("minutes,expected", [
        (12, "12 min"),
        (60, "1h 0min"),
        (65, "1h 5min"),
        (150, "2h 30min"),
    ])
    def test_format_time(self, minutes, expected):
        assert format_time(minutes) == expected


class TestCoordinates:

    @pytest.mark.parametrize("lat,lng,valid", [
        (12.9716, 77.5946, True),
        (90, 180, True),
        (-90, -180, True),
        (90.1, 0, False),
        (0, -180.5, False),
        (None, 0, False),
        (math.nan, 0, False),
    ])
    def test_is_valid_coordinates(self, lat, lng, valid):
        assert is_valid_coordinates(lat, lng) is valid
