"""Unit tests for haversine distance and formatting."""

import pytest

from teamtrack.geo.distance import Coordinate, format_distance, haversine_meters, is_within_radius

AMSTERDAM = Coordinate(52.3676, 4.9041)
ROTTERDAM = Coordinate(51.9244, 4.4777)


class TestHaversine:
    """Test great-circle distance."""

    def test_same_point_is_zero(self):
        assert haversine_meters(AMSTERDAM, AMSTERDAM) == 0.0

    def test_symmetric(self):
        assert haversine_meters(AMSTERDAM, ROTTERDAM) == pytest.approx(haversine_meters(ROTTERDAM, AMSTERDAM))

    def test_known_city_distance(self):
        """Amsterdam to Rotterdam is about 57 km."""
        assert haversine_meters(AMSTERDAM, ROTTERDAM) == pytest.approx(57_000, rel=0.02)

    def test_one_thousandth_degree_latitude(self):
        d = haversine_meters(Coordinate(0.0, 0.0), Coordinate(0.001, 0.0))
        assert d == pytest.approx(111.19, abs=0.1)

    def test_antipodal_points_do_not_fail(self):
        d = haversine_meters(Coordinate(0.0, 0.0), Coordinate(0.0, 180.0))
        assert d == pytest.approx(20_015_087, rel=1e-3)

    def test_missing_coordinate_is_zero(self):
        assert haversine_meters(None, AMSTERDAM) == 0.0
        assert haversine_meters(AMSTERDAM, None) == 0.0


class TestWithinRadius:
    """Test radius checks."""

    def test_inside(self):
        assert is_within_radius(Coordinate(0.0, 0.0), Coordinate(0.0005, 0.0), 100)

    def test_outside(self):
        assert not is_within_radius(Coordinate(0.0, 0.0), Coordinate(0.002, 0.0), 100)

    def test_unknown_position_is_never_inside(self):
        assert not is_within_radius(None, AMSTERDAM, 1_000_000)


class TestFormatDistance:
    """Test human-readable distances."""

    def test_meters(self):
        assert format_distance(850.4) == "850 m"

    def test_kilometers(self):
        assert format_distance(1234) == "1.2 km"

    def test_exactly_one_kilometer(self):
        assert format_distance(1000) == "1.0 km"
