"""
WifiAtlas Backend — Geometry Unit Tests
=========================================

What we test:
    ✅ Haversine distance against known city pairs
    ✅ Bounding box contains the whole search circle
    ✅ Antimeridian and pole handling
    ✅ Directory search rectangle in plain degrees
"""

import math

import pytest

from wifiatlas.geo import (
    bounding_box,
    directory_search_box,
    haversine_meters,
    validate_position,
)


class TestHaversine:

    def test_zero_distance(self):
        assert haversine_meters(48.8566, 2.3522, 48.8566, 2.3522) == 0

    def test_paris_to_london(self):
        """Paris–London is about 343.5 km along the great circle."""
        distance = haversine_meters(48.8566, 2.3522, 51.5074, -0.1278)
        assert 343_000 < distance < 344_500

    def test_one_hundredth_degree_latitude(self):
        distance = haversine_meters(0.0, 0.0, 0.01, 0.0)
        assert distance == pytest.approx(1111.95, abs=0.1)

    def test_symmetric(self):
        a = haversine_meters(10.0, 20.0, -5.0, 40.0)
        b = haversine_meters(-5.0, 40.0, 10.0, 20.0)
        assert a == pytest.approx(b)


class TestValidatePosition:

    @pytest.mark.parametrize("lat,lon", [(0, 0), (90, 180), (-90, -180)])
    def test_valid(self, lat, lon):
        assert validate_position(lat, lon)

    @pytest.mark.parametrize("lat,lon", [(90.1, 0), (0, 180.5), (-91, 0)])
    def test_invalid(self, lat, lon):
        assert not validate_position(lat, lon)


class TestBoundingBox:

    def test_contains_circle_edge_points(self):
        """Points just inside the radius in all four directions lie in the box."""
        lat, lon, radius = 60.0, 10.0, 5000.0
        box = bounding_box(lat, lon, radius)
        (min_lon, max_lon), = box.longitude_ranges

        delta_lat = math.degrees((radius - 1) / 6_371_008.8)
        assert box.min_lat < lat - delta_lat
        assert box.max_lat > lat + delta_lat

        east = lon + 0.0899  # ~4.99 km east at 60°N
        assert haversine_meters(lat, lon, lat, east) < radius
        assert min_lon < east < max_lon

    def test_antimeridian_splits_longitude(self):
        box = bounding_box(0.0, 179.99, 5000.0)
        assert len(box.longitude_ranges) == 2
        (low1, high1), (low2, high2) = box.longitude_ranges
        assert high1 == 180.0 and low2 == -180.0
        assert low1 < 179.99 and high2 > -180.0

    def test_pole_covers_all_longitudes(self):
        box = bounding_box(89.99, 0.0, 5000.0)
        assert box.longitude_ranges == [(-180.0, 180.0)]
        assert box.max_lat == 90.0


class TestDirectorySearchBox:

    def test_equator_box_uses_111_km_per_degree(self):
        box = directory_search_box(0.0, 0.0, 1.11)
        assert box["latrange1"] == pytest.approx(-0.01)
        assert box["latrange2"] == pytest.approx(0.01)
        assert box["longrange1"] == pytest.approx(-0.01)
        assert box["longrange2"] == pytest.approx(0.01)

    def test_longitude_widens_with_latitude(self):
        box = directory_search_box(60.0, 0.0, 1.11)
        assert box["longrange2"] == pytest.approx(0.02, rel=1e-6)
