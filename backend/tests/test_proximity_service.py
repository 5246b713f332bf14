"""
WifiAtlas Backend — Proximity Search Tests
============================================

What we test:
    ✅ Only points within the radius are returned, nearest first
    ✅ Result cap
    ✅ Rating aggregates and the has_password flag
    ✅ Input validation for coordinates and radius
"""

import pytest

from wifiatlas.config import settings
from wifiatlas.exceptions import ValidationError
from wifiatlas.models.access_point import AccessPoint, AccessPointPassword
from wifiatlas.models.telemetry import Rating
from wifiatlas.services.proximity_service import proximity_service

ORIGIN = (40.0, -74.0)


async def _add_point(db_session, ssid, lat_offset, lon_offset=0.0):
    access_point = AccessPoint(
        ssid=ssid,
        latitude=ORIGIN[0] + lat_offset,
        longitude=ORIGIN[1] + lon_offset,
    )
    db_session.add(access_point)
    await db_session.flush()
    return access_point


class TestFindNearby:

    @pytest.mark.asyncio
    async def test_filters_and_orders_by_distance(self, db_session):
        await _add_point(db_session, "far", 0.02)  # ~2.2 km
        await _add_point(db_session, "middle", 0.005)  # ~556 m
        await _add_point(db_session, "near", 0.002)  # ~222 m

        results = await proximity_service.find_nearby(db_session, *ORIGIN, 1.0)

        assert [r.ssid for r in results] == ["near", "middle"]
        assert results[0].distance_meters == pytest.approx(222.4, abs=1.0)
        assert results[0].distance_meters < results[1].distance_meters

    @pytest.mark.asyncio
    async def test_empty_area(self, db_session):
        assert await proximity_service.find_nearby(db_session, 0.0, 0.0, 5.0) == []

    @pytest.mark.asyncio
    async def test_result_cap(self, db_session):
        for i in range(settings.nearby_result_limit + 10):
            await _add_point(db_session, f"ap-{i}", 0.0001 * (i + 1))

        results = await proximity_service.find_nearby(db_session, *ORIGIN, 5.0)

        assert len(results) == settings.nearby_result_limit
        assert results[0].ssid == "ap-0"

    @pytest.mark.asyncio
    async def test_aggregates_and_password_flag(self, db_session, make_user):
        alice = await make_user("alice")
        bob = await make_user("bob")
        rated = await _add_point(db_session, "rated", 0.001)
        await _add_point(db_session, "plain", 0.002)

        db_session.add_all([
            Rating(access_point_id=rated.id, user_id=alice.id, overall_rating=5),
            Rating(access_point_id=rated.id, user_id=bob.id, overall_rating=2),
            AccessPointPassword(access_point_id=rated.id, password="secret", is_current=True),
        ])
        await db_session.flush()

        rated_result, plain_result = await proximity_service.find_nearby(
            db_session, *ORIGIN, 1.0
        )

        assert rated_result.avg_rating == pytest.approx(3.5)
        assert rated_result.rating_count == 2
        assert rated_result.has_password is True
        assert plain_result.avg_rating == 0
        assert plain_result.rating_count == 0
        assert plain_result.has_password is False
        assert "password" not in rated_result.model_dump()

    @pytest.mark.asyncio
    async def test_historical_password_does_not_count(self, db_session):
        access_point = await _add_point(db_session, "old", 0.001)
        db_session.add(
            AccessPointPassword(access_point_id=access_point.id, password="old", is_current=False)
        )
        await db_session.flush()

        (result,) = await proximity_service.find_nearby(db_session, *ORIGIN, 1.0)
        assert result.has_password is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("radius", [0, -1, settings.nearby_max_radius_km + 1])
    async def test_invalid_radius(self, db_session, radius):
        with pytest.raises(ValidationError):
            await proximity_service.find_nearby(db_session, *ORIGIN, radius)

    @pytest.mark.asyncio
    async def test_invalid_coordinates(self, db_session):
        with pytest.raises(ValidationError):
            await proximity_service.find_nearby(db_session, 95.0, 0.0, 1.0)
