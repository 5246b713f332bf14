"""
WifiAtlas Backend — Ratings & Speed Test Tests
================================================

What we test:
    ✅ Rating resubmission overwrites instead of duplicating
    ✅ Speed-test samples are stored and announced
    ✅ History limit and averages
    ✅ Unknown access points raise NotFoundError
"""

import uuid

import pytest
from sqlalchemy import func, select

from wifiatlas.exceptions import NotFoundError
from wifiatlas.models.access_point import AccessPoint
from wifiatlas.models.telemetry import Rating
from wifiatlas.schemas.telemetry import RatingRequest, SpeedTestSaveRequest
from wifiatlas.services.telemetry_service import telemetry_service


async def _access_point(db_session):
    access_point = AccessPoint(ssid="Lab", latitude=1.0, longitude=2.0)
    db_session.add(access_point)
    await db_session.flush()
    return access_point


def _sample(access_point_id, download=100.0, upload=20.0, ping=15.0):
    return SpeedTestSaveRequest(
        access_point_id=access_point_id,
        download_speed=download,
        upload_speed=upload,
        ping=ping,
        test_server="client",
    )


class TestRatings:

    @pytest.mark.asyncio
    async def test_resubmission_overwrites(self, db_session, make_user):
        alice = await make_user("alice")
        access_point = await _access_point(db_session)

        first = await telemetry_service.submit_rating(
            db_session, access_point.id, alice.id, RatingRequest(overall_rating=2, comment="slow")
        )
        second = await telemetry_service.submit_rating(
            db_session, access_point.id, alice.id, RatingRequest(overall_rating=5, speed_rating=4)
        )

        count = await db_session.scalar(
            select(func.count(Rating.id)).where(Rating.access_point_id == access_point.id)
        )
        assert count == 1
        assert second.id == first.id
        assert second.overall_rating == 5
        assert second.speed_rating == 4
        assert second.comment is None

    @pytest.mark.asyncio
    async def test_unknown_access_point(self, db_session, make_user):
        alice = await make_user("alice")
        with pytest.raises(NotFoundError):
            await telemetry_service.submit_rating(
                db_session, uuid.uuid4(), alice.id, RatingRequest(overall_rating=3)
            )


class TestSpeedTests:

    @pytest.mark.asyncio
    async def test_record_and_announce(self, db_session, make_user, broadcaster):
        alice = await make_user("alice", org_slug="acme")
        access_point = await _access_point(db_session)

        saved = await telemetry_service.record_speed_test(
            db_session,
            access_point.id,
            alice.id,
            _sample(access_point.id),
            alice.organization_id,
            broadcaster,
        )

        assert saved.download_speed == 100.0
        org_id, event, payload = broadcaster.events[0]
        assert org_id == alice.organization_id
        assert event == "speed-test-complete"
        assert payload["access_point_id"] == str(access_point.id)
        assert payload["results"]["id"] == str(saved.id)

    @pytest.mark.asyncio
    async def test_no_organization_no_event(self, db_session, make_user, broadcaster):
        bob = await make_user("bob")
        access_point = await _access_point(db_session)

        await telemetry_service.record_speed_test(
            db_session, access_point.id, bob.id, _sample(access_point.id), None, broadcaster
        )
        assert broadcaster.events == []

    @pytest.mark.asyncio
    async def test_announce_start(self, broadcaster):
        org_id, user_id, access_point_id = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        started = await telemetry_service.announce_speed_test(
            access_point_id, user_id, org_id, broadcaster
        )

        assert started.status == "started"
        assert broadcaster.events == [
            (
                org_id,
                "speed-test-start",
                {"access_point_id": str(access_point_id), "user_id": str(user_id)},
            )
        ]

    @pytest.mark.asyncio
    async def test_history_limit_and_averages(self, db_session, make_user):
        alice = await make_user("alice")
        access_point = await _access_point(db_session)

        for i in range(22):
            await telemetry_service.record_speed_test(
                db_session,
                access_point.id,
                alice.id,
                _sample(access_point.id, download=float(i), upload=10.0, ping=float(i * 2)),
                None,
            )

        history = await telemetry_service.history(db_session, access_point.id)

        assert len(history.tests) == 20
        assert history.statistics.total_tests == 22
        assert history.statistics.avg_download == pytest.approx(10.5)
        assert history.statistics.avg_upload == pytest.approx(10.0)
        assert history.statistics.avg_ping == pytest.approx(21.0)

    @pytest.mark.asyncio
    async def test_empty_history(self, db_session):
        access_point = await _access_point(db_session)
        history = await telemetry_service.history(db_session, access_point.id)

        assert history.tests == []
        assert history.statistics.total_tests == 0
        assert history.statistics.avg_download is None

    @pytest.mark.asyncio
    async def test_history_unknown_access_point(self, db_session):
        with pytest.raises(NotFoundError):
            await telemetry_service.history(db_session, uuid.uuid4())
