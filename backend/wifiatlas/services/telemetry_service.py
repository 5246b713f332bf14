"""
WifiAtlas Backend — Rating & Telemetry Aggregator
===================================================

What:  Ratings (one per user per access point) and speed-test samples.
Why:   Ratings feed the proximity results; speed tests feed the detail page
       history and the live "test running" indicator for organization peers.

Speed tests are measured on the client. The server only announces that a
test started, stores the submitted result and announces its completion.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from wifiatlas.database import dialect_insert
from wifiatlas.exceptions import NotFoundError
from wifiatlas.models.access_point import AccessPoint
from wifiatlas.models.telemetry import Rating, SpeedTest
from wifiatlas.models.user import utcnow
from wifiatlas.schemas.telemetry import (
    RatingRequest,
    RatingResponse,
    SpeedTestHistory,
    SpeedTestResponse,
    SpeedTestSaveRequest,
    SpeedTestStarted,
    SpeedTestStatistics,
)
from wifiatlas.services.broadcaster import Broadcaster

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 20


async def _ensure_access_point(db: AsyncSession, access_point_id: UUID) -> None:
    if await db.get(AccessPoint, access_point_id) is None:
        raise NotFoundError(resource="access point", resource_id=str(access_point_id))


class TelemetryService:
    """
    Responsibilities:
        - submit_rating(): upsert, last write wins
        - record_speed_test(): append + `speed-test-complete` event
        - announce_speed_test(): `speed-test-start` event
        - history(): newest samples and averages
    """

    async def submit_rating(
        self,
        db: AsyncSession,
        access_point_id: UUID,
        user_id: UUID,
        scores: RatingRequest,
    ) -> RatingResponse:
        """Store the user's rating, replacing any earlier one for the same point."""
        await _ensure_access_point(db, access_point_id)

        insert_stmt = dialect_insert(db, Rating).values(
            access_point_id=access_point_id,
            user_id=user_id,
            overall_rating=scores.overall_rating,
            speed_rating=scores.speed_rating,
            reliability_rating=scores.reliability_rating,
            comment=scores.comment,
        )
        stmt = insert_stmt.on_conflict_do_update(
            index_elements=["access_point_id", "user_id"],
            set_={
                "overall_rating": insert_stmt.excluded.overall_rating,
                "speed_rating": insert_stmt.excluded.speed_rating,
                "reliability_rating": insert_stmt.excluded.reliability_rating,
                "comment": insert_stmt.excluded.comment,
                "updated_at": utcnow(),
            },
        ).returning(Rating)

        result = await db.execute(stmt, execution_options={"populate_existing": True})
        rating = result.scalar_one()
        logger.info("Rating %d/5 stored for %s by %s", rating.overall_rating, access_point_id, user_id)
        return RatingResponse.model_validate(rating)

    async def announce_speed_test(
        self,
        access_point_id: UUID,
        user_id: UUID,
        org_id: Optional[UUID],
        broadcaster: Optional[Broadcaster] = None,
    ) -> SpeedTestStarted:
        if org_id is not None and broadcaster is not None:
            await broadcaster.publish(
                org_id,
                "speed-test-start",
                {"access_point_id": str(access_point_id), "user_id": str(user_id)},
            )
        return SpeedTestStarted(access_point_id=access_point_id)

    async def record_speed_test(
        self,
        db: AsyncSession,
        access_point_id: UUID,
        user_id: Optional[UUID],
        metrics: SpeedTestSaveRequest,
        org_id: Optional[UUID],
        broadcaster: Optional[Broadcaster] = None,
    ) -> SpeedTestResponse:
        """Append one sample and announce it to the caller's organization."""
        await _ensure_access_point(db, access_point_id)

        sample = SpeedTest(
            access_point_id=access_point_id,
            user_id=user_id,
            download_speed=metrics.download_speed,
            upload_speed=metrics.upload_speed,
            ping=metrics.ping,
            test_server=metrics.test_server,
        )
        db.add(sample)
        await db.flush()

        response = SpeedTestResponse.model_validate(sample)
        if org_id is not None and broadcaster is not None:
            await broadcaster.publish(
                org_id,
                "speed-test-complete",
                {
                    "access_point_id": str(access_point_id),
                    "results": response.model_dump(mode="json"),
                },
            )
        return response

    async def history(self, db: AsyncSession, access_point_id: UUID) -> SpeedTestHistory:
        """The 20 newest samples plus averages over every sample."""
        await _ensure_access_point(db, access_point_id)

        tests = (
            await db.execute(
                select(SpeedTest)
                .where(SpeedTest.access_point_id == access_point_id)
                .order_by(desc(SpeedTest.tested_at))
                .limit(HISTORY_LIMIT)
            )
        ).scalars().all()

        avg_download, avg_upload, avg_ping, total = (
            await db.execute(
                select(
                    func.avg(SpeedTest.download_speed),
                    func.avg(SpeedTest.upload_speed),
                    func.avg(SpeedTest.ping),
                    func.count(SpeedTest.id),
                ).where(SpeedTest.access_point_id == access_point_id)
            )
        ).one()

        return SpeedTestHistory(
            tests=[SpeedTestResponse.model_validate(t) for t in tests],
            statistics=SpeedTestStatistics(
                avg_download=float(avg_download) if avg_download is not None else None,
                avg_upload=float(avg_upload) if avg_upload is not None else None,
                avg_ping=float(avg_ping) if avg_ping is not None else None,
                total_tests=int(total or 0),
            ),
        )


telemetry_service = TelemetryService()
