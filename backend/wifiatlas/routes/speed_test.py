"""
WifiAtlas Backend — Speed Test Routes
=======================================

What:  /api/speed-test/start, /save and /history/{access_point_id}.

The measurement runs in the browser. /start only tells organization peers
that a test is under way; /save stores the measured numbers and announces
completion.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from wifiatlas.database import get_db_session
from wifiatlas.dependencies import get_broadcaster, get_current_user
from wifiatlas.models.user import User
from wifiatlas.schemas.common import ErrorResponse
from wifiatlas.schemas.telemetry import (
    SpeedTestHistory,
    SpeedTestResponse,
    SpeedTestSaveRequest,
    SpeedTestStarted,
    SpeedTestStartRequest,
)
from wifiatlas.services.broadcaster import Broadcaster
from wifiatlas.services.telemetry_service import telemetry_service

router = APIRouter(prefix="/api/speed-test", tags=["Speed Tests"])


@router.post("/start", response_model=SpeedTestStarted, summary="Announce a speed test")
async def start(
    body: SpeedTestStartRequest,
    user: User = Depends(get_current_user),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> SpeedTestStarted:
    return await telemetry_service.announce_speed_test(
        body.access_point_id, user.id, user.organization_id, broadcaster
    )


@router.post(
    "/save",
    response_model=SpeedTestResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"description": "Access point not found", "model": ErrorResponse}},
    summary="Store a measured result",
)
async def save(
    body: SpeedTestSaveRequest,
    db: AsyncSession = Depends(get_db_session),
    user: User = Depends(get_current_user),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> SpeedTestResponse:
    return await telemetry_service.record_speed_test(
        db,
        body.access_point_id,
        user.id,
        body,
        org_id=user.organization_id,
        broadcaster=broadcaster,
    )


@router.get(
    "/history/{access_point_id}",
    response_model=SpeedTestHistory,
    responses={404: {"description": "Access point not found", "model": ErrorResponse}},
    summary="Recent samples and averages",
)
async def history(
    access_point_id: UUID,
    db: AsyncSession = Depends(get_db_session),
    user: User = Depends(get_current_user),
) -> SpeedTestHistory:
    return await telemetry_service.history(db, access_point_id)
