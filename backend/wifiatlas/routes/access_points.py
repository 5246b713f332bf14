"""
WifiAtlas Backend — Access Point Routes
=========================================

What:  /api/access-points: proximity search, detail, create, and the
       password / rating / service-block / qr-code sub-resources.
Who:   The map view (nearby), the detail drawer and the add-network form.

Authentication:
    - nearby, detail, qr-code: optional (passwords only for signed-in users)
    - everything that writes: required

Route order matters: /nearby is declared before /{access_point_id} so it is
not parsed as an id.
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from wifiatlas.config import settings
from wifiatlas.database import get_db_session
from wifiatlas.dependencies import get_broadcaster, get_current_user, get_optional_user
from wifiatlas.models.user import User
from wifiatlas.schemas.access_point import (
    AccessPointCreate,
    AccessPointDetail,
    AccessPointResponse,
    NearbyAccessPoint,
    PasswordRecordResponse,
    PasswordRequest,
    QRCodeResponse,
    ServiceBlockRequest,
    ServiceBlockResponse,
)
from wifiatlas.schemas.common import ErrorResponse
from wifiatlas.schemas.telemetry import RatingRequest, RatingResponse
from wifiatlas.services.broadcaster import Broadcaster
from wifiatlas.services.credential_service import credential_service
from wifiatlas.services.organization_service import organization_service
from wifiatlas.services.proximity_service import proximity_service
from wifiatlas.services.telemetry_service import telemetry_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/access-points", tags=["Access Points"])


async def _visibility_scope(db: AsyncSession, user: Optional[User]) -> Optional[UUID]:
    if user is None:
        return None
    return await organization_service.resolve_visibility_scope(db, user.id)


@router.get(
    "/nearby",
    response_model=List[NearbyAccessPoint],
    responses={400: {"description": "Invalid coordinates or radius", "model": ErrorResponse}},
    summary="Access points within a radius, nearest first",
)
async def nearby(
    lat: float = Query(description="Latitude of the search center"),
    lng: float = Query(description="Longitude of the search center"),
    radius: float = Query(
        default=settings.nearby_default_radius_km,
        description="Search radius in kilometers",
    ),
    db: AsyncSession = Depends(get_db_session),
) -> List[NearbyAccessPoint]:
    return await proximity_service.find_nearby(db, lat, lng, radius)


@router.get(
    "/{access_point_id}",
    response_model=AccessPointDetail,
    responses={404: {"description": "Access point not found", "model": ErrorResponse}},
    summary="Access point detail with ratings, speed tests and service blocks",
)
async def get_access_point(
    access_point_id: UUID,
    db: AsyncSession = Depends(get_db_session),
    user: Optional[User] = Depends(get_optional_user),
) -> AccessPointDetail:
    return await credential_service.get_access_point(
        db,
        access_point_id,
        requester_org_id=await _visibility_scope(db, user),
        authenticated=user is not None,
    )


@router.post(
    "",
    response_model=AccessPointResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Invalid input or duplicate", "model": ErrorResponse}},
    summary="Add an access point",
)
async def create_access_point(
    body: AccessPointCreate,
    db: AsyncSession = Depends(get_db_session),
    user: User = Depends(get_current_user),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> AccessPointResponse:
    return await credential_service.create_access_point(
        db,
        body,
        creator_id=user.id,
        org_id=user.organization_id,
        broadcaster=broadcaster,
    )


@router.post(
    "/{access_point_id}/password",
    response_model=PasswordRecordResponse,
    status_code=status.HTTP_201_CREATED,
    responses={404: {"description": "Access point not found", "model": ErrorResponse}},
    summary="Replace the current password",
)
async def set_password(
    access_point_id: UUID,
    body: PasswordRequest,
    db: AsyncSession = Depends(get_db_session),
    user: User = Depends(get_current_user),
) -> PasswordRecordResponse:
    return await credential_service.set_current_password(
        db,
        access_point_id,
        body.password,
        setter_id=user.id,
        org_id=user.organization_id,
    )


@router.post(
    "/{access_point_id}/rating",
    response_model=RatingResponse,
    responses={404: {"description": "Access point not found", "model": ErrorResponse}},
    summary="Rate an access point (replaces your earlier rating)",
)
async def rate(
    access_point_id: UUID,
    body: RatingRequest,
    db: AsyncSession = Depends(get_db_session),
    user: User = Depends(get_current_user),
) -> RatingResponse:
    return await telemetry_service.submit_rating(db, access_point_id, user.id, body)


@router.post(
    "/{access_point_id}/service-block",
    response_model=ServiceBlockResponse,
    responses={404: {"description": "Access point not found", "model": ErrorResponse}},
    summary="Report whether a service is blocked on this network",
)
async def report_service_block(
    access_point_id: UUID,
    body: ServiceBlockRequest,
    db: AsyncSession = Depends(get_db_session),
    user: User = Depends(get_current_user),
) -> ServiceBlockResponse:
    return await credential_service.upsert_service_block(
        db,
        access_point_id,
        body.service_name,
        body.is_blocked,
        reporter_id=user.id,
    )


@router.get(
    "/{access_point_id}/qr-code",
    response_model=QRCodeResponse,
    responses={404: {"description": "Access point not found", "model": ErrorResponse}},
    summary="WIFI: payload for rendering a join QR code",
)
async def qr_code(
    access_point_id: UUID,
    db: AsyncSession = Depends(get_db_session),
    user: Optional[User] = Depends(get_optional_user),
) -> QRCodeResponse:
    return await credential_service.connection_payload(
        db,
        access_point_id,
        requester_org_id=await _visibility_scope(db, user),
        authenticated=user is not None,
    )
