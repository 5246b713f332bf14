"""
WifiAtlas Backend — Per-User Routes
=====================================

What:  /api/user/favorites, /api/user/activity and /api/user/profile.
All routes act on the authenticated caller only.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from wifiatlas.database import get_db_session
from wifiatlas.dependencies import get_current_user
from wifiatlas.models.user import User
from wifiatlas.schemas.access_point import AccessPointResponse
from wifiatlas.schemas.auth import ActivityItem, ProfileResponse, ProfileUpdateRequest, UserResponse
from wifiatlas.schemas.common import ErrorResponse, SuccessResponse
from wifiatlas.services.user_service import user_service

router = APIRouter(prefix="/api/user", tags=["User"])


@router.get("/favorites", response_model=List[AccessPointResponse], summary="Favourite access points")
async def list_favorites(
    db: AsyncSession = Depends(get_db_session),
    user: User = Depends(get_current_user),
) -> List[AccessPointResponse]:
    return await user_service.list_favorites(db, user.id)


@router.post(
    "/favorites/{access_point_id}",
    response_model=SuccessResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Already a favourite", "model": ErrorResponse},
        404: {"description": "Access point not found", "model": ErrorResponse},
    },
    summary="Add a favourite",
)
async def add_favorite(
    access_point_id: UUID,
    db: AsyncSession = Depends(get_db_session),
    user: User = Depends(get_current_user),
) -> SuccessResponse:
    await user_service.add_favorite(db, user.id, access_point_id)
    return SuccessResponse()


@router.delete(
    "/favorites/{access_point_id}",
    response_model=SuccessResponse,
    summary="Remove a favourite",
)
async def remove_favorite(
    access_point_id: UUID,
    db: AsyncSession = Depends(get_db_session),
    user: User = Depends(get_current_user),
) -> SuccessResponse:
    await user_service.remove_favorite(db, user.id, access_point_id)
    return SuccessResponse()


@router.get("/activity", response_model=List[ActivityItem], summary="Recent activity feed")
async def activity(
    db: AsyncSession = Depends(get_db_session),
    user: User = Depends(get_current_user),
) -> List[ActivityItem]:
    return await user_service.recent_activity(db, user.id)


@router.get("/profile", response_model=ProfileResponse, summary="Profile with statistics")
async def get_profile(
    db: AsyncSession = Depends(get_db_session),
    user: User = Depends(get_current_user),
) -> ProfileResponse:
    return await user_service.profile(db, user.id)


@router.put(
    "/profile",
    response_model=UserResponse,
    responses={400: {"description": "Username taken or blank", "model": ErrorResponse}},
    summary="Change username",
)
async def update_profile(
    body: ProfileUpdateRequest,
    db: AsyncSession = Depends(get_db_session),
    user: User = Depends(get_current_user),
) -> UserResponse:
    return await user_service.update_username(db, user.id, body.username)
