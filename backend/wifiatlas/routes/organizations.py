"""
WifiAtlas Backend — Organization Routes
=========================================

What:  /api/organizations: create, show mine, join, leave, and list an
       organization's access points (members only).
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from wifiatlas.database import get_db_session
from wifiatlas.dependencies import get_current_user
from wifiatlas.models.user import User
from wifiatlas.schemas.access_point import AccessPointResponse
from wifiatlas.schemas.common import ErrorResponse, SuccessResponse
from wifiatlas.schemas.organization import (
    JoinRequest,
    JoinResponse,
    OrganizationCreate,
    OrganizationResponse,
    OrganizationSummary,
)
from wifiatlas.services.organization_service import organization_service

router = APIRouter(prefix="/api/organizations", tags=["Organizations"])


@router.post(
    "",
    response_model=OrganizationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Slug already exists", "model": ErrorResponse}},
    summary="Create an organization and join it",
)
async def create_organization(
    body: OrganizationCreate,
    db: AsyncSession = Depends(get_db_session),
    user: User = Depends(get_current_user),
) -> OrganizationResponse:
    return await organization_service.create_organization(db, body.name, body.slug, user.id)


@router.get(
    "/mine",
    response_model=Optional[OrganizationSummary],
    summary="The caller's organization, or null",
)
async def my_organization(
    db: AsyncSession = Depends(get_db_session),
    user: User = Depends(get_current_user),
) -> Optional[OrganizationSummary]:
    return await organization_service.my_organization(db, user.organization_id)


@router.post(
    "/join",
    response_model=JoinResponse,
    responses={404: {"description": "Organization not found", "model": ErrorResponse}},
    summary="Join an organization by slug",
)
async def join(
    body: JoinRequest,
    db: AsyncSession = Depends(get_db_session),
    user: User = Depends(get_current_user),
) -> JoinResponse:
    organization = await organization_service.join_by_slug(db, user.id, body.slug)
    return JoinResponse(organization=organization)


@router.post(
    "/leave",
    response_model=SuccessResponse,
    summary="Leave the current organization",
)
async def leave(
    db: AsyncSession = Depends(get_db_session),
    user: User = Depends(get_current_user),
) -> SuccessResponse:
    await organization_service.leave(db, user.id)
    return SuccessResponse()


@router.get(
    "/{slug}/access-points",
    response_model=List[AccessPointResponse],
    responses={
        403: {"description": "Not a member", "model": ErrorResponse},
        404: {"description": "Organization not found", "model": ErrorResponse},
    },
    summary="Access points shared within an organization",
)
async def organization_access_points(
    slug: str,
    db: AsyncSession = Depends(get_db_session),
    user: User = Depends(get_current_user),
) -> List[AccessPointResponse]:
    caller_org_id = await organization_service.resolve_visibility_scope(db, user.id)
    return await organization_service.list_organization_access_points(db, slug, caller_org_id)
