"""
WifiAtlas Backend — External Directory Routes
===============================================

What:  POST /api/wigle/search imports networks around a point from the
       external wardriving directory; GET /api/wigle/statistics passes its
       site statistics through.
Auth:  Optional. Imported rows are attributed to the caller when signed in.

Any directory failure surfaces as 500 dependency_error.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from wifiatlas.database import get_db_session
from wifiatlas.dependencies import get_network_directory, get_optional_user
from wifiatlas.models.user import User
from wifiatlas.schemas.common import ErrorResponse
from wifiatlas.schemas.directory import (
    DirectorySearchRequest,
    DirectorySearchResponse,
    DirectoryStatistics,
)
from wifiatlas.services.directory_client import NetworkDirectory
from wifiatlas.services.import_service import import_service

router = APIRouter(prefix="/api/wigle", tags=["Network Directory"])


@router.post(
    "/search",
    response_model=DirectorySearchResponse,
    responses={500: {"description": "Directory unavailable", "model": ErrorResponse}},
    summary="Import networks near a point",
)
async def search(
    body: DirectorySearchRequest,
    db: AsyncSession = Depends(get_db_session),
    user: Optional[User] = Depends(get_optional_user),
    directory: NetworkDirectory = Depends(get_network_directory),
) -> DirectorySearchResponse:
    return await import_service.import_from_external_directory(
        db,
        directory,
        body.latitude,
        body.longitude,
        body.radius,
        ssid_filter=body.ssid,
        creator_id=user.id if user else None,
        org_id=user.organization_id if user else None,
    )


@router.get(
    "/statistics",
    response_model=DirectoryStatistics,
    responses={500: {"description": "Directory unavailable", "model": ErrorResponse}},
    summary="Directory-wide statistics",
)
async def statistics(
    directory: NetworkDirectory = Depends(get_network_directory),
) -> DirectoryStatistics:
    return await import_service.site_statistics(directory)
