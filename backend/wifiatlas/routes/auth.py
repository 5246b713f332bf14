"""
WifiAtlas Backend — Authentication Routes
===========================================

What:  POST /api/auth/register and POST /api/auth/login.
Both return `{user, token}`; the token goes into `Authorization: Bearer`.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from wifiatlas.database import get_db_session
from wifiatlas.schemas.auth import AuthResponse, LoginRequest, RegisterRequest
from wifiatlas.schemas.common import ErrorResponse
from wifiatlas.services.account_service import account_service

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Invalid input or user exists", "model": ErrorResponse}},
    summary="Create an account",
)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    return await account_service.register(
        db=db,
        email=body.email,
        username=body.username,
        password=body.password,
        organization_slug=body.organization_slug,
    )


@router.post(
    "/login",
    response_model=AuthResponse,
    responses={401: {"description": "Invalid credentials", "model": ErrorResponse}},
    summary="Exchange email and password for a token",
)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_db_session),
) -> AuthResponse:
    return await account_service.login(db=db, email=body.email, password=body.password)
