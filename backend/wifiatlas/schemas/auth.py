"""
WifiAtlas Backend — Account Schemas
=====================================

What:  Request/response models for registration, login and the user's own
       profile views (favourites, activity, profile statistics).
Why:   Keeps the password hash and other internal columns out of every
       response; only the fields listed here are ever serialized.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


# ══════════════════════════════════════════════════════════════════════════
# Requests
# ══════════════════════════════════════════════════════════════════════════


class RegisterRequest(BaseModel):
    email: EmailStr
    username: str = Field(min_length=3, max_length=100)
    password: str = Field(min_length=8, max_length=128)
    organization_slug: Optional[str] = Field(
        default=None,
        description="Join this organization on sign-up. Unknown slugs are ignored.",
    )


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class ProfileUpdateRequest(BaseModel):
    username: str = Field(min_length=1, max_length=100)


# ══════════════════════════════════════════════════════════════════════════
# Responses
# ══════════════════════════════════════════════════════════════════════════


class UserResponse(BaseModel):
    id: uuid.UUID
    email: str
    username: str
    organization_id: Optional[uuid.UUID] = None

    model_config = {"from_attributes": True}


class AuthResponse(BaseModel):
    """Returned by register (201) and login (200)."""
    user: UserResponse
    token: str = Field(description="Bearer token, valid for JWT_EXPIRE_DAYS")


class ActivityItem(BaseModel):
    type: str = Field(description="access_point_added, rating_added or speed_test")
    description: str
    created_at: datetime


class ProfileStats(BaseModel):
    access_points_added: int = 0
    ratings_given: int = 0
    speed_tests_run: int = 0
    favorites: int = 0


class ProfileResponse(UserResponse):
    created_at: datetime
    stats: ProfileStats
