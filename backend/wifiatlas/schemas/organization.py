"""
WifiAtlas Backend — Organization Schemas
==========================================
"""

import uuid
from datetime import datetime

from pydantic import BaseModel, Field


class OrganizationCreate(BaseModel):
    name: str = Field(min_length=2, max_length=255)
    slug: str = Field(min_length=2, max_length=255, pattern=r"^[a-z0-9-]+$")


class JoinRequest(BaseModel):
    slug: str = Field(min_length=1, max_length=255)


class OrganizationResponse(BaseModel):
    id: uuid.UUID
    name: str
    slug: str
    created_at: datetime

    model_config = {"from_attributes": True}


class OrganizationSummary(OrganizationResponse):
    member_count: int = 0
    access_point_count: int = 0


class JoinResponse(BaseModel):
    success: bool = True
    organization: OrganizationResponse
