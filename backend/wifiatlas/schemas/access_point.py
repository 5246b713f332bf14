"""
WifiAtlas Backend — Access Point Schemas
==========================================

What:  API contract for creating, reading and searching access points, and
       for the password / service-block sub-resources.
Why:   Range checks on coordinates and SSID length happen here first, so
       malformed requests never reach the database.

Design Decision:
    Password *contents* appear in exactly two places: AccessPointDetail.password
    (already filtered by organization visibility) and PasswordRecordResponse
    (returned only to the user who just set it). Proximity results only carry
    the `has_password` flag.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from wifiatlas.schemas.telemetry import RatingResponse, SpeedTestResponse


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class AccessPointCreate(BaseModel):
    ssid: str = Field(min_length=1, max_length=255)
    bssid: Optional[str] = Field(default=None, max_length=64)
    security_type: Optional[str] = Field(default=None, max_length=50)
    password: Optional[str] = Field(default=None, max_length=255)
    is_open: bool = False
    requires_login: bool = False
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    address: Optional[str] = None
    venue_name: Optional[str] = Field(default=None, max_length=255)
    venue_type: Optional[str] = Field(default=None, max_length=100)


class PasswordRequest(BaseModel):
    password: str = Field(min_length=1, max_length=255)


class ServiceBlockRequest(BaseModel):
    service_name: str = Field(
        min_length=1,
        max_length=255,
        description='Service or "Website: <domain>" entry',
    )
    is_blocked: bool


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class AccessPointResponse(BaseModel):
    id: uuid.UUID
    ssid: str
    bssid: Optional[str] = None
    security_type: Optional[str] = None
    is_open: bool
    requires_login: bool
    latitude: float
    longitude: float
    address: Optional[str] = None
    venue_name: Optional[str] = None
    venue_type: Optional[str] = None
    created_by: Optional[uuid.UUID] = None
    organization_id: Optional[uuid.UUID] = None
    last_seen: Optional[datetime] = None
    is_verified: bool = False
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class NearbyAccessPoint(AccessPointResponse):
    """An access point annotated with its distance from the query point."""
    distance_meters: float = Field(description="Great-circle distance from the query point")
    avg_rating: float = Field(description="Average overall rating, 0 when unrated")
    rating_count: int
    has_password: bool = Field(description="At least one current password exists")


class ServiceBlockResponse(BaseModel):
    id: uuid.UUID
    access_point_id: uuid.UUID
    service_name: str
    is_blocked: bool
    verified_count: int
    reported_by: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class PasswordRecordResponse(BaseModel):
    id: uuid.UUID
    access_point_id: uuid.UUID
    password: str
    added_by: Optional[uuid.UUID] = None
    organization_id: Optional[uuid.UUID] = None
    is_current: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class AccessPointDetail(AccessPointResponse):
    """
    Full detail view.

    ratings: 10 most recent, speed_tests: 5 most recent, service_blocks: all.
    password: the visible current password, or null.
    """
    ratings: List[RatingResponse] = Field(default_factory=list)
    speed_tests: List[SpeedTestResponse] = Field(default_factory=list)
    service_blocks: List[ServiceBlockResponse] = Field(default_factory=list)
    password: Optional[str] = None


class QRCodeResponse(BaseModel):
    wifi_string: str = Field(description="WIFI: connection payload for a QR encoder")
