"""
WifiAtlas Backend — Rating & Speed Test Schemas
=================================================

What:  Request/response models for ratings and speed-test telemetry.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class RatingRequest(BaseModel):
    overall_rating: int = Field(ge=1, le=5)
    speed_rating: Optional[int] = Field(default=None, ge=1, le=5)
    reliability_rating: Optional[int] = Field(default=None, ge=1, le=5)
    comment: Optional[str] = Field(default=None, max_length=2000)


class RatingResponse(BaseModel):
    id: uuid.UUID
    access_point_id: uuid.UUID
    user_id: uuid.UUID
    overall_rating: int
    speed_rating: Optional[int] = None
    reliability_rating: Optional[int] = None
    comment: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class SpeedTestStartRequest(BaseModel):
    access_point_id: uuid.UUID


class SpeedTestSaveRequest(BaseModel):
    """A measurement taken by the client; the server only stores it."""
    access_point_id: uuid.UUID
    download_speed: float = Field(ge=0, description="Mbps")
    upload_speed: float = Field(ge=0, description="Mbps")
    ping: float = Field(ge=0, description="Milliseconds")
    test_server: str = Field(min_length=1, max_length=255)


class SpeedTestResponse(BaseModel):
    id: uuid.UUID
    access_point_id: uuid.UUID
    user_id: Optional[uuid.UUID] = None
    download_speed: float
    upload_speed: float
    ping: float
    test_server: Optional[str] = None
    tested_at: datetime

    model_config = {"from_attributes": True}


class SpeedTestStatistics(BaseModel):
    # Averages are null when no samples exist
    avg_download: Optional[float] = None
    avg_upload: Optional[float] = None
    avg_ping: Optional[float] = None
    total_tests: int = 0


class SpeedTestHistory(BaseModel):
    tests: List[SpeedTestResponse] = Field(description="Up to 20 samples, newest first")
    statistics: SpeedTestStatistics


class SpeedTestStarted(BaseModel):
    access_point_id: uuid.UUID
    status: str = "started"
