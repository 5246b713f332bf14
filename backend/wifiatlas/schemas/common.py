"""
WifiAtlas Backend — Shared Response Schemas
=============================================

What:  Error envelope, health check and simple acknowledgement models.
Why:   Clients need one consistent structure to parse errors programmatically,
       whichever route produced them.

Error envelope example:
    {
        "error": {
            "message": "Organization slug already exists",
            "status": 400,
            "code": "conflict",
            "request_id": "a1b2c3d4"
        }
    }
"""

from typing import Optional

from pydantic import BaseModel, Field


class ErrorBody(BaseModel):
    message: str = Field(description="Human-readable error description")
    status: int = Field(description="HTTP status code")
    code: str = Field(description="Machine-readable error code")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class ErrorResponse(BaseModel):
    """Standardized error response format for all API errors."""
    error: ErrorBody


class SuccessResponse(BaseModel):
    success: bool = True


class HealthResponse(BaseModel):
    """
    Health check response showing service and dependency status.

    The directory is reported as "configured"/"unconfigured" only; the
    health check never spends external API quota.
    """
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    network_directory: str = Field(description="External directory: configured, unconfigured")
    uptime_seconds: float = Field(description="Seconds since service started")
