"""
WifiAtlas Backend — Network Directory Schemas
===============================================

What:  Search request and normalized result models for the external
       wardriving directory (WiGLE).
Why:   The directory's field names (netid, trilat, trilong, ...) are mapped
       once, in the client, into DirectoryNetwork; nothing else in the
       codebase sees the raw payload.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class DirectorySearchRequest(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    radius: float = Field(default=1.0, ge=0.01, le=10, description="Kilometers")
    ssid: Optional[str] = Field(
        default=None,
        max_length=255,
        description="Substring match, or a pattern using * / % wildcards",
    )


class DirectoryNetwork(BaseModel):
    ssid: str = ""
    bssid: Optional[str] = None
    security_type: Optional[str] = None
    is_open: bool = False
    latitude: float
    longitude: float
    last_seen: Optional[datetime] = None
    first_seen: Optional[datetime] = None
    channel: Optional[int] = None
    qos: Optional[int] = None
    manufacturer: Optional[str] = None
    accuracy: Optional[float] = None
    road: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    country: Optional[str] = None


class DirectorySearchResult(BaseModel):
    """Parsed directory page, before anything is persisted."""
    networks: List[DirectoryNetwork]
    total_results: Optional[int] = None
    search_after: Optional[str] = None


class DirectorySearchResponse(BaseModel):
    success: bool = True
    count: int = Field(description="Number of named networks imported")
    networks: List[DirectoryNetwork]
    total_results: Optional[int] = None
    search_after: Optional[str] = None


class DirectoryStatistics(BaseModel):
    """Passthrough of the directory's site statistics payload."""
    statistics: Dict[str, Any]
