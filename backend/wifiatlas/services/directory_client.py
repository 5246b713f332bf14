"""
WifiAtlas Backend — External Network Directory Client
=======================================================

What:  Client for a third-party wardriving directory (WiGLE API v2).
Why:   Lets users seed the map with networks that others have observed,
       instead of only the ones added by hand.
How:   NetworkDirectory is the abstract contract the import service depends
       on; WigleClient implements it over httpx with HTTP basic auth.
Who:   Created once in the application lifespan and injected into routes via
       the get_network_directory dependency; tests inject fakes.

Failure Policy:
    Exactly one attempt per call, bounded by WIGLE_TIMEOUT_SECONDS.
    Every failure mode is classified uniformly as DependencyError:
        - missing credentials
        - connection error / timeout
        - non-2xx status (including 401 from bad credentials)
        - body that is not JSON, or JSON with success != true
        - result rows that cannot be normalized
"""

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from wifiatlas.config import settings
from wifiatlas.exceptions import DependencyError
from wifiatlas.geo import directory_search_box
from wifiatlas.schemas.directory import DirectoryNetwork, DirectorySearchResult

logger = logging.getLogger(__name__)


class NetworkDirectory(ABC):
    """
    Abstract interface for a network-location directory.

    Implementations must raise DependencyError for any failure and must not
    retry.
    """

    @abstractmethod
    async def search_networks(
        self,
        latitude: float,
        longitude: float,
        radius_km: float,
        ssid_filter: Optional[str] = None,
    ) -> DirectorySearchResult:
        """Networks observed within `radius_km` of the point, closest first."""
        ...

    @abstractmethod
    async def site_statistics(self) -> Dict[str, Any]:
        """Directory-wide statistics payload."""
        ...


def ssid_pattern(ssid_filter: str) -> str:
    """
    Translate a user SSID filter into the directory's LIKE pattern.

    "*" and "%" are wildcards; a plain string becomes a substring match.
    """
    if "%" in ssid_filter or "*" in ssid_filter:
        return ssid_filter.replace("*", "%")
    return f"%{ssid_filter}%"


class WigleClient(NetworkDirectory):
    """
    WiGLE API v2 implementation.

    Args:
        base_url:    API root, e.g. https://api.wigle.net/api/v2
        api_id:      API name (basic auth user)
        api_key:     API token (basic auth password)
        timeout:     Seconds for connect + read
        http_client: Pre-built client (tests pass one with MockTransport)
    """

    def __init__(
        self,
        base_url: str,
        api_id: str,
        api_key: str,
        timeout: float,
        results_per_page: int = 100,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.configured = bool(api_id and api_key)
        self.results_per_page = results_per_page
        self._client = http_client or httpx.AsyncClient(
            base_url=base_url,
            auth=(api_id, api_key),
            headers={"Accept": "application/json"},
            timeout=httpx.Timeout(timeout),
        )

    @classmethod
    def from_settings(cls) -> "WigleClient":
        return cls(
            base_url=settings.wigle_api_base_url,
            api_id=settings.wigle_api_id,
            api_key=settings.wigle_api_key,
            timeout=settings.wigle_timeout_seconds,
            results_per_page=settings.wigle_results_per_page,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not self.configured:
            raise DependencyError(
                "Network directory credentials are not configured",
                context={"path": path},
            )

        start = time.perf_counter()
        try:
            response = await self._client.get(path, params=params)
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Directory returned HTTP %d for %s", e.response.status_code, path
            )
            raise DependencyError(
                context={"path": path, "status": e.response.status_code}
            )
        except httpx.HTTPError as e:
            logger.error("Directory request to %s failed: %s", path, type(e).__name__)
            raise DependencyError(context={"path": path, "error_type": type(e).__name__})
        except ValueError:
            logger.error("Directory returned a non-JSON body for %s", path)
            raise DependencyError(context={"path": path, "error_type": "malformed_body"})

        if not isinstance(data, dict) or not data.get("success"):
            logger.error("Directory reported failure for %s", path)
            raise DependencyError("Network directory API error", context={"path": path})

        logger.info(
            "Directory %s answered in %.0fms", path, (time.perf_counter() - start) * 1000
        )
        return data

    async def search_networks(
        self,
        latitude: float,
        longitude: float,
        radius_km: float,
        ssid_filter: Optional[str] = None,
    ) -> DirectorySearchResult:
        params: Dict[str, Any] = {
            "onlymine": "false",
            "freenet": "false",
            "paynet": "false",
            "closestLat": latitude,
            "closestLong": longitude,
            "variance": 0.01,
            "resultsPerPage": self.results_per_page,
            **directory_search_box(latitude, longitude, radius_km),
        }
        if ssid_filter:
            params["ssidlike"] = ssid_pattern(ssid_filter)

        data = await self._get("/network/search", params=params)

        try:
            networks = [self._normalize(row) for row in data.get("results") or []]
        except (PydanticValidationError, AttributeError, KeyError, TypeError) as e:
            logger.error("Directory returned unparseable network rows: %s", e)
            raise DependencyError(context={"error_type": "malformed_results"})

        search_after = data.get("searchAfter")
        return DirectorySearchResult(
            networks=networks,
            total_results=data.get("totalResults"),
            search_after=str(search_after) if search_after is not None else None,
        )

    async def site_statistics(self) -> Dict[str, Any]:
        return await self._get("/stats/site")

    @staticmethod
    def _normalize(row: Dict[str, Any]) -> DirectoryNetwork:
        """Map one WiGLE result row onto DirectoryNetwork."""
        encryption = row.get("encryption")
        return DirectoryNetwork(
            ssid=row.get("ssid") or "",
            bssid=row.get("netid"),
            security_type=encryption,
            is_open=isinstance(encryption, str) and encryption.lower() in ("open", "none"),
            latitude=row["trilat"],
            longitude=row["trilong"],
            last_seen=row.get("lasttime"),
            first_seen=row.get("firsttime"),
            channel=row.get("channel"),
            qos=row.get("qos"),
            manufacturer=row.get("dhcp"),
            accuracy=row.get("accuracy"),
            road=row.get("road"),
            city=row.get("city"),
            region=row.get("region"),
            country=row.get("country"),
        )
