"""
WifiAtlas Backend — External Network Import
=============================================

What:  Pulls networks around a point from the external directory and merges
       them into the access_points table.
How:   One directory call (NetworkDirectory), then one upsert per named
       network keyed by (ssid, bssid, latitude, longitude).

Merge Rules:
    - Networks with an empty name are discarded
    - New networks are inserted with the directory's metadata
    - Known networks only get last_seen / updated_at refreshed; user-entered
      venue, address and security metadata are never overwritten
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from wifiatlas.database import dialect_insert
from wifiatlas.exceptions import ValidationError
from wifiatlas.geo import validate_position
from wifiatlas.models.access_point import AccessPoint
from wifiatlas.models.user import utcnow
from wifiatlas.schemas.directory import DirectorySearchResponse, DirectoryStatistics
from wifiatlas.services.directory_client import NetworkDirectory

logger = logging.getLogger(__name__)

MIN_RADIUS_KM = 0.01
MAX_RADIUS_KM = 10.0


class ImportService:

    async def import_from_external_directory(
        self,
        db: AsyncSession,
        directory: NetworkDirectory,
        latitude: float,
        longitude: float,
        radius_km: float,
        ssid_filter: Optional[str] = None,
        creator_id: Optional[UUID] = None,
        org_id: Optional[UUID] = None,
    ) -> DirectorySearchResponse:
        """
        Search the directory and persist every named network found.

        Raises:
            ValidationError: bad coordinates or radius outside 0.01-10 km
            DependencyError: the directory call failed in any way
        """
        if not validate_position(latitude, longitude):
            raise ValidationError("Invalid coordinates", field="latitude")
        if not MIN_RADIUS_KM <= radius_km <= MAX_RADIUS_KM:
            raise ValidationError("Radius must be between 0.01 and 10 km", field="radius")

        result = await directory.search_networks(latitude, longitude, radius_km, ssid_filter)
        named = [network for network in result.networks if network.ssid.strip()]

        now = utcnow()
        for network in named:
            insert_stmt = dialect_insert(db, AccessPoint).values(
                ssid=network.ssid,
                bssid=network.bssid,
                security_type=network.security_type,
                is_open=network.is_open,
                latitude=network.latitude,
                longitude=network.longitude,
                last_seen=network.last_seen or now,
                created_by=creator_id,
                organization_id=org_id,
            )
            await db.execute(
                insert_stmt.on_conflict_do_update(
                    index_elements=["ssid", "bssid", "latitude", "longitude"],
                    set_={
                        "last_seen": insert_stmt.excluded.last_seen,
                        "updated_at": now,
                    },
                )
            )

        logger.info(
            "Directory import at (%.5f, %.5f, %gkm): %d returned, %d named",
            latitude, longitude, radius_km, len(result.networks), len(named),
        )
        return DirectorySearchResponse(
            count=len(named),
            networks=named,
            total_results=result.total_results,
            search_after=result.search_after,
        )

    async def site_statistics(self, directory: NetworkDirectory) -> DirectoryStatistics:
        return DirectoryStatistics(statistics=await directory.site_statistics())


import_service = ImportService()
