"""
WifiAtlas Backend — Proximity Query Service
=============================================

What:  "Which access points are within R km of me?" ordered by distance.
How:   Two stages:
           1. SQL prefilter on idx_access_points_position with a bounding box
              that contains the whole search circle (wifiatlas.geo)
           2. Exact haversine distance in Python, keep distance <= radius,
              sort ascending, cap at NEARBY_RESULT_LIMIT
       Rating aggregates and the has-password flag are fetched in one extra
       query each for the surviving candidates only.

Query plan (stage 1):
    SELECT * FROM access_points
    WHERE latitude BETWEEN :min_lat AND :max_lat
      AND (longitude BETWEEN :lo1 AND :hi1 [OR longitude BETWEEN :lo2 AND :hi2])
    → range scan on the composite (latitude, longitude) index

Results never include password contents, only `has_password`.
"""

import logging
from typing import Dict, List, Tuple
from uuid import UUID

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from wifiatlas.config import settings
from wifiatlas.exceptions import ValidationError
from wifiatlas.geo import bounding_box, haversine_meters, validate_position
from wifiatlas.models.access_point import AccessPoint, AccessPointPassword
from wifiatlas.models.telemetry import Rating
from wifiatlas.schemas.access_point import AccessPointResponse, NearbyAccessPoint

logger = logging.getLogger(__name__)


class ProximityService:

    async def find_nearby(
        self,
        db: AsyncSession,
        latitude: float,
        longitude: float,
        radius_km: float,
    ) -> List[NearbyAccessPoint]:
        """
        Access points within `radius_km` of the point, nearest first.

        Raises:
            ValidationError: coordinates out of range, or radius not in
                             (0, NEARBY_MAX_RADIUS_KM]
        """
        if not validate_position(latitude, longitude):
            raise ValidationError("Invalid coordinates", field="lat")
        if not 0 < radius_km <= settings.nearby_max_radius_km:
            raise ValidationError(
                f"Radius must be greater than 0 and at most {settings.nearby_max_radius_km:g} km",
                field="radius",
            )

        radius_m = radius_km * 1000
        box = bounding_box(latitude, longitude, radius_m)
        longitude_clause = or_(
            *(AccessPoint.longitude.between(low, high) for low, high in box.longitude_ranges)
        )
        result = await db.execute(
            select(AccessPoint).where(
                and_(
                    AccessPoint.latitude.between(box.min_lat, box.max_lat),
                    longitude_clause,
                )
            )
        )
        candidates = result.scalars().all()

        in_range: List[Tuple[float, AccessPoint]] = []
        for access_point in candidates:
            distance = haversine_meters(
                latitude, longitude, access_point.latitude, access_point.longitude
            )
            if distance <= radius_m:
                in_range.append((distance, access_point))

        in_range.sort(key=lambda pair: pair[0])
        in_range = in_range[: settings.nearby_result_limit]

        ids = [access_point.id for _, access_point in in_range]
        ratings = await self._rating_aggregates(db, ids)
        with_password = await self._ids_with_current_password(db, ids)

        logger.debug(
            "Nearby (%.5f, %.5f, %gkm): %d candidates, %d in range",
            latitude, longitude, radius_km, len(candidates), len(in_range),
        )

        nearby = []
        for distance, access_point in in_range:
            avg_rating, rating_count = ratings.get(access_point.id, (0.0, 0))
            nearby.append(
                NearbyAccessPoint(
                    **AccessPointResponse.model_validate(access_point).model_dump(),
                    distance_meters=distance,
                    avg_rating=avg_rating,
                    rating_count=rating_count,
                    has_password=access_point.id in with_password,
                )
            )
        return nearby

    async def _rating_aggregates(
        self, db: AsyncSession, ids: List[UUID]
    ) -> Dict[UUID, Tuple[float, int]]:
        if not ids:
            return {}
        result = await db.execute(
            select(
                Rating.access_point_id,
                func.avg(Rating.overall_rating),
                func.count(Rating.id),
            )
            .where(Rating.access_point_id.in_(ids))
            .group_by(Rating.access_point_id)
        )
        return {
            access_point_id: (float(avg or 0), int(count))
            for access_point_id, avg, count in result.all()
        }

    async def _ids_with_current_password(self, db: AsyncSession, ids: List[UUID]) -> set:
        if not ids:
            return set()
        result = await db.execute(
            select(AccessPointPassword.access_point_id)
            .where(
                AccessPointPassword.access_point_id.in_(ids),
                AccessPointPassword.is_current.is_(True),
            )
            .distinct()
        )
        return set(result.scalars().all())


proximity_service = ProximityService()
