"""
WifiAtlas Backend — User Views
================================

What:  Per-user favourites, recent activity feed and profile.
Who:   Called by the /api/user routes; every call is scoped to the
       authenticated user.
"""

import logging
from datetime import datetime, timezone
from typing import List
from uuid import UUID

from sqlalchemy import delete, desc, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from wifiatlas.exceptions import ConflictError, NotFoundError, ValidationError
from wifiatlas.models.access_point import AccessPoint, UserFavorite
from wifiatlas.models.telemetry import Rating, SpeedTest
from wifiatlas.models.user import User
from wifiatlas.schemas.access_point import AccessPointResponse
from wifiatlas.schemas.auth import ActivityItem, ProfileResponse, ProfileStats, UserResponse

logger = logging.getLogger(__name__)

ACTIVITY_PER_KIND = 5
ACTIVITY_LIMIT = 10


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything we store is UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class UserService:

    async def _get_user(self, db: AsyncSession, user_id: UUID) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))
        return user

    # ── Favourites ────────────────────────────────────────────────────────

    async def list_favorites(self, db: AsyncSession, user_id: UUID) -> List[AccessPointResponse]:
        result = await db.execute(
            select(AccessPoint)
            .join(UserFavorite, UserFavorite.access_point_id == AccessPoint.id)
            .where(UserFavorite.user_id == user_id)
            .order_by(desc(UserFavorite.created_at))
        )
        return [AccessPointResponse.model_validate(ap) for ap in result.scalars().all()]

    async def add_favorite(self, db: AsyncSession, user_id: UUID, access_point_id: UUID) -> None:
        """
        Raises:
            NotFoundError: unknown access point
            ConflictError: already a favourite
        """
        if await db.get(AccessPoint, access_point_id) is None:
            raise NotFoundError(resource="access point", resource_id=str(access_point_id))

        existing = await db.execute(
            select(UserFavorite.id).where(
                UserFavorite.user_id == user_id,
                UserFavorite.access_point_id == access_point_id,
            )
        )
        if existing.first() is not None:
            raise ConflictError("Already in favorites")

        db.add(UserFavorite(user_id=user_id, access_point_id=access_point_id))
        try:
            await db.flush()
        except IntegrityError:
            raise ConflictError("Already in favorites")

    async def remove_favorite(self, db: AsyncSession, user_id: UUID, access_point_id: UUID) -> None:
        await db.execute(
            delete(UserFavorite).where(
                UserFavorite.user_id == user_id,
                UserFavorite.access_point_id == access_point_id,
            )
        )

    # ── Activity ──────────────────────────────────────────────────────────

    async def recent_activity(self, db: AsyncSession, user_id: UUID) -> List[ActivityItem]:
        """
        The user's latest additions, ratings and speed tests merged into one
        feed, newest first, at most ACTIVITY_LIMIT entries.
        """
        items: List[ActivityItem] = []

        added = await db.execute(
            select(AccessPoint.ssid, AccessPoint.created_at)
            .where(AccessPoint.created_by == user_id)
            .order_by(desc(AccessPoint.created_at))
            .limit(ACTIVITY_PER_KIND)
        )
        for ssid, created_at in added.all():
            items.append(
                ActivityItem(
                    type="access_point_added",
                    description=f"Added {ssid}",
                    created_at=_as_utc(created_at),
                )
            )

        rated = await db.execute(
            select(AccessPoint.ssid, Rating.overall_rating, Rating.created_at)
            .join(AccessPoint, AccessPoint.id == Rating.access_point_id)
            .where(Rating.user_id == user_id)
            .order_by(desc(Rating.created_at))
            .limit(ACTIVITY_PER_KIND)
        )
        for ssid, overall, created_at in rated.all():
            items.append(
                ActivityItem(
                    type="rating_added",
                    description=f"Rated {ssid} {overall}/5",
                    created_at=_as_utc(created_at),
                )
            )

        tested = await db.execute(
            select(AccessPoint.ssid, SpeedTest.download_speed, SpeedTest.tested_at)
            .join(AccessPoint, AccessPoint.id == SpeedTest.access_point_id)
            .where(SpeedTest.user_id == user_id)
            .order_by(desc(SpeedTest.tested_at))
            .limit(ACTIVITY_PER_KIND)
        )
        for ssid, download, tested_at in tested.all():
            items.append(
                ActivityItem(
                    type="speed_test",
                    description=f"Speed test on {ssid}: {download:.1f} Mbps",
                    created_at=_as_utc(tested_at),
                )
            )

        items.sort(key=lambda item: item.created_at, reverse=True)
        return items[:ACTIVITY_LIMIT]

    # ── Profile ───────────────────────────────────────────────────────────

    async def profile(self, db: AsyncSession, user_id: UUID) -> ProfileResponse:
        user = await self._get_user(db, user_id)

        async def count(column, condition) -> int:
            return await db.scalar(select(func.count(column)).where(condition)) or 0

        stats = ProfileStats(
            access_points_added=await count(AccessPoint.id, AccessPoint.created_by == user_id),
            ratings_given=await count(Rating.id, Rating.user_id == user_id),
            speed_tests_run=await count(SpeedTest.id, SpeedTest.user_id == user_id),
            favorites=await count(UserFavorite.id, UserFavorite.user_id == user_id),
        )
        return ProfileResponse(
            **UserResponse.model_validate(user).model_dump(),
            created_at=user.created_at,
            stats=stats,
        )

    async def update_username(self, db: AsyncSession, user_id: UUID, username: str) -> UserResponse:
        """
        Raises:
            ValidationError: blank username
            ConflictError:   username taken by another user
        """
        username = (username or "").strip()
        if not username:
            raise ValidationError("Username is required", field="username")

        taken = await db.execute(
            select(User.id).where(User.username == username, User.id != user_id)
        )
        if taken.first() is not None:
            raise ConflictError("Username already taken", context={"username": username})

        user = await self._get_user(db, user_id)
        user.username = username
        await db.flush()
        logger.info("User %s changed username", user_id)
        return UserResponse.model_validate(user)


user_service = UserService()
