"""
WifiAtlas Backend — Organization Membership Service
=====================================================

What:  Create, join and leave organizations; resolve a user's visibility
       scope; list an organization's access points.
Why:   A user's organization decides which passwords they can see and which
       broadcast channel they receive. A user belongs to at most one.

Visibility scope is always read from the users table, never from the token:
a user who has just left an organization must stop seeing its passwords even
though their token still carries the old org_id claim.
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import desc, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from wifiatlas.exceptions import ConflictError, ForbiddenError, NotFoundError
from wifiatlas.models.access_point import AccessPoint
from wifiatlas.models.user import Organization, User
from wifiatlas.schemas.access_point import AccessPointResponse
from wifiatlas.schemas.organization import OrganizationResponse, OrganizationSummary

logger = logging.getLogger(__name__)


class OrganizationService:

    async def _get_by_slug(self, db: AsyncSession, slug: str) -> Optional[Organization]:
        result = await db.execute(select(Organization).where(Organization.slug == slug))
        return result.scalar_one_or_none()

    async def _get_user(self, db: AsyncSession, user_id: UUID) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFoundError(resource="user", resource_id=str(user_id))
        return user

    async def create_organization(
        self,
        db: AsyncSession,
        name: str,
        slug: str,
        founder_id: UUID,
    ) -> OrganizationResponse:
        """
        Create an organization and make the founder its first member.

        Both writes share the request transaction.

        Raises:
            ConflictError: slug already taken
        """
        if await self._get_by_slug(db, slug) is not None:
            raise ConflictError("Organization slug already exists", context={"slug": slug})

        organization = Organization(name=name, slug=slug)
        db.add(organization)
        try:
            await db.flush()
        except IntegrityError:
            raise ConflictError("Organization slug already exists", context={"slug": slug})

        founder = await self._get_user(db, founder_id)
        founder.organization_id = organization.id
        await db.flush()

        logger.info("Organization %s (%s) created by %s", organization.id, slug, founder_id)
        return OrganizationResponse.model_validate(organization)

    async def join_by_slug(self, db: AsyncSession, user_id: UUID, slug: str) -> OrganizationResponse:
        organization = await self._get_by_slug(db, slug)
        if organization is None:
            raise NotFoundError(resource="organization", resource_id=slug)

        user = await self._get_user(db, user_id)
        user.organization_id = organization.id
        await db.flush()

        logger.info("User %s joined organization %s", user_id, slug)
        return OrganizationResponse.model_validate(organization)

    async def leave(self, db: AsyncSession, user_id: UUID) -> None:
        user = await self._get_user(db, user_id)
        user.organization_id = None
        await db.flush()
        logger.info("User %s left their organization", user_id)

    async def resolve_visibility_scope(self, db: AsyncSession, user_id: UUID) -> Optional[UUID]:
        """The user's current organization id, or None."""
        result = await db.execute(select(User.organization_id).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def my_organization(
        self, db: AsyncSession, org_id: Optional[UUID]
    ) -> Optional[OrganizationSummary]:
        """The caller's organization with member and access-point counts."""
        if org_id is None:
            return None
        organization = await db.get(Organization, org_id)
        if organization is None:
            return None

        member_count = await db.scalar(
            select(func.count(User.id)).where(User.organization_id == org_id)
        )
        access_point_count = await db.scalar(
            select(func.count(AccessPoint.id)).where(AccessPoint.organization_id == org_id)
        )
        return OrganizationSummary(
            **OrganizationResponse.model_validate(organization).model_dump(),
            member_count=member_count or 0,
            access_point_count=access_point_count or 0,
        )

    async def list_organization_access_points(
        self,
        db: AsyncSession,
        slug: str,
        caller_org_id: Optional[UUID],
    ) -> List[AccessPointResponse]:
        """
        Access points scoped to the organization, newest first.

        Raises:
            NotFoundError:  unknown slug
            ForbiddenError: caller is not a member
        """
        organization = await self._get_by_slug(db, slug)
        if organization is None:
            raise NotFoundError(resource="organization", resource_id=slug)
        if caller_org_id != organization.id:
            raise ForbiddenError(context={"slug": slug})

        result = await db.execute(
            select(AccessPoint)
            .where(AccessPoint.organization_id == organization.id)
            .order_by(desc(AccessPoint.created_at))
        )
        return [AccessPointResponse.model_validate(ap) for ap in result.scalars().all()]


organization_service = OrganizationService()
