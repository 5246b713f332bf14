"""
WifiAtlas Backend — Credential Store
======================================

What:  Creates and reads access points together with their passwords and
       service-block reports.
Why:   Password visibility rules live in exactly one place. Every response
       that may carry a password is built here.
How:   Stateless service; each call receives the AsyncSession (and, where it
       publishes events, the Broadcaster) from the route's dependencies.

Password Visibility:
    A password row is disclosed only when the requester is authenticated AND
    either the row is public (organization_id is null) or it belongs to the
    requester's organization. Otherwise the field is null, never redacted.

Password Rotation:
    ┌──────────────────┐   ┌─────────────────────┐   ┌──────────────────┐
    │ SELECT ... FOR   │──▶│ UPDATE passwords    │──▶│ INSERT new row   │
    │ UPDATE (AP row)  │   │ SET is_current=false│   │ is_current=true  │
    └──────────────────┘   └─────────────────────┘   └──────────────────┘
    All three statements share the request transaction (get_db_session).
    Concurrent rotations serialize on the row lock; a writer that still
    collides on uq_access_point_passwords_current gets ConflictError.
"""

import logging
from typing import Optional
from uuid import UUID

from sqlalchemy import desc, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from wifiatlas.database import dialect_insert
from wifiatlas.exceptions import ConflictError, NotFoundError, ValidationError
from wifiatlas.geo import validate_position
from wifiatlas.models.access_point import AccessPoint, AccessPointPassword, ServiceBlock
from wifiatlas.models.telemetry import Rating, SpeedTest
from wifiatlas.models.user import utcnow
from wifiatlas.schemas.access_point import (
    AccessPointCreate,
    AccessPointDetail,
    AccessPointResponse,
    PasswordRecordResponse,
    QRCodeResponse,
    ServiceBlockResponse,
)
from wifiatlas.schemas.telemetry import RatingResponse, SpeedTestResponse
from wifiatlas.services.broadcaster import Broadcaster

logger = logging.getLogger(__name__)

DETAIL_RATING_LIMIT = 10
DETAIL_SPEED_TEST_LIMIT = 5

# Characters with special meaning inside a WIFI: payload field
_WIFI_SPECIAL_CHARS = ("\\", ";", ",", ":", '"')


def escape_wifi_field(value: str) -> str:
    """Backslash-escape a value for use inside a WIFI: payload."""
    for char in _WIFI_SPECIAL_CHARS:
        value = value.replace(char, "\\" + char)
    return value


def password_visible(
    record: AccessPointPassword,
    requester_org_id: Optional[UUID],
    authenticated: bool,
) -> bool:
    if not authenticated:
        return False
    return record.organization_id is None or record.organization_id == requester_org_id


class CredentialService:
    """
    Access point, password and service-block operations.

    Responsibilities:
        - create_access_point(): insert + optional initial password + broadcast
        - get_access_point(): detail view with visibility-filtered password
        - set_current_password(): atomic rotation
        - upsert_service_block(): report or re-confirm a blocked service
        - connection_payload(): WIFI: string for QR encoders
    """

    async def _require_access_point(
        self,
        db: AsyncSession,
        access_point_id: UUID,
        for_update: bool = False,
    ) -> AccessPoint:
        query = select(AccessPoint).where(AccessPoint.id == access_point_id)
        if for_update:
            query = query.with_for_update()
        result = await db.execute(query)
        access_point = result.scalar_one_or_none()
        if access_point is None:
            raise NotFoundError(resource="access point", resource_id=str(access_point_id))
        return access_point

    async def _current_password(
        self, db: AsyncSession, access_point_id: UUID
    ) -> Optional[AccessPointPassword]:
        result = await db.execute(
            select(AccessPointPassword)
            .where(
                AccessPointPassword.access_point_id == access_point_id,
                AccessPointPassword.is_current.is_(True),
            )
            .order_by(desc(AccessPointPassword.created_at))
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def create_access_point(
        self,
        db: AsyncSession,
        fields: AccessPointCreate,
        creator_id: Optional[UUID],
        org_id: Optional[UUID],
        broadcaster: Optional[Broadcaster] = None,
    ) -> AccessPointResponse:
        """
        Persist a new access point.

        If a password is supplied and the network is not open, an initial
        current password row scoped to `org_id` is written alongside it.
        When `org_id` is set, members of that organization receive a
        `new-access-point` event.

        Raises:
            ValidationError: empty/overlong SSID or out-of-range coordinates
            ConflictError:   same (ssid, bssid, latitude, longitude) exists
        """
        ssid = (fields.ssid or "").strip()
        if not ssid or len(ssid) > 255:
            raise ValidationError("SSID must be 1-255 characters", field="ssid")
        if not validate_position(fields.latitude, fields.longitude):
            raise ValidationError("Invalid coordinates", field="latitude")

        access_point = AccessPoint(
            ssid=ssid,
            bssid=fields.bssid,
            security_type=fields.security_type,
            is_open=fields.is_open,
            requires_login=fields.requires_login,
            latitude=fields.latitude,
            longitude=fields.longitude,
            address=fields.address,
            venue_name=fields.venue_name,
            venue_type=fields.venue_type,
            created_by=creator_id,
            organization_id=org_id,
        )
        db.add(access_point)

        try:
            await db.flush()
            if fields.password and not fields.is_open:
                db.add(
                    AccessPointPassword(
                        access_point_id=access_point.id,
                        password=fields.password,
                        added_by=creator_id,
                        organization_id=org_id,
                        is_current=True,
                    )
                )
                await db.flush()
        except IntegrityError:
            logger.info("Duplicate access point rejected: ssid=%s", ssid)
            raise ConflictError(
                "An access point with this SSID, BSSID and location already exists",
                context={"ssid": ssid},
            )

        response = AccessPointResponse.model_validate(access_point)
        logger.info("Access point %s created by %s", access_point.id, creator_id)

        if org_id is not None and broadcaster is not None:
            await broadcaster.publish(
                org_id, "new-access-point", response.model_dump(mode="json")
            )

        return response

    async def get_access_point(
        self,
        db: AsyncSession,
        access_point_id: UUID,
        requester_org_id: Optional[UUID] = None,
        authenticated: bool = False,
    ) -> AccessPointDetail:
        """
        Detail view: 10 newest ratings, 5 newest speed tests, all service blocks.

        `password` carries the current password only when visible to the
        requester (see module docstring), otherwise null.
        """
        access_point = await self._require_access_point(db, access_point_id)

        ratings = (
            await db.execute(
                select(Rating)
                .where(Rating.access_point_id == access_point_id)
                .order_by(desc(Rating.created_at))
                .limit(DETAIL_RATING_LIMIT)
            )
        ).scalars().all()

        speed_tests = (
            await db.execute(
                select(SpeedTest)
                .where(SpeedTest.access_point_id == access_point_id)
                .order_by(desc(SpeedTest.tested_at))
                .limit(DETAIL_SPEED_TEST_LIMIT)
            )
        ).scalars().all()

        service_blocks = (
            await db.execute(
                select(ServiceBlock)
                .where(ServiceBlock.access_point_id == access_point_id)
                .order_by(ServiceBlock.service_name)
            )
        ).scalars().all()

        password = None
        current = await self._current_password(db, access_point_id)
        if current is not None and password_visible(current, requester_org_id, authenticated):
            password = current.password

        base = AccessPointResponse.model_validate(access_point)
        return AccessPointDetail(
            **base.model_dump(),
            ratings=[RatingResponse.model_validate(r) for r in ratings],
            speed_tests=[SpeedTestResponse.model_validate(s) for s in speed_tests],
            service_blocks=[ServiceBlockResponse.model_validate(b) for b in service_blocks],
            password=password,
        )

    async def set_current_password(
        self,
        db: AsyncSession,
        access_point_id: UUID,
        password: str,
        setter_id: Optional[UUID],
        org_id: Optional[UUID],
    ) -> PasswordRecordResponse:
        """
        Make `password` the single current password of the access point.

        Every earlier password row, in any scope, is demoted to history.

        Raises:
            ValidationError: empty password
            NotFoundError:   unknown access point
            ConflictError:   lost a race with a concurrent rotation
        """
        if not password:
            raise ValidationError("Password is required", field="password")

        # Row lock serializes concurrent rotations of the same access point
        await self._require_access_point(db, access_point_id, for_update=True)

        try:
            await db.execute(
                update(AccessPointPassword)
                .where(
                    AccessPointPassword.access_point_id == access_point_id,
                    AccessPointPassword.is_current.is_(True),
                )
                .values(is_current=False)
                .execution_options(synchronize_session="fetch")
            )
            record = AccessPointPassword(
                access_point_id=access_point_id,
                password=password,
                added_by=setter_id,
                organization_id=org_id,
                is_current=True,
            )
            db.add(record)
            await db.flush()
        except IntegrityError:
            logger.warning("Concurrent password rotation on %s", access_point_id)
            raise ConflictError(
                "The password was changed concurrently, please retry",
                context={"access_point_id": str(access_point_id)},
            )

        logger.info("Password rotated on access point %s by %s", access_point_id, setter_id)
        return PasswordRecordResponse.model_validate(record)

    async def upsert_service_block(
        self,
        db: AsyncSession,
        access_point_id: UUID,
        service_name: str,
        is_blocked: bool,
        reporter_id: Optional[UUID],
    ) -> ServiceBlockResponse:
        """
        Insert a report, or on an existing (access point, service) pair set
        `is_blocked` and increment `verified_count` by one.
        """
        service_name = (service_name or "").strip()
        if not service_name:
            raise ValidationError("Service name is required", field="service_name")

        await self._require_access_point(db, access_point_id)

        insert_stmt = dialect_insert(db, ServiceBlock).values(
            access_point_id=access_point_id,
            service_name=service_name,
            is_blocked=is_blocked,
            reported_by=reporter_id,
        )
        stmt = insert_stmt.on_conflict_do_update(
            index_elements=["access_point_id", "service_name"],
            set_={
                "is_blocked": insert_stmt.excluded.is_blocked,
                "verified_count": ServiceBlock.verified_count + 1,
                "updated_at": utcnow(),
            },
        ).returning(ServiceBlock)

        result = await db.execute(stmt, execution_options={"populate_existing": True})
        block = result.scalar_one()
        return ServiceBlockResponse.model_validate(block)

    async def connection_payload(
        self,
        db: AsyncSession,
        access_point_id: UUID,
        requester_org_id: Optional[UUID] = None,
        authenticated: bool = False,
    ) -> QRCodeResponse:
        """
        Build a `WIFI:T:<type>;S:<ssid>;P:<password>;;` payload.

        Open networks use `T:nopass` with no password. A password the
        requester may not see is left out of the payload.
        """
        access_point = await self._require_access_point(db, access_point_id)
        ssid = escape_wifi_field(access_point.ssid)

        if access_point.is_open:
            return QRCodeResponse(wifi_string=f"WIFI:T:nopass;S:{ssid};;")

        auth_type = escape_wifi_field(access_point.security_type or "WPA")
        current = await self._current_password(db, access_point_id)
        if current is not None and password_visible(current, requester_org_id, authenticated):
            password = escape_wifi_field(current.password)
            return QRCodeResponse(wifi_string=f"WIFI:T:{auth_type};S:{ssid};P:{password};;")

        return QRCodeResponse(wifi_string=f"WIFI:T:{auth_type};S:{ssid};;")


# ── Singleton Instance ────────────────────────────────────────────────────
credential_service = CredentialService()
