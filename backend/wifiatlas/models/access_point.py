"""
WifiAtlas Backend — Access Point Models
=========================================

What:  ORM models for access points and the data hanging off them:
       passwords, service blocks and user favourites.
Why:   These tables form the credential store queried by the map, the
       detail page and the proximity search.

Table Design Rationale:
    - latitude/longitude are plain floats with a composite index. The
      proximity search prefilters on this index with a bounding box and
      computes exact great-circle distance in Python (see wifiatlas.geo).
    - (ssid, bssid, latitude, longitude) is unique so that re-importing the
      same network from the external directory updates one row.
    - At most one current password per access point is enforced by a partial
      unique index, which turns a racing second rotation into an
      IntegrityError instead of two current rows.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from wifiatlas.database import Base
from wifiatlas.models.user import utcnow


class AccessPoint(Base):
    """
    A WiFi network entry with location and credential metadata.

    Rows come from two sources: users adding a network by hand, and the
    external directory import (which sets `last_seen`).
    """

    __tablename__ = "access_points"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    ssid: Mapped[str] = mapped_column(String(255), nullable=False)
    bssid: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    # ── Security metadata ─────────────────────────────────────────────────
    security_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    is_open: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    requires_login: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )

    # ── Position ──────────────────────────────────────────────────────────
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)

    # ── Venue ─────────────────────────────────────────────────────────────
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    venue_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    venue_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    # ── Ownership & scope ─────────────────────────────────────────────────
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    organization_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True, index=True
    )

    last_seen: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    is_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        UniqueConstraint(
            "ssid", "bssid", "latitude", "longitude", name="uq_access_points_identity"
        ),
        Index("idx_access_points_position", "latitude", "longitude"),
    )

    def __repr__(self) -> str:
        return f"<AccessPoint(id={self.id}, ssid='{self.ssid}')>"


class AccessPointPassword(Base):
    """
    A password for an access point, current or historical.

    Visibility: returned to a requester only if `organization_id` is null
    (public) or equals the requester's organization.
    """

    __tablename__ = "access_point_passwords"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    access_point_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("access_points.id", ondelete="CASCADE"), nullable=False
    )
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    added_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    organization_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("organizations.id", ondelete="SET NULL"), nullable=True
    )
    is_current: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_access_point_passwords_ap", "access_point_id"),
        Index(
            "uq_access_point_passwords_current",
            "access_point_id",
            unique=True,
            postgresql_where=text("is_current"),
            sqlite_where=text("is_current = 1"),
        ),
    )


class ServiceBlock(Base):
    """
    A crowd-sourced report that a service is (un)reachable on a network.

    `service_name` is free text, including synthetic "Website: <domain>"
    entries. Repeat reports on the same pair bump `verified_count`.
    """

    __tablename__ = "service_blocks"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    access_point_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("access_points.id", ondelete="CASCADE"), nullable=False
    )
    service_name: Mapped[str] = mapped_column(String(255), nullable=False)
    is_blocked: Mapped[bool] = mapped_column(Boolean, nullable=False)
    verified_count: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1, server_default=text("1")
    )
    reported_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        UniqueConstraint("access_point_id", "service_name", name="uq_service_blocks_ap_service"),
    )


class UserFavorite(Base):
    """Join row marking an access point as a user's favourite."""

    __tablename__ = "user_favorites"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    access_point_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("access_points.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        UniqueConstraint("user_id", "access_point_id", name="uq_user_favorites_pair"),
    )
