"""
WifiAtlas Backend — Rating & Speed Test Models
================================================

What:  ORM models for per-user ratings and the speed-test sample log.
Why:   Ratings feed the aggregate shown in proximity results; speed tests
       feed the history statistics on the detail page.

Ratings are one-per-(access point, user) and overwritten on resubmission.
Speed tests are append-only; nothing ever updates or deletes a sample.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import (
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


class Rating(Base):
    __tablename__ = "ratings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    access_point_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("access_points.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    # Scores are 1–5; validated at the schema layer
    overall_rating: Mapped[int] = mapped_column(Integer, nullable=False)
    speed_rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    reliability_rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
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
        UniqueConstraint("access_point_id", "user_id", name="uq_ratings_ap_user"),
        Index("idx_ratings_ap_created", "access_point_id", "created_at"),
    )


class SpeedTest(Base):
    __tablename__ = "speed_tests"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    access_point_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("access_points.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    download_speed: Mapped[float] = mapped_column(Float, nullable=False)  # Mbps
    upload_speed: Mapped[float] = mapped_column(Float, nullable=False)  # Mbps
    ping: Mapped[float] = mapped_column(Float, nullable=False)  # ms
    test_server: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    tested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        Index("idx_speed_tests_ap_tested", "access_point_id", "tested_at"),
    )
