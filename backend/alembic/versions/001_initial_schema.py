"""Create the initial WifiAtlas schema

Revision ID: 001
Revises: None
Create Date: 2024-01-15 00:00:00.000000+00:00

What:  organizations, users, access_points, access_point_passwords,
       service_blocks, ratings, speed_tests, user_favorites.
How:   PostgreSQL: UUID keys defaulting to gen_random_uuid(), TIMESTAMP WITH
       TIME ZONE, and a partial unique index that allows at most one current
       password per access point.

Rollback: downgrade() drops every table (destructive).
"""

from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=True),
        server_default=sa.text("gen_random_uuid()"),
        primary_key=True,
    )


def _timestamp(name: str) -> sa.Column:
    return sa.Column(
        name,
        sa.DateTime(timezone=True),
        server_default=sa.text("CURRENT_TIMESTAMP"),
        nullable=False,
    )


def _fk(name: str, target: str, ondelete: str, nullable: bool = True) -> sa.Column:
    return sa.Column(
        name,
        postgresql.UUID(as_uuid=True),
        sa.ForeignKey(target, ondelete=ondelete),
        nullable=nullable,
    )


def upgrade() -> None:
    op.create_table(
        "organizations",
        _id(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False, unique=True),
        _timestamp("created_at"),
    )

    op.create_table(
        "users",
        _id(),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("username", sa.String(100), nullable=False, unique=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        _fk("organization_id", "organizations.id", "SET NULL"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("ix_users_organization_id", "users", ["organization_id"])

    op.create_table(
        "access_points",
        _id(),
        sa.Column("ssid", sa.String(255), nullable=False),
        sa.Column("bssid", sa.String(64), nullable=True),
        sa.Column("security_type", sa.String(50), nullable=True),
        sa.Column("is_open", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("requires_login", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("venue_name", sa.String(255), nullable=True),
        sa.Column("venue_type", sa.String(100), nullable=True),
        _fk("created_by", "users.id", "SET NULL"),
        _fk("organization_id", "organizations.id", "SET NULL"),
        sa.Column("last_seen", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.UniqueConstraint(
            "ssid", "bssid", "latitude", "longitude", name="uq_access_points_identity"
        ),
    )
    op.create_index("idx_access_points_position", "access_points", ["latitude", "longitude"])
    op.create_index("ix_access_points_created_by", "access_points", ["created_by"])
    op.create_index("ix_access_points_organization_id", "access_points", ["organization_id"])

    op.create_table(
        "access_point_passwords",
        _id(),
        _fk("access_point_id", "access_points.id", "CASCADE", nullable=False),
        sa.Column("password", sa.String(255), nullable=False),
        _fk("added_by", "users.id", "SET NULL"),
        _fk("organization_id", "organizations.id", "SET NULL"),
        sa.Column("is_current", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        _timestamp("created_at"),
    )
    op.create_index("idx_access_point_passwords_ap", "access_point_passwords", ["access_point_id"])
    op.create_index(
        "uq_access_point_passwords_current",
        "access_point_passwords",
        ["access_point_id"],
        unique=True,
        postgresql_where=sa.text("is_current"),
    )

    op.create_table(
        "service_blocks",
        _id(),
        _fk("access_point_id", "access_points.id", "CASCADE", nullable=False),
        sa.Column("service_name", sa.String(255), nullable=False),
        sa.Column("is_blocked", sa.Boolean(), nullable=False),
        sa.Column("verified_count", sa.Integer(), nullable=False, server_default=sa.text("1")),
        _fk("reported_by", "users.id", "SET NULL"),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.UniqueConstraint(
            "access_point_id", "service_name", name="uq_service_blocks_ap_service"
        ),
    )

    op.create_table(
        "ratings",
        _id(),
        _fk("access_point_id", "access_points.id", "CASCADE", nullable=False),
        _fk("user_id", "users.id", "CASCADE", nullable=False),
        sa.Column("overall_rating", sa.Integer(), nullable=False),
        sa.Column("speed_rating", sa.Integer(), nullable=True),
        sa.Column("reliability_rating", sa.Integer(), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.UniqueConstraint("access_point_id", "user_id", name="uq_ratings_ap_user"),
    )
    op.create_index("idx_ratings_ap_created", "ratings", ["access_point_id", "created_at"])

    op.create_table(
        "speed_tests",
        _id(),
        _fk("access_point_id", "access_points.id", "CASCADE", nullable=False),
        _fk("user_id", "users.id", "SET NULL"),
        sa.Column("download_speed", sa.Float(), nullable=False),
        sa.Column("upload_speed", sa.Float(), nullable=False),
        sa.Column("ping", sa.Float(), nullable=False),
        sa.Column("test_server", sa.String(255), nullable=True),
        _timestamp("tested_at"),
    )
    op.create_index("idx_speed_tests_ap_tested", "speed_tests", ["access_point_id", "tested_at"])

    op.create_table(
        "user_favorites",
        _id(),
        _fk("user_id", "users.id", "CASCADE", nullable=False),
        _fk("access_point_id", "access_points.id", "CASCADE", nullable=False),
        _timestamp("created_at"),
        sa.UniqueConstraint("user_id", "access_point_id", name="uq_user_favorites_pair"),
    )


def downgrade() -> None:
    op.drop_table("user_favorites")
    op.drop_table("speed_tests")
    op.drop_table("ratings")
    op.drop_table("service_blocks")
    op.drop_table("access_point_passwords")
    op.drop_table("access_points")
    op.drop_table("users")
    op.drop_table("organizations")
