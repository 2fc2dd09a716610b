"""Create catalog and stats tables

Revision ID: 5c2e7a10b4d3
Revises:
Create Date: 2026-03-02 10:12:31.418205

"""
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5c2e7a10b4d3"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create users/videos plus the stats record, bucket and tally tables."""

    # --- users ---
    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(50), nullable=False, unique=True),
        sa.Column("subscribers", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )

    # --- videos ---
    op.create_table(
        "videos",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(100), nullable=False),
        sa.Column("views", sa.Integer, server_default="0"),
        sa.Column("likes", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column("dislikes", postgresql.JSONB, nullable=False, server_default="[]"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_videos_user_id", "videos", ["user_id"])
    op.create_index("ix_videos_views", "videos", ["views"])

    # --- stats_records ---
    op.create_table(
        "stats_records",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("subject_id", sa.String(36), nullable=False),
        sa.Column("kind", sa.String(16), nullable=False),
        sa.Column("total_views", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_likes", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_dislikes", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_comments", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_subscribers", sa.Integer, nullable=False, server_default="0"),
        sa.Column("watch_time_minutes", sa.Float, nullable=False, server_default="0"),
        sa.Column("retention_rate", sa.Float, nullable=False, server_default="0"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "last_updated",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("subject_id", "kind", name="uq_stats_records_subject_kind"),
    )

    # --- stats_daily_buckets ---
    op.create_table(
        "stats_daily_buckets",
        sa.Column(
            "record_id",
            sa.Integer,
            sa.ForeignKey("stats_records.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("day", sa.Date, primary_key=True),
        sa.Column("views", sa.Integer, nullable=False, server_default="0"),
        sa.Column("likes", sa.Integer, nullable=False, server_default="0"),
        sa.Column("dislikes", sa.Integer, nullable=False, server_default="0"),
        sa.Column("comments", sa.Integer, nullable=False, server_default="0"),
        sa.Column("subscribers", sa.Integer, nullable=False, server_default="0"),
    )
    op.create_index("ix_stats_daily_buckets_day", "stats_daily_buckets", ["day"])

    # --- stats_demographics ---
    op.create_table(
        "stats_demographics",
        sa.Column(
            "record_id",
            sa.Integer,
            sa.ForeignKey("stats_records.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("dimension", sa.String(16), primary_key=True),
        sa.Column("label", sa.String(64), primary_key=True),
        sa.Column("count", sa.Integer, nullable=False, server_default="0"),
    )


def downgrade() -> None:
    """Drop all MiTube tables."""
    op.drop_table("stats_demographics")
    op.drop_index("ix_stats_daily_buckets_day", table_name="stats_daily_buckets")
    op.drop_table("stats_daily_buckets")
    op.drop_table("stats_records")
    op.drop_index("ix_videos_views", table_name="videos")
    op.drop_index("ix_videos_user_id", table_name="videos")
    op.drop_table("videos")
    op.drop_table("users")
