"""
mitube.database.models — SQLAlchemy 2.0 Data Models
====================================================

Tables:
- users                — Channel owners; ``subscribers`` is the authoritative list
- videos               — Uploaded videos with denormalized view / like state
- stats_records        — One row per (subject, kind): cumulative totals
- stats_daily_buckets  — One row per (record, calendar day): daily deltas
- stats_demographics   — One row per (record, dimension, label): running tally
"""

from __future__ import annotations

import enum
from datetime import date, datetime

from sqlalchemy import (
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all MiTube ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class StatsKind(enum.StrEnum):
    """What a stats record tracks."""
    CHANNEL = "channel"
    VIDEO = "video"


class DemographicDimension(enum.StrEnum):
    """Demographic breakdowns kept per stats record.

    Only ``countries`` and ``devices`` are fed by current view events;
    the age/gender dimensions are reserved.
    """
    AGE_RANGES = "ageRanges"
    GENDERS = "genders"
    COUNTRIES = "countries"
    DEVICES = "devices"


# ---------------------------------------------------------------------------
# Users — channel owners
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    # User ids subscribed to this channel
    subscribers: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    videos: Mapped[list[Video]] = relationship(
        back_populates="owner", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} name={self.name!r} subs={len(self.subscribers or [])}>"


# ---------------------------------------------------------------------------
# Videos
# ---------------------------------------------------------------------------
class Video(Base):
    __tablename__ = "videos"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    views: Mapped[int] = mapped_column(Integer, default=0)
    # User ids who liked / disliked
    likes: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    dislikes: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    owner: Mapped[User] = relationship(back_populates="videos")

    __table_args__ = (
        Index("ix_videos_user_id", "user_id"),
        Index("ix_videos_views", "views"),
    )

    def __repr__(self) -> str:
        return f"<Video id={self.id} title={self.title!r} views={self.views}>"


# ---------------------------------------------------------------------------
# StatsRecord — cumulative totals per (subject, kind)
# ---------------------------------------------------------------------------
class StatsRecord(Base):
    """Cumulative counters for a channel or a video.

    Totals only ever grow through atomic ``col = col + n`` updates and are
    independent from the bucket window: trimming buckets never touches them.
    """
    __tablename__ = "stats_records"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    subject_id: Mapped[str] = mapped_column(String(36), nullable=False)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    total_views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_likes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_dislikes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_comments: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_subscribers: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    watch_time_minutes: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    # Average viewer retention percentage; no event feeds it yet
    retention_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    last_updated: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("subject_id", "kind", name="uq_stats_records_subject_kind"),
    )

    def __repr__(self) -> str:
        return (
            f"<StatsRecord id={self.id} {self.kind}:{self.subject_id} "
            f"views={self.total_views}>"
        )


# ---------------------------------------------------------------------------
# StatsDailyBucket — one calendar day's deltas
# ---------------------------------------------------------------------------
class StatsDailyBucket(Base):
    """Per-day deltas for a stats record.

    The composite primary key guarantees one bucket per date; increments
    go through ``INSERT … ON CONFLICT DO UPDATE``.
    """
    __tablename__ = "stats_daily_buckets"

    record_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("stats_records.id", ondelete="CASCADE"), primary_key=True
    )
    day: Mapped[date] = mapped_column(Date, primary_key=True)
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    likes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    dislikes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    comments: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    subscribers: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("ix_stats_daily_buckets_day", "day"),
    )

    def __repr__(self) -> str:
        return f"<StatsDailyBucket record={self.record_id} day={self.day} views={self.views}>"


# ---------------------------------------------------------------------------
# StatsDemographic — label tallies per dimension
# ---------------------------------------------------------------------------
class StatsDemographic(Base):
    __tablename__ = "stats_demographics"

    record_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("stats_records.id", ondelete="CASCADE"), primary_key=True
    )
    dimension: Mapped[str] = mapped_column(String(16), primary_key=True)
    label: Mapped[str] = mapped_column(String(64), primary_key=True)
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return (
            f"<StatsDemographic record={self.record_id} "
            f"{self.dimension}[{self.label!r}]={self.count}>"
        )
