"""
mitube.engine.stats — Stats value types and report derivation
==============================================================

Pure, database-free half of the stats subsystem:

* :class:`ViewContext` — permissive normalization of view-event metadata.
* :class:`DailyBucket`, :class:`StatsTotals`, :class:`StatsSnapshot` — the
  read model handed back to callers (JSON-ready via ``to_dict``).
* :func:`filter_window`, :func:`period_totals`, :func:`build_summary_report`
  — the trailing-window channel summary.

Every counter is a required number defaulting to 0, so readers never need
presence checks.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from typing import Any, Protocol

from mitube.database.models import DemographicDimension, StatsKind

__all__ = [
    "BUCKET_FIELDS",
    "DailyBucket",
    "PeriodTotals",
    "StatsSnapshot",
    "StatsTotals",
    "ViewContext",
    "build_summary_report",
    "filter_window",
    "period_totals",
    "today_utc",
]

BUCKET_FIELDS: tuple[str, ...] = ("views", "likes", "dislikes", "comments", "subscribers")

_MAX_LABEL_LEN = 64


def today_utc() -> date:
    """The calendar day events are bucketed under."""
    return datetime.now(UTC).date()


# ---------------------------------------------------------------------------
# View context — permissive metadata normalization
# ---------------------------------------------------------------------------
def _coerce_duration(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(number) or number < 0:
        return 0.0
    return number


def _clean_label(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    label = value.strip()
    # Never truncate: a shared prefix would merge distinct labels.
    if not label or len(label) > _MAX_LABEL_LEN:
        return None
    return label


@dataclass(frozen=True, slots=True)
class ViewContext:
    """Metadata attached to a single view event."""

    duration_seconds: float = 0.0
    country: str | None = None
    device: str | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> ViewContext:
        """Build a context from loosely-typed request data.

        Malformed input never fails.  A non-object payload yields the empty
        context, bad durations become 0, and blank, over-long (> 64 chars)
        or non-string labels are dropped.
        """
        if not isinstance(payload, dict):
            return cls()
        duration = payload.get("durationSeconds")
        if duration is None:
            duration = payload.get("duration_seconds", payload.get("duration"))
        return cls(
            duration_seconds=_coerce_duration(duration),
            country=_clean_label(payload.get("country")),
            device=_clean_label(payload.get("device")),
        )

    def demographic_labels(self) -> list[tuple[DemographicDimension, str]]:
        """(dimension, label) pairs to tally for this view."""
        labels: list[tuple[DemographicDimension, str]] = []
        if self.country:
            labels.append((DemographicDimension.COUNTRIES, self.country))
        if self.device:
            labels.append((DemographicDimension.DEVICES, self.device))
        return labels


# ---------------------------------------------------------------------------
# Read model
# ---------------------------------------------------------------------------
@dataclass(slots=True)
class DailyBucket:
    date: date
    views: int = 0
    likes: int = 0
    dislikes: int = 0
    comments: int = 0
    subscribers: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "views": self.views,
            "likes": self.likes,
            "dislikes": self.dislikes,
            "comments": self.comments,
            "subscribers": self.subscribers,
        }


@dataclass(slots=True)
class StatsTotals:
    total_views: int = 0
    total_likes: int = 0
    total_dislikes: int = 0
    total_comments: int = 0
    total_subscribers: int = 0
    watch_time_minutes: float = 0.0
    retention_rate: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalViews": self.total_views,
            "totalLikes": self.total_likes,
            "totalDislikes": self.total_dislikes,
            "totalComments": self.total_comments,
            "totalSubscribers": self.total_subscribers,
            "watchTimeMinutes": self.watch_time_minutes,
            "retentionRate": self.retention_rate,
        }


def _empty_demographics() -> dict[str, dict[str, int]]:
    return {dim.value: {} for dim in DemographicDimension}


@dataclass(slots=True)
class StatsSnapshot:
    """Point-in-time view of one stats record with its buckets and tallies."""

    subject_id: str
    kind: StatsKind
    totals: StatsTotals = field(default_factory=StatsTotals)
    daily_buckets: list[DailyBucket] = field(default_factory=list)
    demographics: dict[str, dict[str, int]] = field(default_factory=_empty_demographics)
    last_updated: datetime | None = None

    def bucket_for(self, day: date) -> DailyBucket | None:
        for bucket in self.daily_buckets:
            if bucket.date == day:
                return bucket
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "subjectId": self.subject_id,
            "kind": str(self.kind),
            "totals": self.totals.to_dict(),
            "dailyBuckets": [b.to_dict() for b in self.daily_buckets],
            "demographics": {dim: dict(counts) for dim, counts in self.demographics.items()},
            "lastUpdated": self.last_updated.isoformat() if self.last_updated else None,
        }


# ---------------------------------------------------------------------------
# Summary report
# ---------------------------------------------------------------------------
class VideoLike(Protocol):
    """Shape of the video rows the summary reads (ORM ``Video`` fits)."""
    id: str
    title: str
    views: int
    likes: list


@dataclass(slots=True)
class PeriodTotals:
    views: int = 0
    likes: int = 0
    subscribers: int = 0
    comments: int = 0


def filter_window(
    buckets: Iterable[DailyBucket], today: date, window_days: int,
) -> list[DailyBucket]:
    """Buckets dated on or after ``today - window_days``, oldest first."""
    start = today - timedelta(days=window_days)
    return sorted((b for b in buckets if b.date >= start), key=lambda b: b.date)


def period_totals(buckets: Iterable[DailyBucket]) -> PeriodTotals:
    totals = PeriodTotals()
    for bucket in buckets:
        totals.views += bucket.views
        totals.likes += bucket.likes
        totals.subscribers += bucket.subscribers
        totals.comments += bucket.comments
    return totals


def _like_count(video: VideoLike) -> int:
    return len(video.likes or [])


def build_summary_report(
    channel: StatsSnapshot,
    videos: Sequence[VideoLike],
    *,
    today: date,
    window_days: int,
    top_n: int = 5,
) -> dict[str, Any]:
    """Derive the creator-dashboard summary for one channel.

    *videos* must be in retrieval order; ``mostViewedVideos`` uses a stable
    sort so equal view counts keep that order.
    """
    recent = filter_window(channel.daily_buckets, today, window_days)
    gained = period_totals(recent)

    video_count = len(videos)
    total_video_views = sum(v.views or 0 for v in videos)
    total_likes = sum(_like_count(v) for v in videos)
    avg_views = total_video_views / video_count if video_count else 0
    avg_likes = total_likes / video_count if video_count else 0

    most_viewed = sorted(videos, key=lambda v: v.views or 0, reverse=True)[:top_n]

    return {
        "channelStats": {
            "totalSubscribers": channel.totals.total_subscribers,
            "totalViews": channel.totals.total_views,
            "subscribersGained": gained.subscribers,
            "viewsGained": gained.views,
        },
        "videoStats": {
            "totalVideos": video_count,
            "totalVideoViews": total_video_views,
            "avgViewsPerVideo": avg_views,
            "avgLikesPerVideo": avg_likes,
            "mostViewedVideos": [
                {
                    "id": v.id,
                    "title": v.title,
                    "views": v.views or 0,
                    "likes": _like_count(v),
                }
                for v in most_viewed
            ],
        },
        "recentTrends": {
            "dailyData": [
                {"date": b.date.isoformat(), "views": b.views, "subscribers": b.subscribers}
                for b in recent
            ],
        },
    }
