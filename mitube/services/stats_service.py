"""
mitube.services.stats_service — Stats Aggregator
=================================================

Central write path for channel and video statistics.

Responsibilities:
1. Lazily create one ``stats_records`` row per (subject, kind), seeded from
   the owning video's or user's current denormalized counts.
2. Apply view and subscription events as **atomic** increments: totals via
   ``UPDATE … SET col = col + n`` and daily buckets / demographic tallies via
   ``INSERT … ON CONFLICT DO UPDATE``.  Concurrent events for the same
   subject never overwrite each other's increments.
3. Enforce the daily-bucket retention cap after every bucket write.
4. Cascade video views onto the owning channel (best-effort, see below).
5. Derive the trailing-window channel summary report.

**Cascade semantics:** the channel update triggered by a video view runs
in its own transaction *after* the video update commits.  If it fails the
error is logged and swallowed; the video update is not rolled back and the
caller still gets the video snapshot.

**Subscriber semantics:** ``total_subscribers`` is a snapshot of the user's
subscriber list, while the daily ``subscribers`` bucket counts subscription
events.  Unsubscribes are not reported here, so the two may diverge.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import UTC, date, datetime
from typing import Any

from sqlalchemy import Date, Engine, bindparam, select, text, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from mitube.config import (
    DEFAULT_RETENTION_DAYS,
    DEFAULT_SUMMARY_WINDOW_DAYS,
    DEFAULT_TOP_VIDEOS_LIMIT,
)
from mitube.database.engine import get_session
from mitube.database.models import (
    DemographicDimension,
    StatsDailyBucket,
    StatsDemographic,
    StatsKind,
    StatsRecord,
)
from mitube.engine.stats import (
    BUCKET_FIELDS,
    DailyBucket,
    StatsSnapshot,
    StatsTotals,
    ViewContext,
    build_summary_report,
    today_utc,
)
from mitube.services.catalog_service import (
    find_user,
    find_video,
    find_videos_by_owner,
    subscriber_count,
)
from mitube.services.errors import NotFoundError, PersistenceError
from mitube.services.retention_service import trim_daily_buckets

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Atomic upserts
# ---------------------------------------------------------------------------
_BUCKET_UPSERT = text("""
    INSERT INTO stats_daily_buckets
        (record_id, day, views, likes, dislikes, comments, subscribers)
    VALUES
        (:record_id, :day, :views, :likes, :dislikes, :comments, :subscribers)
    ON CONFLICT (record_id, day) DO UPDATE SET
        views = stats_daily_buckets.views + excluded.views,
        likes = stats_daily_buckets.likes + excluded.likes,
        dislikes = stats_daily_buckets.dislikes + excluded.dislikes,
        comments = stats_daily_buckets.comments + excluded.comments,
        subscribers = stats_daily_buckets.subscribers + excluded.subscribers
""").bindparams(bindparam("day", type_=Date()))

_DEMOGRAPHIC_UPSERT = text("""
    INSERT INTO stats_demographics (record_id, dimension, label, count)
    VALUES (:record_id, :dimension, :label, 1)
    ON CONFLICT (record_id, dimension, label)
    DO UPDATE SET count = stats_demographics.count + 1
""")


def _now() -> datetime:
    return datetime.now(UTC)


@contextmanager
def _stats_session(engine: Engine) -> Iterator[Session]:
    """:func:`get_session` that reports storage failures as PersistenceError."""
    try:
        with get_session(engine) as session:
            yield session
    except SQLAlchemyError as exc:
        raise PersistenceError(f"Stats store operation failed: {exc}") from exc


def _increment_totals(session: Session, record_id: int, **deltas: float) -> None:
    values: dict[str, Any] = {
        name: getattr(StatsRecord, name) + delta
        for name, delta in deltas.items()
        if delta
    }
    values["last_updated"] = _now()
    session.execute(
        update(StatsRecord)
        .where(StatsRecord.id == record_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )


def _bump_bucket(session: Session, record_id: int, day: date, **deltas: int) -> None:
    params: dict[str, Any] = {"record_id": record_id, "day": day}
    for name in BUCKET_FIELDS:
        params[name] = deltas.get(name, 0)
    session.execute(_BUCKET_UPSERT, params)


def _tally_demographics(
    session: Session,
    record_id: int,
    labels: Iterable[tuple[DemographicDimension, str]],
) -> None:
    for dimension, label in labels:
        session.execute(
            _DEMOGRAPHIC_UPSERT,
            {"record_id": record_id, "dimension": dimension.value, "label": label},
        )


# ---------------------------------------------------------------------------
# Record lookup / lazy creation
# ---------------------------------------------------------------------------
def _find_record(session: Session, subject_id: str, kind: StatsKind) -> StatsRecord | None:
    return session.scalar(
        select(StatsRecord).where(
            StatsRecord.subject_id == subject_id,
            StatsRecord.kind == kind.value,
        )
    )


def _seed_values(session: Session, subject_id: str, kind: StatsKind) -> dict[str, int]:
    """Initial totals taken from the subject's denormalized state."""
    if kind is StatsKind.VIDEO:
        video = find_video(session, subject_id)
        return {
            "total_views": video.views or 0,
            "total_likes": len(video.likes or []),
            "total_dislikes": len(video.dislikes or []),
        }
    user = find_user(session, subject_id)
    return {"total_subscribers": subscriber_count(user)}


def get_or_create_record(
    session: Session, subject_id: str, kind: StatsKind | str,
) -> StatsRecord:
    """Return the stats record for (*subject_id*, *kind*), creating it if absent.

    Raises :class:`NotFoundError` when the record is missing and the subject
    itself does not exist.  If a concurrent request inserts the same record
    first, the unique constraint rejects ours and the winner is re-read.
    """
    kind = StatsKind(kind)
    record = _find_record(session, subject_id, kind)
    if record is not None:
        return record

    seed = _seed_values(session, subject_id, kind)
    record = StatsRecord(
        subject_id=subject_id,
        kind=kind.value,
        last_updated=_now(),
        **seed,
    )
    session.add(record)
    try:
        session.flush()
    except IntegrityError:
        session.rollback()
        record = _find_record(session, subject_id, kind)
        if record is None:
            raise
        logger.debug("Stats record %s:%s created concurrently; reusing", kind, subject_id)
        return record

    logger.info("Created %s stats record for %s (seed=%s)", kind, subject_id, seed)
    return record


def _load_snapshot(session: Session, record: StatsRecord) -> StatsSnapshot:
    """Re-read *record* with its buckets and tallies after raw-SQL writes."""
    session.refresh(record)
    buckets = session.scalars(
        select(StatsDailyBucket)
        .where(StatsDailyBucket.record_id == record.id)
        .order_by(StatsDailyBucket.day)
        .execution_options(populate_existing=True)
    ).all()
    tallies = session.scalars(
        select(StatsDemographic)
        .where(StatsDemographic.record_id == record.id)
        .execution_options(populate_existing=True)
    ).all()

    snapshot = StatsSnapshot(
        subject_id=record.subject_id,
        kind=StatsKind(record.kind),
        totals=StatsTotals(
            total_views=record.total_views,
            total_likes=record.total_likes,
            total_dislikes=record.total_dislikes,
            total_comments=record.total_comments,
            total_subscribers=record.total_subscribers,
            watch_time_minutes=record.watch_time_minutes,
            retention_rate=record.retention_rate,
        ),
        daily_buckets=[
            DailyBucket(
                date=b.day,
                views=b.views,
                likes=b.likes,
                dislikes=b.dislikes,
                comments=b.comments,
                subscribers=b.subscribers,
            )
            for b in buckets
        ],
        last_updated=record.last_updated,
    )
    for row in tallies:
        snapshot.demographics.setdefault(row.dimension, {})[row.label] = row.count
    return snapshot


# ---------------------------------------------------------------------------
# Event ingestion
# ---------------------------------------------------------------------------
def record_channel_view(
    engine: Engine,
    channel_id: str,
    day: date | None = None,
    *,
    retention_days: int = DEFAULT_RETENTION_DAYS,
) -> StatsSnapshot:
    """Count one view against the channel *channel_id* on *day*."""
    day = day or today_utc()
    with _stats_session(engine) as session:
        record = get_or_create_record(session, channel_id, StatsKind.CHANNEL)
        _increment_totals(session, record.id, total_views=1)
        _bump_bucket(session, record.id, day, views=1)
        trim_daily_buckets(session, record.id, retention_days)
        snapshot = _load_snapshot(session, record)

    logger.debug("Channel view recorded: channel=%s day=%s", channel_id, day)
    return snapshot


def record_video_view(
    engine: Engine,
    video_id: str,
    view_context: Any = None,
    *,
    today: date | None = None,
    retention_days: int = DEFAULT_RETENTION_DAYS,
) -> StatsSnapshot:
    """Count one view of *video_id* and cascade it onto the owner's channel.

    *view_context* may be a :class:`ViewContext` or raw request data; the
    duration is added to ``watch_time_minutes`` as given, and ``country`` /
    ``device`` labels are tallied when present.

    Raises :class:`NotFoundError` if the video does not exist and
    :class:`PersistenceError` if the video update cannot be stored.
    """
    if not isinstance(view_context, ViewContext):
        view_context = ViewContext.from_payload(view_context)
    day = today or today_utc()

    with _stats_session(engine) as session:
        owner_id = find_video(session, video_id).user_id
        record = get_or_create_record(session, video_id, StatsKind.VIDEO)
        _increment_totals(
            session, record.id,
            total_views=1,
            watch_time_minutes=view_context.duration_seconds,
        )
        _bump_bucket(session, record.id, day, views=1)
        trim_daily_buckets(session, record.id, retention_days)
        _tally_demographics(session, record.id, view_context.demographic_labels())
        snapshot = _load_snapshot(session, record)

    logger.debug(
        "Video view recorded: video=%s day=%s duration=%s",
        video_id, day, view_context.duration_seconds,
    )

    try:
        record_channel_view(engine, owner_id, day, retention_days=retention_days)
    except Exception:
        logger.exception(
            "Channel cascade failed for video %s (channel %s); video stats kept",
            video_id, owner_id,
        )
    return snapshot


def record_subscription_event(
    engine: Engine,
    channel_id: str,
    *,
    today: date | None = None,
    retention_days: int = DEFAULT_RETENTION_DAYS,
) -> StatsSnapshot:
    """Refresh ``total_subscribers`` and count one subscription for today.

    Called after the subscriber has been added to the channel's list.
    """
    day = today or today_utc()
    with _stats_session(engine) as session:
        user = find_user(session, channel_id)
        record = get_or_create_record(session, channel_id, StatsKind.CHANNEL)
        session.execute(
            update(StatsRecord)
            .where(StatsRecord.id == record.id)
            .values(total_subscribers=subscriber_count(user), last_updated=_now())
            .execution_options(synchronize_session=False)
        )
        _bump_bucket(session, record.id, day, subscribers=1)
        trim_daily_buckets(session, record.id, retention_days)
        snapshot = _load_snapshot(session, record)

    logger.info(
        "Subscription recorded: channel=%s total_subscribers=%d",
        channel_id, snapshot.totals.total_subscribers,
    )
    return snapshot


# ---------------------------------------------------------------------------
# Read accessors
# ---------------------------------------------------------------------------
def get_video_stats(engine: Engine, video_id: str) -> StatsSnapshot:
    """Stats for *video_id*, creating the seeded record on first access."""
    with _stats_session(engine) as session:
        record = get_or_create_record(session, video_id, StatsKind.VIDEO)
        return _load_snapshot(session, record)


def get_channel_stats(engine: Engine, channel_id: str) -> StatsSnapshot:
    """Stats for *channel_id*, creating the seeded record on first access."""
    with _stats_session(engine) as session:
        record = get_or_create_record(session, channel_id, StatsKind.CHANNEL)
        return _load_snapshot(session, record)


def get_summary_report(
    engine: Engine,
    channel_id: str,
    window_days: int = DEFAULT_SUMMARY_WINDOW_DAYS,
    *,
    today: date | None = None,
    top_n: int = DEFAULT_TOP_VIDEOS_LIMIT,
) -> dict[str, Any]:
    """Summary report for *channel_id* over the trailing *window_days*.

    Read-only.  Raises :class:`NotFoundError` if the channel has no stats
    record yet.
    """
    day = today or today_utc()
    with _stats_session(engine) as session:
        record = _find_record(session, channel_id, StatsKind.CHANNEL)
        if record is None:
            raise NotFoundError("Channel stats", channel_id)
        snapshot = _load_snapshot(session, record)
        videos = find_videos_by_owner(session, channel_id)
        return build_summary_report(
            snapshot, videos, today=day, window_days=window_days, top_n=top_n,
        )
