"""
mitube.services.retention_service — Daily Bucket Retention
===========================================================

Each stats record keeps at most ``retention_days`` daily buckets (90 by
default).  The cap is enforced inline right after a bucket insert rather
than by a periodic sweep, so a record never holds more than the cap once
its write transaction commits.

Trimming only removes buckets.  Cumulative totals on ``stats_records``
are left untouched.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, delete, func, select
from sqlalchemy.orm import Session

from mitube.config import DEFAULT_RETENTION_DAYS
from mitube.database.engine import get_session
from mitube.database.models import StatsDailyBucket, StatsRecord

logger = logging.getLogger(__name__)


def trim_daily_buckets(
    session: Session,
    record_id: int,
    retention_days: int = DEFAULT_RETENTION_DAYS,
) -> int:
    """Drop the oldest buckets of *record_id* beyond ``retention_days``.

    Runs inside the caller's transaction.  Returns the number of buckets
    removed.
    """
    bucket_count = session.scalar(
        select(func.count())
        .select_from(StatsDailyBucket)
        .where(StatsDailyBucket.record_id == record_id)
    ) or 0
    if bucket_count <= retention_days:
        return 0

    keep = (
        select(StatsDailyBucket.day)
        .where(StatsDailyBucket.record_id == record_id)
        .order_by(StatsDailyBucket.day.desc())
        .limit(retention_days)
    )
    result = session.execute(
        delete(StatsDailyBucket)
        .where(
            StatsDailyBucket.record_id == record_id,
            StatsDailyBucket.day.not_in(keep),
        )
        .execution_options(synchronize_session=False)
    )
    removed = result.rowcount or 0
    logger.info(
        "Retention: trimmed %d bucket(s) from stats record %d (cap=%d)",
        removed, record_id, retention_days,
    )
    return removed


def get_retention_stats(engine: Engine) -> dict:
    """Return stats-store size figures for the health endpoint."""
    with get_session(engine) as session:
        total_records = session.scalar(
            select(func.count()).select_from(StatsRecord)
        ) or 0
        total_buckets = session.scalar(
            select(func.count()).select_from(StatsDailyBucket)
        ) or 0
        oldest_bucket = session.scalar(select(func.min(StatsDailyBucket.day)))
        newest_bucket = session.scalar(select(func.max(StatsDailyBucket.day)))

    return {
        "total_records": total_records,
        "total_buckets": total_buckets,
        "oldest_bucket": oldest_bucket.isoformat() if oldest_bucket else None,
        "newest_bucket": newest_bucket.isoformat() if newest_bucket else None,
    }
