"""
mitube.api.routes.stats — Channel & Video Statistics Endpoints
================================================================

Owner-only reads:
    - GET  /stats/channel/{user_id}   — channel record (lazy-created)
    - GET  /stats/video/{video_id}    — video record (lazy-created)
    - GET  /stats/summary             — caller's trailing-window summary

Event ingestion:
    - POST /stats/video/{video_id}/views  — one view, anonymous allowed
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from pydantic import BaseModel
from sqlalchemy import Engine
from sqlalchemy.orm import Session

from mitube.api.deps import get_config, get_current_user_id, get_engine, get_session
from mitube.config import MiTubeConfig
from mitube.services.catalog_service import find_video
from mitube.services.errors import NotFoundError, PersistenceError
from mitube.services.stats_service import (
    get_channel_stats,
    get_summary_report,
    get_video_stats,
    record_video_view,
)

router = APIRouter(prefix="/stats", tags=["stats"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class ViewRecorded(BaseModel):
    videoId: str
    totalViews: int
    watchTimeMinutes: float


def _unavailable(exc: PersistenceError) -> HTTPException:
    return HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, str(exc))


# ---------------------------------------------------------------------------
# GET /stats/channel/{user_id}
# ---------------------------------------------------------------------------
@router.get("/channel/{user_id}")
def channel_stats(
    user_id: str,
    caller_id: str = Depends(get_current_user_id),
    engine: Engine = Depends(get_engine),
):
    """Stats record for the caller's own channel."""
    if caller_id != user_id:
        raise HTTPException(status.HTTP_403_FORBIDDEN, "You can only view your own channel stats")
    try:
        return get_channel_stats(engine, user_id).to_dict()
    except NotFoundError as exc:
        raise HTTPException(404, str(exc))
    except PersistenceError as exc:
        raise _unavailable(exc)


# ---------------------------------------------------------------------------
# GET /stats/video/{video_id}
# ---------------------------------------------------------------------------
@router.get("/video/{video_id}")
def video_stats(
    video_id: str,
    caller_id: str = Depends(get_current_user_id),
    engine: Engine = Depends(get_engine),
    session: Session = Depends(get_session),
):
    """Stats record for one of the caller's videos."""
    try:
        video = find_video(session, video_id)
    except NotFoundError as exc:
        raise HTTPException(404, str(exc))
    if video.user_id != caller_id:
        raise HTTPException(status.HTTP_403_FORBIDDEN, "You can only view stats for your own videos")

    try:
        return get_video_stats(engine, video_id).to_dict()
    except NotFoundError as exc:
        raise HTTPException(404, str(exc))
    except PersistenceError as exc:
        raise _unavailable(exc)


# ---------------------------------------------------------------------------
# GET /stats/summary
# ---------------------------------------------------------------------------
@router.get("/summary")
def stats_summary(
    window_days: int | None = Query(None, ge=1, le=365),
    caller_id: str = Depends(get_current_user_id),
    engine: Engine = Depends(get_engine),
    cfg: MiTubeConfig = Depends(get_config),
):
    """Summary of the caller's channel over the trailing window."""
    try:
        return get_summary_report(
            engine,
            caller_id,
            window_days or cfg.summary_window_days,
            top_n=cfg.top_videos_limit,
        )
    except NotFoundError:
        raise HTTPException(404, "No stats found for this channel")
    except PersistenceError as exc:
        raise _unavailable(exc)


# ---------------------------------------------------------------------------
# POST /stats/video/{video_id}/views
# ---------------------------------------------------------------------------
@router.post(
    "/video/{video_id}/views",
    response_model=ViewRecorded,
    status_code=status.HTTP_201_CREATED,
)
def add_view(
    video_id: str,
    payload: Any = Body(default=None),
    engine: Engine = Depends(get_engine),
    cfg: MiTubeConfig = Depends(get_config),
):
    """Record one view.  Body fields (all optional): ``durationSeconds``,
    ``country``, ``device``.  Any JSON body is accepted; a non-object
    body counts as a view without context."""
    try:
        snapshot = record_video_view(
            engine, video_id, payload, retention_days=cfg.stats_retention_days,
        )
    except NotFoundError as exc:
        raise HTTPException(404, str(exc))
    except PersistenceError as exc:
        raise _unavailable(exc)

    return ViewRecorded(
        videoId=video_id,
        totalViews=snapshot.totals.total_views,
        watchTimeMinutes=snapshot.totals.watch_time_minutes,
    )
