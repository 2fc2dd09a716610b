"""
mitube.services.catalog_service — Video & User Lookups
=======================================================

Read-only access to the catalog tables the stats subsystem seeds from.
All helpers take an open :class:`Session` so they join the caller's
transaction.
"""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from mitube.database.models import User, Video
from mitube.services.errors import NotFoundError


def find_video(session: Session, video_id: str) -> Video:
    """Return the video with *video_id* or raise :class:`NotFoundError`."""
    video = session.get(Video, video_id)
    if video is None:
        raise NotFoundError("Video", video_id)
    return video


def find_user(session: Session, user_id: str) -> User:
    """Return the user with *user_id* or raise :class:`NotFoundError`."""
    user = session.get(User, user_id)
    if user is None:
        raise NotFoundError("User", user_id)
    return user


def find_videos_by_owner(session: Session, user_id: str) -> list[Video]:
    """All videos uploaded by *user_id*, oldest upload first."""
    return list(session.scalars(
        select(Video)
        .where(Video.user_id == user_id)
        .order_by(Video.created_at, Video.id)
    ).all())


def subscriber_count(user: User) -> int:
    return len(user.subscribers or [])
