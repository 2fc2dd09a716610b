"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of mitube.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

from datetime import UTC, datetime, timedelta  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402

# ---------------------------------------------------------------------------
# Make JSONB columns work in SQLite for testing.
# SQLite doesn't support JSONB natively, but SQLAlchemy's JSON type works.
# We register a custom type compiler so SQLite renders JSONB as TEXT.
# ---------------------------------------------------------------------------
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from mitube.config import MiTubeConfig  # noqa: E402
from mitube.database.models import Base, User, Video  # noqa: E402

_jsonb_sqlite_registered = False


def _register_jsonb_sqlite_compat():
    """Register SQLite compilation for PG JSONB type (idempotent)."""
    global _jsonb_sqlite_registered
    if _jsonb_sqlite_registered:
        return
    from sqlalchemy.ext.compiler import compiles

    @compiles(PG_JSONB, "sqlite")
    def _compile_jsonb_as_text(type_, compiler, **kw):
        return "TEXT"

    _jsonb_sqlite_registered = True


_register_jsonb_sqlite_compat()

_VIDEO_EPOCH = datetime(2026, 1, 1, tzinfo=UTC)


@pytest.fixture
def db_engine() -> Engine:
    """Create an in-memory SQLite engine with all MiTube tables.

    Uses StaticPool so every session (and the TestClient's worker thread)
    shares the same in-memory database.
    """
    from sqlalchemy.pool import StaticPool

    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


@pytest.fixture
def test_config() -> MiTubeConfig:
    return MiTubeConfig(app_name="MiTube Test", api_port=8000)


# ---------------------------------------------------------------------------
# Catalog factories
# ---------------------------------------------------------------------------
def add_user(engine: Engine, user_id: str, subscribers: list[str] | None = None) -> None:
    with Session(engine) as s:
        s.add(User(id=user_id, name=f"user-{user_id}", subscribers=list(subscribers or [])))
        s.commit()


def add_video(
    engine: Engine,
    video_id: str,
    owner_id: str,
    *,
    views: int = 0,
    likes: list[str] | None = None,
    dislikes: list[str] | None = None,
    title: str | None = None,
    upload_index: int = 0,
) -> None:
    """Insert a video; *upload_index* orders uploads deterministically."""
    with Session(engine) as s:
        s.add(Video(
            id=video_id,
            user_id=owner_id,
            title=title or f"Video {video_id}",
            views=views,
            likes=list(likes or []),
            dislikes=list(dislikes or []),
            created_at=_VIDEO_EPOCH + timedelta(minutes=upload_index),
        ))
        s.commit()


def set_subscribers(engine: Engine, user_id: str, subscribers: list[str]) -> None:
    with Session(engine) as s:
        user = s.get(User, user_id)
        user.subscribers = list(subscribers)
        s.commit()


# ---------------------------------------------------------------------------
# Auth helpers
# ---------------------------------------------------------------------------
def make_token(sub: str = "user-1") -> str:
    """Create a user JWT.  Usable as both a fixture helper and a factory."""
    import jwt

    from mitube.api.deps import JWT_ALGORITHM, JWT_SECRET

    return jwt.encode({"sub": sub}, JWT_SECRET, algorithm=JWT_ALGORITHM)


def auth(sub: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(sub)}"}


@pytest.fixture
def client(db_engine: Engine, test_config: MiTubeConfig):
    """FastAPI TestClient bound to the in-memory engine."""
    from fastapi.testclient import TestClient

    from mitube.api import main as main_mod
    from mitube.api.routes import stats as stats_routes

    app = main_mod.app
    app.dependency_overrides[stats_routes.get_engine] = lambda: db_engine
    app.dependency_overrides[main_mod.get_engine] = lambda: db_engine
    app.dependency_overrides[stats_routes.get_config] = lambda: test_config
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()
