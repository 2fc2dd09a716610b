"""
mitube.api.main — FastAPI application entry point
===================================================

Run with::

    uvicorn mitube.api.main:app --reload --port 8000

or ``python -m mitube`` to use the port from ``config.yaml``.
"""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import Engine

load_dotenv()

from mitube.api.deps import get_engine  # noqa: E402
from mitube.api.routes.stats import router as stats_router  # noqa: E402
from mitube.database.engine import init_db  # noqa: E402
from mitube.services.retention_service import get_retention_stats  # noqa: E402

logger = logging.getLogger(__name__)


def _cors_origins() -> list[str]:
    """Resolve allowed CORS origins from env with safe defaults.

    Priority:
      1) CORS_ALLOW_ORIGINS (comma-separated)
      2) FRONTEND_URL (single origin)
    """
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if raw:
        return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]

    frontend_url = os.getenv("FRONTEND_URL", "").strip()
    if frontend_url:
        return [frontend_url.rstrip("/")]

    return []


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — warm the DB engine and verify tables."""
    engine = get_engine()
    init_db(engine)
    logger.info("MiTube stats API started — engine ready (%s)", engine.url.database)
    yield
    logger.info("MiTube stats API shutting down")


app = FastAPI(
    title="MiTube Stats API",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS — allow the React dev server and production frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(stats_router, prefix="/api")


@app.get("/api/health")
def health():
    return {"status": "ok"}


@app.get("/api/health/stats")
def stats_health(engine: Engine = Depends(get_engine)):
    """Stats-store size figures (records, buckets, bucket date range)."""
    return get_retention_stats(engine)
