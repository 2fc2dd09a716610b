"""
mitube.__main__ — Entry point for ``python -m mitube``
======================================================

Wiring:
1. Load .env (secrets).
2. Load config.yaml (port, stats tuning).
3. Serve the FastAPI app with uvicorn (blocking); its lifespan creates
   the SQLAlchemy engine and ensures tables exist.
"""

from __future__ import annotations

import logging

import uvicorn
from dotenv import load_dotenv

from mitube.config import load_config

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("mitube")


def main() -> None:
    """Bootstrap and serve the MiTube stats API."""
    load_dotenv()

    cfg = load_config()
    logger.info(
        "Config loaded — %s (retention=%dd, summary window=%dd)",
        cfg.app_name, cfg.stats_retention_days, cfg.summary_window_days,
    )

    # Imported late so JWT_SECRET from .env is visible to mitube.api.deps.
    from mitube.api.main import app

    logger.info("Starting MiTube stats API on port %d…", cfg.api_port)
    uvicorn.run(app, host="0.0.0.0", port=cfg.api_port, log_config=None)


if __name__ == "__main__":
    main()
