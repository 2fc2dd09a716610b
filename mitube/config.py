"""
mitube.config — YAML Configuration Loader
==========================================

Reads ``config.yaml`` for infrastructure and stats tuning values
(API port, retention window, summary window).  Secrets such as
``DATABASE_URL`` and ``JWT_SECRET`` stay in the environment / ``.env``.

Usage::

    from mitube.config import load_config

    cfg = load_config()              # reads ./config.yaml by default
    print(cfg.stats_retention_days)  # 90
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import yaml

DEFAULT_RETENTION_DAYS = 90
DEFAULT_SUMMARY_WINDOW_DAYS = 28
DEFAULT_TOP_VIDEOS_LIMIT = 5


@dataclass(frozen=True, slots=True)
class MiTubeConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # Identity
    app_name: str

    # API
    api_port: int

    # Stats tuning
    stats_retention_days: int = DEFAULT_RETENTION_DAYS
    summary_window_days: int = DEFAULT_SUMMARY_WINDOW_DAYS
    top_videos_limit: int = DEFAULT_TOP_VIDEOS_LIMIT


def _default_path() -> str:
    return os.getenv("MITUBE_CONFIG", "config.yaml")


def load_config(path: str | Path | None = None) -> MiTubeConfig:
    """Read *path* and return a :class:`MiTubeConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.  Defaults to
        ``$MITUBE_CONFIG`` or ``config.yaml`` in the working directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing from the YAML file.
    """
    config_path = Path(path or _default_path())
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    stats: dict = raw.get("stats") or {}
    return MiTubeConfig(
        app_name=raw["app_name"],
        api_port=int(raw["api_port"]),
        stats_retention_days=int(stats.get("retention_days", DEFAULT_RETENTION_DAYS)),
        summary_window_days=int(stats.get("summary_window_days", DEFAULT_SUMMARY_WINDOW_DAYS)),
        top_videos_limit=int(stats.get("top_videos_limit", DEFAULT_TOP_VIDEOS_LIMIT)),
    )
