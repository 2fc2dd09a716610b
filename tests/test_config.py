"""
tests/test_config.py — YAML Configuration Loader Tests
=======================================================
"""

from __future__ import annotations

import pytest

from mitube.config import (
    DEFAULT_RETENTION_DAYS,
    DEFAULT_SUMMARY_WINDOW_DAYS,
    DEFAULT_TOP_VIDEOS_LIMIT,
    load_config,
)


def _write(tmp_path, body: str):
    path = tmp_path / "config.yaml"
    path.write_text(body, encoding="utf-8")
    return path


class TestLoadConfig:
    def test_minimal_file_uses_stats_defaults(self, tmp_path):
        cfg = load_config(_write(tmp_path, "app_name: MiTube\napi_port: 8000\n"))

        assert cfg.app_name == "MiTube"
        assert cfg.api_port == 8000
        assert cfg.stats_retention_days == DEFAULT_RETENTION_DAYS
        assert cfg.summary_window_days == DEFAULT_SUMMARY_WINDOW_DAYS
        assert cfg.top_videos_limit == DEFAULT_TOP_VIDEOS_LIMIT

    def test_stats_section_overrides(self, tmp_path):
        cfg = load_config(_write(tmp_path, (
            "app_name: MiTube\n"
            "api_port: '9000'\n"
            "stats:\n"
            "  retention_days: 30\n"
            "  summary_window_days: 7\n"
            "  top_videos_limit: 10\n"
        )))

        assert cfg.api_port == 9000
        assert cfg.stats_retention_days == 30
        assert cfg.summary_window_days == 7
        assert cfg.top_videos_limit == 10

    def test_env_var_selects_file(self, tmp_path, monkeypatch):
        path = _write(tmp_path, "app_name: FromEnv\napi_port: 8001\n")
        monkeypatch.setenv("MITUBE_CONFIG", str(path))
        assert load_config().app_name == "FromEnv"

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="config.yaml.example"):
            load_config(tmp_path / "nope.yaml")

    def test_missing_required_key_raises(self, tmp_path):
        with pytest.raises(KeyError):
            load_config(_write(tmp_path, "app_name: MiTube\n"))

    def test_config_is_frozen(self, tmp_path):
        cfg = load_config(_write(tmp_path, "app_name: MiTube\napi_port: 8000\n"))
        with pytest.raises(AttributeError):
            cfg.api_port = 1
