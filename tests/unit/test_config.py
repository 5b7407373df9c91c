"""Tests for viewer configuration."""

from pathlib import Path

import pytest

from log_viewer.config import DEFAULT_PORT, ViewerConfig, default_projects_dir
from log_viewer.monitoring import WatchConfig


@pytest.fixture
def clean_env(monkeypatch):
    for name in (
        "LOG_VIEWER_PROJECTS_DIR",
        "LOG_VIEWER_HOST",
        "LOG_VIEWER_PORT",
        "LOG_VIEWER_LOG_DIR",
        "LOG_LEVEL",
        "LOG_VIEWER_MAX_ENTRIES_PER_EVENT",
        "LOG_VIEWER_BROADCAST_CAPACITY",
        "LOG_VIEWER_RESCAN_INTERVAL",
        "LOG_VIEWER_USE_POLLING",
        "LOG_VIEWER_CORS_ORIGINS",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestViewerConfig:
    def test_defaults(self) -> None:
        config = ViewerConfig()

        assert config.projects_dir == default_projects_dir()
        assert config.projects_dir.parts[-2:] == (".claude", "projects")
        assert config.server_port == DEFAULT_PORT == 2006
        assert config.cors_origins == ["*"]
        assert config.watch == WatchConfig()
        assert config.watch.max_entries_per_event == 10
        assert config.watch.broadcast_capacity == 1000

    def test_from_env_defaults(self, clean_env) -> None:
        config = ViewerConfig.from_env()
        assert config.server_host == "0.0.0.0"
        assert config.server_port == 2006
        assert config.log_level == "INFO"
        assert config.watch.rescan_interval_seconds == 5.0
        assert config.watch.use_polling is False

    def test_from_env_overrides(self, clean_env, tmp_path: Path) -> None:
        clean_env.setenv("LOG_VIEWER_PROJECTS_DIR", str(tmp_path))
        clean_env.setenv("LOG_VIEWER_PORT", "8080")
        clean_env.setenv("LOG_VIEWER_LOG_DIR", "")
        clean_env.setenv("LOG_LEVEL", "DEBUG")
        clean_env.setenv("LOG_VIEWER_MAX_ENTRIES_PER_EVENT", "3")
        clean_env.setenv("LOG_VIEWER_RESCAN_INTERVAL", "0")
        clean_env.setenv("LOG_VIEWER_USE_POLLING", "yes")
        clean_env.setenv("LOG_VIEWER_CORS_ORIGINS", "http://a.test, http://b.test")

        config = ViewerConfig.from_env()

        assert config.projects_dir == tmp_path
        assert config.server_port == 8080
        assert config.log_dir is None
        assert config.log_level == "DEBUG"
        assert config.watch.max_entries_per_event == 3
        assert config.watch.rescan_interval_seconds == 0
        assert config.watch.use_polling is True
        assert config.cors_origins == ["http://a.test", "http://b.test"]

    def test_to_dict(self, tmp_path: Path) -> None:
        config = ViewerConfig(projects_dir=tmp_path, server_port=9000)
        data = config.to_dict()

        assert data["projects_dir"] == str(tmp_path)
        assert data["server_port"] == 9000
        assert data["watch"]["extension"] == ".jsonl"
        assert data["watch"]["max_entries_per_event"] == 10
