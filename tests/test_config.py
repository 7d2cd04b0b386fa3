from datetime import timedelta

import pytest

from httpstat.config import get_settings


def test_defaults() -> None:
    settings = get_settings()
    assert settings.namespace == ""
    assert settings.history_enabled is False
    assert settings.enable_stats_endpoint is True

    opts = settings.history_options()
    assert opts.enabled is False
    assert opts.sample_interval == timedelta(seconds=5)
    assert opts.retention_window == timedelta(minutes=5)


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HTTPSTAT_NAMESPACE", "Edge")
    monkeypatch.setenv("HTTPSTAT_HISTORY_ENABLED", "1")
    monkeypatch.setenv("HTTPSTAT_SAMPLE_INTERVAL_S", "2")
    monkeypatch.setenv("HTTPSTAT_RETENTION_WINDOW_S", "20")
    monkeypatch.setenv("HTTPSTAT_EXCLUDED_PATHS", '["/healthz"]')
    get_settings.cache_clear()

    settings = get_settings()
    assert settings.namespace == "Edge"
    assert settings.excluded_paths == ["/healthz"]

    opts = settings.history_options().normalized()
    assert opts.enabled is True
    assert opts.sample_interval == timedelta(seconds=5)
    assert opts.retention_window == timedelta(seconds=20)


def test_history_log_level_is_optional(monkeypatch: pytest.MonkeyPatch) -> None:
    assert get_settings().history_log_level is None

    monkeypatch.setenv("HTTPSTAT_HISTORY_LOG_LEVEL", "warning")
    get_settings.cache_clear()

    assert get_settings().history_log_level == "warning"
