"""Tests for environment-driven settings."""

from __future__ import annotations

from cardioguard.core.config.settings import get_settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("CARDIOGUARD_HOST", raising=False)
    settings = get_settings()
    assert settings.cardioguard_host == "127.0.0.1"
    assert settings.scoring_window_days == 30
    assert settings.live_hr_max_age_minutes == 30
    assert settings.sync_metric_limit == 500
    assert settings.encryption_key == ""


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("SCORING_WINDOW_DAYS", "14")
    monkeypatch.setenv("SYNC_METRIC_LIMIT", "100")
    monkeypatch.setenv("CARDIOGUARD_PORT", "9100")
    settings = get_settings()
    assert settings.scoring_window_days == 14
    assert settings.sync_metric_limit == 100
    assert settings.cardioguard_port == 9100
