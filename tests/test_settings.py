import logging

import pytest
import pytz

from task_analytics.settings import AnalyticsSettings, resolve_timezone

ENV_NAMES = (
    "AI_TIME_SAVINGS_RATE",
    "HOURLY_RATE",
    "MODEL_BASE_EFFICIENCY",
    "COMPLETED_STATUS",
    "TIMEZONE",
    "MARKET_COUNTRIES",
    "CACHE_TTL_SECONDS",
    "CACHE_MAX_SIZE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ENV_NAMES:
        monkeypatch.delenv(f"TASKBOARD_{name}", raising=False)


def test_defaults_without_environment():
    settings = AnalyticsSettings.from_env()
    assert settings == AnalyticsSettings()
    assert settings.ai_time_savings_rate == 0.3
    assert settings.market_countries == ("at", "it", "gr", "fr")


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("TASKBOARD_HOURLY_RATE", "80")
    monkeypatch.setenv("TASKBOARD_COMPLETED_STATUS", "done")
    monkeypatch.setenv("TASKBOARD_MARKET_COUNTRIES", "de, AT ,")
    monkeypatch.setenv("TASKBOARD_TIMEZONE", "Europe/Rome")
    monkeypatch.setenv("TASKBOARD_CACHE_MAX_SIZE", "5")

    settings = AnalyticsSettings.from_env()

    assert settings.hourly_rate == 80.0
    assert settings.completed_status == "done"
    assert settings.market_countries == ("de", "at")
    assert settings.timezone == "Europe/Rome"
    assert settings.tzinfo.zone == "Europe/Rome"
    assert settings.cache_max_size == 5


def test_invalid_values_keep_defaults(monkeypatch, caplog):
    monkeypatch.setenv("TASKBOARD_HOURLY_RATE", "lots")
    monkeypatch.setenv("TASKBOARD_CACHE_MAX_SIZE", "0")
    monkeypatch.setenv("TASKBOARD_AI_TIME_SAVINGS_RATE", "-1")

    with caplog.at_level(logging.WARNING, logger="task_analytics.settings"):
        settings = AnalyticsSettings.from_env()

    assert settings.hourly_rate == 50.0
    assert settings.cache_max_size == 30
    assert settings.ai_time_savings_rate == 0.3
    assert "TASKBOARD_HOURLY_RATE" in caplog.text


def test_unknown_timezone_falls_back_to_utc(monkeypatch):
    monkeypatch.setenv("TASKBOARD_TIMEZONE", "Mars/Olympus_Mons")
    settings = AnalyticsSettings.from_env()
    assert settings.timezone == "UTC"
    assert settings.tzinfo is pytz.utc
    assert resolve_timezone(None) is pytz.utc


def test_settings_are_frozen():
    settings = AnalyticsSettings()
    with pytest.raises(AttributeError):
        settings.hourly_rate = 1
