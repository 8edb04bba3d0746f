"""Tests for visit settings."""

import pytest

from site_visits.config import PLACEHOLDER_API_KEY, VisitSettings
from site_visits.exceptions import ConfigError


def test_defaults():
    settings = VisitSettings()
    assert settings.enabled is False
    assert settings.sync_interval == 120.0
    assert settings.max_retries == 3
    assert settings.session_timeout == 1800.0
    assert settings.max_history_records == 100
    assert settings.is_configured is False


def test_default_settings_are_valid():
    assert VisitSettings().validate().is_valid is True


def test_validate_flags_placeholder_credentials():
    result = VisitSettings(enabled=True).validate()
    assert result.is_valid is False
    assert len(result.errors) == 2


def test_validate_flags_short_intervals():
    result = VisitSettings(sync_interval=30, backup_interval=10).validate()
    assert result.is_valid is False
    assert any("Sync interval" in e for e in result.errors)
    assert any("Backup interval" in e for e in result.errors)


def test_is_configured():
    settings = VisitSettings(enabled=True, api_key="k", bin_id="b")
    assert settings.is_configured is True
    assert settings.resource_url == "https://api.jsonbin.io/v3/b/b"
    assert VisitSettings(enabled=False, api_key="k", bin_id="b").is_configured is False
    assert VisitSettings(enabled=True, api_key=PLACEHOLDER_API_KEY, bin_id="b").is_configured is False


def test_json_roundtrip_ignores_unknown_keys():
    settings = VisitSettings(enabled=True, api_key="k", bin_id="b", sync_interval=300.0)
    text = settings.to_json()
    assert VisitSettings.from_json(text) == settings
    assert VisitSettings.from_dict({"bin_id": "x", "theme": "dark"}).bin_id == "x"


def test_from_json_invalid():
    with pytest.raises(ConfigError):
        VisitSettings.from_json("{oops")
    with pytest.raises(ConfigError):
        VisitSettings.from_json("[1, 2]")


def test_from_env():
    settings = VisitSettings.from_env({
        "SITE_VISITS_ENABLED": "true",
        "SITE_VISITS_API_KEY": "key",
        "SITE_VISITS_BIN_ID": "bin",
        "SITE_VISITS_SYNC_INTERVAL": "300",
        "SITE_VISITS_MAX_RETRIES": "5",
    })
    assert settings.is_configured is True
    assert settings.sync_interval == 300.0
    assert settings.max_retries == 5


def test_from_env_reads_os_environ(monkeypatch):
    monkeypatch.setenv("SITE_VISITS_BIN_ID", "from-env")
    assert VisitSettings.from_env().bin_id == "from-env"


def test_from_env_invalid_number():
    with pytest.raises(ConfigError, match="SITE_VISITS_MAX_RETRIES"):
        VisitSettings.from_env({"SITE_VISITS_MAX_RETRIES": "lots"})
