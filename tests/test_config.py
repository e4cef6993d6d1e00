"""Tests for environment-driven engine settings."""

import pytest
from pydantic import ValidationError

from tasknotify.config import Settings, get_settings


class TestSettingsFromEnvironment:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("DELIVERY_DRY_RUN", raising=False)
        monkeypatch.delenv("DISPATCH_BATCH_SIZE", raising=False)
        monkeypatch.delenv("RETENTION_DAYS", raising=False)
        settings = Settings(_env_file=None)
        assert settings.delivery_dry_run is True
        assert settings.dispatch_batch_size == 100
        assert settings.retention_days == 30

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("DISPATCH_BATCH_SIZE", "25")
        monkeypatch.setenv("DELIVERY_DRY_RUN", "false")
        monkeypatch.setenv("DAPR_ENABLED", "1")
        monkeypatch.setenv("PROVIDER_TIMEOUT_SECONDS", "2.5")

        settings = Settings(_env_file=None)
        assert settings.dispatch_batch_size == 25
        assert settings.delivery_dry_run is False
        assert settings.dapr_enabled is True
        assert settings.provider_timeout_seconds == 2.5

    def test_misspelled_boolean_is_rejected(self, monkeypatch):
        monkeypatch.setenv("DELIVERY_DRY_RUN", "ture")
        with pytest.raises(ValidationError) as exc_info:
            Settings(_env_file=None)
        assert "delivery_dry_run" in str(exc_info.value)

    @pytest.mark.parametrize("name, value", [
        ("DISPATCH_BATCH_SIZE", "abc"),
        ("DISPATCH_BATCH_SIZE", "0"),
        ("DAILY_SUMMARY_HOUR", "24"),
    ])
    def test_invalid_numbers_are_rejected(self, monkeypatch, name, value):
        monkeypatch.setenv(name, value)
        with pytest.raises(ValidationError) as exc_info:
            Settings(_env_file=None)
        assert name.lower() in str(exc_info.value)

    def test_reads_env_file(self, monkeypatch, tmp_path):
        monkeypatch.delenv("RETENTION_DAYS", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("RETENTION_DAYS=7\n")
        assert Settings(_env_file=env_file).retention_days == 7

    def test_get_settings_is_cached(self):
        get_settings.cache_clear()
        try:
            assert get_settings() is get_settings()
        finally:
            get_settings.cache_clear()
