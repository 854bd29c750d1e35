"""Tests for environment-driven settings."""

import pytest
from pydantic import ValidationError

from humidor_core.config import Settings, SubscriptionSettings, get_settings, refresh_settings


class TestSubscriptionSettings:
    """Tests for SUBSCRIPTION_* settings."""

    def test_defaults(self, monkeypatch):
        for name in ("APP_ID", "BACKEND", "LOAD_TIMEOUT_SECONDS", "RENEWAL_DAYS", "BILLING_TOKEN"):
            monkeypatch.delenv(f"SUBSCRIPTION_{name}", raising=False)

        settings = SubscriptionSettings()

        assert settings.app_id == "humidor-hub"
        assert settings.backend == "sql"
        assert settings.load_timeout_seconds == 5.0
        assert settings.renewal_days == 30
        assert settings.billing_token == ""

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("SUBSCRIPTION_BACKEND", "memory")
        monkeypatch.setenv("SUBSCRIPTION_RENEWAL_DAYS", "365")

        settings = SubscriptionSettings()

        assert settings.backend == "memory"
        assert settings.renewal_days == 365

    def test_rejects_unknown_backend(self, monkeypatch):
        monkeypatch.setenv("SUBSCRIPTION_BACKEND", "cosmos")

        with pytest.raises(ValidationError):
            SubscriptionSettings()

    def test_rejects_non_positive_timeout(self):
        with pytest.raises(ValidationError):
            SubscriptionSettings(load_timeout_seconds=0)


class TestSettings:
    """Tests for top-level settings helpers."""

    def test_environment_flags(self):
        assert Settings(environment="development").is_development
        assert Settings(environment="production").is_production

    def test_refresh_settings_rereads_environment(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "staging")
        first = refresh_settings()
        monkeypatch.setenv("ENVIRONMENT", "production")

        assert get_settings() is first
        assert refresh_settings().environment == "production"

        get_settings.cache_clear()
