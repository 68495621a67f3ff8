"""
Tests for application settings.
"""

import pytest

from stripe_integration.config import Settings, get_settings, settings
from stripe_integration.exceptions import ConfigurationError


class TestSettings:
    """Tests for Settings defaults and fail-fast validation."""

    def test_defaults(self):
        config = Settings(_env_file=None)
        assert config.stripe_api_version is None
        assert config.webhook_path == "/v1/webhooks/stripe"
        assert config.tracing_enabled is False

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("STRIPE_SECRET_KEY", "sk_test_env")
        monkeypatch.setenv("STRIPE_API_VERSION", "2024-06-20")
        config = Settings(_env_file=None)
        assert config.stripe_secret_key == "sk_test_env"
        assert config.stripe_api_version == "2024-06-20"

    def test_invalid_log_format(self, capsys):
        with pytest.raises(ConfigurationError, match="LOG_FORMAT"):
            Settings(_env_file=None, log_format="xml")
        assert "CRITICAL CONFIGURATION ERROR" in capsys.readouterr().err

    def test_invalid_log_level(self):
        with pytest.raises(ConfigurationError, match="LOG_LEVEL"):
            Settings(_env_file=None, log_level="verbose")

    def test_webhook_path_must_be_absolute(self):
        with pytest.raises(ConfigurationError, match="WEBHOOK_PATH"):
            Settings(_env_file=None, webhook_path="webhooks")

    def test_get_settings_returns_global(self):
        assert get_settings() is settings
