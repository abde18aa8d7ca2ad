"""Tests for settings loading."""

import pytest
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from comed_monitor.config import Settings
from comed_monitor.errors import ConfigError

MAIL_ENV = {"EMAIL_USER": "me@example.com", "EMAIL_PASS": "app-password"}


class TestSettingsFromEnv:
    """Tests for environment parsing."""

    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings.threshold.threshold_cents == 1.5
        assert settings.interval_seconds == 3600
        assert settings.smtp_host == "smtp.gmail.com"
        assert settings.smtp_port == 587
        assert settings.fetch_timeout == 120
        assert settings.email_user is None

    def test_reads_values(self):
        settings = Settings.from_env({**MAIL_ENV, "PRICE_THRESHOLD": "5.0", "CHECK_INTERVAL": "1800"})
        assert settings.threshold.threshold_cents == 5.0
        assert settings.interval_seconds == 1800
        assert settings.email_to == "me@example.com"

    def test_explicit_recipient(self):
        settings = Settings.from_env({**MAIL_ENV, "EMAIL_TO": "alerts@example.com"})
        assert settings.email_to == "alerts@example.com"

    @pytest.mark.parametrize("value", ["abc", "nan", "inf", "-1"])
    def test_bad_threshold(self, value):
        with pytest.raises(ConfigError):
            Settings.from_env({"PRICE_THRESHOLD": value})

    @pytest.mark.parametrize("value", ["0", "-5", "hourly"])
    def test_bad_interval(self, value):
        with pytest.raises(ConfigError):
            Settings.from_env({"CHECK_INTERVAL": value})


class TestOverrides:
    def test_cli_overrides(self):
        settings = Settings.from_env({}).with_overrides(threshold=5.0, interval_seconds=60)
        assert settings.threshold.threshold_cents == 5.0
        assert settings.interval_seconds == 60

    def test_none_keeps_env(self):
        settings = Settings.from_env({"PRICE_THRESHOLD": "2.5"}).with_overrides()
        assert settings.threshold.threshold_cents == 2.5

    def test_invalid_override(self):
        with pytest.raises(ConfigError):
            Settings.from_env({}).with_overrides(threshold=float("nan"))


class TestMailCredentials:
    def test_missing_credentials(self):
        with pytest.raises(ConfigError, match="EMAIL_PASS"):
            Settings.from_env({"EMAIL_USER": "me@example.com"}).require_mail_credentials()

    def test_complete_credentials(self):
        Settings.from_env(MAIL_ENV).require_mail_credentials()
