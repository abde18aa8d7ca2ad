"""Tests for the command-line entry point."""

import pytest
import sys
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import run
from comed_monitor.models import CycleSummary


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("PRICE_THRESHOLD", "CHECK_INTERVAL", "EMAIL_USER", "EMAIL_PASS", "EMAIL_TO"):
        monkeypatch.delenv(name, raising=False)


class TestMain:
    def test_bad_threshold_exits_with_config_error(self, monkeypatch):
        monkeypatch.setenv("PRICE_THRESHOLD", "five")
        assert run.main(["--once", "--dry-run"]) == 2

    def test_missing_mail_credentials_refuses_to_start(self):
        assert run.main(["--once"]) == 2

    def test_test_email_without_credentials(self):
        assert run.main(["--test-email"]) == 2

    def test_single_dry_run_cycle(self):
        monitor = MagicMock()
        monitor.trigger = AsyncMock(return_value=CycleSummary(source_url="http://x", readings=3))
        with patch.object(run.PriceMonitor, "from_settings", return_value=monitor) as factory:
            assert run.main(["--once", "--dry-run", "--threshold", "5.0", "--no-playwright"]) == 0

        settings = factory.call_args[0][0]
        assert settings.threshold.threshold_cents == 5.0
        assert factory.call_args[1] == {"dry_run": True, "use_playwright": False}
        monitor.trigger.assert_awaited_once()
