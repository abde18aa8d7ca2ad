"""Configuration settings for the electricity price monitor."""

import math
import os
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from dotenv import load_dotenv

from .errors import ConfigError
from .models import ThresholdConfig

load_dotenv()

# Pricing source
PRICING_PAGE_URL: str = "https://hourlypricing.comed.com/pricing-table-today/"
SOURCE_TIMEZONE: str = "America/Chicago"
HOUR_HEADER_TEXT: str = "Price for the Hour Ending"
PRICE_HEADER_TEXTS: tuple[str, ...] = ("Hourly Price", "¢", "kWh")

# Defaults
DEFAULT_THRESHOLD_CENTS: float = 1.5
DEFAULT_INTERVAL_SECONDS: int = 60 * 60
DEFAULT_SMTP_HOST: str = "smtp.gmail.com"
DEFAULT_SMTP_PORT: int = 587

# HTTP settings
REQUEST_TIMEOUT_SECONDS: int = 30
USER_AGENT: str = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 Chrome/120.0.0.0 Safari/537.36"
)


def now_central() -> datetime:
    """Current time in the pricing source's timezone."""
    return datetime.now(ZoneInfo(SOURCE_TIMEZONE))


def _parse_float(name: str, raw: str) -> float:
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None
    if not math.isfinite(value) or value < 0:
        raise ConfigError(f"{name} must be a finite, non-negative number, got {raw!r}")
    return value


def _parse_int(name: str, raw: str, minimum: int = 0) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {value}")
    return value


@dataclass(frozen=True)
class Settings:
    """Process-wide settings, read once at startup."""
    threshold: ThresholdConfig
    interval_seconds: int = DEFAULT_INTERVAL_SECONDS
    email_user: Optional[str] = None
    email_pass: Optional[str] = None
    email_to: Optional[str] = None
    smtp_host: str = DEFAULT_SMTP_HOST
    smtp_port: int = DEFAULT_SMTP_PORT
    request_timeout: int = REQUEST_TIMEOUT_SECONDS
    fetch_timeout: int = 120
    failure_alert_after: int = 3

    @classmethod
    def from_env(cls, env: Optional[dict] = None) -> "Settings":
        """
        Build settings from environment variables.

        Raises ConfigError for any malformed value. Mail credentials are
        checked separately by require_mail_credentials().
        """
        env = os.environ if env is None else env

        threshold = _parse_float(
            "PRICE_THRESHOLD", env.get("PRICE_THRESHOLD", str(DEFAULT_THRESHOLD_CENTS))
        )
        email_user = env.get("EMAIL_USER") or None

        return cls(
            threshold=ThresholdConfig(threshold),
            interval_seconds=_parse_int(
                "CHECK_INTERVAL", env.get("CHECK_INTERVAL", str(DEFAULT_INTERVAL_SECONDS)), minimum=1
            ),
            email_user=email_user,
            email_pass=env.get("EMAIL_PASS") or None,
            email_to=env.get("EMAIL_TO") or email_user,
            smtp_host=env.get("SMTP_HOST") or DEFAULT_SMTP_HOST,
            smtp_port=_parse_int("SMTP_PORT", env.get("SMTP_PORT", str(DEFAULT_SMTP_PORT)), minimum=1),
            request_timeout=_parse_int(
                "REQUEST_TIMEOUT", env.get("REQUEST_TIMEOUT", str(REQUEST_TIMEOUT_SECONDS)), minimum=1
            ),
            fetch_timeout=_parse_int("FETCH_TIMEOUT", env.get("FETCH_TIMEOUT", "120")),
            failure_alert_after=_parse_int(
                "FAILURE_ALERT_AFTER", env.get("FAILURE_ALERT_AFTER", "3"), minimum=1
            ),
        )

    def with_overrides(
        self,
        threshold: Optional[float] = None,
        interval_seconds: Optional[int] = None,
    ) -> "Settings":
        """Apply command-line overrides, validated like the environment values."""
        settings = self
        if threshold is not None:
            settings = replace(
                settings, threshold=ThresholdConfig(_parse_float("--threshold", str(threshold)))
            )
        if interval_seconds is not None:
            settings = replace(
                settings,
                interval_seconds=_parse_int("--interval", str(interval_seconds), minimum=1),
            )
        return settings

    def require_mail_credentials(self) -> None:
        """Raise ConfigError unless sender, password and recipient are all set."""
        missing = [
            name
            for name, value in (
                ("EMAIL_USER", self.email_user),
                ("EMAIL_PASS", self.email_pass),
                ("EMAIL_TO", self.email_to),
            )
            if not value
        ]
        if missing:
            raise ConfigError(f"Missing mail settings: {', '.join(missing)}")
