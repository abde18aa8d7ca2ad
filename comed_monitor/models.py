"""Value types shared by the tracker, the fetcher and the notifiers."""

import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class PriceReading:
    """One (hour, price) sample taken from the hourly pricing table."""
    hour_label: str       # Hour-ending slot, e.g. "2:00 PM" or "14:00"
    raw_display: str      # Price text as shown on the page, e.g. "5.0¢"
    numeric_price: float  # cents/kWh

    def __post_init__(self):
        if not self.hour_label:
            raise ValueError("hour_label must not be empty")
        price = self.numeric_price
        if isinstance(price, bool) or not isinstance(price, (int, float)):
            raise ValueError(f"numeric_price must be a number, got {price!r}")
        if not math.isfinite(price) or price < 0:
            raise ValueError(f"numeric_price must be finite and non-negative, got {price!r}")
        object.__setattr__(self, "numeric_price", float(price))


@dataclass(frozen=True)
class ThresholdConfig:
    """Alert threshold in cents/kWh. Fixed for the life of the process."""
    threshold_cents: float = 1.5

    def __post_init__(self):
        value = self.threshold_cents
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"threshold_cents must be a number, got {value!r}")
        if not math.isfinite(value) or value < 0:
            raise ValueError(f"threshold_cents must be finite and non-negative, got {value!r}")
        object.__setattr__(self, "threshold_cents", float(value))


@dataclass
class AlertState:
    """Per-hour alert state owned by the tracker."""
    hour_label: str
    armed: bool = False
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class AlertEvent:
    """An alert to deliver. Consumed by a notifier and then discarded."""
    hour_label: str
    raw_display: str
    numeric_price: float
    source_url: str
    threshold_cents: float

    @property
    def subject(self) -> str:
        return f"Price Alert: Electricity Price is {self.raw_display}"

    @property
    def body(self) -> str:
        return (
            f"The hourly electricity price for the hour ending {self.hour_label} "
            f"is {self.raw_display} ({self.numeric_price:.1f}¢/kWh), at or above "
            f"your threshold of {self.threshold_cents:.1f}¢/kWh.\n\n"
            f"Source: {self.source_url}\n"
        )


@dataclass
class CycleSummary:
    """Outcome of one poll cycle, for logging."""
    source_url: str = ""
    fetch_ok: bool = True
    fetch_error: Optional[str] = None
    readings: int = 0
    alerts_fired: int = 0
    alerts_sent: int = 0
    dispatch_failures: int = 0
    events: list[AlertEvent] = field(default_factory=list)
