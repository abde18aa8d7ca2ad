"""Hourly electricity price monitor with threshold-crossing email alerts."""

from .errors import ConfigError, DispatchError, FetchError, MonitorError
from .models import AlertEvent, AlertState, CycleSummary, PriceReading, ThresholdConfig
from .monitor import PollCycle, PriceMonitor
from .tracker import AlertStateTracker

__all__ = [
    "AlertEvent",
    "AlertState",
    "AlertStateTracker",
    "ConfigError",
    "CycleSummary",
    "DispatchError",
    "FetchError",
    "MonitorError",
    "PollCycle",
    "PriceMonitor",
    "PriceReading",
    "ThresholdConfig",
]
