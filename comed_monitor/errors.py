"""Exception types raised by the monitor."""


class MonitorError(Exception):
    """Base class for monitor errors."""


class FetchError(MonitorError):
    """The pricing page or its table could not be retrieved."""

    def __init__(self, message: str, url: str | None = None):
        super().__init__(message)
        self.url = url


class DispatchError(MonitorError):
    """A notification could not be delivered."""


class ConfigError(MonitorError):
    """Startup configuration is missing or malformed. Fatal."""
