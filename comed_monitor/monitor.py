"""Poll cycle orchestration and the scheduled monitor loop."""

import asyncio
import logging
import re
from datetime import datetime
from typing import Awaitable, Callable

from .config import Settings, now_central
from .errors import FetchError
from .extractor import FetchResult, PriceTableFetcher
from .models import CycleSummary, PriceReading, ThresholdConfig
from .notifier import EmailNotifier, LogNotifier, Notifier
from .tracker import AlertStateTracker

logger = logging.getLogger(__name__)

FetchFn = Callable[[], Awaitable[FetchResult]]

HOUR_PATTERN = re.compile(r"(\d{1,2}):(\d{2})\s*([AaPp])?\.?\s*[Mm]?\.?")


def hour_sort_key(label: str) -> tuple[int, int]:
    """
    Sort key for hour-ending labels such as '2:00 PM' or '14:00'.

    Midnight sorts last because it ends the final hour of the day.
    Unrecognized labels sort after all others.
    """
    match = HOUR_PATTERN.search(label)
    if not match:
        return (1, 0)
    hour, minute = int(match.group(1)), int(match.group(2))
    meridiem = (match.group(3) or "").lower()
    if meridiem:
        hour = hour % 12 + (12 if meridiem == "p" else 0)
    minutes = hour * 60 + minute
    if minutes == 0:
        minutes = 24 * 60
    return (0, minutes)


def order_readings(readings: list[PriceReading]) -> list[PriceReading]:
    """Ascending hour order. Readings for the same hour keep their received order."""
    return sorted(readings, key=lambda r: hour_sort_key(r.hour_label))


class PollCycle:
    """One fetch, evaluate-all, dispatch-all pass."""

    def __init__(
        self,
        fetch: FetchFn,
        tracker: AlertStateTracker,
        config: ThresholdConfig,
        notifier: Notifier,
        fetch_timeout: float = 0,
    ):
        self.fetch = fetch
        self.tracker = tracker
        self.config = config
        self.notifier = notifier
        # Only the fetch is time-limited; sends are bounded by the SMTP timeout.
        self.fetch_timeout = fetch_timeout

    async def _fetch_with_timeout(self) -> FetchResult:
        if not self.fetch_timeout:
            return await self.fetch()
        return await asyncio.wait_for(self.fetch(), timeout=self.fetch_timeout)

    async def run_once(self) -> CycleSummary:
        """
        Run a single cycle. Never raises for fetch or dispatch failures.

        Returns summary statistics.
        """
        summary = CycleSummary()

        try:
            result = await self._fetch_with_timeout()
        except asyncio.TimeoutError:
            summary.fetch_ok = False
            summary.fetch_error = f"fetch timed out after {self.fetch_timeout}s"
            logger.error(f"Error fetching price table: {summary.fetch_error}")
            return summary
        except FetchError as e:
            summary.fetch_ok = False
            summary.fetch_error = str(e)
            summary.source_url = e.url or ""
            logger.error(f"Error fetching price table: {e}")
            return summary
        except Exception as e:
            summary.fetch_ok = False
            summary.fetch_error = str(e)
            logger.error(f"Unexpected error fetching price table: {e!r}")
            return summary

        summary.source_url = result.url
        summary.readings = len(result.readings)

        if not result.readings:
            if result.table_found:
                logger.warning("No prices found. The table is empty.")
            else:
                logger.warning("No prices found. The website structure might have changed.")
            return summary

        logger.debug("Hour Ending | Price (¢/kWh)")
        for reading in order_readings(result.readings):
            logger.debug(f"{reading.hour_label:<11} | {reading.raw_display}")

            event = self.tracker.evaluate(reading, self.config, source_url=result.url)
            if event is None:
                continue

            summary.alerts_fired += 1
            summary.events.append(event)
            logger.info(
                f"[{event.hour_label}] 🚨 Price {event.raw_display} reached "
                f"threshold {self.config.threshold_cents}¢"
            )

            try:
                sent = await self.notifier.send(event)
            except Exception as e:
                logger.error(f"[{event.hour_label}] Alert dispatch failed: {e}")
                sent = False

            if sent:
                summary.alerts_sent += 1
            else:
                summary.dispatch_failures += 1

        return summary


def log_summary(summary: CycleSummary, cycle: int) -> None:
    logger.info(f"Cycle {cycle} complete:")
    logger.info(f"  Source: {summary.source_url or 'n/a'}")
    if not summary.fetch_ok:
        logger.warning(f"  Fetch failed: {summary.fetch_error}")
        return
    logger.info(f"  Readings: {summary.readings}")
    logger.info(f"  Alerts fired: {summary.alerts_fired}")
    logger.info(f"  Alerts sent: {summary.alerts_sent}")
    if summary.dispatch_failures:
        logger.warning(f"  Dispatch failures: {summary.dispatch_failures}")


class PriceMonitor:
    """Runs poll cycles on a fixed interval, one at a time."""

    def __init__(
        self,
        cycle: PollCycle,
        interval_seconds: float,
        failure_alert_after: int = 3,
        clock: Callable[[], datetime] = now_central,
    ):
        self.cycle = cycle
        self.interval_seconds = interval_seconds
        self.failure_alert_after = failure_alert_after
        self._clock = clock
        self._lock = asyncio.Lock()
        self._stop_event = asyncio.Event()
        self._running = False
        self.cycle_count = 0
        self.consecutive_failures = 0

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        dry_run: bool = False,
        use_playwright: bool = True,
    ) -> "PriceMonitor":
        """Wire the fetcher, tracker and notifier for a run."""
        fetcher = PriceTableFetcher(timeout=settings.request_timeout, use_playwright=use_playwright)
        notifier = LogNotifier() if dry_run else EmailNotifier.from_settings(settings)
        cycle = PollCycle(
            fetch=fetcher.fetch,
            tracker=AlertStateTracker(),
            config=settings.threshold,
            notifier=notifier,
            fetch_timeout=settings.fetch_timeout,
        )
        return cls(
            cycle=cycle,
            interval_seconds=settings.interval_seconds,
            failure_alert_after=settings.failure_alert_after,
        )

    @property
    def running(self) -> bool:
        return self._running

    async def trigger(self) -> CycleSummary:
        """Run one cycle now, waiting for any cycle already in flight."""
        async with self._lock:
            self.cycle_count += 1
            now = self._clock()
            logger.info(f"Cycle {self.cycle_count} starting at {now.strftime('%Y-%m-%d %H:%M:%S %Z')}")

            self.cycle.tracker.prune(now.replace(hour=0, minute=0, second=0, microsecond=0))

            summary = await self.cycle.run_once()
            self._record_fetch_outcome(summary)
            log_summary(summary, self.cycle_count)
            return summary

    def _record_fetch_outcome(self, summary: CycleSummary) -> None:
        if summary.fetch_ok:
            if self.consecutive_failures:
                logger.info(f"Fetch recovered after {self.consecutive_failures} failed cycles")
            self.consecutive_failures = 0
            return
        self.consecutive_failures += 1
        if self.consecutive_failures == self.failure_alert_after:
            logger.error(
                f"Price fetch has failed {self.consecutive_failures} cycles in a row. "
                "Alerts cannot fire until it recovers."
            )

    async def run(self) -> None:
        """Run one cycle immediately, then every interval until stopped."""
        self._running = True
        self._stop_event.clear()
        logger.info(
            f"Price monitor started. Checking every {self.interval_seconds}s, "
            f"threshold {self.cycle.config.threshold_cents}¢/kWh"
        )

        while self._running:
            await self.trigger()
            if not self._running:
                break
            logger.debug(f"Next check in {self.interval_seconds}s")
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass

    def stop(self) -> None:
        """Stop the monitor loop."""
        self._running = False
        self._stop_event.set()
        logger.info("Price monitor stopping...")
