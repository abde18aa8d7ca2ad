#!/usr/bin/env python3
"""
Electricity Price Monitor - Entry Point

Polls the ComEd hourly pricing table and emails an alert when the price
reaches the configured threshold.

Usage:
    python run.py                    # Run continuous monitoring (hourly)
    python run.py --once             # Single check cycle
    python run.py --dry-run          # Log alerts instead of emailing
    python run.py --test-email       # Send a test alert email
    python run.py --threshold 5.0    # Custom threshold (¢/kWh)
    python run.py --interval 1800    # Custom check interval (seconds)
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from comed_monitor.config import Settings
from comed_monitor.errors import ConfigError
from comed_monitor.monitor import PriceMonitor
from comed_monitor.notifier import EmailNotifier, send_test_alert

logger = logging.getLogger("comed_monitor")


def configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s | %(levelname)-7s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    )
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


async def test_email(settings: Settings) -> bool:
    """Test SMTP delivery with a sample alert."""
    print("\n🔔 Testing alert email...")
    notifier = EmailNotifier.from_settings(settings)
    print(f"   Sending to: {notifier.to_addr} via {notifier.host}:{notifier.port}")

    success = await send_test_alert(notifier)

    if success:
        print("✅ Test alert sent successfully! Check your inbox.")
    else:
        print("❌ Failed to send test alert. Check logs for details.")
    return success


async def run_single_check(monitor: PriceMonitor) -> None:
    """Run a single check cycle."""
    print("\n🔍 Running single check cycle...")
    summary = await monitor.trigger()

    print("\n📊 Results:")
    print(f"   Source: {summary.source_url or 'n/a'}")
    if not summary.fetch_ok:
        print(f"   ✗ Fetch failed: {summary.fetch_error}")
        return
    print(f"   Readings: {summary.readings}")
    for event in summary.events:
        print(f"   🚨 {event.hour_label}: {event.raw_display}")
    print(f"   Alerts sent: {summary.alerts_sent}/{summary.alerts_fired}")


async def run_continuous(monitor: PriceMonitor) -> None:
    """Run continuous monitoring."""
    print("\n🚀 Starting continuous price monitoring...")
    print(f"   Threshold: {monitor.cycle.config.threshold_cents}¢/kWh")
    print(f"   Interval: {monitor.interval_seconds}s")
    print("\n   Press Ctrl+C to stop.\n")

    try:
        await monitor.run()
    finally:
        monitor.stop()


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Hourly Electricity Price Monitor with Email Alerts",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Run single check cycle and exit",
    )
    parser.add_argument(
        "--test-email",
        action="store_true",
        help="Send a test alert email and exit",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Log alerts instead of sending email (no credentials needed)",
    )
    parser.add_argument(
        "--threshold",
        type=float,
        default=None,
        metavar="CENTS",
        help="Alert threshold in ¢/kWh (default: PRICE_THRESHOLD or 1.5)",
    )
    parser.add_argument(
        "--interval",
        type=int,
        default=None,
        metavar="SECONDS",
        help="Check interval in seconds (default: CHECK_INTERVAL or 3600)",
    )
    parser.add_argument(
        "--no-playwright",
        action="store_true",
        help="Disable the headless browser fallback",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )

    args = parser.parse_args(argv)
    configure_logging(args.verbose)

    try:
        settings = Settings.from_env().with_overrides(
            threshold=args.threshold,
            interval_seconds=args.interval,
        )
        if args.test_email:
            return 0 if asyncio.run(test_email(settings)) else 1
        monitor = PriceMonitor.from_settings(
            settings,
            dry_run=args.dry_run,
            use_playwright=not args.no_playwright,
        )
    except ConfigError as e:
        print(f"❌ Configuration error: {e}")
        print("   Set it in .env file or as environment variable.")
        return 2

    if args.once:
        asyncio.run(run_single_check(monitor))
        return 0

    try:
        asyncio.run(run_continuous(monitor))
    except KeyboardInterrupt:
        print("\n\n👋 Monitor stopped.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
