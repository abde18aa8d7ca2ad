"""Email notification module."""

import asyncio
import logging
import smtplib
from email.message import EmailMessage
from typing import Protocol

from .config import DEFAULT_SMTP_HOST, DEFAULT_SMTP_PORT, REQUEST_TIMEOUT_SECONDS, Settings
from .errors import DispatchError
from .models import AlertEvent

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Delivers one alert. Returns True on success."""

    async def send(self, event: AlertEvent) -> bool:
        ...


def build_message(event: AlertEvent, from_addr: str, to_addr: str) -> EmailMessage:
    """Build the alert email for an event."""
    msg = EmailMessage()
    msg["Subject"] = event.subject
    msg["From"] = from_addr
    msg["To"] = to_addr
    msg.set_content(event.body)
    return msg


class EmailNotifier:
    """Sends alerts through an SMTP relay with STARTTLS."""

    def __init__(
        self,
        user: str,
        password: str,
        to_addr: str,
        host: str = DEFAULT_SMTP_HOST,
        port: int = DEFAULT_SMTP_PORT,
        timeout: int = REQUEST_TIMEOUT_SECONDS,
    ):
        self.user = user
        self.password = password
        self.to_addr = to_addr
        self.host = host
        self.port = port
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailNotifier":
        settings.require_mail_credentials()
        return cls(
            user=settings.email_user,
            password=settings.email_pass,
            to_addr=settings.email_to,
            host=settings.smtp_host,
            port=settings.smtp_port,
            timeout=settings.request_timeout,
        )

    def _deliver(self, msg: EmailMessage) -> None:
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                server.starttls()
                server.login(self.user, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise DispatchError(f"SMTP delivery to {self.to_addr} failed: {e}") from e

    async def send(self, event: AlertEvent) -> bool:
        """
        Email an alert once, without retrying.

        The blocking SMTP exchange runs in a worker thread.

        Returns:
            True if sent successfully, False otherwise
        """
        msg = build_message(event, self.user, self.to_addr)
        logger.info(f"Sending alert email to {self.to_addr} via {self.host}:{self.port}")
        try:
            await asyncio.to_thread(self._deliver, msg)
        except DispatchError as e:
            logger.error(str(e))
            return False
        logger.info(f"Email alert sent for price {event.raw_display} ({event.hour_label})")
        return True


class LogNotifier:
    """Dry-run notifier: logs alerts instead of sending them."""

    async def send(self, event: AlertEvent) -> bool:
        logger.info(f"[ALERT] {event.subject} | hour ending {event.hour_label} | {event.source_url}")
        return True


async def send_test_alert(notifier: Notifier) -> bool:
    """Send a sample alert to verify mail delivery."""
    return await notifier.send(
        AlertEvent(
            hour_label="12:00 PM",
            raw_display="9.9¢",
            numeric_price=9.9,
            source_url="https://hourlypricing.comed.com/pricing-table-today/",
            threshold_cents=5.0,
        )
    )
