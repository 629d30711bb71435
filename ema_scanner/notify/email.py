"""SMTP delivery and the retrying notifier used for crossover alerts."""

import asyncio
import logging
import smtplib
from email.mime.text import MIMEText
from typing import Awaitable, Callable

from ema_scanner.core.types import CrossoverEvent

Sender = Callable[[str, str, str], Awaitable[None]]

logger = logging.getLogger(__name__)


class SmtpSender:
    """Send plain-text mail through an authenticated STARTTLS relay."""

    def __init__(
        self,
        host: str,
        port: int,
        username: str,
        password: str,
        timeout_s: float = 20.0,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.timeout_s = timeout_s

    def _send_blocking(self, recipient: str, subject: str, body: str) -> None:
        msg = MIMEText(body, _charset="utf-8")
        msg["Subject"] = subject
        msg["From"] = self.username
        msg["To"] = recipient

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout_s) as smtp:
            smtp.ehlo()
            smtp.starttls()
            smtp.ehlo()
            smtp.login(self.username, self.password)
            smtp.sendmail(self.username, [recipient], msg.as_string())

    async def __call__(self, recipient: str, subject: str, body: str) -> None:
        await asyncio.to_thread(self._send_blocking, recipient, subject, body)


class EmailNotifier:
    """Deliver messages with bounded retries; never raises delivery errors to callers."""

    def __init__(
        self,
        sender: Sender,
        recipient: str,
        max_attempts: int = 3,
        retry_delay_s: float = 1.0,
    ) -> None:
        self._sender = sender
        self.recipient = recipient
        self.max_attempts = max(1, max_attempts)
        self.retry_delay_s = max(0.0, retry_delay_s)

    async def notify(self, subject: str, body: str) -> bool:
        """Try up to ``max_attempts`` times, sleeping ``attempt * retry_delay_s`` after each failure."""

        for attempt in range(1, self.max_attempts + 1):
            try:
                await self._sender(self.recipient, subject, body)
            except asyncio.CancelledError:
                raise
            except Exception as exc:  # noqa: BLE001
                if attempt == self.max_attempts:
                    logger.error(
                        "email_send_failed",
                        extra={"subject": subject, "attempts": attempt, "error": str(exc)},
                    )
                    return False
                logger.warning(
                    "email_retry",
                    extra={"subject": subject, "attempt": attempt, "error": str(exc)},
                )
                await asyncio.sleep(attempt * self.retry_delay_s)
                continue

            logger.info(
                "email_sent",
                extra={"recipient": self.recipient, "subject": subject, "outcome": "ok"},
            )
            return True
        return False


def format_crossover_message(event: CrossoverEvent, interval_label: str) -> tuple[str, str]:
    """Build the subject and plain-text body for a crossover alert."""

    subject = f"[{event.kind.label}] {event.symbol}"
    body = "\n".join(
        [
            f"{event.kind.label} on {event.symbol} ({interval_label})",
            f"Price: {event.price}",
            f"EMA{event.short_period} prev: {event.short_prev} -> now: {event.short_now}",
            f"EMA{event.long_period} prev: {event.long_prev} -> now: {event.long_now}",
        ]
    )
    return subject, body
