"""Best-effort staff notifications for new service requests."""

from __future__ import annotations

import asyncio
import logging
import smtplib
import ssl
from dataclasses import dataclass
from datetime import datetime
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from html import escape
from typing import Protocol

from fieldservice.core.config import Settings
from fieldservice.errors import DependencyFailure

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def send(self, to: str, subject: str, html_body: str) -> bool:
        ...


@dataclass(slots=True)
class SmtpNotifier:
    """Deliver HTML e-mail through an SMTP relay.

    ``smtplib`` blocks, so delivery runs in a worker thread. Any transport
    error is raised as :class:`DependencyFailure`; callers decide whether it
    is fatal.
    """

    host: str
    port: int = 587
    username: str | None = None
    password: str | None = None
    use_tls: bool = True
    from_address: str = "bookings@localhost"
    timeout: float = 30.0

    async def send(self, to: str, subject: str, html_body: str) -> bool:
        try:
            await asyncio.to_thread(self._send_sync, to, subject, html_body)
        except (smtplib.SMTPException, OSError) as exc:
            raise DependencyFailure(f"SMTP delivery to {to} failed") from exc
        logger.info("Notification '%s' sent via %s", subject, self.host)
        return True

    def _send_sync(self, to: str, subject: str, html_body: str) -> None:
        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = self.from_address
        message["To"] = to
        message.attach(MIMEText(html_body, "html"))

        if self.port == 465:
            server = smtplib.SMTP_SSL(self.host, self.port, context=ssl.create_default_context(), timeout=self.timeout)
        else:
            server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
            if self.use_tls:
                server.starttls(context=ssl.create_default_context())
        try:
            if self.username:
                server.login(self.username, self.password or "")
            server.sendmail(self.from_address, [to], message.as_string())
        finally:
            server.quit()


class LoggingNotifier:
    """Fallback used when no SMTP relay is configured."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []

    async def send(self, to: str, subject: str, html_body: str) -> bool:
        logger.info("SMTP not configured; notification '%s' for %s logged only", subject, to)
        self.sent.append((to, subject))
        return True


def build_notifier(settings: Settings) -> Notifier:
    if not settings.smtp_host:
        return LoggingNotifier()
    return SmtpNotifier(
        host=settings.smtp_host,
        port=settings.smtp_port,
        username=settings.smtp_username,
        password=settings.smtp_password,
        use_tls=settings.smtp_use_tls,
        from_address=settings.notification_from,
    )


def format_intake_summary(
    *,
    name: str,
    phone: str,
    service: str,
    email: str | None,
    preferred: str | None,
    message: str | None,
    received_at: datetime,
) -> tuple[str, str]:
    """Return the subject and HTML body announcing a new booking request."""

    subject = f"New Booking Request - {service}"
    body = (
        "<h2>New Booking Request</h2>"
        f"<p><strong>Customer:</strong> {escape(name)}</p>"
        f"<p><strong>Phone:</strong> {escape(phone)}</p>"
        f"<p><strong>Email:</strong> {escape(email or 'Not provided')}</p>"
        f"<p><strong>Service:</strong> {escape(service)}</p>"
        f"<p><strong>Preferred Date/Time:</strong> {escape(preferred or 'Not specified')}</p>"
        "<p><strong>Message:</strong></p>"
        f"<p>{escape(message or 'No additional message')}</p>"
        "<hr>"
        f"<p><em>Received at: {received_at.strftime('%Y-%m-%d %H:%M %Z')}</em></p>"
    )
    return subject, body
