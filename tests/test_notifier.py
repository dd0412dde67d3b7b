from __future__ import annotations

import smtplib
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from fieldservice.core.config import Settings
from fieldservice.errors import DependencyFailure
from fieldservice.notifications import LoggingNotifier, SmtpNotifier, build_notifier, format_intake_summary


def test_build_notifier_without_smtp_host_logs_only():
    assert isinstance(build_notifier(Settings(smtp_host=None)), LoggingNotifier)


def test_build_notifier_uses_smtp_settings():
    notifier = build_notifier(Settings(smtp_host="smtp.example.com", smtp_port=2525, smtp_username="user"))
    assert isinstance(notifier, SmtpNotifier)
    assert (notifier.host, notifier.port, notifier.username) == ("smtp.example.com", 2525, "user")


@pytest.mark.asyncio
async def test_logging_notifier_records_messages():
    notifier = LoggingNotifier()
    assert await notifier.send("office@example.com", "Subject", "<p>body</p>") is True
    assert notifier.sent == [("office@example.com", "Subject")]


@pytest.mark.asyncio
async def test_smtp_notifier_sends_with_starttls(monkeypatch):
    server = MagicMock()
    monkeypatch.setattr("fieldservice.notifications.notifier.smtplib.SMTP", MagicMock(return_value=server))
    notifier = SmtpNotifier(host="smtp.example.com", username="user", password="secret", from_address="a@b.c")

    assert await notifier.send("office@example.com", "Hello", "<p>hi</p>") is True

    server.starttls.assert_called_once()
    server.login.assert_called_once_with("user", "secret")
    sender, recipients, _ = server.sendmail.call_args.args
    assert (sender, recipients) == ("a@b.c", ["office@example.com"])
    server.quit.assert_called_once()


@pytest.mark.asyncio
async def test_smtp_notifier_wraps_transport_errors(monkeypatch):
    server = MagicMock()
    server.sendmail.side_effect = smtplib.SMTPException("relay refused")
    monkeypatch.setattr("fieldservice.notifications.notifier.smtplib.SMTP", MagicMock(return_value=server))
    notifier = SmtpNotifier(host="smtp.example.com", use_tls=False)

    with pytest.raises(DependencyFailure):
        await notifier.send("office@example.com", "Hello", "<p>hi</p>")
    server.quit.assert_called_once()


def test_format_intake_summary_escapes_user_input():
    subject, body = format_intake_summary(
        name="Jane <b>Doe</b>",
        phone="555-1234",
        service="AC repair",
        email=None,
        preferred=None,
        message=None,
        received_at=datetime(2024, 6, 3, 14, 0, tzinfo=timezone.utc),
    )

    assert subject == "New Booking Request - AC repair"
    assert "Jane &lt;b&gt;Doe&lt;/b&gt;" in body
    assert "Not provided" in body
    assert "No additional message" in body
