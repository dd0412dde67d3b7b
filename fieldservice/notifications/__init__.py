"""Outbound notification channels."""

from .notifier import LoggingNotifier, Notifier, SmtpNotifier, build_notifier, format_intake_summary

__all__ = [
    "LoggingNotifier",
    "Notifier",
    "SmtpNotifier",
    "build_notifier",
    "format_intake_summary",
]
