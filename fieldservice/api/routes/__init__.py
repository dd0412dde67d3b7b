"""Route modules exposed by the API package."""

from . import bookings, chat, ping, tech

__all__ = ["bookings", "chat", "ping", "tech"]
