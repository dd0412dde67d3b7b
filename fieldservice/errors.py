"""Error taxonomy shared by the intake, dispatch and chat services."""

from __future__ import annotations

from typing import Iterable


class FieldServiceError(RuntimeError):
    """Base error for service layer issues."""


class ValidationError(FieldServiceError):
    """Raised when caller input is missing or malformed."""

    def __init__(self, message: str, *, fields: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.fields = tuple(fields)


class NotFoundError(FieldServiceError):
    """Raised when an entity could not be located."""


class ServiceRequestNotFoundError(NotFoundError):
    """Raised when no service request matches the given id."""


class TechnicianNotFoundError(NotFoundError):
    """Raised when a technician lookup has no match."""


class ChatSessionNotFoundError(NotFoundError):
    """Raised when a chat session does not exist."""


class InvalidTransitionError(NotFoundError):
    """Raised when a lifecycle event is not allowed from the current status.

    Subclasses :class:`NotFoundError` because the HTTP layer reports a request
    in the wrong state the same way as a missing one.
    """

    def __init__(self, current: object, event: object) -> None:
        super().__init__(f"Cannot apply {event!s} to a request in status {current!s}")
        self.current = current
        self.event = event


class DependencyFailure(FieldServiceError):
    """Raised when the database or the notifier is unavailable."""
