from __future__ import annotations

from enum import Enum, IntEnum

from fieldservice.errors import InvalidTransitionError


class RequestStatus(str, Enum):
    """Supported states for a service request's lifecycle."""

    NEW = "new"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class LifecycleEvent(str, Enum):
    """Actions that move a service request between states."""

    SCHEDULE = "schedule"
    START = "start"
    COMPLETE = "complete"
    CANCEL = "cancel"


class Priority(IntEnum):
    """Dispatch priority; higher values are served first within a time slot."""

    LOW = 0
    NORMAL = 1
    HIGH = 2
    EMERGENCY = 3


class RequestSource(str, Enum):
    """Public channel a service request arrived through."""

    CONTACT_FORM = "contact_form"
    CHAT = "chat"


ACTIVE_STATUSES: tuple[RequestStatus, ...] = (RequestStatus.SCHEDULED, RequestStatus.IN_PROGRESS)


class RequestStateMachine:
    """Validate service request lifecycle transitions."""

    _TRANSITIONS: dict[LifecycleEvent, tuple[frozenset[RequestStatus], RequestStatus]] = {
        LifecycleEvent.SCHEDULE: (
            frozenset({RequestStatus.NEW, RequestStatus.SCHEDULED}),
            RequestStatus.SCHEDULED,
        ),
        LifecycleEvent.START: (frozenset({RequestStatus.SCHEDULED}), RequestStatus.IN_PROGRESS),
        LifecycleEvent.COMPLETE: (frozenset({RequestStatus.IN_PROGRESS}), RequestStatus.COMPLETED),
        LifecycleEvent.CANCEL: (
            frozenset({RequestStatus.NEW, RequestStatus.SCHEDULED}),
            RequestStatus.CANCELLED,
        ),
    }

    @classmethod
    def initial_state(cls) -> RequestStatus:
        return RequestStatus.NEW

    @classmethod
    def source_states(cls, event: LifecycleEvent) -> frozenset[RequestStatus]:
        return cls._TRANSITIONS[event][0]

    @classmethod
    def target_state(cls, event: LifecycleEvent) -> RequestStatus:
        return cls._TRANSITIONS[event][1]

    @classmethod
    def can_apply(cls, current: RequestStatus, event: LifecycleEvent) -> bool:
        return current in cls.source_states(event)

    @classmethod
    def transition(cls, current: RequestStatus, event: LifecycleEvent) -> RequestStatus:
        """Return the state reached by applying ``event`` to ``current``."""

        if not cls.can_apply(current, event):
            raise InvalidTransitionError(current.value, event.value)
        return cls.target_state(event)

