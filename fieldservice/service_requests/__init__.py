"""Service request intake, dispatch lifecycle and persistence."""

from .dispatch import DispatchService
from .intake import IntakeService
from .models import (
    Customer,
    DispatchJob,
    Equipment,
    IntakeResult,
    ServiceRecord,
    ServiceRequest,
    ServiceRequestDetail,
    ServiceType,
    Technician,
)
from .repository import ServiceRequestRepository
from .state import LifecycleEvent, Priority, RequestSource, RequestStateMachine, RequestStatus

__all__ = [
    "Customer",
    "DispatchJob",
    "DispatchService",
    "Equipment",
    "IntakeResult",
    "IntakeService",
    "LifecycleEvent",
    "Priority",
    "RequestSource",
    "RequestStateMachine",
    "RequestStatus",
    "ServiceRecord",
    "ServiceRequest",
    "ServiceRequestDetail",
    "ServiceRequestRepository",
    "ServiceType",
    "Technician",
]
