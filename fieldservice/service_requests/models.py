from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from decimal import Decimal
from typing import Sequence

from .state import Priority, RequestStatus


@dataclass(slots=True)
class Customer:
    """Person or household requesting service. Phone is the dedup key."""

    id: str
    first_name: str
    last_name: str
    phone: str
    email: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    special_instructions: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def name(self) -> str:
        return " ".join(part for part in (self.first_name, self.last_name) if part)


@dataclass(slots=True)
class Technician:
    id: str
    name: str
    phone: str
    email: str | None = None
    specialization: str | None = None
    status: str = "available"


@dataclass(slots=True)
class ServiceType:
    """Catalog entry used for pricing and duration estimates."""

    id: str
    name: str
    base_price: Decimal | None = None
    estimated_duration_minutes: int | None = None


@dataclass(slots=True)
class Equipment:
    id: str
    customer_id: str
    equipment_type: str
    brand: str | None = None
    model_number: str | None = None
    age_years: int | None = None
    last_service_date: date | None = None


@dataclass(slots=True)
class ServiceRequest:
    """Aggregate root of the dispatch lifecycle."""

    id: str
    customer_id: str
    service_type_id: str | None
    requested_service: str
    assigned_tech_id: str | None
    status: RequestStatus
    priority: Priority
    preferred_date: date | None
    preferred_time: time | None
    scheduled_date: date | None
    scheduled_time: time | None
    actual_start_time: datetime | None
    actual_end_time: datetime | None
    notes: str
    issue_description: str
    source: str
    created_at: datetime
    updated_at: datetime


@dataclass(slots=True)
class ServiceRecord:
    """Immutable artifact written once when a request is completed."""

    id: str
    request_id: str
    customer_id: str
    tech_id: str | None
    service_date: date
    work_performed: str
    parts_used: str
    tech_notes: str
    created_at: datetime


@dataclass(slots=True)
class ServiceRequestDetail:
    """Read-only joined view of a request and the entities it references."""

    request: ServiceRequest
    customer: Customer
    service_type: ServiceType | None = None
    technician: Technician | None = None
    service_record: ServiceRecord | None = None


@dataclass(slots=True)
class DispatchJob:
    """A request as seen from a technician's job list."""

    request: ServiceRequest
    customer: Customer
    service_type: ServiceType | None = None
    equipment: Sequence[Equipment] = field(default_factory=list)


@dataclass(slots=True)
class IntakeResult:
    """Outcome of an intake submission.

    ``degraded`` is set when the record could not be stored but staff were
    still notified of the contact attempt.
    """

    request_id: str | None
    notified: bool
    degraded: bool = False
