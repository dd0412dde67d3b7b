from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterable
from zoneinfo import ZoneInfo

import pytest

from fieldservice.chat.models import ChatMessage, ChatSession, ChatTranscript
from fieldservice.errors import DependencyFailure
from fieldservice.service_requests.models import (
    Customer,
    DispatchJob,
    Equipment,
    ServiceRecord,
    ServiceRequest,
    ServiceRequestDetail,
    ServiceType,
    Technician,
)
from fieldservice.service_requests.state import Priority, RequestStatus


class DummyAcquire:
    def __init__(self, connection):
        self._connection = connection

    async def __aenter__(self):
        return self._connection

    async def __aexit__(self, exc_type, exc, tb):
        return False


class DummyPool:
    def __init__(self, connection):
        self._connection = connection

    def acquire(self):
        return DummyAcquire(self._connection)


class FixedClock:
    """Business clock frozen at ``moment`` until advanced."""

    def __init__(self, moment: datetime, timezone_name: str = "America/New_York") -> None:
        self.moment = moment
        self._zone = ZoneInfo(timezone_name)

    def now(self) -> datetime:
        return self.moment

    def local(self, moment: datetime | None = None) -> datetime:
        return (moment or self.moment).astimezone(self._zone)

    def today(self) -> date:
        return self.local().date()

    def advance(self, **delta: float) -> None:
        self.moment = self.moment + timedelta(**delta)


class InMemoryServiceRequestRepository:
    """Dict-backed stand-in honouring the conditional-update contract."""

    def __init__(self) -> None:
        self.customers: dict[str, Customer] = {}
        self.technicians: dict[str, Technician] = {}
        self.service_types: dict[str, ServiceType] = {}
        self.equipment: list[Equipment] = []
        self.requests: dict[str, ServiceRequest] = {}
        self.records: dict[str, ServiceRecord] = {}
        self.fail_writes = False

    def _check_available(self) -> None:
        if self.fail_writes:
            raise DependencyFailure("Database operation failed")

    async def upsert_customer(self, customer: Customer) -> Customer:
        self._check_available()
        for existing in self.customers.values():
            if existing.phone == customer.phone:
                if existing.email is None and customer.email is not None:
                    existing.email = customer.email
                return replace(existing)
        self.customers[customer.id] = replace(customer)
        return replace(customer)

    async def find_service_type(self, name: str) -> ServiceType | None:
        for service_type in self.service_types.values():
            if service_type.name.lower() == name.lower():
                return service_type
        return None

    async def create_request(self, request: ServiceRequest) -> None:
        self._check_available()
        self.requests[request.id] = replace(request)

    async def get_request_detail(self, request_id: str) -> ServiceRequestDetail | None:
        request = self.requests.get(request_id)
        if request is None:
            return None
        return ServiceRequestDetail(
            request=replace(request),
            customer=replace(self.customers[request.customer_id]),
            service_type=self.service_types.get(request.service_type_id or ""),
            technician=self.technicians.get(request.assigned_tech_id or ""),
            service_record=self.records.get(request_id),
        )

    async def get_status(self, request_id: str) -> RequestStatus | None:
        request = self.requests.get(request_id)
        return None if request is None else request.status

    def _guarded(self, request_id: str, from_statuses: Iterable[RequestStatus]) -> ServiceRequest | None:
        self._check_available()
        request = self.requests.get(request_id)
        if request is None or request.status not in set(from_statuses):
            return None
        return request

    async def schedule_request(
        self,
        request_id: str,
        *,
        from_statuses,
        to_status,
        technician_id,
        scheduled_date,
        scheduled_time,
        priority,
        updated_at,
    ) -> ServiceRequest | None:
        request = self._guarded(request_id, from_statuses)
        if request is None:
            return None
        request.status = to_status
        request.assigned_tech_id = technician_id
        request.scheduled_date = scheduled_date
        request.scheduled_time = scheduled_time
        if priority is not None:
            request.priority = priority
        request.updated_at = updated_at
        return replace(request)

    async def start_request(self, request_id: str, *, from_statuses, to_status, started_at) -> ServiceRequest | None:
        request = self._guarded(request_id, from_statuses)
        if request is None:
            return None
        request.status = to_status
        request.actual_start_time = started_at
        request.updated_at = started_at
        return replace(request)

    async def complete_request(
        self,
        request_id: str,
        *,
        from_statuses,
        to_status,
        finished_at,
        record_id,
        service_date,
        work_performed,
        parts_used,
        tech_notes,
    ):
        request = self._guarded(request_id, from_statuses)
        if request is None:
            return None
        request.status = to_status
        request.actual_end_time = max(finished_at, request.actual_start_time or finished_at)
        request.updated_at = finished_at
        record = ServiceRecord(
            id=record_id,
            request_id=request.id,
            customer_id=request.customer_id,
            tech_id=request.assigned_tech_id,
            service_date=service_date,
            work_performed=work_performed,
            parts_used=parts_used,
            tech_notes=tech_notes,
            created_at=finished_at,
        )
        self.records[request.id] = record
        return replace(request), record

    async def cancel_request(
        self, request_id: str, *, from_statuses, to_status, cancelled_at, reason, marker
    ) -> ServiceRequest | None:
        request = self._guarded(request_id, from_statuses)
        if request is None:
            return None
        request.status = to_status
        if reason is not None:
            request.notes = reason if not request.notes else f"{request.notes}{marker}{reason}"
        request.updated_at = cancelled_at
        return replace(request)

    async def append_notes(self, request_id: str, *, notes, marker, updated_at) -> ServiceRequest | None:
        self._check_available()
        request = self.requests.get(request_id)
        if request is None:
            return None
        request.notes = notes if not request.notes else f"{request.notes}{marker}{notes}"
        request.updated_at = updated_at
        return replace(request)

    async def get_technician(self, technician_id: str) -> Technician | None:
        return self.technicians.get(technician_id)

    async def find_technician_by_phone(self, phone: str) -> Technician | None:
        return next((tech for tech in self.technicians.values() if tech.phone == phone), None)

    async def find_technician_by_name(self, name: str) -> Technician | None:
        return next((tech for tech in self.technicians.values() if tech.name.lower() == name.lower()), None)

    def _job(self, request: ServiceRequest, *, with_equipment: bool) -> DispatchJob:
        equipment = [item for item in self.equipment if item.customer_id == request.customer_id]
        return DispatchJob(
            request=replace(request),
            customer=replace(self.customers[request.customer_id]),
            service_type=self.service_types.get(request.service_type_id or ""),
            equipment=equipment if with_equipment else [],
        )

    async def list_jobs(self, technician_id: str, *, on_date, statuses) -> list[DispatchJob]:
        wanted = set(statuses)
        matches = [
            request
            for request in self.requests.values()
            if request.assigned_tech_id == technician_id
            and request.scheduled_date == on_date
            and request.status in wanted
        ]
        matches.sort(key=lambda item: (item.scheduled_time or time.min, -int(item.priority)))
        return [self._job(request, with_equipment=True) for request in matches]

    async def list_schedule(self, technician_id: str, *, start, end, statuses) -> list[DispatchJob]:
        wanted = set(statuses)
        matches = [
            request
            for request in self.requests.values()
            if request.assigned_tech_id == technician_id
            and request.scheduled_date is not None
            and start <= request.scheduled_date <= end
            and request.status in wanted
        ]
        matches.sort(key=lambda item: (item.scheduled_date, item.scheduled_time or time.min))
        return [self._job(request, with_equipment=False) for request in matches]


class InMemoryChatRepository:
    def __init__(self) -> None:
        self.sessions: dict[str, ChatSession] = {}
        self.messages: list[ChatMessage] = []

    async def create_session(self, session: ChatSession) -> None:
        self.sessions[session.id] = session

    async def get_session(self, session_id: str) -> ChatSession | None:
        return self.sessions.get(session_id)

    async def add_message(self, message: ChatMessage) -> None:
        self.messages.append(message)

    async def get_transcript(self, session_id: str) -> ChatTranscript | None:
        session = self.sessions.get(session_id)
        if session is None:
            return None
        return ChatTranscript(
            session=session,
            messages=[message for message in self.messages if message.session_id == session_id],
        )


class RecordingNotifier:
    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.sent: list[tuple[str, str, str]] = []

    async def send(self, to: str, subject: str, html_body: str) -> bool:
        if self.fail:
            raise DependencyFailure("SMTP delivery failed")
        self.sent.append((to, subject, html_body))
        return True


def make_request(
    request_id: str = "req-1",
    *,
    status: RequestStatus = RequestStatus.NEW,
    customer_id: str = "cust-1",
    assigned_tech_id: str | None = None,
    scheduled_date: date | None = None,
    scheduled_time: time | None = None,
    priority: Priority = Priority.NORMAL,
    notes: str = "",
    created_at: datetime | None = None,
) -> ServiceRequest:
    moment = created_at or datetime(2024, 6, 3, 13, 0, tzinfo=timezone.utc)
    return ServiceRequest(
        id=request_id,
        customer_id=customer_id,
        service_type_id=None,
        requested_service="AC repair",
        assigned_tech_id=assigned_tech_id,
        status=status,
        priority=priority,
        preferred_date=None,
        preferred_time=None,
        scheduled_date=scheduled_date,
        scheduled_time=scheduled_time,
        actual_start_time=None,
        actual_end_time=None,
        notes=notes,
        issue_description="",
        source="contact_form",
        created_at=moment,
        updated_at=moment,
    )


@pytest.fixture
def clock() -> FixedClock:
    # 10:00 in New York
    return FixedClock(datetime(2024, 6, 3, 14, 0, tzinfo=timezone.utc))


@pytest.fixture
def repository() -> InMemoryServiceRequestRepository:
    repo = InMemoryServiceRequestRepository()
    repo.technicians["T1"] = Technician(id="T1", name="Mike Rivera", phone="555-0100", specialization="HVAC")
    repo.technicians["T2"] = Technician(id="T2", name="Sara Chen", phone="555-0200")
    repo.service_types["st-ac"] = ServiceType(
        id="st-ac", name="AC repair", base_price=None, estimated_duration_minutes=90
    )
    return repo


@pytest.fixture
def chat_repository() -> InMemoryChatRepository:
    return InMemoryChatRepository()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
