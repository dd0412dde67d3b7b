from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import NoReturn

from opentelemetry import trace

from fieldservice.core.clock import BusinessClock
from fieldservice.errors import (
    InvalidTransitionError,
    ServiceRequestNotFoundError,
    TechnicianNotFoundError,
    ValidationError,
)
from fieldservice.validation import clean

from .models import DispatchJob, ServiceRecord, ServiceRequest, Technician
from .repository import ServiceRequestRepository
from .state import ACTIVE_STATUSES, LifecycleEvent, Priority, RequestStateMachine, RequestStatus

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

SCHEDULE_WINDOW_DAYS = 7
DEFAULT_WORK_PERFORMED = "Service completed"


@dataclass(slots=True)
class DispatchService:
    """Lifecycle operations on existing service requests.

    Every status change is a conditional write guarded by the source states
    of :class:`RequestStateMachine`, so concurrent actors cannot move a
    request through an illegal transition.
    """

    repository: ServiceRequestRepository
    clock: BusinessClock = field(default_factory=BusinessClock)

    async def schedule(
        self,
        request_id: str,
        *,
        technician_id: str,
        scheduled_date: date,
        scheduled_time: time,
        priority: Priority | None = None,
    ) -> ServiceRequest:
        technician = await self.repository.get_technician(technician_id)
        if technician is None:
            raise TechnicianNotFoundError(f"Technician {technician_id} not found")

        event = LifecycleEvent.SCHEDULE
        with tracer.start_as_current_span("dispatch.schedule"):
            updated = await self.repository.schedule_request(
                request_id,
                from_statuses=RequestStateMachine.source_states(event),
                to_status=RequestStateMachine.target_state(event),
                technician_id=technician.id,
                scheduled_date=scheduled_date,
                scheduled_time=scheduled_time,
                priority=priority,
                updated_at=self.clock.now(),
            )
        if updated is None:
            await self._raise_rejection(request_id, event)
        logger.info(
            "Request %s scheduled for %s %s with technician %s",
            request_id,
            scheduled_date.isoformat(),
            scheduled_time.strftime("%H:%M"),
            technician.id,
        )
        return updated

    async def start(self, request_id: str) -> ServiceRequest:
        event = LifecycleEvent.START
        with tracer.start_as_current_span("dispatch.start"):
            updated = await self.repository.start_request(
                request_id,
                from_statuses=RequestStateMachine.source_states(event),
                to_status=RequestStateMachine.target_state(event),
                started_at=self.clock.now(),
            )
        if updated is None:
            await self._raise_rejection(request_id, event)
        logger.info("Request %s started", request_id)
        return updated

    async def complete(
        self,
        request_id: str,
        *,
        work_performed: str | None = None,
        parts_used: str | None = None,
        tech_notes: str | None = None,
    ) -> tuple[ServiceRequest, ServiceRecord]:
        event = LifecycleEvent.COMPLETE
        now = self.clock.now()
        with tracer.start_as_current_span("dispatch.complete"):
            result = await self.repository.complete_request(
                request_id,
                from_statuses=RequestStateMachine.source_states(event),
                to_status=RequestStateMachine.target_state(event),
                finished_at=now,
                record_id=str(uuid.uuid4()),
                service_date=self.clock.local(now).date(),
                work_performed=clean(work_performed) or DEFAULT_WORK_PERFORMED,
                parts_used=clean(parts_used) or "",
                tech_notes=clean(tech_notes) or "",
            )
        if result is None:
            await self._raise_rejection(request_id, event)
        request, record = result
        logger.info("Request %s completed; service record %s written", request_id, record.id)
        return request, record

    async def cancel(self, request_id: str, *, reason: str | None = None) -> ServiceRequest:
        event = LifecycleEvent.CANCEL
        now = self.clock.now()
        cleaned = clean(reason)
        with tracer.start_as_current_span("dispatch.cancel"):
            updated = await self.repository.cancel_request(
                request_id,
                from_statuses=RequestStateMachine.source_states(event),
                to_status=RequestStateMachine.target_state(event),
                cancelled_at=now,
                reason=f"Cancelled: {cleaned}" if cleaned else None,
                marker=self._note_marker(now),
            )
        if updated is None:
            await self._raise_rejection(request_id, event)
        logger.info("Request %s cancelled", request_id)
        return updated

    async def append_notes(self, request_id: str, notes: str | None) -> ServiceRequest:
        text = clean(notes)
        if text is None:
            raise ValidationError("Notes are required", fields=["notes"])

        now = self.clock.now()
        updated = await self.repository.append_notes(
            request_id,
            notes=text,
            marker=self._note_marker(now),
            updated_at=now,
        )
        if updated is None:
            raise ServiceRequestNotFoundError(f"Service request {request_id} not found")
        return updated

    async def list_jobs(
        self,
        technician_id: str,
        *,
        on_date: date | None = None,
        status: RequestStatus | None = None,
    ) -> list[DispatchJob]:
        statuses = ACTIVE_STATUSES if status is None else (status,)
        return await self.repository.list_jobs(
            technician_id,
            on_date=on_date or self.clock.today(),
            statuses=statuses,
        )

    async def list_schedule(self, technician_id: str) -> list[DispatchJob]:
        start = self.clock.today()
        return await self.repository.list_schedule(
            technician_id,
            start=start,
            end=start + timedelta(days=SCHEDULE_WINDOW_DAYS),
            statuses=ACTIVE_STATUSES,
        )

    async def login(self, *, phone: str | None = None, name: str | None = None) -> Technician:
        """Look a technician up by phone, or by name when no phone is given."""

        phone, name = clean(phone), clean(name)
        if phone is None and name is None:
            raise ValidationError("Phone number or name required", fields=["phone", "name"])

        if phone is not None:
            technician = await self.repository.find_technician_by_phone(phone)
        else:
            technician = await self.repository.find_technician_by_name(name or "")
        if technician is None:
            raise TechnicianNotFoundError("Technician not found")
        return technician

    def _note_marker(self, moment: datetime) -> str:
        return f"\n\n--- {self.clock.local(moment).strftime('%Y-%m-%d %H:%M')} ---\n"

    async def _raise_rejection(self, request_id: str, event: LifecycleEvent) -> NoReturn:
        current = await self.repository.get_status(request_id)
        if current is None:
            logger.info("Rejected %s: request %s does not exist", event.value, request_id)
            raise ServiceRequestNotFoundError(f"Service request {request_id} not found")
        logger.info("Rejected %s: request %s is %s", event.value, request_id, current.value)
        raise InvalidTransitionError(current.value, event.value)
