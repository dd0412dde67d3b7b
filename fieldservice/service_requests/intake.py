from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field

from fieldservice.core.clock import BusinessClock
from fieldservice.errors import DependencyFailure, ServiceRequestNotFoundError
from fieldservice.notifications import Notifier, format_intake_summary
from fieldservice.validation import clean, parse_preferred, require_fields, split_name

from .models import Customer, IntakeResult, ServiceRequest, ServiceRequestDetail
from .repository import ServiceRequestRepository
from .state import Priority, RequestSource, RequestStateMachine

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class IntakeService:
    """Record service requests arriving from public channels."""

    repository: ServiceRequestRepository
    notifier: Notifier
    notification_recipient: str
    clock: BusinessClock = field(default_factory=BusinessClock)

    async def submit_request(
        self,
        *,
        name: str | None,
        phone: str | None,
        service: str | None,
        email: str | None = None,
        preferred: str | None = None,
        message: str | None = None,
        source: RequestSource = RequestSource.CONTACT_FORM,
    ) -> IntakeResult:
        required = require_fields(name=name, phone=phone, service=service)
        name, phone, service = required["name"], required["phone"], required["service"]
        email, preferred, message = clean(email), clean(preferred), clean(message)
        now = self.clock.now()

        request_id: str | None = None
        try:
            request_id = await self._persist(
                name=name,
                phone=phone,
                service=service,
                email=email,
                preferred=preferred,
                message=message,
                source=source,
            )
        except DependencyFailure:
            logger.exception("Failed to store service request from %s; notifying staff anyway", phone)

        subject, body = format_intake_summary(
            name=name,
            phone=phone,
            service=service,
            email=email,
            preferred=preferred,
            message=message,
            received_at=self.clock.local(now),
        )
        notified = await self._notify(subject, body)

        if request_id is None:
            if not notified:
                raise DependencyFailure("Service request could not be stored or forwarded")
            logger.warning("Service request from %s forwarded by notification only", phone)
            return IntakeResult(request_id=None, notified=True, degraded=True)

        logger.info("Service request %s created (%s, notified=%s)", request_id, source.value, notified)
        return IntakeResult(request_id=request_id, notified=notified)

    async def get_request(self, request_id: str) -> ServiceRequestDetail:
        detail = await self.repository.get_request_detail(request_id)
        if detail is None:
            raise ServiceRequestNotFoundError(f"Service request {request_id} not found")
        return detail

    async def _persist(
        self,
        *,
        name: str,
        phone: str,
        service: str,
        email: str | None,
        preferred: str | None,
        message: str | None,
        source: RequestSource,
    ) -> str:
        first_name, last_name = split_name(name)
        customer = await self.repository.upsert_customer(
            Customer(id=str(uuid.uuid4()), first_name=first_name, last_name=last_name, phone=phone, email=email)
        )
        service_type = await self.repository.find_service_type(service)

        preferred_date, preferred_time = parse_preferred(preferred)
        description = message or ""
        if preferred and preferred_date is None:
            suffix = f"Preferred time: {preferred}"
            description = f"{description}\n\n{suffix}" if description else suffix

        now = self.clock.now()
        request = ServiceRequest(
            id=str(uuid.uuid4()),
            customer_id=customer.id,
            service_type_id=service_type.id if service_type else None,
            requested_service=service,
            assigned_tech_id=None,
            status=RequestStateMachine.initial_state(),
            priority=Priority.NORMAL,
            preferred_date=preferred_date,
            preferred_time=preferred_time,
            scheduled_date=None,
            scheduled_time=None,
            actual_start_time=None,
            actual_end_time=None,
            notes="",
            issue_description=description,
            source=source.value,
            created_at=now,
            updated_at=now,
        )
        await self.repository.create_request(request)
        return request.id

    async def _notify(self, subject: str, body: str) -> bool:
        try:
            return bool(await self.notifier.send(self.notification_recipient, subject, body))
        except Exception:  # notifier failures never abort intake
            logger.warning("Notification '%s' failed; request handling continues", subject, exc_info=True)
            return False
