from __future__ import annotations

import asyncio
from datetime import date, time
from unittest.mock import AsyncMock

import pytest

from conftest import DummyPool, RecordingNotifier
from fieldservice.errors import DependencyFailure, ServiceRequestNotFoundError, ValidationError
from fieldservice.service_requests import (
    IntakeService,
    Priority,
    RequestSource,
    RequestStatus,
    ServiceRequestRepository,
)


def _service(repository, notifier, clock) -> IntakeService:
    return IntakeService(
        repository=repository,
        notifier=notifier,
        notification_recipient="office@example.com",
        clock=clock,
    )


@pytest.mark.asyncio
async def test_submit_request_creates_customer_and_new_request(repository, notifier, clock):
    service = _service(repository, notifier, clock)

    result = await service.submit_request(
        name="Jane Doe",
        phone="555-1234",
        service="AC repair",
        email="jane@example.com",
        message="Unit is blowing warm air",
    )

    assert result.notified is True
    assert result.degraded is False
    request = repository.requests[result.request_id]
    assert request.status == RequestStatus.NEW
    assert request.priority == Priority.NORMAL
    assert request.service_type_id == "st-ac"
    assert request.issue_description == "Unit is blowing warm air"
    assert request.created_at == clock.now()

    customer = repository.customers[request.customer_id]
    assert (customer.first_name, customer.last_name) == ("Jane", "Doe")
    assert customer.email == "jane@example.com"

    to, subject, body = notifier.sent[0]
    assert to == "office@example.com"
    assert subject == "New Booking Request - AC repair"
    assert "Jane Doe" in body and "555-1234" in body


@pytest.mark.asyncio
async def test_submit_request_reuses_customer_by_phone(repository, notifier, clock):
    service = _service(repository, notifier, clock)

    first = await service.submit_request(name="Jane Doe", phone="555-1234", service="AC repair")
    second = await service.submit_request(
        name="Janet Doe", phone="555-1234", service="Furnace tune-up", email="jane@example.com"
    )

    assert len(repository.customers) == 1
    assert repository.requests[first.request_id].customer_id == repository.requests[second.request_id].customer_id
    customer = next(iter(repository.customers.values()))
    assert customer.first_name == "Jane"
    assert customer.email == "jane@example.com"
    assert repository.requests[second.request_id].service_type_id is None


@pytest.mark.asyncio
async def test_missing_fields_cause_no_writes_and_no_notification(repository, notifier, clock):
    service = _service(repository, notifier, clock)

    with pytest.raises(ValidationError) as excinfo:
        await service.submit_request(name="Jane Doe", phone="  ", service=None)

    assert set(excinfo.value.fields) == {"phone", "service"}
    assert repository.requests == {}
    assert repository.customers == {}
    assert notifier.sent == []


@pytest.mark.asyncio
async def test_iso_preferred_time_is_structured(repository, notifier, clock):
    service = _service(repository, notifier, clock)

    result = await service.submit_request(
        name="Jane Doe", phone="555-1234", service="AC repair", preferred="2024-06-05T14:30"
    )

    request = repository.requests[result.request_id]
    assert request.preferred_date == date(2024, 6, 5)
    assert request.preferred_time == time(14, 30)
    assert "Preferred time" not in request.issue_description


@pytest.mark.asyncio
async def test_free_text_preferred_time_is_kept_in_description(repository, notifier, clock):
    service = _service(repository, notifier, clock)

    result = await service.submit_request(
        name="Jane Doe",
        phone="555-1234",
        service="AC repair",
        preferred="tomorrow morning",
        message="Loud noise",
    )

    request = repository.requests[result.request_id]
    assert request.preferred_date is None
    assert request.issue_description == "Loud noise\n\nPreferred time: tomorrow morning"


@pytest.mark.asyncio
async def test_notifier_failure_does_not_fail_intake(repository, clock):
    service = _service(repository, RecordingNotifier(fail=True), clock)

    result = await service.submit_request(name="Jane Doe", phone="555-1234", service="AC repair")

    assert result.request_id in repository.requests
    assert result.notified is False
    assert result.degraded is False


@pytest.mark.asyncio
async def test_notifier_returning_false_is_reported(repository, clock):
    notifier = AsyncMock()
    notifier.send = AsyncMock(return_value=False)
    service = _service(repository, notifier, clock)

    result = await service.submit_request(name="Jane Doe", phone="555-1234", service="AC repair")

    assert result.notified is False
    notifier.send.assert_awaited_once()


@pytest.mark.asyncio
async def test_storage_failure_with_notification_is_degraded_success(repository, notifier, clock):
    repository.fail_writes = True
    service = _service(repository, notifier, clock)

    result = await service.submit_request(name="Jane Doe", phone="555-1234", service="AC repair")

    assert result.request_id is None
    assert result.notified is True
    assert result.degraded is True
    assert len(notifier.sent) == 1


@pytest.mark.asyncio
async def test_database_timeout_still_notifies_staff(notifier, clock):
    connection = AsyncMock()
    connection.fetchrow = AsyncMock(side_effect=asyncio.TimeoutError())
    service = _service(ServiceRequestRepository(DummyPool(connection)), notifier, clock)

    result = await service.submit_request(name="Jane Doe", phone="555-1234", service="AC repair")

    assert result.request_id is None
    assert result.degraded is True
    assert len(notifier.sent) == 1


@pytest.mark.asyncio
async def test_chat_source_is_recorded(repository, notifier, clock):
    service = _service(repository, notifier, clock)

    result = await service.submit_request(
        name="Jane Doe", phone="555-1234", service="AC repair", source=RequestSource.CHAT
    )

    assert repository.requests[result.request_id].source == "chat"


@pytest.mark.asyncio
async def test_contact_form_is_the_default_source(repository, notifier, clock):
    service = _service(repository, notifier, clock)

    result = await service.submit_request(name="Jane Doe", phone="555-1234", service="AC repair")

    assert repository.requests[result.request_id].source == "contact_form"


@pytest.mark.asyncio
async def test_storage_and_notification_failure_raises(repository, clock):
    repository.fail_writes = True
    service = _service(repository, RecordingNotifier(fail=True), clock)

    with pytest.raises(DependencyFailure):
        await service.submit_request(name="Jane Doe", phone="555-1234", service="AC repair")


@pytest.mark.asyncio
async def test_get_request_returns_joined_detail(repository, notifier, clock):
    service = _service(repository, notifier, clock)
    result = await service.submit_request(name="Jane Doe", phone="555-1234", service="AC repair")

    detail = await service.get_request(result.request_id)

    assert detail.customer.name == "Jane Doe"
    assert detail.service_type is not None and detail.service_type.name == "AC repair"
    assert detail.technician is None
    assert detail.service_record is None


@pytest.mark.asyncio
async def test_get_request_unknown_id(repository, notifier, clock):
    service = _service(repository, notifier, clock)

    with pytest.raises(ServiceRequestNotFoundError):
        await service.get_request("missing")
