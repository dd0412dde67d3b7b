from __future__ import annotations

import logging
from datetime import date, time

from fastapi import APIRouter, HTTPException, status
from pydantic import AliasChoices, BaseModel, Field

from fieldservice.api.schemas import BookingDetailModel, JobResponse, ServiceRequestModel
from fieldservice.dependencies.services import DispatchServiceDep, IntakeServiceDep
from fieldservice.errors import DependencyFailure, NotFoundError, TechnicianNotFoundError, ValidationError
from fieldservice.service_requests.state import Priority, RequestSource
from fieldservice.validation import EMAIL_MAX_LENGTH, NAME_MAX_LENGTH, PHONE_MAX_LENGTH, SERVICE_MAX_LENGTH

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/bookings", tags=["bookings"])


class BookingCreateRequest(BaseModel):
    name: str | None = Field(default=None, max_length=NAME_MAX_LENGTH)
    phone: str | None = Field(default=None, max_length=PHONE_MAX_LENGTH)
    service: str | None = Field(default=None, max_length=SERVICE_MAX_LENGTH)
    email: str | None = Field(default=None, max_length=EMAIL_MAX_LENGTH)
    preferred: str | None = Field(default=None, validation_alias=AliasChoices("datetime", "preferred"))
    message: str | None = Field(default=None, max_length=5000)
    source: RequestSource = RequestSource.CONTACT_FORM


class BookingCreatedResponse(BaseModel):
    success: bool = True
    message: str
    request_id: str | None = None
    notified: bool
    degraded: bool = False


class BookingDetailResponse(BaseModel):
    success: bool = True
    booking: BookingDetailModel


class BookingScheduleRequest(BaseModel):
    technician_id: str = Field(..., min_length=1)
    scheduled_date: date
    scheduled_time: time
    priority: Priority | None = None


class BookingCancelRequest(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


@router.post("", response_model=BookingCreatedResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(payload: BookingCreateRequest, service: IntakeServiceDep) -> BookingCreatedResponse:
    try:
        result = await service.submit_request(
            name=payload.name,
            phone=payload.phone,
            service=payload.service,
            email=payload.email,
            preferred=payload.preferred,
            message=payload.message,
            source=payload.source,
        )
    except ValidationError as exc:
        raise HTTPException(
            status_code=400,
            detail={"message": "Name, phone, and service are required", "fields": list(exc.fields)},
        ) from exc
    except DependencyFailure as exc:
        logger.exception("Booking intake failed")
        raise HTTPException(status_code=500, detail="Failed to process booking request") from exc
    return BookingCreatedResponse(
        message="Booking request received! We will contact you shortly.",
        request_id=result.request_id,
        notified=result.notified,
        degraded=result.degraded,
    )


@router.get("/{request_id}", response_model=BookingDetailResponse)
async def get_booking(request_id: str, service: IntakeServiceDep) -> BookingDetailResponse:
    try:
        detail = await service.get_request(request_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Booking not found") from exc
    except DependencyFailure as exc:
        logger.exception("Failed to load booking %s", request_id)
        raise HTTPException(status_code=500, detail="Failed to retrieve booking") from exc
    return BookingDetailResponse(booking=BookingDetailModel.from_detail(detail))


@router.put("/{request_id}/schedule", response_model=JobResponse)
async def schedule_booking(
    request_id: str,
    payload: BookingScheduleRequest,
    service: DispatchServiceDep,
) -> JobResponse:
    try:
        updated = await service.schedule(
            request_id,
            technician_id=payload.technician_id,
            scheduled_date=payload.scheduled_date,
            scheduled_time=payload.scheduled_time,
            priority=payload.priority,
        )
    except TechnicianNotFoundError as exc:
        raise HTTPException(status_code=400, detail="Technician not found") from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Booking not found or no longer schedulable") from exc
    except DependencyFailure as exc:
        logger.exception("Failed to schedule booking %s", request_id)
        raise HTTPException(status_code=500, detail="Failed to schedule booking") from exc
    return JobResponse(message="Booking scheduled", job=ServiceRequestModel.from_entity(updated))


@router.put("/{request_id}/cancel", response_model=JobResponse)
async def cancel_booking(
    request_id: str,
    service: DispatchServiceDep,
    payload: BookingCancelRequest | None = None,
) -> JobResponse:
    try:
        updated = await service.cancel(request_id, reason=payload.reason if payload else None)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Booking not found or already underway") from exc
    except DependencyFailure as exc:
        logger.exception("Failed to cancel booking %s", request_id)
        raise HTTPException(status_code=500, detail="Failed to cancel booking") from exc
    return JobResponse(message="Booking cancelled", job=ServiceRequestModel.from_entity(updated))
