from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from fieldservice.api.schemas import JobModel, JobResponse, ServiceRecordModel, ServiceRequestModel, TechnicianModel
from fieldservice.dependencies.services import DispatchServiceDep
from fieldservice.errors import DependencyFailure, NotFoundError, ValidationError
from fieldservice.service_requests.state import RequestStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tech", tags=["technicians"])


class TechLoginRequest(BaseModel):
    phone: str | None = None
    name: str | None = None


class TechLoginResponse(BaseModel):
    success: bool = True
    message: str
    tech: TechnicianModel


class JobListResponse(BaseModel):
    success: bool = True
    jobs: list[JobModel]
    count: int


class ScheduleResponse(BaseModel):
    success: bool = True
    schedule: list[JobModel]


class JobCompleteRequest(BaseModel):
    work_performed: str | None = None
    parts_used: str | None = None
    tech_notes: str | None = None


class JobCompleteResponse(JobResponse):
    service_record: ServiceRecordModel


class JobNotesRequest(BaseModel):
    notes: str | None = Field(default=None, max_length=10000)


@router.post("/login", response_model=TechLoginResponse)
async def login(payload: TechLoginRequest, service: DispatchServiceDep) -> TechLoginResponse:
    try:
        technician = await service.login(phone=payload.phone, name=payload.name)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail="Phone number or name required") from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=401, detail="Technician not found") from exc
    except DependencyFailure as exc:
        logger.exception("Technician login failed")
        raise HTTPException(status_code=500, detail="Login failed") from exc
    return TechLoginResponse(message="Login successful", tech=TechnicianModel.from_entity(technician))


@router.get("/{tech_id}/jobs", response_model=JobListResponse)
async def list_jobs(
    tech_id: str,
    service: DispatchServiceDep,
    on_date: date | None = Query(default=None, alias="date"),
    status_filter: RequestStatus | None = Query(default=None, alias="status"),
) -> JobListResponse:
    try:
        jobs = await service.list_jobs(tech_id, on_date=on_date, status=status_filter)
    except DependencyFailure as exc:
        logger.exception("Failed to list jobs for technician %s", tech_id)
        raise HTTPException(status_code=500, detail="Failed to retrieve jobs") from exc
    models = [JobModel.from_job(job) for job in jobs]
    return JobListResponse(jobs=models, count=len(models))


@router.get("/{tech_id}/schedule", response_model=ScheduleResponse)
async def get_schedule(tech_id: str, service: DispatchServiceDep) -> ScheduleResponse:
    try:
        jobs = await service.list_schedule(tech_id)
    except DependencyFailure as exc:
        logger.exception("Failed to load schedule for technician %s", tech_id)
        raise HTTPException(status_code=500, detail="Failed to retrieve schedule") from exc
    return ScheduleResponse(schedule=[JobModel.from_job(job) for job in jobs])


@router.put("/jobs/{request_id}/start", response_model=JobResponse)
async def start_job(request_id: str, service: DispatchServiceDep) -> JobResponse:
    try:
        updated = await service.start(request_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Job not found or already started") from exc
    except DependencyFailure as exc:
        logger.exception("Failed to start job %s", request_id)
        raise HTTPException(status_code=500, detail="Failed to start job") from exc
    return JobResponse(message="Job started", job=ServiceRequestModel.from_entity(updated))


@router.put("/jobs/{request_id}/complete", response_model=JobCompleteResponse)
async def complete_job(
    request_id: str,
    service: DispatchServiceDep,
    payload: JobCompleteRequest | None = None,
) -> JobCompleteResponse:
    payload = payload or JobCompleteRequest()
    try:
        updated, record = await service.complete(
            request_id,
            work_performed=payload.work_performed,
            parts_used=payload.parts_used,
            tech_notes=payload.tech_notes,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Job not found or not in progress") from exc
    except DependencyFailure as exc:
        logger.exception("Failed to complete job %s", request_id)
        raise HTTPException(status_code=500, detail="Failed to complete job") from exc
    return JobCompleteResponse(
        message="Job completed successfully",
        job=ServiceRequestModel.from_entity(updated),
        service_record=ServiceRecordModel.from_entity(record),
    )


@router.put("/jobs/{request_id}/notes", response_model=JobResponse)
async def add_notes(request_id: str, payload: JobNotesRequest, service: DispatchServiceDep) -> JobResponse:
    try:
        updated = await service.append_notes(request_id, payload.notes)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail="Notes are required") from exc
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail="Job not found") from exc
    except DependencyFailure as exc:
        logger.exception("Failed to add notes to job %s", request_id)
        raise HTTPException(status_code=500, detail="Failed to add notes") from exc
    return JobResponse(message="Notes added successfully", job=ServiceRequestModel.from_entity(updated))
