"""Response models shared by the booking and technician routers."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal

from pydantic import BaseModel, Field

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


class CustomerModel(BaseModel):
    id: str
    name: str
    phone: str
    email: str | None = None
    address: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    special_instructions: str | None = None

    @classmethod
    def from_entity(cls, entity: Customer) -> "CustomerModel":
        return cls(
            id=entity.id,
            name=entity.name,
            phone=entity.phone,
            email=entity.email,
            address=entity.address,
            city=entity.city,
            state=entity.state,
            zip_code=entity.zip_code,
            special_instructions=entity.special_instructions,
        )


class TechnicianModel(BaseModel):
    id: str
    name: str
    phone: str
    email: str | None = None
    specialization: str | None = None
    status: str

    @classmethod
    def from_entity(cls, entity: Technician) -> "TechnicianModel":
        return cls(
            id=entity.id,
            name=entity.name,
            phone=entity.phone,
            email=entity.email,
            specialization=entity.specialization,
            status=entity.status,
        )


class ServiceTypeModel(BaseModel):
    id: str
    name: str
    base_price: Decimal | None = None
    estimated_duration_minutes: int | None = None

    @classmethod
    def from_entity(cls, entity: ServiceType | None) -> "ServiceTypeModel | None":
        if entity is None:
            return None
        return cls(
            id=entity.id,
            name=entity.name,
            base_price=entity.base_price,
            estimated_duration_minutes=entity.estimated_duration_minutes,
        )


class EquipmentModel(BaseModel):
    id: str
    equipment_type: str
    brand: str | None = None
    model_number: str | None = None
    age_years: int | None = None
    last_service_date: date | None = None

    @classmethod
    def from_entity(cls, entity: Equipment) -> "EquipmentModel":
        return cls(
            id=entity.id,
            equipment_type=entity.equipment_type,
            brand=entity.brand,
            model_number=entity.model_number,
            age_years=entity.age_years,
            last_service_date=entity.last_service_date,
        )


class ServiceRecordModel(BaseModel):
    id: str
    request_id: str
    tech_id: str | None = None
    service_date: date
    work_performed: str
    parts_used: str
    tech_notes: str
    created_at: datetime

    @classmethod
    def from_entity(cls, entity: ServiceRecord | None) -> "ServiceRecordModel | None":
        if entity is None:
            return None
        return cls(
            id=entity.id,
            request_id=entity.request_id,
            tech_id=entity.tech_id,
            service_date=entity.service_date,
            work_performed=entity.work_performed,
            parts_used=entity.parts_used,
            tech_notes=entity.tech_notes,
            created_at=entity.created_at,
        )


class ServiceRequestModel(BaseModel):
    request_id: str
    customer_id: str
    service_type_id: str | None = None
    requested_service: str
    assigned_tech_id: str | None = None
    status: RequestStatus
    priority: Priority
    preferred_date: date | None = None
    preferred_time: time | None = None
    scheduled_date: date | None = None
    scheduled_time: time | None = None
    actual_start_time: datetime | None = None
    actual_end_time: datetime | None = None
    notes: str
    issue_description: str
    source: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, entity: ServiceRequest) -> "ServiceRequestModel":
        return cls(
            request_id=entity.id,
            customer_id=entity.customer_id,
            service_type_id=entity.service_type_id,
            requested_service=entity.requested_service,
            assigned_tech_id=entity.assigned_tech_id,
            status=entity.status,
            priority=entity.priority,
            preferred_date=entity.preferred_date,
            preferred_time=entity.preferred_time,
            scheduled_date=entity.scheduled_date,
            scheduled_time=entity.scheduled_time,
            actual_start_time=entity.actual_start_time,
            actual_end_time=entity.actual_end_time,
            notes=entity.notes,
            issue_description=entity.issue_description,
            source=entity.source,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )


class BookingDetailModel(ServiceRequestModel):
    customer: CustomerModel
    service_type: ServiceTypeModel | None = None
    technician: TechnicianModel | None = None
    service_record: ServiceRecordModel | None = None

    @classmethod
    def from_detail(cls, detail: ServiceRequestDetail) -> "BookingDetailModel":
        base = ServiceRequestModel.from_entity(detail.request)
        return cls(
            **base.model_dump(),
            customer=CustomerModel.from_entity(detail.customer),
            service_type=ServiceTypeModel.from_entity(detail.service_type),
            technician=None if detail.technician is None else TechnicianModel.from_entity(detail.technician),
            service_record=ServiceRecordModel.from_entity(detail.service_record),
        )


class JobModel(ServiceRequestModel):
    customer: CustomerModel
    service_type: ServiceTypeModel | None = None
    equipment: list[EquipmentModel] = Field(default_factory=list)

    @classmethod
    def from_job(cls, job: DispatchJob) -> "JobModel":
        base = ServiceRequestModel.from_entity(job.request)
        return cls(
            **base.model_dump(),
            customer=CustomerModel.from_entity(job.customer),
            service_type=ServiceTypeModel.from_entity(job.service_type),
            equipment=[EquipmentModel.from_entity(item) for item in job.equipment],
        )


class JobResponse(BaseModel):
    success: bool = True
    message: str
    job: ServiceRequestModel
