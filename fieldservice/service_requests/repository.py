from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Iterable, Mapping, Sequence

import asyncpg

from fieldservice.errors import DependencyFailure
from fieldservice.services.postgres import acquire, ensure_datetime

from .models import (
    Customer,
    DispatchJob,
    Equipment,
    ServiceRecord,
    ServiceRequest,
    ServiceRequestDetail,
    ServiceType,
    Technician,
)
from .state import Priority, RequestStatus

_REQUEST_COLUMNS = """
    sr.id, sr.customer_id, sr.service_type_id, sr.requested_service, sr.assigned_tech_id,
    sr.status, sr.priority, sr.preferred_date, sr.preferred_time, sr.scheduled_date,
    sr.scheduled_time, sr.actual_start_time, sr.actual_end_time, sr.notes,
    sr.issue_description, sr.source, sr.created_at, sr.updated_at
"""

_CUSTOMER_COLUMNS = """
    c.first_name AS customer_first_name, c.last_name AS customer_last_name,
    c.phone AS customer_phone, c.email AS customer_email, c.address AS customer_address,
    c.city AS customer_city, c.state AS customer_state, c.zip_code AS customer_zip_code,
    c.special_instructions AS customer_special_instructions
"""

_SERVICE_TYPE_COLUMNS = """
    st.name AS service_type_name, st.base_price AS service_type_base_price,
    st.estimated_duration_minutes AS service_type_estimated_duration_minutes
"""


class ServiceRequestRepository:
    """Data access layer for customers, service requests and their records."""

    _CREATE_CUSTOMERS_SQL = """
    CREATE TABLE IF NOT EXISTS customers (
        id VARCHAR(36) PRIMARY KEY,
        first_name VARCHAR(255) NOT NULL,
        last_name VARCHAR(255) NOT NULL DEFAULT '',
        phone VARCHAR(50) NOT NULL UNIQUE,
        email VARCHAR(255) NULL,
        address TEXT NULL,
        city VARCHAR(100) NULL,
        state VARCHAR(50) NULL,
        zip_code VARCHAR(20) NULL,
        special_instructions TEXT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """

    _CREATE_TECHNICIANS_SQL = """
    CREATE TABLE IF NOT EXISTS technicians (
        id VARCHAR(36) PRIMARY KEY,
        name VARCHAR(255) NOT NULL,
        phone VARCHAR(50) NOT NULL UNIQUE,
        email VARCHAR(255) NULL,
        specialization VARCHAR(255) NULL,
        status VARCHAR(50) NOT NULL DEFAULT 'available'
    )
    """

    _CREATE_SERVICE_TYPES_SQL = """
    CREATE TABLE IF NOT EXISTS service_types (
        id VARCHAR(36) PRIMARY KEY,
        name VARCHAR(255) NOT NULL UNIQUE,
        base_price NUMERIC(10, 2) NULL,
        estimated_duration_minutes INTEGER NULL
    )
    """

    _CREATE_EQUIPMENT_SQL = """
    CREATE TABLE IF NOT EXISTS equipment (
        id VARCHAR(36) PRIMARY KEY,
        customer_id VARCHAR(36) NOT NULL REFERENCES customers(id) ON DELETE CASCADE,
        equipment_type VARCHAR(100) NOT NULL,
        brand VARCHAR(100) NULL,
        model_number VARCHAR(100) NULL,
        age_years INTEGER NULL,
        last_service_date DATE NULL
    )
    """

    _CREATE_SERVICE_REQUESTS_SQL = """
    CREATE TABLE IF NOT EXISTS service_requests (
        id VARCHAR(36) PRIMARY KEY,
        customer_id VARCHAR(36) NOT NULL REFERENCES customers(id),
        service_type_id VARCHAR(36) NULL REFERENCES service_types(id),
        requested_service VARCHAR(255) NOT NULL,
        assigned_tech_id VARCHAR(36) NULL REFERENCES technicians(id),
        status VARCHAR(50) NOT NULL,
        priority INTEGER NOT NULL DEFAULT 1,
        preferred_date DATE NULL,
        preferred_time TIME NULL,
        scheduled_date DATE NULL,
        scheduled_time TIME NULL,
        actual_start_time TIMESTAMPTZ NULL,
        actual_end_time TIMESTAMPTZ NULL,
        notes TEXT NOT NULL DEFAULT '',
        issue_description TEXT NOT NULL DEFAULT '',
        source VARCHAR(50) NOT NULL,
        created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """

    _CREATE_SERVICE_RECORDS_SQL = """
    CREATE TABLE IF NOT EXISTS service_records (
        id VARCHAR(36) PRIMARY KEY,
        request_id VARCHAR(36) NOT NULL UNIQUE REFERENCES service_requests(id),
        customer_id VARCHAR(36) NOT NULL REFERENCES customers(id),
        tech_id VARCHAR(36) NULL REFERENCES technicians(id),
        service_date DATE NOT NULL,
        work_performed TEXT NOT NULL,
        parts_used TEXT NOT NULL DEFAULT '',
        tech_notes TEXT NOT NULL DEFAULT '',
        created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """

    _CREATE_JOBS_INDEX_SQL = """
    CREATE INDEX IF NOT EXISTS ix_service_requests_tech_schedule
    ON service_requests (assigned_tech_id, scheduled_date, status)
    """

    _UPSERT_CUSTOMER_SQL = """
    INSERT INTO customers (id, first_name, last_name, phone, email)
    VALUES ($1, $2, $3, $4, $5)
    ON CONFLICT (phone) DO UPDATE
    SET email = COALESCE(customers.email, EXCLUDED.email)
    RETURNING id, first_name, last_name, phone, email, address, city, state, zip_code,
              special_instructions, created_at, updated_at
    """

    _SELECT_SERVICE_TYPE_BY_NAME_SQL = """
    SELECT id, name, base_price, estimated_duration_minutes
    FROM service_types
    WHERE LOWER(name) = LOWER($1)
    """

    _INSERT_REQUEST_SQL = """
    INSERT INTO service_requests (
        id, customer_id, service_type_id, requested_service, assigned_tech_id, status, priority,
        preferred_date, preferred_time, scheduled_date, scheduled_time, notes, issue_description,
        source, created_at, updated_at
    )
    VALUES ($1, $2, $3, $4, NULL, $5, $6, $7, $8, NULL, NULL, $9, $10, $11, $12, $12)
    """

    _SELECT_DETAIL_SQL = f"""
    SELECT {_REQUEST_COLUMNS}, {_CUSTOMER_COLUMNS}, {_SERVICE_TYPE_COLUMNS},
           t.name AS tech_name, t.phone AS tech_phone, t.email AS tech_email,
           t.specialization AS tech_specialization, t.status AS tech_status
    FROM service_requests sr
    JOIN customers c ON sr.customer_id = c.id
    LEFT JOIN service_types st ON sr.service_type_id = st.id
    LEFT JOIN technicians t ON sr.assigned_tech_id = t.id
    WHERE sr.id = $1
    """

    _SELECT_RECORD_SQL = """
    SELECT id, request_id, customer_id, tech_id, service_date, work_performed, parts_used,
           tech_notes, created_at
    FROM service_records
    WHERE request_id = $1
    """

    _SELECT_STATUS_SQL = """
    SELECT status FROM service_requests WHERE id = $1
    """

    _SCHEDULE_SQL = f"""
    UPDATE service_requests sr
    SET status = $3,
        assigned_tech_id = $4,
        scheduled_date = $5,
        scheduled_time = $6,
        priority = COALESCE($7, sr.priority),
        updated_at = $8
    WHERE sr.id = $1 AND sr.status = ANY($2::text[])
    RETURNING {_REQUEST_COLUMNS}
    """

    _START_SQL = f"""
    UPDATE service_requests sr
    SET status = $3,
        actual_start_time = $4,
        updated_at = $4
    WHERE sr.id = $1 AND sr.status = ANY($2::text[])
    RETURNING {_REQUEST_COLUMNS}
    """

    _COMPLETE_SQL = f"""
    UPDATE service_requests sr
    SET status = $3,
        actual_end_time = GREATEST($4, COALESCE(sr.actual_start_time, $4)),
        updated_at = $4
    WHERE sr.id = $1 AND sr.status = ANY($2::text[])
    RETURNING {_REQUEST_COLUMNS}
    """

    _INSERT_RECORD_SQL = """
    INSERT INTO service_records (
        id, request_id, customer_id, tech_id, service_date, work_performed, parts_used, tech_notes,
        created_at
    )
    VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9)
    RETURNING id, request_id, customer_id, tech_id, service_date, work_performed, parts_used,
              tech_notes, created_at
    """

    _CANCEL_SQL = f"""
    UPDATE service_requests sr
    SET status = $3,
        notes = CASE
            WHEN $5::text IS NULL THEN sr.notes
            WHEN sr.notes = '' THEN $5
            ELSE sr.notes || $6 || $5
        END,
        updated_at = $4
    WHERE sr.id = $1 AND sr.status = ANY($2::text[])
    RETURNING {_REQUEST_COLUMNS}
    """

    _APPEND_NOTES_SQL = f"""
    UPDATE service_requests sr
    SET notes = CASE
            WHEN sr.notes = '' THEN $2
            ELSE sr.notes || $3 || $2
        END,
        updated_at = $4
    WHERE sr.id = $1
    RETURNING {_REQUEST_COLUMNS}
    """

    _SELECT_TECHNICIAN_SQL = """
    SELECT id, name, phone, email, specialization, status
    FROM technicians
    WHERE id = $1
    """

    _SELECT_TECHNICIAN_BY_PHONE_SQL = """
    SELECT id, name, phone, email, specialization, status
    FROM technicians
    WHERE phone = $1
    """

    _SELECT_TECHNICIAN_BY_NAME_SQL = """
    SELECT id, name, phone, email, specialization, status
    FROM technicians
    WHERE LOWER(name) = LOWER($1)
    ORDER BY id
    LIMIT 1
    """

    _LIST_JOBS_SQL = f"""
    SELECT {_REQUEST_COLUMNS}, {_CUSTOMER_COLUMNS}, {_SERVICE_TYPE_COLUMNS}
    FROM service_requests sr
    JOIN customers c ON sr.customer_id = c.id
    LEFT JOIN service_types st ON sr.service_type_id = st.id
    WHERE sr.assigned_tech_id = $1
      AND sr.scheduled_date = $2
      AND sr.status = ANY($3::text[])
    ORDER BY sr.scheduled_time ASC, sr.priority DESC
    """

    _LIST_SCHEDULE_SQL = f"""
    SELECT {_REQUEST_COLUMNS}, {_CUSTOMER_COLUMNS}, {_SERVICE_TYPE_COLUMNS}
    FROM service_requests sr
    JOIN customers c ON sr.customer_id = c.id
    LEFT JOIN service_types st ON sr.service_type_id = st.id
    WHERE sr.assigned_tech_id = $1
      AND sr.scheduled_date BETWEEN $2 AND $3
      AND sr.status = ANY($4::text[])
    ORDER BY sr.scheduled_date ASC, sr.scheduled_time ASC
    """

    _SELECT_EQUIPMENT_SQL = """
    SELECT id, customer_id, equipment_type, brand, model_number, age_years, last_service_date
    FROM equipment
    WHERE customer_id = ANY($1::text[])
    ORDER BY equipment_type ASC
    """

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def ensure_schema(self) -> None:
        async with acquire(self._pool) as connection:
            for statement in (
                self._CREATE_CUSTOMERS_SQL,
                self._CREATE_TECHNICIANS_SQL,
                self._CREATE_SERVICE_TYPES_SQL,
                self._CREATE_EQUIPMENT_SQL,
                self._CREATE_SERVICE_REQUESTS_SQL,
                self._CREATE_SERVICE_RECORDS_SQL,
                self._CREATE_JOBS_INDEX_SQL,
            ):
                await connection.execute(statement)

    # Customers and catalog

    async def upsert_customer(self, customer: Customer) -> Customer:
        """Insert ``customer`` or return the existing row sharing its phone."""

        async with acquire(self._pool) as connection:
            row = await connection.fetchrow(
                self._UPSERT_CUSTOMER_SQL,
                customer.id,
                customer.first_name,
                customer.last_name,
                customer.phone,
                customer.email,
            )
        if row is None:
            raise DependencyFailure("Failed to store customer")
        return _row_to_customer(row)

    async def find_service_type(self, name: str) -> ServiceType | None:
        async with acquire(self._pool) as connection:
            row = await connection.fetchrow(self._SELECT_SERVICE_TYPE_BY_NAME_SQL, name)
        if row is None:
            return None
        return ServiceType(
            id=str(row["id"]),
            name=str(row["name"]),
            base_price=_to_decimal(row["base_price"]),
            estimated_duration_minutes=row["estimated_duration_minutes"],
        )

    # Service requests

    async def create_request(self, request: ServiceRequest) -> None:
        async with acquire(self._pool) as connection:
            await connection.execute(
                self._INSERT_REQUEST_SQL,
                request.id,
                request.customer_id,
                request.service_type_id,
                request.requested_service,
                request.status.value,
                int(request.priority),
                request.preferred_date,
                request.preferred_time,
                request.notes,
                request.issue_description,
                request.source,
                request.created_at,
            )

    async def get_request_detail(self, request_id: str) -> ServiceRequestDetail | None:
        async with acquire(self._pool) as connection:
            row = await connection.fetchrow(self._SELECT_DETAIL_SQL, request_id)
            if row is None:
                return None
            record_row = await connection.fetchrow(self._SELECT_RECORD_SQL, request_id)

        request = _row_to_request(row)
        technician = None
        if request.assigned_tech_id is not None and row["tech_name"] is not None:
            technician = Technician(
                id=request.assigned_tech_id,
                name=str(row["tech_name"]),
                phone=str(row["tech_phone"]),
                email=row["tech_email"],
                specialization=row["tech_specialization"],
                status=str(row["tech_status"]),
            )
        return ServiceRequestDetail(
            request=request,
            customer=_joined_customer(row),
            service_type=_joined_service_type(row),
            technician=technician,
            service_record=None if record_row is None else _row_to_record(record_row),
        )

    async def get_status(self, request_id: str) -> RequestStatus | None:
        async with acquire(self._pool) as connection:
            value = await connection.fetchval(self._SELECT_STATUS_SQL, request_id)
        return None if value is None else RequestStatus(str(value))

    async def schedule_request(
        self,
        request_id: str,
        *,
        from_statuses: Iterable[RequestStatus],
        to_status: RequestStatus,
        technician_id: str,
        scheduled_date: date,
        scheduled_time: time,
        priority: Priority | None,
        updated_at: datetime,
    ) -> ServiceRequest | None:
        async with acquire(self._pool) as connection:
            row = await connection.fetchrow(
                self._SCHEDULE_SQL,
                request_id,
                _status_values(from_statuses),
                to_status.value,
                technician_id,
                scheduled_date,
                scheduled_time,
                None if priority is None else int(priority),
                updated_at,
            )
        return None if row is None else _row_to_request(row)

    async def start_request(
        self,
        request_id: str,
        *,
        from_statuses: Iterable[RequestStatus],
        to_status: RequestStatus,
        started_at: datetime,
    ) -> ServiceRequest | None:
        async with acquire(self._pool) as connection:
            row = await connection.fetchrow(
                self._START_SQL,
                request_id,
                _status_values(from_statuses),
                to_status.value,
                started_at,
            )
        return None if row is None else _row_to_request(row)

    async def complete_request(
        self,
        request_id: str,
        *,
        from_statuses: Iterable[RequestStatus],
        to_status: RequestStatus,
        finished_at: datetime,
        record_id: str,
        service_date: date,
        work_performed: str,
        parts_used: str,
        tech_notes: str,
    ) -> tuple[ServiceRequest, ServiceRecord] | None:
        """Flip the status and write the service record in one transaction."""

        async with acquire(self._pool) as connection:
            async with connection.transaction():
                row = await connection.fetchrow(
                    self._COMPLETE_SQL,
                    request_id,
                    _status_values(from_statuses),
                    to_status.value,
                    finished_at,
                )
                if row is None:
                    return None
                request = _row_to_request(row)
                record_row = await connection.fetchrow(
                    self._INSERT_RECORD_SQL,
                    record_id,
                    request.id,
                    request.customer_id,
                    request.assigned_tech_id,
                    service_date,
                    work_performed,
                    parts_used,
                    tech_notes,
                    finished_at,
                )
                if record_row is None:
                    raise DependencyFailure("Failed to insert service record")
        return request, _row_to_record(record_row)

    async def cancel_request(
        self,
        request_id: str,
        *,
        from_statuses: Iterable[RequestStatus],
        to_status: RequestStatus,
        cancelled_at: datetime,
        reason: str | None,
        marker: str,
    ) -> ServiceRequest | None:
        async with acquire(self._pool) as connection:
            row = await connection.fetchrow(
                self._CANCEL_SQL,
                request_id,
                _status_values(from_statuses),
                to_status.value,
                cancelled_at,
                reason,
                marker,
            )
        return None if row is None else _row_to_request(row)

    async def append_notes(
        self,
        request_id: str,
        *,
        notes: str,
        marker: str,
        updated_at: datetime,
    ) -> ServiceRequest | None:
        async with acquire(self._pool) as connection:
            row = await connection.fetchrow(self._APPEND_NOTES_SQL, request_id, notes, marker, updated_at)
        return None if row is None else _row_to_request(row)

    # Technicians

    async def get_technician(self, technician_id: str) -> Technician | None:
        return await self._fetch_technician(self._SELECT_TECHNICIAN_SQL, technician_id)

    async def find_technician_by_phone(self, phone: str) -> Technician | None:
        return await self._fetch_technician(self._SELECT_TECHNICIAN_BY_PHONE_SQL, phone)

    async def find_technician_by_name(self, name: str) -> Technician | None:
        return await self._fetch_technician(self._SELECT_TECHNICIAN_BY_NAME_SQL, name)

    async def _fetch_technician(self, query: str, value: str) -> Technician | None:
        async with acquire(self._pool) as connection:
            row = await connection.fetchrow(query, value)
        if row is None:
            return None
        return Technician(
            id=str(row["id"]),
            name=str(row["name"]),
            phone=str(row["phone"]),
            email=row["email"],
            specialization=row["specialization"],
            status=str(row["status"]),
        )

    # Job lists

    async def list_jobs(
        self,
        technician_id: str,
        *,
        on_date: date,
        statuses: Iterable[RequestStatus],
    ) -> list[DispatchJob]:
        async with acquire(self._pool) as connection:
            rows = await connection.fetch(self._LIST_JOBS_SQL, technician_id, on_date, _status_values(statuses))
            equipment_rows = await self._fetch_equipment(connection, rows)
        return _rows_to_jobs(rows, equipment_rows)

    async def list_schedule(
        self,
        technician_id: str,
        *,
        start: date,
        end: date,
        statuses: Iterable[RequestStatus],
    ) -> list[DispatchJob]:
        async with acquire(self._pool) as connection:
            rows = await connection.fetch(
                self._LIST_SCHEDULE_SQL,
                technician_id,
                start,
                end,
                _status_values(statuses),
            )
        return _rows_to_jobs(rows, [])

    async def _fetch_equipment(self, connection: Any, rows: Sequence[Mapping[str, Any]]) -> list[Any]:
        customer_ids = sorted({str(row["customer_id"]) for row in rows})
        if not customer_ids:
            return []
        return list(await connection.fetch(self._SELECT_EQUIPMENT_SQL, customer_ids))


def _status_values(statuses: Iterable[RequestStatus]) -> list[str]:
    return sorted(status.value for status in statuses)


def _rows_to_jobs(
    rows: Sequence[Mapping[str, Any]], equipment_rows: Sequence[Mapping[str, Any]]
) -> list[DispatchJob]:
    equipment_by_customer: dict[str, list[Equipment]] = {}
    for row in equipment_rows:
        item = Equipment(
            id=str(row["id"]),
            customer_id=str(row["customer_id"]),
            equipment_type=str(row["equipment_type"]),
            brand=row["brand"],
            model_number=row["model_number"],
            age_years=row["age_years"],
            last_service_date=row["last_service_date"],
        )
        equipment_by_customer.setdefault(item.customer_id, []).append(item)

    jobs: list[DispatchJob] = []
    for row in rows:
        request = _row_to_request(row)
        jobs.append(
            DispatchJob(
                request=request,
                customer=_joined_customer(row),
                service_type=_joined_service_type(row),
                equipment=equipment_by_customer.get(request.customer_id, []),
            )
        )
    return jobs


def _row_to_request(row: Mapping[str, Any]) -> ServiceRequest:
    return ServiceRequest(
        id=str(row["id"]),
        customer_id=str(row["customer_id"]),
        service_type_id=_optional_str(row["service_type_id"]),
        requested_service=str(row["requested_service"]),
        assigned_tech_id=_optional_str(row["assigned_tech_id"]),
        status=RequestStatus(str(row["status"])),
        priority=Priority(int(row["priority"])),
        preferred_date=row["preferred_date"],
        preferred_time=row["preferred_time"],
        scheduled_date=row["scheduled_date"],
        scheduled_time=row["scheduled_time"],
        actual_start_time=_optional_datetime(row["actual_start_time"]),
        actual_end_time=_optional_datetime(row["actual_end_time"]),
        notes=str(row["notes"] or ""),
        issue_description=str(row["issue_description"] or ""),
        source=str(row["source"]),
        created_at=ensure_datetime(row["created_at"]),
        updated_at=ensure_datetime(row["updated_at"]),
    )


def _row_to_customer(row: Mapping[str, Any]) -> Customer:
    return Customer(
        id=str(row["id"]),
        first_name=str(row["first_name"]),
        last_name=str(row["last_name"] or ""),
        phone=str(row["phone"]),
        email=row["email"],
        address=row["address"],
        city=row["city"],
        state=row["state"],
        zip_code=row["zip_code"],
        special_instructions=row["special_instructions"],
        created_at=_optional_datetime(row["created_at"]),
        updated_at=_optional_datetime(row["updated_at"]),
    )


def _joined_customer(row: Mapping[str, Any]) -> Customer:
    return Customer(
        id=str(row["customer_id"]),
        first_name=str(row["customer_first_name"]),
        last_name=str(row["customer_last_name"] or ""),
        phone=str(row["customer_phone"]),
        email=row["customer_email"],
        address=row["customer_address"],
        city=row["customer_city"],
        state=row["customer_state"],
        zip_code=row["customer_zip_code"],
        special_instructions=row["customer_special_instructions"],
    )


def _joined_service_type(row: Mapping[str, Any]) -> ServiceType | None:
    service_type_id = row["service_type_id"]
    if service_type_id is None or row["service_type_name"] is None:
        return None
    return ServiceType(
        id=str(service_type_id),
        name=str(row["service_type_name"]),
        base_price=_to_decimal(row["service_type_base_price"]),
        estimated_duration_minutes=row["service_type_estimated_duration_minutes"],
    )


def _row_to_record(row: Mapping[str, Any]) -> ServiceRecord:
    return ServiceRecord(
        id=str(row["id"]),
        request_id=str(row["request_id"]),
        customer_id=str(row["customer_id"]),
        tech_id=_optional_str(row["tech_id"]),
        service_date=row["service_date"],
        work_performed=str(row["work_performed"]),
        parts_used=str(row["parts_used"] or ""),
        tech_notes=str(row["tech_notes"] or ""),
        created_at=ensure_datetime(row["created_at"]),
    )


def _optional_str(value: Any) -> str | None:
    return None if value is None else str(value)


def _to_decimal(value: Any) -> Decimal | None:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _optional_datetime(value: Any) -> datetime | None:
    if value is None:
        return None
    return ensure_datetime(value)

