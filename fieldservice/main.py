from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from fieldservice.api.routes import bookings, chat, ping, tech
from fieldservice.chat import ChatRepository, ChatService, KeywordResponder
from fieldservice.core.clock import BusinessClock
from fieldservice.core.config import Settings, get_settings
from fieldservice.core.logging import configure_logging, init_tracer, shutdown_tracer
from fieldservice.errors import DependencyFailure
from fieldservice.notifications import build_notifier
from fieldservice.service_requests import DispatchService, IntakeService, ServiceRequestRepository
from fieldservice.services.postgres import DATABASE_ERRORS, PostgresDatabase

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):  # pragma: no cover - executed by framework
    settings = get_settings()
    configure_logging(settings)
    tracer_provider = init_tracer(settings)
    app.state.tracer_provider = tracer_provider

    database = PostgresDatabase(
        dsn=settings.postgres_dsn,
        min_size=settings.postgres_min_pool_size,
        max_size=settings.postgres_max_pool_size,
        command_timeout=settings.postgres_command_timeout,
    )
    app.state.database = database
    app.state.intake_service = None
    app.state.dispatch_service = None
    app.state.chat_service = None

    try:
        await _wire_services(app, settings, database)
    except (DependencyFailure, *DATABASE_ERRORS):
        logger.exception("Database unavailable at startup; booking endpoints will answer 503")
    try:
        yield
    finally:
        await database.close()
        shutdown_tracer(tracer_provider)


async def _wire_services(app: FastAPI, settings: Settings, database: PostgresDatabase) -> None:
    pool = await database.get_pool()
    requests_repository = ServiceRequestRepository(pool)
    chat_repository = ChatRepository(pool)
    if settings.ensure_schema_on_startup:
        await requests_repository.ensure_schema()
        await chat_repository.ensure_schema()

    clock = BusinessClock(settings.business_timezone)
    app.state.intake_service = IntakeService(
        repository=requests_repository,
        notifier=build_notifier(settings),
        notification_recipient=settings.notification_recipient,
        clock=clock,
    )
    app.state.dispatch_service = DispatchService(repository=requests_repository, clock=clock)
    app.state.chat_service = ChatService(
        repository=chat_repository,
        customers=requests_repository,
        responder=KeywordResponder(),
        clock=clock,
    )
    logger.info("%s started (%s)", settings.app_name, settings.environment)


async def _http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    # routes may pass a dict detail carrying "message" plus extra keys such as "fields"
    if isinstance(exc.detail, dict):
        content = {"success": False, **exc.detail}
    else:
        content = {"success": False, "message": str(exc.detail)}
    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=getattr(exc, "headers", None),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = sorted({".".join(str(part) for part in error["loc"][1:]) for error in exc.errors()})
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": "Invalid request", "fields": fields},
    )


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "message": "Internal server error"})


def create_app() -> FastAPI:
    settings = get_settings()
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.add_exception_handler(HTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
    app.include_router(ping.router)
    app.include_router(bookings.router)
    app.include_router(chat.router)
    app.include_router(tech.router)
    return app


app = create_app()
