import logging

from fastapi import APIRouter, HTTPException, Request

from fieldservice.errors import DependencyFailure
from fieldservice.services.postgres import DATABASE_ERRORS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ping", tags=["health"])


@router.get("", summary="Public health probe")
async def ping() -> dict[str, object]:
    return {"success": True, "status": "ok"}


@router.get("/database", summary="Database connectivity probe")
async def ping_database(request: Request) -> dict[str, object]:
    database = getattr(request.app.state, "database", None)
    if database is None:
        raise HTTPException(status_code=503, detail="Database is not configured")
    try:
        await database.test_connection()
    except (DependencyFailure, *DATABASE_ERRORS) as exc:
        logger.warning("Database probe failed: %s", exc)
        raise HTTPException(status_code=503, detail="Database unavailable") from exc
    return {"success": True, "status": "ok"}
