"""Health check endpoints."""

import structlog
from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from umlpro_service.db.engine import get_session_factory

log = structlog.get_logger(__name__)

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/health/ready")
async def ready() -> JSONResponse:
    """Ready once the database engine exists and answers a trivial query."""
    try:
        factory = get_session_factory()
    except RuntimeError:
        return JSONResponse(status_code=503, content={"status": "starting", "database": "uninitialized"})
    try:
        async with factory() as session:
            await session.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as exc:
        log.warning("readiness_database_failed", error=str(exc))
        return JSONResponse(status_code=503, content={"status": "unavailable", "database": "unreachable"})
    return JSONResponse(content={"status": "ready", "database": "ok"})
