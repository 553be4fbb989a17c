"""Map service errors onto JSON ``{"detail": ...}`` responses."""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from umlpro_service.errors import ExternalServiceError, ServiceError

log = structlog.get_logger(__name__)


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error("request_failed", path=request.url.path, status=exc.status_code, error=exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def external_service_error_handler(
    request: Request, exc: ExternalServiceError
) -> JSONResponse:
    log.error("external_service_failed", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content={"detail": str(exc)})


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Malformed bodies and parameters are 400s, not FastAPI's default 422."""
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        reason = first.get("ctx", {}).get("error")
        if first.get("type") == "value_error" and reason is not None:
            # Message raised by a schema field_validator.
            message = str(reason)
        else:
            msg = first.get("msg")
            message = f"Invalid {location}: {msg}" if location else str(msg)
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"detail": message})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(ExternalServiceError, external_service_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
