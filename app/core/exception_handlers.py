"""Exception handlers that turn docflow errors into JSON responses.

Validation failures always answer 400 with ``{"errors": [{field, message}]}``,
whether they come from the template/action schemas or from request parsing.
Every other docflow error answers ``{"error", "message", "details"}``.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import get_settings
from app.domain.exceptions import DocflowException, ValidationException

logger = logging.getLogger(__name__)

HTTP_STATUS_BY_CODE: dict[str, int] = {
    "RESOURCE_NOT_FOUND": 404,
    "VALIDATION_ERROR": 400,
    "PERMISSION_DENIED": 403,
    "STATE_CONFLICT": 409,
    "DEPENDENCY_UNSATISFIED": 409,
    "ESCALATION_CONFIG_ERROR": 409,
    "TEMPLATE_IN_USE": 409,
    "DUPLICATE_ASSIGNMENT": 409,
    "RUN_ALREADY_ACTIVE": 409,
    "SERVICE_UNAVAILABLE": 503,
}


def _field_path(loc: tuple) -> str:
    parts = [p for p in loc if p != "body"]
    path = ""
    for part in parts:
        path += f"[{part}]" if isinstance(part, int) else (f".{part}" if path else str(part))
    return path


async def docflow_exception_handler(request: Request, exc: DocflowException) -> JSONResponse:
    status = HTTP_STATUS_BY_CODE.get(exc.error_code, 400)
    if status >= 500:
        logger.error("%s: %s", exc.error_code, exc.message)
    return JSONResponse(status_code=status, content=exc.to_dict())


async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        {"field": _field_path(tuple(err.get("loc", ()))), "message": err.get("msg", "Invalid value")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=ValidationException("Request validation failed", errors=errors).to_dict(),
    )


async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={"error": "RATE_LIMITED", "message": f"Rate limit exceeded: {exc.detail}"},
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "HTTP_ERROR", "message": exc.detail},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Answer 500; the exception text is only exposed with DEBUG=true."""
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    message = str(exc) if get_settings().debug else "Internal server error"
    return JSONResponse(status_code=500, content={"error": "INTERNAL_ERROR", "message": message})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DocflowException, docflow_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
