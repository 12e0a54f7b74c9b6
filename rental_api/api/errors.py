"""
Error envelope and exception handlers.

Every failure leaves the API as an ErrorResponse carrying the correlation id of
the request. Domain errors map to a status by their ``type``.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from rental_api.core.errors import DuplicateError, InvalidDataError, NotFoundError, RentalApiError
from rental_api.schemas.common import ErrorInfo, ErrorResponse

logger = logging.getLogger(__name__)

STATUS_BY_ERROR_TYPE: Dict[str, int] = {
    NotFoundError.type: 404,
    InvalidDataError.type: 400,
    DuplicateError.type: 409,
}


def error_response(request: Request, status_code: int, error_type: str, message: str, details: Any = None) -> JSONResponse:
    """Render an ErrorResponse for the current request."""
    body = ErrorResponse(
        status=status_code,
        error=ErrorInfo(type=error_type, message=message, details=details),
        correlation_id=getattr(request.state, "correlation_id", None),
        path=request.url.path,
        method=request.method,
        timestamp=datetime.now(tz=timezone.utc),
    )
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


async def handle_domain_error(request: Request, exc: RentalApiError) -> JSONResponse:
    status_code = STATUS_BY_ERROR_TYPE.get(exc.type, 400)
    logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.type, exc.message)
    return error_response(request, status_code, exc.type, exc.message, exc.details)


async def handle_integrity_error(request: Request, exc: IntegrityError) -> JSONResponse:
    """Unique index violations (handle, sku, barcode, ...) that slipped past service checks."""
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return error_response(
        request, 409, DuplicateError.type, "The request conflicts with an existing record", str(exc.orig)
    )


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if isinstance(exc.detail, str):
        return error_response(request, exc.status_code, "http_error", exc.detail)
    return error_response(request, exc.status_code, "http_error", "HTTP Error", exc.detail)


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    # ctx/input may hold values that are not JSON serializable
    details = [{k: e[k] for k in ("type", "loc", "msg") if k in e} for e in exc.errors()]
    return error_response(request, 422, "validation_error", "Request validation failed", details)


async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error processing %s %s", request.method, request.url.path)
    return error_response(request, 500, "internal_error", "An unexpected error occurred")


# PUBLIC_INTERFACE
def register_exception_handlers(app: FastAPI) -> None:
    """Install the envelope-producing handlers on the application."""
    app.add_exception_handler(RentalApiError, handle_domain_error)
    app.add_exception_handler(IntegrityError, handle_integrity_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(Exception, handle_unexpected)
