"""
Centralized error handlers for FastAPI.

Every failure goes through the same path: capture the exception as a
Fault, normalize it, log it with a status-derived severity, and write
the failure envelope. No route writes a raw upstream error.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from gateway.domain.backend.errors import BackendError
from gateway.shared.errors.faults import capture
from gateway.shared.errors.normalizer import NormalizedError, normalize, severity_for

logger = logging.getLogger(__name__)


def error_envelope(error: NormalizedError, request: Request) -> dict[str, Any]:
    """Build the failure body for a normalized error."""
    body: dict[str, Any] = {
        "message": error.message,
        "code": error.code,
        "statusCode": error.http_status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "path": request.url.path,
        "method": request.method,
    }
    if error.details is not None:
        try:
            body["details"] = jsonable_encoder(error.details)
        except (TypeError, ValueError):
            body["details"] = {"detail": repr(error.details)}
    return {"success": False, "error": body}


def register_error_handlers(app: FastAPI, production: bool = False) -> None:
    """Register the fault-normalizing handlers on the FastAPI application.

    Args:
        app: The FastAPI application instance.
        production: Hide 5xx upstream messages and diagnostic details.
    """

    def render_fault(request: Request, exc: Exception) -> JSONResponse:
        """Capture, normalize, log and render any failure."""
        fault = capture(exc)
        error = normalize(fault, production=production)
        level = severity_for(error.http_status)
        logger.log(
            level,
            "%s %s -> %d %s: %s",
            request.method,
            request.url.path,
            error.http_status,
            error.code,
            fault.message,
            exc_info=exc if error.code == "internal-server-error" else None,
        )
        return JSONResponse(
            status_code=error.http_status,
            content=error_envelope(error, request),
        )

    async def handle_fault(request: Request, exc: Exception) -> JSONResponse:
        return render_fault(request, exc)

    app.add_exception_handler(BackendError, handle_fault)
    app.add_exception_handler(RequestValidationError, handle_fault)
    app.add_exception_handler(ValidationError, handle_fault)
    app.add_exception_handler(json.JSONDecodeError, handle_fault)
    app.add_exception_handler(StarletteHTTPException, handle_fault)
    # Catch-all for unexpected errors. Never exposes internals in production.
    app.add_exception_handler(Exception, handle_fault)
