"""
Fault capture.

A `Fault` is the tagged value every raised exception is turned into
before normalization. `capture` is the only place that inspects
exception types; the normalizer only ever sees `Fault` values.
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from gateway.domain.backend.errors import BackendError

logger = logging.getLogger(__name__)


class FaultKind(str, Enum):
    """Closed set of fault origins."""

    IDENTITY_PROVIDER = "identity-provider-fault"
    DOCUMENT_STORE = "document-store-fault"
    VALIDATION = "validation-fault"
    TOKEN = "token-fault"
    UPLOAD = "upload-fault"
    GENERIC = "generic-fault"


@dataclass(frozen=True)
class FieldError:
    """One rejected input field."""

    field: str
    message: str
    value: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {"field": self.field, "message": self.message, "value": self.value}


@dataclass(frozen=True)
class Fault:
    """A raw failure from an upstream call, prior to normalization.

    Attributes:
        kind: Origin of the failure. Plain strings are accepted so that
            faults coerced from foreign exceptions can carry an unknown
            kind; the normalizer treats those as unmapped.
        message: Upstream message.
        source_code: Upstream-specific identifier, if any.
        original_detail: Opaque diagnostic payload.
        field_errors: Rejected fields (validation faults only).
    """

    kind: FaultKind | str
    message: str
    source_code: str | None = None
    original_detail: Any = None
    field_errors: tuple[FieldError, ...] = field(default_factory=tuple)


_HTTP_STATUS_SOURCE_CODES = {
    400: "bad-request",
    401: "unauthorized",
    403: "forbidden",
    404: "route-not-found",
    405: "method-not-allowed",
    413: "payload-too-large",
    429: "rate-limit-exceeded",
}

_JSON_INVALID = "json_invalid"


def _http_source_code(status_code: int) -> str | None:
    # Unlisted 4xx statuses become bad-request.
    if status_code in _HTTP_STATUS_SOURCE_CODES:
        return _HTTP_STATUS_SOURCE_CODES[status_code]
    if 400 <= status_code < 500:
        return "bad-request"
    return None


def capture(exc: BaseException) -> Fault:
    """Turn any raised exception into a Fault. Never raises."""
    try:
        return _capture(exc)
    except Exception:  # noqa: BLE001
        logger.exception("Fault capture failed for %s", type(exc).__name__)
        return Fault(kind=FaultKind.GENERIC, message=_message_of(exc))


def _capture(exc: BaseException) -> Fault:
    if isinstance(exc, BackendError):
        return Fault(
            kind=FaultKind(exc.kind),
            message=exc.message,
            source_code=exc.source_code,
            original_detail=exc.detail,
        )

    if isinstance(exc, (RequestValidationError, ValidationError)):
        return _validation_fault(exc.errors())

    if isinstance(exc, StarletteHTTPException):
        return Fault(
            kind=FaultKind.GENERIC,
            message=str(exc.detail),
            source_code=_http_source_code(exc.status_code),
            original_detail={"statusCode": exc.status_code},
        )

    if isinstance(exc, json.JSONDecodeError):
        return Fault(
            kind=FaultKind.GENERIC, message=exc.msg, source_code="invalid-json"
        )

    kind = getattr(exc, "kind", None)
    if isinstance(kind, str):
        source_code = getattr(exc, "source_code", None) or getattr(exc, "code", None)
        return Fault(
            kind=kind,
            message=_message_of(exc),
            source_code=source_code if isinstance(source_code, str) else None,
            original_detail=getattr(exc, "detail", None),
        )

    return Fault(
        kind=FaultKind.GENERIC,
        message=_message_of(exc),
        original_detail=type(exc).__name__,
    )


def _validation_fault(errors: Any) -> Fault:
    errors = list(errors)
    if any(e.get("type") == _JSON_INVALID for e in errors):
        return Fault(
            kind=FaultKind.GENERIC,
            message="Request body is not valid JSON",
            source_code="invalid-json",
        )

    field_errors = tuple(
        FieldError(
            field=_field_name(e.get("loc", ())),
            message=e.get("msg", "Invalid value"),
            value=_safe_value(e.get("input")),
        )
        for e in errors
    )
    return Fault(
        kind=FaultKind.VALIDATION,
        message="Validation failed",
        field_errors=field_errors,
    )


def _field_name(loc: Any) -> str:
    # Drop the "body"/"query"/"path" prefix FastAPI puts in front of the field.
    parts = [str(p) for p in loc]
    if len(parts) > 1 and parts[0] in ("body", "query", "path", "header", "cookie"):
        parts = parts[1:]
    return ".".join(parts)


def _safe_value(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool, list, dict)):
        return value
    return repr(value)


def _message_of(exc: BaseException) -> str:
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(exc) or type(exc).__name__
