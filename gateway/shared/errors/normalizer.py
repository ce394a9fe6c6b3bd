"""
Error normalizer.

Maps a `Fault` to the single outward-facing `NormalizedError` shape:
a stable machine-readable code, an HTTP status, a message and optional
details. Lookup is kind first, then source code within the kind; a
source-code entry always wins over the kind default, and anything
unmapped falls back to `internal-server-error`.

Pure and synchronous: no logging, no IO. `normalize` never raises, so
it is safe to call from inside error handlers.
"""

import logging
from dataclasses import dataclass
from typing import Any

from gateway.shared.errors.faults import Fault, FaultKind

GENERIC_MESSAGE = "Internal server error"


@dataclass(frozen=True)
class ErrorMapping:
    """One row of a mapping table."""

    code: str
    http_status: int
    message: str


@dataclass(frozen=True)
class NormalizedError:
    """The uniform client-facing error.

    Attributes:
        message: Human-readable message.
        code: Stable identifier clients can branch on.
        http_status: HTTP status of the response.
        details: Structured payload: field errors or diagnostics,
            only outside production.
    """

    message: str
    code: str
    http_status: int
    details: dict[str, Any] | None = None


IDENTITY_PROVIDER_ERRORS: dict[str, ErrorMapping] = {
    "user-not-found": ErrorMapping("user-not-found", 404, "User not found"),
    "email-already-exists": ErrorMapping("email-already-exists", 409, "Email already exists"),
    "uid-already-exists": ErrorMapping("uid-already-exists", 409, "User ID already exists"),
    "phone-number-already-exists": ErrorMapping(
        "phone-number-already-exists", 409, "Phone number already exists"
    ),
    "invalid-email": ErrorMapping("invalid-email", 400, "Invalid email format"),
    "weak-password": ErrorMapping("weak-password", 400, "Password is too weak"),
    "invalid-argument": ErrorMapping("invalid-argument", 400, "Invalid argument"),
    "user-disabled": ErrorMapping("user-disabled", 403, "User account is disabled"),
    "too-many-requests": ErrorMapping("too-many-requests", 429, "Too many requests"),
    "operation-not-allowed": ErrorMapping("operation-not-allowed", 403, "Operation not allowed"),
}

DOCUMENT_STORE_ERRORS: dict[str, ErrorMapping] = {
    "not-found": ErrorMapping("document-not-found", 404, "Document not found"),
    "already-exists": ErrorMapping("document-already-exists", 409, "Document already exists"),
    "failed-precondition": ErrorMapping("failed-precondition", 412, "Failed precondition"),
    "out-of-range": ErrorMapping("out-of-range", 400, "Value out of range"),
    "invalid-argument": ErrorMapping("invalid-argument", 400, "Invalid argument"),
    "unimplemented": ErrorMapping("unimplemented", 501, "Operation not implemented"),
    "internal": ErrorMapping("internal", 500, GENERIC_MESSAGE),
    "unavailable": ErrorMapping("unavailable", 503, "Service temporarily unavailable"),
    "deadline-exceeded": ErrorMapping("deadline-exceeded", 504, "Request timeout"),
    "unauthenticated": ErrorMapping("unauthenticated", 401, "Authentication required"),
    "permission-denied": ErrorMapping("permission-denied", 403, "Permission denied"),
}

TOKEN_ERRORS: dict[str, ErrorMapping] = {
    "invalid": ErrorMapping("jwt-error", 401, "Invalid token"),
    "expired": ErrorMapping("jwt-error", 401, "Token expired"),
    "not-active": ErrorMapping("jwt-error", 401, "Token not active yet"),
    "revoked": ErrorMapping("jwt-error", 401, "Token revoked"),
}

UPLOAD_ERRORS: dict[str, ErrorMapping] = {
    "size-limit": ErrorMapping("file-upload-error", 413, "File too large"),
    "count-limit": ErrorMapping("file-upload-error", 413, "Too many files"),
    "field-name-too-long": ErrorMapping("file-upload-error", 400, "Field name too long"),
    "field-too-long": ErrorMapping("file-upload-error", 400, "Field value too long"),
    "field-count": ErrorMapping("file-upload-error", 400, "Too many fields"),
    "unexpected-file": ErrorMapping("file-upload-error", 400, "Unexpected file field"),
    "no-file": ErrorMapping("file-upload-error", 400, "No file uploaded"),
}

GENERIC_ERRORS: dict[str, ErrorMapping] = {
    "invalid-json": ErrorMapping("invalid-json", 400, "Invalid JSON format"),
    "invalid-id": ErrorMapping("invalid-id", 400, "Invalid ID format"),
    "invalid-where-clause": ErrorMapping(
        "invalid-where-clause", 400, "Invalid where clause format"
    ),
    "bad-request": ErrorMapping("bad-request", 400, "Bad request"),
    "unauthorized": ErrorMapping("unauthorized", 401, "Authentication required"),
    "forbidden": ErrorMapping("forbidden", 403, "Forbidden"),
    "route-not-found": ErrorMapping("route-not-found", 404, "Route not found"),
    "file-not-found": ErrorMapping("file-not-found", 404, "File not found"),
    "tool-not-found": ErrorMapping("tool-not-found", 404, "Tool not found"),
    "method-not-allowed": ErrorMapping("method-not-allowed", 405, "Method not allowed"),
    "payload-too-large": ErrorMapping("payload-too-large", 413, "Payload too large"),
    "rate-limit-exceeded": ErrorMapping(
        "rate-limit-exceeded", 429, "Too many requests, please try again later"
    ),
    "backend-unavailable": ErrorMapping(
        "backend-unavailable", 503, "Backend service is not configured"
    ),
}

_TABLES: dict[FaultKind, dict[str, ErrorMapping]] = {
    FaultKind.IDENTITY_PROVIDER: IDENTITY_PROVIDER_ERRORS,
    FaultKind.DOCUMENT_STORE: DOCUMENT_STORE_ERRORS,
    FaultKind.TOKEN: TOKEN_ERRORS,
    FaultKind.UPLOAD: UPLOAD_ERRORS,
    FaultKind.GENERIC: GENERIC_ERRORS,
}

_KIND_DEFAULTS: dict[FaultKind, ErrorMapping] = {
    FaultKind.IDENTITY_PROVIDER: ErrorMapping(
        "identity-provider-error", 500, "Identity provider operation failed"
    ),
    FaultKind.DOCUMENT_STORE: ErrorMapping("internal", 500, GENERIC_MESSAGE),
    FaultKind.TOKEN: ErrorMapping("auth-error", 401, "Authentication failed"),
    FaultKind.UPLOAD: ErrorMapping("file-upload-error", 400, "File upload failed"),
}

FALLBACK = ErrorMapping("internal-server-error", 500, GENERIC_MESSAGE)
VALIDATION = ErrorMapping("validation-error", 400, "Validation failed")


def normalize(fault: Fault, production: bool = False) -> NormalizedError:
    """Map a fault to its normalized error. Never raises.

    Args:
        fault: The captured fault.
        production: Hide upstream messages of 5xx fallbacks and drop
            diagnostic details.

    Returns:
        Exactly one NormalizedError for any input.
    """
    try:
        return _normalize(fault, production)
    except Exception:  # noqa: BLE001
        return NormalizedError(
            message=GENERIC_MESSAGE,
            code=FALLBACK.code,
            http_status=FALLBACK.http_status,
        )


def _normalize(fault: Fault, production: bool) -> NormalizedError:
    kind = _coerce_kind(fault.kind)

    if kind is FaultKind.VALIDATION:
        return NormalizedError(
            message=VALIDATION.message,
            code=VALIDATION.code,
            http_status=VALIDATION.http_status,
            details=None
            if production
            else {"errors": [e.to_dict() for e in fault.field_errors]},
        )

    source_code = canonical_source_code(fault.source_code)
    mapping = None
    if kind is not None and source_code:
        mapping = _TABLES.get(kind, {}).get(source_code)

    if mapping is not None:
        message = mapping.message
    else:
        mapping = _KIND_DEFAULTS.get(kind, FALLBACK) if kind is not None else FALLBACK
        message = _default_message(mapping, fault, production)

    return NormalizedError(
        message=message,
        code=mapping.code,
        http_status=mapping.http_status,
        details=None if production else _diagnostics(fault),
    )


def canonical_source_code(source_code: str | None) -> str | None:
    """Canonicalize an upstream code: `auth/USER_NOT_FOUND` → `user-not-found`."""
    if not source_code:
        return None
    code = source_code.strip().lower()
    if code.startswith("auth/"):
        code = code[len("auth/"):]
    return code.replace("_", "-")


def severity_for(http_status: int) -> int:
    """Log level the caller should use for a response status."""
    if http_status >= 500:
        return logging.ERROR
    if http_status >= 400:
        return logging.WARNING
    return logging.INFO


def _coerce_kind(kind: FaultKind | str) -> FaultKind | None:
    try:
        return FaultKind(kind)
    except ValueError:
        return None


def _default_message(mapping: ErrorMapping, fault: Fault, production: bool) -> str:
    # 4xx defaults describe a caller-fixable problem; keep them as-is.
    if mapping.http_status < 500 or production:
        return mapping.message
    return fault.message or mapping.message


def _diagnostics(fault: Fault) -> dict[str, Any] | None:
    details = {
        "sourceCode": fault.source_code,
        "originalMessage": fault.message or None,
        "detail": fault.original_detail,
    }
    details = {k: v for k, v in details.items() if v is not None}
    return details or None
