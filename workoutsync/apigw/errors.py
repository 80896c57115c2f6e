"""Gestion standardisée des erreurs API avec enveloppes d'erreur.

Ce module fournit une gestion centralisée des erreurs: enveloppe standard `{code, message, trace_id,
details}`, codes d'erreur cohérents, et enrichissement de `details` par la classification du domaine
(`user_message`, `actionable`, `retryable`, `error_type`).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from workoutsync.app.metrics import ERRORS_CLASSIFIED
from workoutsync.domain.errors import ErrorInfo, create_error_info

log = logging.getLogger(__name__)


@dataclass
class ErrorEnvelope:
    """Standard error envelope for API responses."""

    code: str
    message: str
    trace_id: str | None = None
    details: dict[str, Any] | None = None


class APIError(HTTPException):
    """Custom API error with standard envelope."""

    def __init__(
        self,
        status_code: int,
        code: str,
        message: str,
        trace_id: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize an API error with standardized envelope."""
        super().__init__(status_code=status_code, detail=message)
        self.code = code
        self.message = message
        self.trace_id = trace_id
        self.details = details

    @property
    def status(self) -> int:
        # lu par la classification (domain.errors.error_status)
        return self.status_code


def create_error_response(
    status_code: int,
    code: str,
    message: str,
    trace_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    """Create a standardized error response."""
    envelope = ErrorEnvelope(
        code=code,
        message=message,
        trace_id=trace_id,
        details=details,
    )

    return JSONResponse(
        status_code=status_code,
        content={
            "code": envelope.code,
            "message": envelope.message,
            "trace_id": envelope.trace_id,
            **({"details": envelope.details} if envelope.details else {}),
        },
    )


def extract_trace_id(request: Request) -> str | None:
    """Extract trace ID from request headers or request state."""
    trace_id = request.headers.get("X-Trace-ID")
    if trace_id:
        return trace_id

    # Set by RequestContextMiddleware
    return getattr(request.state, "request_id", None)


def classification_details(info: ErrorInfo) -> dict[str, Any]:
    """Project an ErrorInfo to the public part of the envelope (raw message excluded)."""
    ERRORS_CLASSIFIED.labels(type=info.type.value).inc()
    return {
        "error_type": info.type.value,
        "user_message": info.user_message,
        "actionable": info.actionable,
        "retryable": info.retryable,
    }


def handle_api_error(request: Request, exc: APIError) -> JSONResponse:
    """Handle APIError exceptions with standard envelope."""
    trace_id = extract_trace_id(request) or exc.trace_id
    info = create_error_info(exc, context=request.url.path)

    log.error(
        "API error occurred",
        extra={
            "code": exc.code,
            "error_message": exc.message,
            "status_code": exc.status_code,
            "trace_id": trace_id,
            "details": exc.details,
        },
    )

    return create_error_response(
        status_code=exc.status_code,
        code=exc.code,
        message=exc.message,
        trace_id=trace_id,
        details={**(exc.details or {}), **classification_details(info)},
    )


# Map common HTTP status codes to error codes
_HTTP_ERROR_CODES = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    500: "INTERNAL_ERROR",
    502: "BAD_GATEWAY",
    503: "SERVICE_UNAVAILABLE",
}


def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle FastAPI HTTPException with standard envelope."""
    trace_id = extract_trace_id(request)
    code = _HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
    info = create_error_info(
        {"status": exc.status_code, "code": code, "message": str(exc.detail)},
        context=request.url.path,
    )

    log.error(
        "HTTP exception occurred",
        extra={
            "code": code,
            "error_message": str(exc.detail),
            "status_code": exc.status_code,
            "trace_id": trace_id,
        },
    )

    return create_error_response(
        status_code=exc.status_code,
        code=code,
        message=str(exc.detail),
        trace_id=trace_id,
        details=classification_details(info),
    )


def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle body/query validation failures (422) with field-level details."""
    trace_id = extract_trace_id(request)
    fields = {
        ".".join(str(p) for p in err.get("loc", ()) if p != "body"): err.get("msg", "")
        for err in exc.errors()
    }
    info = create_error_info(
        {"status": 422, "code": ErrorCodes.VALIDATION_ERROR, "message": "Invalid request body"},
        context=request.url.path,
    )
    return create_error_response(
        status_code=422,
        code=ErrorCodes.VALIDATION_ERROR,
        message="Invalid request body",
        trace_id=trace_id,
        details={"fields": fields, **classification_details(info)},
    )


def handle_generic_exception(request: Request, exc: Exception) -> JSONResponse:
    """Handle generic exceptions with standard envelope."""
    trace_id = extract_trace_id(request)
    info = create_error_info(exc, context=request.url.path)

    log.error(
        "Unexpected error occurred",
        extra={
            "code": "INTERNAL_ERROR",
            "error_message": "An unexpected error occurred",
            "trace_id": trace_id,
            "exception_type": type(exc).__name__,
            "exception_message": str(exc),
        },
        exc_info=True,
    )

    return create_error_response(
        status_code=500,
        code="INTERNAL_ERROR",
        message="An unexpected error occurred",
        trace_id=trace_id,
        details=classification_details(info),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Install the envelope handlers on the application."""
    app.add_exception_handler(APIError, handle_api_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_generic_exception)


# Common error codes
class ErrorCodes:
    """Standard error codes for the API."""

    # Client errors (4xx)
    BAD_REQUEST = "BAD_REQUEST"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Server errors (5xx)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"

    # Business logic errors
    INVALID_PHONE = "INVALID_PHONE"
    PHONE_ALREADY_EXISTS = "PHONE_ALREADY_EXISTS"
    NOT_AUTHENTICATED = "NOT_AUTHENTICATED"
    PROFILE_NOT_FOUND = "PROFILE_NOT_FOUND"
    INVALID_COORDINATES = "INVALID_COORDINATES"


# Convenience functions for common errors
def bad_request(
    message: str,
    code: str = ErrorCodes.BAD_REQUEST,
    details: dict[str, Any] | None = None,
) -> APIError:
    """Create a 400 Bad Request error."""
    return APIError(400, code, message, details=details)


def unauthorized(message: str, code: str = ErrorCodes.UNAUTHORIZED) -> APIError:
    """Create a 401 Unauthorized error."""
    return APIError(401, code, message)


def not_found(message: str, code: str = ErrorCodes.NOT_FOUND) -> APIError:
    """Create a 404 Not Found error."""
    return APIError(404, code, message)


def conflict(
    message: str, code: str = ErrorCodes.CONFLICT, details: dict[str, Any] | None = None
) -> APIError:
    """Create a 409 Conflict error."""
    return APIError(409, code, message, details=details)


def service_unavailable(message: str) -> APIError:
    """Create a 503 Service Unavailable error."""
    return APIError(503, ErrorCodes.SERVICE_UNAVAILABLE, message)
