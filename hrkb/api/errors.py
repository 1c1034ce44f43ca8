"""Gestion standardisée des erreurs API avec enveloppes d'erreur.

Les erreurs du domaine (`KnowledgeBaseError`) et les `HTTPException` sont rendues sous la même
enveloppe `{"code", "message", "trace_id"}`; le statut HTTP dépend du type d'erreur.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from hrkb.core.constants import (
    HTTP_BAD_GATEWAY,
    HTTP_BAD_REQUEST,
    HTTP_CONFLICT,
    HTTP_INTERNAL_SERVER_ERROR,
    HTTP_NOT_FOUND,
    HTTP_SERVICE_UNAVAILABLE,
    HTTP_UNPROCESSABLE_ENTITY,
)
from hrkb.domain.errors import (
    ConfigurationError,
    ConflictError,
    KnowledgeBaseError,
    NotFoundError,
    ProviderError,
    ValidationError,
)

log = logging.getLogger(__name__)

STATUS_BY_ERROR: dict[type[KnowledgeBaseError], int] = {
    ValidationError: HTTP_BAD_REQUEST,
    NotFoundError: HTTP_NOT_FOUND,
    ConflictError: HTTP_CONFLICT,
    ProviderError: HTTP_BAD_GATEWAY,
    ConfigurationError: HTTP_SERVICE_UNAVAILABLE,
}

HTTP_ERROR_CODES = {
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


@dataclass
class ErrorEnvelope:
    """Standard error envelope for API responses."""

    code: str
    message: str
    trace_id: str | None = None
    details: Any | None = None


def create_error_response(
    status_code: int,
    code: str,
    message: str,
    trace_id: str | None = None,
    details: Any | None = None,
) -> JSONResponse:
    """Create a standardized error response."""
    envelope = ErrorEnvelope(code=code, message=message, trace_id=trace_id, details=details)
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
    """Trace id from headers (X-Trace-ID, then X-Request-ID)."""
    return request.headers.get("X-Trace-ID") or request.headers.get("X-Request-ID")


def status_for(exc: KnowledgeBaseError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[cls]
    return HTTP_INTERNAL_SERVER_ERROR


def handle_domain_error(request: Request, exc: KnowledgeBaseError) -> JSONResponse:
    """Handle domain errors with standard envelope."""
    trace_id = extract_trace_id(request)
    status_code = status_for(exc)
    log.log(
        logging.ERROR if status_code >= HTTP_INTERNAL_SERVER_ERROR else logging.WARNING,
        "Domain error occurred",
        extra={
            "code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "trace_id": trace_id,
            "path": request.url.path,
        },
    )
    return create_error_response(status_code, exc.code, exc.message, trace_id)


def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle FastAPI HTTPException with standard envelope."""
    trace_id = extract_trace_id(request)
    code = HTTP_ERROR_CODES.get(exc.status_code, "HTTP_ERROR")
    log.warning(
        "HTTP exception occurred",
        extra={
            "code": code,
            "error_message": str(exc.detail),
            "status_code": exc.status_code,
            "trace_id": trace_id,
        },
    )
    return create_error_response(exc.status_code, code, str(exc.detail), trace_id)


def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request body/query validation failures."""
    return create_error_response(
        HTTP_UNPROCESSABLE_ENTITY,
        HTTP_ERROR_CODES[HTTP_UNPROCESSABLE_ENTITY],
        "Request validation failed",
        extract_trace_id(request),
        details=[{"loc": list(e["loc"]), "msg": e["msg"]} for e in exc.errors()],
    )


def register_error_handlers(app: FastAPI) -> None:
    """Branche les gestionnaires d'erreurs sur l'application."""
    app.add_exception_handler(KnowledgeBaseError, handle_domain_error)
    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation)
