"""Mapping from domain error kinds to HTTP responses.

This is the only place where an ``ErrorKind`` becomes a status code.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import status
from fastapi.responses import JSONResponse

from devmetrics.common.errors import DashboardError, ErrorKind
from devmetrics.common.logging import get_logger, log_error

logger = get_logger(__name__)

STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.UPSTREAM_HTTP: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.NOT_FOUND: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(exc: Exception) -> int:
    if isinstance(exc, DashboardError):
        return STATUS_BY_KIND[exc.kind]
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def error_body(summary: str, exc: Exception) -> Dict[str, Any]:
    """``{error, details}`` body for a failed dashboard request.

    Validation errors describe the bad input themselves, so their message is
    the ``error`` and ``details`` comes from their context.
    """
    if isinstance(exc, DashboardError) and exc.kind == ErrorKind.VALIDATION:
        return {"error": exc.message, "details": exc.context.get("details", exc.message)}
    if isinstance(exc, DashboardError):
        return {"error": summary, "details": exc.message}
    return {"error": summary, "details": str(exc) or "Unknown error"}


def error_response(summary: str, exc: Exception) -> JSONResponse:
    status_code = status_for(exc)
    if status_code >= 500:
        log_error(logger, summary, error=exc, error_type=type(exc).__name__)
    else:
        logger.warning(summary, extra={"error": str(exc), "status_code": status_code})
    return JSONResponse(status_code=status_code, content=error_body(summary, exc))
