"""Error taxonomy shared by the provider clients and the metrics aggregator.

Errors carry a kind and structured context; the API layer is the only place
that turns a kind into an HTTP status code.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Category of a domain error."""

    UPSTREAM_HTTP = "upstream_http"
    VALIDATION = "validation"
    NOT_FOUND = "not_found"


class DashboardError(Exception):
    """Base class for errors raised while building dashboard metrics."""

    kind: ErrorKind = ErrorKind.UPSTREAM_HTTP

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context: Dict[str, Any] = context
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "message": self.message, **self.context}


class UpstreamHttpError(DashboardError):
    """An external provider returned an error or an unusable payload."""

    kind = ErrorKind.UPSTREAM_HTTP

    def __init__(self, provider: str, message: str, *, status_code: Optional[int] = None, **context: Any):
        self.provider = provider
        self.status_code = status_code
        super().__init__(message, provider=provider, status_code=status_code, **context)


class ValidationError(DashboardError):
    """Caller input is missing or malformed."""

    kind = ErrorKind.VALIDATION


class NotFoundError(DashboardError):
    """A referenced entity (e.g. a task-tracker project) does not exist."""

    kind = ErrorKind.NOT_FOUND
