"""FastAPI router for the monitoring log endpoints.

Writes are open so gateways and browsers can report; reads require the
X-API-Key header.
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.responses import JSONResponse

from devmetrics.api.auth import verify_api_key
from devmetrics.common.firestore import get_firestore_client
from devmetrics.common.logging import get_logger, log_error
from devmetrics.monitoring import repository
from devmetrics.monitoring.models import ApiTransactionCreate, FrontendErrorCreate

logger = get_logger(__name__)

router = APIRouter(prefix="/monitoring", tags=["monitoring"])


def get_db(request: Request):
    """Dependency returning the Firestore client opened at startup."""
    client = getattr(request.app.state, "firestore_client", None)
    if client is None:
        client = get_firestore_client()
    return client


def _success(data: Dict[str, Any], status_code: int = status.HTTP_200_OK) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"status": "success", "data": data})


def _failure(message: str, exc: Exception) -> JSONResponse:
    log_error(logger, message, error=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"status": "error", "message": message},
    )


def _lenient_int(raw: Optional[str], default: int) -> int:
    try:
        value = int(raw) if raw is not None else default
    except ValueError:
        return default
    return value if value >= 1 else default


@router.get("/transactions")
def list_transactions(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    method: Optional[str] = Query(None),
    status_code: Optional[int] = Query(None, alias="status"),
    api_key: str = Depends(verify_api_key),
    db=Depends(get_db),
):
    """Transaction log, newest first; ``limit`` is capped at 100."""
    try:
        data = repository.list_transactions(
            db,
            page=_lenient_int(page, 1),
            limit=_lenient_int(limit, 10),
            method=method,
            response_status=status_code,
        )
    except Exception as exc:
        return _failure("Error fetching transactions", exc)
    return _success(data)


@router.get("/transactions/stats")
def transaction_stats(
    api_key: str = Depends(verify_api_key),
    db=Depends(get_db),
):
    try:
        data = repository.compute_transaction_stats(db)
    except Exception as exc:
        return _failure("Error fetching transaction statistics", exc)
    return _success(data)


@router.post("/transactions", status_code=status.HTTP_201_CREATED)
def create_transaction(payload: ApiTransactionCreate, db=Depends(get_db)):
    try:
        transaction = repository.create_transaction(db, payload)
    except Exception as exc:
        return _failure("Error creating transaction log", exc)
    return _success({"transaction": transaction}, status.HTTP_201_CREATED)


@router.post("/frontend-errors", status_code=status.HTTP_201_CREATED)
def create_frontend_error(payload: FrontendErrorCreate, request: Request, db=Depends(get_db)):
    try:
        error = repository.create_frontend_error(
            db,
            payload,
            fallback_user_agent=request.headers.get("user-agent"),
        )
    except Exception as exc:
        return _failure("Error logging frontend error", exc)
    return _success({"error": error}, status.HTTP_201_CREATED)


@router.get("/frontend-errors/stats")
def frontend_error_stats(
    api_key: str = Depends(verify_api_key),
    db=Depends(get_db),
):
    try:
        data = repository.compute_frontend_error_stats(db)
    except Exception as exc:
        return _failure("Error fetching frontend error statistics", exc)
    return _success(data)
