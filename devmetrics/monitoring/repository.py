"""Firestore repository for the monitoring log.

API transactions and frontend errors are stored as one document each with
ISO-8601 UTC timestamps, so ordering by ``timestamp`` is chronological.
Statistics are computed in process over a full collection scan.
"""

from __future__ import annotations

import math
from collections import Counter, defaultdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from devmetrics.common.firestore import api_transactions_collection, frontend_errors_collection
from devmetrics.common.logging import get_logger
from devmetrics.monitoring.models import ApiTransactionCreate, FrontendErrorCreate

logger = get_logger(__name__)

MAX_PAGE_SIZE = 100
RECENT_OCCURRENCES = 5
TOP_COMPONENT_ERRORS = 5
TREND_DAYS = 30
UNKNOWN_COMPONENT = "Unknown"


def _to_utc_iso(value: Optional[datetime]) -> str:
    if value is None:
        value = datetime.now(timezone.utc)
    elif value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _snapshot_to_dict(doc) -> Dict[str, Any]:
    data = doc.to_dict() or {}
    data["id"] = doc.id
    return data


def _rate(part: int, total: int) -> float:
    return part / total * 100 if total else 0.0


# =============================================================================
# API transactions
# =============================================================================


def create_transaction(client: firestore.Client, payload: ApiTransactionCreate) -> Dict[str, Any]:
    """Persist one API transaction and return the stored record."""
    data = payload.model_dump(mode="json")
    data["timestamp"] = _to_utc_iso(payload.timestamp)
    data["createdAt"] = _to_utc_iso(None)

    doc_ref = client.collection(api_transactions_collection()).document()
    doc_ref.set(data)
    logger.info(
        "Stored API transaction",
        extra={"transaction_id": doc_ref.id, "http_method": data["method"], "status_code": data["responseStatus"]},
    )
    return {"id": doc_ref.id, **data}


def list_transactions(
    client: firestore.Client,
    *,
    page: int = 1,
    limit: int = 10,
    method: Optional[str] = None,
    response_status: Optional[int] = None,
) -> Dict[str, Any]:
    """One page of transactions, newest first, with pagination totals.

    ``limit`` is capped at 100.
    """
    page = max(page, 1)
    limit = min(max(limit, 1), MAX_PAGE_SIZE)

    query = client.collection(api_transactions_collection())
    if method:
        query = query.where(filter=FieldFilter("method", "==", method))
    if response_status is not None:
        query = query.where(filter=FieldFilter("responseStatus", "==", response_status))

    total = 0
    for _ in query.stream():
        total += 1

    page_query = (
        query.order_by("timestamp", direction=firestore.Query.DESCENDING)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    transactions = [_snapshot_to_dict(doc) for doc in page_query.stream()]

    return {
        "transactions": transactions,
        "pagination": {
            "total": total,
            "page": page,
            "pages": math.ceil(total / limit),
        },
    }


def _path_stat(route: Optional[str], records: List[Dict[str, Any]]) -> Dict[str, Any]:
    total = len(records)
    statuses = [int(record.get("responseStatus") or 0) for record in records]
    successful = sum(1 for code in statuses if 200 <= code < 300)
    client_errors = sum(1 for code in statuses if 400 <= code < 500)
    server_errors = sum(1 for code in statuses if code >= 500)
    client_rate = _rate(client_errors, total)
    server_rate = _rate(server_errors, total)
    avg_duration = sum(float(record.get("duration") or 0) for record in records) / total

    return {
        "path": route,
        "totalRequests": total,
        "successfulRequests": successful,
        "clientErrors": client_errors,
        "serverErrors": server_errors,
        "successRate": round(_rate(successful, total), 2),
        "clientErrorRate": round(client_rate, 2),
        "serverErrorRate": round(server_rate, 2),
        "totalErrorRate": round(client_rate + server_rate, 2),
        "avgDuration": round(avg_duration, 2),
        "errorBreakdown": {
            "clientErrors": {"count": client_errors, "percentage": round(client_rate, 2)},
            "serverErrors": {"count": server_errors, "percentage": round(server_rate, 2)},
        },
    }


def compute_transaction_stats(client: firestore.Client) -> Dict[str, Any]:
    """Request counts, status/method histograms and per-route error rates."""
    records = [doc.to_dict() or {} for doc in client.collection(api_transactions_collection()).stream()]
    total = len(records)

    by_route: Dict[Optional[str], List[Dict[str, Any]]] = defaultdict(list)
    for record in records:
        by_route[record.get("mainRoute")].append(record)

    path_stats = [_path_stat(route, items) for route, items in by_route.items()]
    path_stats.sort(key=lambda stat: stat["totalRequests"], reverse=True)

    durations = [float(record.get("duration") or 0) for record in records]
    return {
        "totalRequests": total,
        "averageDuration": sum(durations) / total if total else 0,
        "statusCodes": dict(Counter(str(record.get("responseStatus")) for record in records)),
        "methodCounts": dict(Counter(str(record.get("method")) for record in records)),
        "pathStats": path_stats,
    }


# =============================================================================
# Frontend errors
# =============================================================================


def create_frontend_error(
    client: firestore.Client,
    payload: FrontendErrorCreate,
    *,
    fallback_user_agent: Optional[str] = None,
) -> Dict[str, Any]:
    """Persist one frontend error.

    ``browserInfo.userAgent`` falls back to the reporting request's
    User-Agent header.
    """
    data = payload.model_dump(mode="json")
    browser_info = data.get("browserInfo") or {}
    browser_info["userAgent"] = browser_info.get("userAgent") or fallback_user_agent
    data["browserInfo"] = browser_info
    data["timestamp"] = _to_utc_iso(payload.timestamp)
    data["createdAt"] = _to_utc_iso(None)

    doc_ref = client.collection(frontend_errors_collection()).document()
    doc_ref.set(data)
    logger.info(
        "Stored frontend error",
        extra={"frontend_error_id": doc_ref.id, "error_name": data["errorName"], "page_path": data["path"]},
    )
    return {"id": doc_ref.id, **data}


def compute_frontend_error_stats(client: firestore.Client) -> Dict[str, Any]:
    """Frontend errors grouped by type, component, path and day."""
    query = client.collection(frontend_errors_collection()).order_by("timestamp")
    records = [doc.to_dict() or {} for doc in query.stream()]

    by_type: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
    by_component: Dict[Optional[str], List[Dict[str, Any]]] = defaultdict(list)
    by_path: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
    by_day: Counter = Counter()
    for record in records:
        by_type[record.get("errorName")].append(record)
        by_component[record.get("componentName")].append(record)
        by_path[record.get("path")].append(record)
        timestamp = record.get("timestamp")
        if timestamp:
            by_day[str(timestamp)[:10]] += 1

    errors_by_type = [
        {
            "errorName": name,
            "count": len(items),
            "recentOccurrences": [
                {"message": item.get("message"), "timestamp": item.get("timestamp"), "path": item.get("path")}
                for item in items[-RECENT_OCCURRENCES:]
            ],
            "uniquePathsCount": len({item.get("path") for item in items if item.get("path") is not None}),
            "uniqueComponentsCount": len(
                {item.get("componentName") for item in items if item.get("componentName") is not None}
            ),
        }
        for name, items in by_type.items()
    ]
    errors_by_component = [
        {
            "componentName": component or UNKNOWN_COMPONENT,
            "count": len(items),
            "topErrors": [
                {"errorName": item.get("errorName"), "message": item.get("message")}
                for item in items[:TOP_COMPONENT_ERRORS]
            ],
        }
        for component, items in by_component.items()
    ]
    errors_by_path = [
        {
            "path": path,
            "count": len(items),
            "uniqueErrorsCount": len({item.get("errorName") for item in items}),
        }
        for path, items in by_path.items()
    ]
    for group in (errors_by_type, errors_by_component, errors_by_path):
        group.sort(key=lambda entry: entry["count"], reverse=True)

    errors_trend = [
        {"date": day, "count": by_day[day]}
        for day in sorted(by_day, reverse=True)[:TREND_DAYS]
    ]

    return {
        "totalErrors": len(records),
        "errorsByType": errors_by_type,
        "errorsByComponent": errors_by_component,
        "errorsByPath": errors_by_path,
        "errorsTrend": errors_trend,
    }
