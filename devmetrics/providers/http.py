"""Shared GET helper for the provider clients.

Sends the request, logs it, and turns transport or HTTP failures into
``UpstreamHttpError`` carrying the provider's own error message.
"""

from __future__ import annotations

import time
from typing import Any, Dict, Mapping, Optional
from urllib.parse import urlparse

import requests

from devmetrics.common.errors import UpstreamHttpError
from devmetrics.common.logging import get_logger, log_upstream

logger = get_logger(__name__)


def extract_error_message(response: Optional[requests.Response], fallback: str) -> str:
    """Return the ``message`` field of an error payload, or ``fallback``."""
    if response is None:
        return fallback
    try:
        payload = response.json()
    except ValueError:
        return fallback
    if isinstance(payload, dict):
        message = payload.get("message") or payload.get("error")
        if isinstance(message, dict):
            message = message.get("message")
        if message:
            return str(message)
    return fallback


def get_json(
    session: requests.Session,
    url: str,
    *,
    provider: str,
    error_prefix: str,
    headers: Optional[Mapping[str, str]] = None,
    params: Optional[Mapping[str, Any]] = None,
    timeout: float = 30.0,
) -> Any:
    """GET ``url`` and return the decoded JSON body.

    Raises:
        UpstreamHttpError: On connection errors, non-2xx responses or
            undecodable bodies. ``status_code`` is set when a response exists.
    """
    path = urlparse(url).path
    start = time.perf_counter()
    try:
        response = session.get(url, headers=dict(headers or {}), params=params, timeout=timeout)
    except requests.RequestException as exc:
        elapsed_ms = (time.perf_counter() - start) * 1000
        log_upstream(logger, provider=provider, method="GET", path=path, status_code=None, elapsed_ms=elapsed_ms)
        raise UpstreamHttpError(provider, f"{error_prefix}: {exc}", path=path) from exc

    elapsed_ms = (time.perf_counter() - start) * 1000
    log_upstream(
        logger,
        provider=provider,
        method="GET",
        path=path,
        status_code=response.status_code,
        elapsed_ms=elapsed_ms,
    )

    try:
        response.raise_for_status()
    except requests.HTTPError as exc:
        message = extract_error_message(response, str(exc))
        raise UpstreamHttpError(
            provider,
            f"{error_prefix}: {message}",
            status_code=response.status_code,
            path=path,
        ) from exc

    try:
        return response.json()
    except ValueError as exc:
        raise UpstreamHttpError(
            provider,
            f"{error_prefix}: response body is not valid JSON",
            status_code=response.status_code,
            path=path,
        ) from exc


def build_headers(extra: Dict[str, str]) -> Dict[str, str]:
    headers = {"Accept": "application/json"}
    headers.update(extra)
    return headers
