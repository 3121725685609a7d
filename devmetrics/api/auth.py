"""API key authentication for the monitoring read endpoints.

Implements API key validation using the X-API-Key header with
constant-time comparison.

Usage:
    from devmetrics.api.auth import verify_api_key

    @router.get("/transactions")
    def list_transactions(api_key: str = Depends(verify_api_key)):
        ...
"""

from __future__ import annotations

import secrets
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import APIKeyHeader

from devmetrics.common.config import load_monitoring_config
from devmetrics.common.logging import get_logger

logger = get_logger(__name__)

# auto_error=False so a missing header gives 401 instead of 403
api_key_header = APIKeyHeader(
    name="X-API-Key",
    description="API key for the monitoring endpoints",
    auto_error=False,
)


def verify_api_key(
    api_key: Optional[str] = Depends(api_key_header),
) -> str:
    """Validate the X-API-Key header against MONITORING_API_KEY.

    Raises:
        HTTPException: 401 Unauthorized if the key is missing, invalid, or
            no key is configured on the server.
    """
    if api_key is None:
        logger.warning("Missing X-API-Key header")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing API key",
            headers={"WWW-Authenticate": "APIKey"},
        )

    expected_key = load_monitoring_config().api_key
    if not expected_key:
        logger.warning("MONITORING_API_KEY not configured - rejecting request")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key not configured on server",
            headers={"WWW-Authenticate": "APIKey"},
        )

    if not secrets.compare_digest(api_key, expected_key):
        logger.warning("Invalid API key provided")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "APIKey"},
        )

    return api_key
