"""Pydantic request models for the monitoring log API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ApiTransactionCreate(BaseModel):
    """One request/response pair reported by an API gateway or middleware."""

    method: str = Field(..., min_length=1, description="HTTP method of the request")
    path: str = Field(..., min_length=1, description="Request path")
    mainRoute: Optional[str] = Field(None, description="Route template the path belongs to")
    requestBody: Any = None
    requestHeaders: Dict[str, Any] = Field(default_factory=dict)
    responseStatus: int = Field(..., description="HTTP response status code")
    responseBody: Any = None
    duration: float = Field(..., ge=0, description="Request duration in milliseconds")
    timestamp: Optional[datetime] = Field(None, description="When the request occurred; defaults to now")
    ipAddress: Optional[str] = None
    userAgent: str = ""


class BrowserInfo(BaseModel):
    userAgent: Optional[str] = None
    platform: Optional[str] = None
    language: Optional[str] = None
    screenSize: Optional[str] = None


class FrontendErrorCreate(BaseModel):
    """An error captured in the browser."""

    errorName: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    stack: Optional[str] = None
    componentName: Optional[str] = None
    path: str = Field(..., min_length=1)
    browserInfo: Optional[BrowserInfo] = None
    timestamp: Optional[datetime] = None
    userId: Optional[str] = None
    sessionId: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
