"""Clockify client for tracked task durations."""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import quote

import requests

from devmetrics.common.config import ClockifyConfig
from devmetrics.common.errors import DashboardError
from devmetrics.common.logging import get_logger
from devmetrics.providers.http import get_json
from devmetrics.providers.models import DurationStatus
from devmetrics.providers.rate_limit import RateLimiter

logger = get_logger(__name__)

PROVIDER = "clockify"

_DURATION_RE = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:\d+S)?")


def parse_duration(duration: Optional[str]) -> float:
    """Turn a Clockify ``PT{h}H{m}M`` duration into hours.

    The minute digits become the decimal part verbatim: ``PT2H45M`` is 2.45,
    and ``PT1H5M`` and ``PT1H50M`` are both 1.5. Seconds are ignored.
    Empty, zero and unparseable durations are 0.0.
    """
    if not duration or duration == "PT0S":
        return 0.0
    match = _DURATION_RE.search(duration)
    if not match:
        return 0.0
    hours = int(match.group(1) or 0)
    minutes = int(match.group(2) or 0)
    return float(f"{hours}.{minutes}")


def classify_duration(estimate: Optional[float], actual: Optional[float]) -> DurationStatus:
    """Compare tracked hours with the estimate."""
    if not estimate:
        return DurationStatus.ESTIMATE_NOT_SET
    if not actual:
        return DurationStatus.NOT_STARTED
    return DurationStatus.OVERDUE if actual > estimate else DurationStatus.ON_TIME


class ClockifyClient:
    def __init__(
        self,
        config: ClockifyConfig,
        *,
        session: Optional[requests.Session] = None,
        rate_limiter: Optional[RateLimiter] = None,
    ):
        self.config = config
        self._session = session or requests.Session()
        if rate_limiter is None and config.min_request_interval > 0:
            rate_limiter = RateLimiter(config.min_request_interval, name=PROVIDER)
        self.rate_limiter = rate_limiter

    def get_actual_duration(self, task_ref: str, project_ref: str) -> float:
        """Hours tracked against a Clockify task.

        Lookup failures are logged and count as 0.0 so that one broken link
        between the tracker and Clockify does not fail a whole report.
        """
        url = (
            f"{self.config.api_url}/workspaces/{quote(self.config.workspace_id, safe='')}"
            f"/projects/{quote(project_ref, safe='')}/tasks/{quote(task_ref, safe='')}"
        )
        if self.rate_limiter is not None:
            self.rate_limiter.wait()
        try:
            payload = get_json(
                self._session,
                url,
                provider=PROVIDER,
                error_prefix="Clockify API request failed",
                headers={"X-Api-Key": self.config.api_key, "Content-Type": "application/json"},
                timeout=self.config.request_timeout,
            )
        except DashboardError as exc:
            logger.warning(
                "Task duration lookup failed",
                extra={"task_ref": task_ref, "project_ref": project_ref, "error": str(exc)},
            )
            return 0.0

        duration = payload.get("duration") if isinstance(payload, dict) else None
        if not isinstance(duration, str):
            logger.warning(
                "Task has no duration string",
                extra={"task_ref": task_ref, "project_ref": project_ref},
            )
            return 0.0
        return parse_duration(duration)
