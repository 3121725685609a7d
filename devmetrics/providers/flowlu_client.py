"""Flowlu agile API client for projects, users and tasks."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Dict, List, Optional

import requests
from tenacity import RetryCallState, Retrying, retry_if_exception, stop_after_attempt, wait_fixed

from devmetrics.common.config import DEFAULT_COMPLETED_STAGE_ID, DEFAULT_IN_PROGRESS_STAGE_ID, FlowluConfig
from devmetrics.common.errors import NotFoundError, UpstreamHttpError
from devmetrics.common.logging import get_logger
from devmetrics.providers.http import get_json
from devmetrics.providers.models import Project, ProjectSummary, Task, TaskTrackerUser
from devmetrics.providers.rate_limit import RateLimiter

logger = get_logger(__name__)

PROVIDER = "flowlu"


def _is_rate_limited(exc: BaseException) -> bool:
    return isinstance(exc, UpstreamHttpError) and exc.status_code == 429


def _log_retry(retry_state: RetryCallState) -> None:
    logger.warning(
        "flowlu_rate_limited",
        extra={
            "event": "flowlu_rate_limited",
            "attempt": retry_state.attempt_number,
            "backoff_seconds": retry_state.next_action.sleep if retry_state.next_action else None,
        },
    )


def _items(payload: Any) -> List[Dict[str, Any]]:
    """Flowlu wraps list results as ``{"response": {"items": [...]}}``."""
    if not isinstance(payload, dict):
        return []
    response = payload.get("response")
    if isinstance(response, dict) and isinstance(response.get("items"), list):
        return response["items"]
    if isinstance(payload.get("items"), list):
        return payload["items"]
    return []


class FlowluClient:
    """Rate-limited, read-only Flowlu client.

    The client owns its ``RateLimiter`` so every instance spaces its own
    requests; pass one in to share spacing between instances.
    """

    def __init__(
        self,
        config: FlowluConfig,
        *,
        session: Optional[requests.Session] = None,
        rate_limiter: Optional[RateLimiter] = None,
        sleep: Optional[Callable[[float], None]] = None,
        in_progress_stage_id: int = DEFAULT_IN_PROGRESS_STAGE_ID,
        completed_stage_id: int = DEFAULT_COMPLETED_STAGE_ID,
    ):
        self.config = config
        self._session = session or requests.Session()
        self.rate_limiter = rate_limiter or RateLimiter(config.min_request_interval, name=PROVIDER)
        self._sleep = sleep
        self.in_progress_stage_id = in_progress_stage_id
        self.completed_stage_id = completed_stage_id

    def _send(self, endpoint: str, params: Dict[str, Any]) -> Any:
        self.rate_limiter.wait()
        return get_json(
            self._session,
            f"{self.config.api_url}{endpoint}",
            provider=PROVIDER,
            error_prefix="Flowlu API request failed",
            headers={"Content-Type": "application/json"},
            params={**params, "api_key": self.config.api_key},
            timeout=self.config.request_timeout,
        )

    def _request(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """GET an endpoint, retrying HTTP 429 with a fixed backoff.

        Raises:
            UpstreamHttpError: On any other HTTP error, or when the request is
                still rate limited after ``max_attempts`` attempts.
        """
        retry_kwargs: Dict[str, Any] = {}
        if self._sleep is not None:
            retry_kwargs["sleep"] = self._sleep
        retrying = Retrying(
            stop=stop_after_attempt(self.config.max_attempts),
            wait=wait_fixed(self.config.retry_delay),
            retry=retry_if_exception(_is_rate_limited),
            before_sleep=_log_retry,
            reraise=True,
            **retry_kwargs,
        )
        return retrying(self._send, endpoint, params or {})

    def list_projects(self) -> List[Project]:
        payload = self._request("/agile/projects/list")
        return [Project.from_api(item) for item in _items(payload)]

    def get_project(self, project_id: int) -> Project:
        """Look a project up by id.

        Raises:
            NotFoundError: If no project has this id.
        """
        for project in self.list_projects():
            if project.id == project_id:
                return project
        raise NotFoundError(f"Project with ID {project_id} not found", project_id=project_id)

    def search_projects(self, search_term: str) -> List[ProjectSummary]:
        """Case-insensitive substring match on project names.

        Flowlu has no server-side name filter, so the full list is fetched.
        """
        needle = search_term.lower()
        return [
            ProjectSummary(id=project.id, name=project.name)
            for project in self.list_projects()
            if needle in project.name.lower()
        ]

    def list_users(self) -> List[TaskTrackerUser]:
        payload = self._request("/users/list")
        return [
            TaskTrackerUser(id=str(item.get("id", "")), name=item.get("name") or "")
            for item in _items(payload)
        ]

    def _list_tasks_in_stage(self, project_id: int, stage_id: int) -> List[Task]:
        payload = self._request(
            "/agile/issues/list",
            {"filter[project_id]": project_id, "filter[workflow_stage_id]": stage_id},
        )
        return [
            Task.from_api(
                item,
                task_ref_field=self.config.task_ref_field,
                project_ref_field=self.config.project_ref_field,
            )
            for item in _items(payload)
        ]

    def list_tasks_for_project(self, project_id: int) -> List[Task]:
        """In-progress tasks followed by completed tasks of a project.

        The two stage queries are issued concurrently; the rate limiter still
        spaces them.
        """
        stages = [self.in_progress_stage_id, self.completed_stage_id]
        with ThreadPoolExecutor(max_workers=len(stages), thread_name_prefix="flowlu-tasks") as executor:
            futures = [executor.submit(self._list_tasks_in_stage, project_id, stage) for stage in stages]
            tasks: List[Task] = []
            for future in futures:
                tasks.extend(future.result())

        if not tasks:
            logger.info("No tasks found for project", extra={"project_id": project_id})
        return tasks
