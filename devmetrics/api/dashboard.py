"""FastAPI router for the dashboard read endpoints.

Every endpoint parses its query parameters, delegates to the
``MetricsAggregator`` and maps any failure to ``{error, details}``.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, Query

from devmetrics.api.errors import error_response
from devmetrics.common.config import load_dashboard_settings
from devmetrics.common.errors import ValidationError
from devmetrics.common.logging import get_logger
from devmetrics.metrics.aggregator import MetricsAggregator

logger = get_logger(__name__)

router = APIRouter(prefix="/dashboard", tags=["dashboard"])

PROJECT_ID_DETAILS = "Please provide a project ID in the query parameters"


@lru_cache(maxsize=1)
def get_aggregator() -> MetricsAggregator:
    """Dependency returning the process-wide aggregator.

    Built once so the Flowlu rate limiter is shared across requests.
    """
    return MetricsAggregator.from_settings(load_dashboard_settings())


def _require(value: Optional[str], name: str, details: str) -> str:
    if value is None or not value.strip():
        raise ValidationError(f"{name} is required", details=details)
    return value


def _parse_project_id(raw: Optional[str], *, required: bool = True) -> Optional[int]:
    if raw is None or raw == "":
        if required:
            raise ValidationError("Project ID is required", details=PROJECT_ID_DETAILS)
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(
            "Project ID must be an integer",
            details=f"Invalid projectId: {raw}",
        ) from None


@router.get("/metrics")
def get_metrics(
    olderTag: Optional[str] = Query(None),
    newerTag: Optional[str] = Query(None),
    projectId: Optional[str] = Query(None),
    aggregator: MetricsAggregator = Depends(get_aggregator),
):
    """Commits, features, bugs and tracked hours between two tags."""
    try:
        older = _require(olderTag, "olderTag", "Please provide olderTag in the query parameters")
        newer = _require(newerTag, "newerTag", "Please provide newerTag in the query parameters")
        project_id = _parse_project_id(projectId, required=False)
        metrics = aggregator.calculate_metrics(older, newer, project_id)
    except Exception as exc:
        return error_response("Failed to calculate metrics", exc)
    return metrics.to_dict()


@router.get("/release-metrics")
def get_release_metrics(
    olderTag: Optional[str] = Query(None),
    newerTag: Optional[str] = Query(None),
    aggregator: MetricsAggregator = Depends(get_aggregator),
):
    try:
        older = _require(olderTag, "olderTag", "Please provide olderTag in the query parameters")
        newer = _require(newerTag, "newerTag", "Please provide newerTag in the query parameters")
        commits = aggregator.get_release_commits(older, newer)
    except Exception as exc:
        return error_response("Failed to get release metrics", exc)
    return {"commits": [commit.to_dict() for commit in commits]}


@router.get("/overview")
def get_dashboard_overview(aggregator: MetricsAggregator = Depends(get_aggregator)):
    try:
        metrics = aggregator.get_dashboard_metrics()
    except Exception as exc:
        return error_response("Failed to get dashboard metrics", exc)
    return metrics.to_dict()


@router.get("/task-metrics")
def get_task_metrics(
    projectId: Optional[str] = Query(None),
    aggregator: MetricsAggregator = Depends(get_aggregator),
):
    try:
        metrics = aggregator.get_task_metrics(_parse_project_id(projectId))
    except Exception as exc:
        return error_response("Failed to get task metrics", exc)
    return metrics.to_dict()


@router.get("/bug-metrics")
def get_bug_metrics(
    projectId: Optional[str] = Query(None),
    aggregator: MetricsAggregator = Depends(get_aggregator),
):
    try:
        metrics = aggregator.get_bug_metrics(_parse_project_id(projectId))
    except Exception as exc:
        return error_response("Failed to get bug metrics", exc)
    return metrics.to_dict()


@router.get("/project-releases")
def get_project_releases(
    projectId: Optional[str] = Query(None),
    aggregator: MetricsAggregator = Depends(get_aggregator),
):
    try:
        releases = aggregator.get_project_releases(_parse_project_id(projectId))
    except Exception as exc:
        return error_response("Failed to get project releases", exc)
    return [release.to_dict() for release in releases]


@router.get("/releases")
def get_releases(
    projectId: Optional[str] = Query(None, description="Source-control project id or path"),
    aggregator: MetricsAggregator = Depends(get_aggregator),
):
    """Tags of a source-control project; ``projectId`` is a GitLab project ref."""
    try:
        project_ref = _require(
            projectId, "Project ID", "Please provide a GitLab project ID in the query parameters"
        )
        releases = aggregator.list_releases(project_ref=project_ref)
    except Exception as exc:
        return error_response("Failed to get releases", exc)
    return [release.to_dict() for release in releases]


@router.get("/projects/search")
def search_projects(
    searchTerm: Optional[str] = Query(None),
    aggregator: MetricsAggregator = Depends(get_aggregator),
):
    try:
        term = _require(searchTerm, "searchTerm", "Please provide searchTerm in the query parameters")
        projects = aggregator.search_projects(term)
    except Exception as exc:
        return error_response("Failed to search projects", exc)
    return [project.to_dict() for project in projects]
