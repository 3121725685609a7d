"""Router exposing the raw source-control tag comparison."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from devmetrics.api.dashboard import get_aggregator
from devmetrics.api.errors import error_body, status_for
from devmetrics.common.errors import DashboardError
from devmetrics.common.logging import get_logger, log_error
from devmetrics.metrics.aggregator import MetricsAggregator

logger = get_logger(__name__)

router = APIRouter(prefix="/gitlab", tags=["gitlab"])


class TagComparison(BaseModel):
    olderTag: str = Field(..., min_length=1)
    newerTag: str = Field(..., min_length=1)


class CompareTagsRequest(BaseModel):
    """Request body for comparing two tags."""

    comparison: TagComparison
    projectRef: Optional[str] = Field(
        None, description="Project id or path; defaults to GITLAB_PROJECT_ID"
    )


@router.post("/compare-tags")
def compare_tags(
    request: CompareTagsRequest,
    aggregator: MetricsAggregator = Depends(get_aggregator),
):
    """Commits between two tags as ``{success, data}``."""
    try:
        result = aggregator.gitlab.compare_tags(
            request.comparison.olderTag,
            request.comparison.newerTag,
            project_ref=request.projectRef,
        )
    except Exception as exc:
        context = exc.context if isinstance(exc, DashboardError) else {}
        log_error(logger, "Failed to compare tags", error=exc, **context)
        body = error_body("Failed to compare tags", exc)
        return JSONResponse(status_code=status_for(exc), content={"success": False, **body})
    return {"success": True, "data": result.to_dict()}
