"""Metrics aggregation over the provider clients.

Exports:
    - MetricsAggregator: release, task and bug reports
    - ReleaseComparisonMetrics, DashboardMetrics, TaskMetrics, BugMetrics, ProjectRelease
"""

from devmetrics.metrics.aggregator import MetricsAggregator
from devmetrics.metrics.models import (
    BugMetrics,
    DashboardMetrics,
    ProjectRelease,
    ReleaseComparisonMetrics,
    ReleaseSummary,
    TaskMetrics,
)

__all__ = [
    "MetricsAggregator",
    "BugMetrics",
    "DashboardMetrics",
    "ProjectRelease",
    "ReleaseComparisonMetrics",
    "ReleaseSummary",
    "TaskMetrics",
]
