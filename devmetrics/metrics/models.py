"""Report models returned by the metrics aggregator.

Serialized with camelCase keys, the shape the dashboard frontend consumes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from devmetrics.providers.models import Commit, Task

NO_CURRENT_RELEASE = "No current release"
NO_PREVIOUS_RELEASE = "No previous release"


def _average(total: float, count: int) -> float:
    return total / count if count > 0 else 0.0


@dataclass
class ReleaseComparisonMetrics:
    """Work shipped between two tags.

    Attributes:
        total_features: Tracked non-bug tasks.
        total_bugs: Tracked bug tasks.
        total_development_time: Hours tracked on features.
        total_qa_time: Hours tracked on bugs.
        total_releases: Number of tags in the source-control project.
    """

    total_commits: int = 0
    total_features: int = 0
    total_bugs: int = 0
    total_development_time: float = 0.0
    total_qa_time: float = 0.0
    total_releases: int = 0
    commits: List[Commit] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalCommits": self.total_commits,
            "totalFeatures": self.total_features,
            "totalBugs": self.total_bugs,
            "totalDevelopmentTime": self.total_development_time,
            "totalQaTime": self.total_qa_time,
            "totalReleases": self.total_releases,
            "commits": [commit.to_dict() for commit in self.commits],
        }


@dataclass
class ReleaseSummary:
    current_release: str = NO_CURRENT_RELEASE
    previous_release: str = NO_PREVIOUS_RELEASE
    total_features: int = 0
    total_bugs: int = 0
    development_time: float = 0.0
    qa_time: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currentRelease": self.current_release,
            "previousRelease": self.previous_release,
            "totalFeatures": self.total_features,
            "totalBugs": self.total_bugs,
            "developmentTime": self.development_time,
            "qaTime": self.qa_time,
        }


@dataclass
class TaskMetrics:
    total_tasks: int = 0
    in_progress: int = 0
    completed: int = 0
    overdue: int = 0
    total_completion_time: float = 0.0
    project_id: Optional[int] = None
    project_name: Optional[str] = None

    @property
    def average_completion_time(self) -> float:
        return _average(self.total_completion_time, self.completed)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.project_id is not None:
            data["projectId"] = self.project_id
            data["projectName"] = self.project_name
        data.update(
            {
                "totalTasks": self.total_tasks,
                "inProgress": self.in_progress,
                "completed": self.completed,
                "overdue": self.overdue,
                "averageCompletionTime": self.average_completion_time,
            }
        )
        return data


@dataclass
class BugMetrics:
    total_bugs: int = 0
    critical_bugs: int = 0
    resolved_bugs: int = 0
    total_resolution_time: float = 0.0
    project_id: Optional[int] = None
    project_name: Optional[str] = None

    @property
    def average_resolution_time(self) -> float:
        return _average(self.total_resolution_time, self.resolved_bugs)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.project_id is not None:
            data["projectId"] = self.project_id
            data["projectName"] = self.project_name
        data.update(
            {
                "totalBugs": self.total_bugs,
                "criticalBugs": self.critical_bugs,
                "resolvedBugs": self.resolved_bugs,
                "averageResolutionTime": self.average_resolution_time,
            }
        )
        return data


@dataclass
class DashboardMetrics:
    release_metrics: ReleaseSummary
    task_metrics: TaskMetrics
    bug_metrics: BugMetrics

    def to_dict(self) -> Dict[str, Any]:
        return {
            "releaseMetrics": self.release_metrics.to_dict(),
            "taskMetrics": self.task_metrics.to_dict(),
            "bugMetrics": self.bug_metrics.to_dict(),
        }


@dataclass
class ProjectRelease:
    """A release with its branch.

    ``development_hours`` and ``bugs`` stay None: there is no reliable link
    between tracker tasks and tags to derive them from.
    """

    release_name: str
    release_date: Optional[str]
    branch: str
    development_hours: Optional[float] = None
    bugs: Optional[List[Task]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "releaseName": self.release_name,
            "releaseDate": self.release_date,
            "branch": self.branch,
            "developmentHours": self.development_hours,
            "bugs": [bug.to_dict() for bug in self.bugs] if self.bugs is not None else None,
        }
