"""Cross-provider metrics aggregation.

Joins GitLab tags and commits, Flowlu tasks and Clockify durations into the
release, task and bug reports served by the dashboard API.
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import List, Optional

from devmetrics.common.config import DashboardSettings, MetricsConfig
from devmetrics.common.errors import NotFoundError
from devmetrics.common.logging import get_logger
from devmetrics.metrics.models import (
    NO_CURRENT_RELEASE,
    NO_PREVIOUS_RELEASE,
    BugMetrics,
    DashboardMetrics,
    ProjectRelease,
    ReleaseComparisonMetrics,
    ReleaseSummary,
    TaskMetrics,
)
from devmetrics.providers.clockify_client import ClockifyClient, classify_duration
from devmetrics.providers.flowlu_client import FlowluClient
from devmetrics.providers.gitlab_client import GitLabClient
from devmetrics.providers.models import (
    Commit,
    DurationStatus,
    ProjectSummary,
    Release,
    Task,
)

logger = get_logger(__name__)

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def _parse_iso(timestamp: Optional[str]) -> datetime:
    if not timestamp:
        return _EPOCH
    ts = timestamp
    if ts.endswith("Z"):
        ts = ts[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(ts)
    except ValueError:
        return _EPOCH
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def newest_first(releases: List[Release]) -> List[Release]:
    return sorted(releases, key=lambda release: _parse_iso(release.created_at), reverse=True)


class MetricsAggregator:
    """Builds dashboard reports from the three provider clients."""

    def __init__(
        self,
        gitlab: GitLabClient,
        flowlu: FlowluClient,
        clockify: ClockifyClient,
        metrics_config: Optional[MetricsConfig] = None,
    ):
        self.gitlab = gitlab
        self.flowlu = flowlu
        self.clockify = clockify
        self.config = metrics_config or MetricsConfig()

    @classmethod
    def from_settings(cls, settings: DashboardSettings) -> "MetricsAggregator":
        return cls(
            gitlab=GitLabClient(settings.gitlab),
            flowlu=FlowluClient(
                settings.flowlu,
                in_progress_stage_id=settings.metrics.in_progress_stage_id,
                completed_stage_id=settings.metrics.completed_stage_id,
            ),
            clockify=ClockifyClient(settings.clockify),
            metrics_config=settings.metrics,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def is_bug(self, task: Task) -> bool:
        return task.type_id == self.config.bug_type_id

    def is_completed(self, task: Task) -> bool:
        return task.workflow_stage_id == self.config.completed_stage_id

    def is_in_progress(self, task: Task) -> bool:
        return task.workflow_stage_id == self.config.in_progress_stage_id

    def is_critical(self, task: Task) -> bool:
        return bool(task.estimate_hours) and task.estimate_hours > self.config.critical_bug_estimate_hours

    def _tracked_duration(self, task: Task) -> Optional[float]:
        """Hours tracked in Clockify, or None when the task is not linked."""
        refs = task.time_tracking_refs
        if refs is None:
            return None
        return self.clockify.get_actual_duration(refs.task_ref, refs.project_ref)

    # ------------------------------------------------------------------
    # Reports
    # ------------------------------------------------------------------

    def calculate_metrics(
        self,
        older_tag: str,
        newer_tag: str,
        project_id: Optional[int] = None,
    ) -> ReleaseComparisonMetrics:
        """Commits between two tags plus tracked feature and bug work.

        Only tasks linked to a Clockify task are counted; ``project_id``
        restricts the task scan to one Flowlu project.

        Raises:
            NotFoundError: If ``project_id`` is given and does not exist.
        """
        with ThreadPoolExecutor(max_workers=3, thread_name_prefix="release-metrics") as executor:
            comparison_future = executor.submit(self.gitlab.compare_tags, older_tag, newer_tag)
            releases_future = executor.submit(self.gitlab.list_tags)
            projects_future = executor.submit(self.flowlu.list_projects)
            comparison = comparison_future.result()
            releases = releases_future.result()
            projects = projects_future.result()

        if project_id is not None:
            projects = [project for project in projects if project.id == project_id]
            if not projects:
                raise NotFoundError(f"Project with ID {project_id} not found", project_id=project_id)

        metrics = ReleaseComparisonMetrics(
            total_commits=comparison.total_commits,
            total_releases=len(releases),
            commits=comparison.commits,
        )

        for project in projects:
            for task in self.flowlu.list_tasks_for_project(project.id):
                duration = self._tracked_duration(task)
                if duration is None:
                    continue
                if self.is_bug(task):
                    metrics.total_bugs += 1
                    metrics.total_qa_time += duration
                else:
                    metrics.total_features += 1
                    metrics.total_development_time += duration

        logger.info(
            "Release metrics calculated",
            extra={
                "older_tag": older_tag,
                "newer_tag": newer_tag,
                "project_id": project_id,
                "projects_scanned": len(projects),
                "total_commits": metrics.total_commits,
                "total_features": metrics.total_features,
                "total_bugs": metrics.total_bugs,
            },
        )
        return metrics

    def get_release_commits(self, older_tag: str, newer_tag: str) -> List[Commit]:
        return self.gitlab.compare_tags(older_tag, newer_tag).commits

    def get_dashboard_metrics(self) -> DashboardMetrics:
        """Overview of the configured dashboard project and the latest releases."""
        project_id = self.config.dashboard_project_id
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="dashboard-metrics") as executor:
            tasks_future = executor.submit(self.flowlu.list_tasks_for_project, project_id)
            releases_future = executor.submit(self.gitlab.list_tags)
            tasks = tasks_future.result()
            releases = newest_first(releases_future.result())

        task_metrics = TaskMetrics(
            total_tasks=len(tasks),
            in_progress=sum(1 for task in tasks if self.is_in_progress(task)),
            completed=sum(1 for task in tasks if self.is_completed(task)),
        )
        bugs = [task for task in tasks if self.is_bug(task)]
        bug_metrics = BugMetrics(
            total_bugs=len(bugs),
            critical_bugs=sum(1 for task in bugs if self.is_critical(task)),
            resolved_bugs=sum(1 for task in bugs if self.is_completed(task)),
        )
        release_metrics = ReleaseSummary(
            current_release=releases[0].tag_name if len(releases) > 0 else NO_CURRENT_RELEASE,
            previous_release=releases[1].tag_name if len(releases) > 1 else NO_PREVIOUS_RELEASE,
            total_features=len(tasks) - len(bugs),
            total_bugs=len(bugs),
        )

        for task in tasks:
            duration = self._tracked_duration(task)
            if duration is None:
                continue
            if self.is_bug(task):
                release_metrics.qa_time += duration
                if self.is_completed(task):
                    bug_metrics.total_resolution_time += duration
            else:
                release_metrics.development_time += duration
                if self.is_completed(task):
                    task_metrics.total_completion_time += duration
            if classify_duration(task.estimate_hours, duration) == DurationStatus.OVERDUE:
                task_metrics.overdue += 1

        return DashboardMetrics(
            release_metrics=release_metrics,
            task_metrics=task_metrics,
            bug_metrics=bug_metrics,
        )

    def get_task_metrics(self, project_id: int) -> TaskMetrics:
        """Task counts and overdue tracking for one project.

        Raises:
            NotFoundError: If the project does not exist.
        """
        project = self.flowlu.get_project(project_id)
        tasks = self.flowlu.list_tasks_for_project(project.id)

        metrics = TaskMetrics(project_id=project.id, project_name=project.name, total_tasks=len(tasks))
        for task in tasks:
            if self.is_in_progress(task):
                metrics.in_progress += 1
            elif self.is_completed(task):
                metrics.completed += 1

            duration = self._tracked_duration(task)
            if duration is None:
                continue
            if classify_duration(task.estimate_hours, duration) == DurationStatus.OVERDUE:
                metrics.overdue += 1
            if self.is_completed(task):
                metrics.total_completion_time += duration
        return metrics

    def get_bug_metrics(self, project_id: int) -> BugMetrics:
        """Bug counts and resolution time for one project.

        Raises:
            NotFoundError: If the project does not exist.
        """
        project = self.flowlu.get_project(project_id)
        tasks = self.flowlu.list_tasks_for_project(project.id)

        metrics = BugMetrics(project_id=project.id, project_name=project.name)
        for task in tasks:
            if not self.is_bug(task):
                continue
            metrics.total_bugs += 1
            if self.is_critical(task):
                metrics.critical_bugs += 1
            if self.is_completed(task):
                metrics.resolved_bugs += 1
                duration = self._tracked_duration(task)
                if duration is not None:
                    metrics.total_resolution_time += duration
        return metrics

    def get_project_releases(self, project_id: int) -> List[ProjectRelease]:
        """Releases of the source-control project with the branch of each tag.

        Raises:
            NotFoundError: If the task-tracker project does not exist.
        """
        self.flowlu.get_project(project_id)
        releases = self.gitlab.list_tags()
        if not releases:
            return []

        with ThreadPoolExecutor(max_workers=min(8, len(releases)), thread_name_prefix="release-branches") as executor:
            branches = list(executor.map(lambda release: self.gitlab.get_tag_branch(release.tag_name), releases))

        return [
            ProjectRelease(
                release_name=release.name or release.tag_name,
                release_date=release.created_at,
                branch=branch,
            )
            for release, branch in zip(releases, branches)
        ]

    def search_projects(self, search_term: str) -> List[ProjectSummary]:
        return self.flowlu.search_projects(search_term)

    def list_releases(self, project_ref: Optional[str] = None) -> List[Release]:
        return self.gitlab.list_tags(project_ref=project_ref)
