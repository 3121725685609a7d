"""Domain models for data fetched from the external providers.

Nothing here is persisted: each object is built from a provider payload with
``from_api`` and serialized for API responses with ``to_dict``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class DurationStatus(str, Enum):
    """Outcome of comparing a task's tracked time with its estimate."""

    ESTIMATE_NOT_SET = "Estimate Not Set"
    NOT_STARTED = "Task Not Started"
    OVERDUE = "Overdue"
    ON_TIME = "On Time"


def _optional_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


# =============================================================================
# Source control
# =============================================================================


@dataclass
class TagRef:
    """A tag resolved to the commit it points at."""

    name: str
    commit_hash: str
    committed_at: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "TagRef":
        commit = payload.get("commit") or {}
        return cls(
            name=payload.get("name", ""),
            commit_hash=commit.get("id") or "",
            committed_at=commit.get("committed_date") or commit.get("created_at"),
        )


@dataclass
class Commit:
    id: str
    created_at: str
    title: str
    description: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "Commit":
        title = payload.get("title") or ""
        message = payload.get("message") or ""
        description = None
        if message != title:
            description = message.replace(title, "", 1).strip()
        return cls(
            id=payload.get("short_id") or (payload.get("id") or "")[:8],
            created_at=payload.get("created_at", ""),
            title=title,
            description=description,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id, "createdAt": self.created_at, "title": self.title}
        if self.description is not None:
            data["description"] = self.description
        return data


@dataclass
class TagComparisonResult:
    older_tag: str
    newer_tag: str
    commits: List[Commit] = field(default_factory=list)

    @property
    def total_commits(self) -> int:
        return len(self.commits)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "olderTag": self.older_tag,
            "newerTag": self.newer_tag,
            "totalCommits": self.total_commits,
            "commits": [commit.to_dict() for commit in self.commits],
        }


@dataclass
class Release:
    """A tag listed as a release of the source-control project."""

    id: int
    name: str
    tag_name: str
    created_at: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Dict[str, Any], index: int) -> "Release":
        commit = payload.get("commit") or {}
        name = payload.get("name", "")
        return cls(id=index, name=name, tag_name=name, created_at=commit.get("created_at"))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "tagName": self.tag_name,
            "createdAt": self.created_at,
        }


# =============================================================================
# Task tracker
# =============================================================================


@dataclass
class Project:
    id: int
    name: str
    description: str = ""
    prefix_name: str = ""
    workflow_id: Optional[int] = None
    manager_id: Optional[int] = None
    created_date: Optional[str] = None
    updated_date: Optional[str] = None
    archived_date: Optional[str] = None
    deleted_at: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "Project":
        return cls(
            id=int(payload["id"]),
            name=payload.get("name") or "",
            description=payload.get("description") or "",
            prefix_name=payload.get("prefix_name") or "",
            workflow_id=_optional_int(payload.get("workflow_id")),
            manager_id=_optional_int(payload.get("manager_id")),
            created_date=payload.get("created_date"),
            updated_date=payload.get("updated_date"),
            archived_date=payload.get("archived_date"),
            deleted_at=payload.get("deleted_at"),
        )


@dataclass
class ProjectSummary:
    id: int
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass
class TaskTrackerUser:
    id: str
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass
class TimeTrackingRefs:
    """Identifiers of the time-tracker task a tracker task is linked to."""

    task_ref: str
    project_ref: str

    def to_dict(self) -> Dict[str, Any]:
        return {"taskRef": self.task_ref, "projectRef": self.project_ref}


@dataclass
class Task:
    """A task-tracker issue (feature or bug)."""

    id: str
    name: str
    status: str
    priority: str
    created_at: Optional[str]
    updated_at: Optional[str]
    workflow_stage_id: int
    type_id: int = 1
    estimate_hours: Optional[float] = None
    due_date: Optional[str] = None
    assigned_to: Optional[str] = None
    time_tracking_refs: Optional[TimeTrackingRefs] = None

    @classmethod
    def from_api(
        cls,
        payload: Dict[str, Any],
        *,
        task_ref_field: str,
        project_ref_field: str,
    ) -> "Task":
        task_ref = payload.get(task_ref_field)
        project_ref = payload.get(project_ref_field)
        refs = None
        if task_ref and project_ref:
            refs = TimeTrackingRefs(task_ref=str(task_ref), project_ref=str(project_ref))

        return cls(
            id=str(payload.get("id", "")),
            name=payload.get("name") or "",
            status=str(payload.get("status") or ""),
            priority=str(payload.get("priority") or ""),
            created_at=payload.get("created_at"),
            updated_at=payload.get("updated_at"),
            workflow_stage_id=_optional_int(payload.get("workflow_stage_id")) or 0,
            type_id=_optional_int(payload.get("type_id")) or 1,
            estimate_hours=_optional_float(payload.get("estimate")),
            due_date=payload.get("due_date"),
            assigned_to=payload.get("assigned_to"),
            time_tracking_refs=refs,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status,
            "priority": self.priority,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "dueDate": self.due_date,
            "assignedTo": self.assigned_to,
            "workflowStageId": self.workflow_stage_id,
            "typeId": self.type_id,
            "estimateHours": self.estimate_hours,
            "timeTrackingRefs": self.time_tracking_refs.to_dict() if self.time_tracking_refs else None,
        }
