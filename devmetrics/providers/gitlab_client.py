"""GitLab REST v4 client for tags, commit ranges and branches."""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from devmetrics.common.config import GitLabConfig
from devmetrics.common.errors import DashboardError, UpstreamHttpError, ValidationError
from devmetrics.common.logging import get_logger
from devmetrics.providers.http import build_headers, get_json
from devmetrics.providers.models import Commit, Release, TagComparisonResult, TagRef

logger = get_logger(__name__)

PROVIDER = "gitlab"
UNKNOWN_BRANCH = "unknown"


class GitLabClient:
    """Read-only client for one GitLab instance.

    Every method takes an optional ``project_ref`` (numeric id or
    ``namespace/name`` path); it defaults to the configured project.
    """

    def __init__(self, config: GitLabConfig, session: Optional[requests.Session] = None):
        self.config = config
        self._session = session or requests.Session()

    def _project_url(self, project_ref: Optional[str]) -> str:
        ref = str(project_ref or self.config.project_id)
        return f"{self.config.api_base_url}/projects/{quote(ref, safe='')}"

    def _get(self, url: str, error_prefix: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return get_json(
            self._session,
            url,
            provider=PROVIDER,
            error_prefix=error_prefix,
            headers=build_headers({"PRIVATE-TOKEN": self.config.private_token}),
            params=params,
            timeout=self.config.request_timeout,
        )

    def get_tag(self, tag_name: str, *, project_ref: Optional[str] = None) -> TagRef:
        """Resolve a tag to its commit hash and commit date."""
        url = f"{self._project_url(project_ref)}/repository/tags/{quote(tag_name, safe='')}"
        payload = self._get(url, f"Failed to retrieve tag data for {tag_name}")
        tag = TagRef.from_api(payload or {})
        if not tag.commit_hash:
            raise UpstreamHttpError(
                PROVIDER,
                "Failed to retrieve tag information or invalid tag data structure",
                tag=tag_name,
            )
        return tag

    def compare(self, from_hash: str, to_hash: str, *, project_ref: Optional[str] = None) -> List[Commit]:
        """List the commits reachable from ``to_hash`` but not from ``from_hash``.

        Raises:
            UpstreamHttpError: If both references point at the same commit
                or GitLab times out computing the comparison.
        """
        url = f"{self._project_url(project_ref)}/repository/compare"
        logger.info("Comparing commits", extra={"from_ref": from_hash, "to_ref": to_hash})
        payload = self._get(url, "Failed to retrieve commits", params={"from": from_hash, "to": to_hash}) or {}

        if payload.get("compare_same_ref"):
            raise UpstreamHttpError(PROVIDER, "Cannot compare the same reference", from_ref=from_hash, to_ref=to_hash)
        if payload.get("compare_timeout"):
            raise UpstreamHttpError(PROVIDER, "Comparison timed out", from_ref=from_hash, to_ref=to_hash)

        return [Commit.from_api(item) for item in payload.get("commits") or []]

    def compare_tags(
        self,
        older_tag: str,
        newer_tag: str,
        *,
        project_ref: Optional[str] = None,
    ) -> TagComparisonResult:
        """Commits shipped between two tags."""
        if not older_tag or not newer_tag:
            raise ValidationError("Both olderTag and newerTag are required")
        older = self.get_tag(older_tag, project_ref=project_ref)
        newer = self.get_tag(newer_tag, project_ref=project_ref)
        commits = self.compare(older.commit_hash, newer.commit_hash, project_ref=project_ref)
        return TagComparisonResult(older_tag=older_tag, newer_tag=newer_tag, commits=commits)

    def list_tags(self, *, project_ref: Optional[str] = None) -> List[Release]:
        """All tags of the project as releases, numbered from 1 in API order."""
        url = f"{self._project_url(project_ref)}/repository/tags"
        payload = self._get(url, "Failed to retrieve tags") or []
        return [Release.from_api(item, index) for index, item in enumerate(payload, start=1)]

    def get_branch_for_commit(self, commit_hash: str, *, project_ref: Optional[str] = None) -> str:
        """First branch containing the commit, or ``"unknown"``."""
        url = f"{self._project_url(project_ref)}/repository/commits/{quote(commit_hash, safe='')}/refs"
        try:
            refs = self._get(url, "Failed to retrieve branches", params={"type": "branch"}) or []
        except DashboardError as exc:
            logger.warning(
                "Branch lookup failed",
                extra={"commit": commit_hash, "error": str(exc)},
            )
            return UNKNOWN_BRANCH
        if not isinstance(refs, list) or not refs:
            return UNKNOWN_BRANCH
        return refs[0].get("name") or UNKNOWN_BRANCH

    def get_tag_branch(self, tag_name: str, *, project_ref: Optional[str] = None) -> str:
        """Branch a tag was cut from, or ``"unknown"``."""
        try:
            tag = self.get_tag(tag_name, project_ref=project_ref)
        except DashboardError as exc:
            logger.warning("Tag lookup for branch failed", extra={"tag": tag_name, "error": str(exc)})
            return UNKNOWN_BRANCH
        return self.get_branch_for_commit(tag.commit_hash, project_ref=project_ref)
