"""API tests for the dashboard and tag comparison routers."""

import pytest
from fastapi.testclient import TestClient

from devmetrics.api import dashboard
from devmetrics.api.main import app
from devmetrics.common.config import ConfigError
from devmetrics.common.errors import NotFoundError, UpstreamHttpError, ValidationError
from devmetrics.metrics.models import BugMetrics, DashboardMetrics, ReleaseComparisonMetrics, ReleaseSummary, TaskMetrics
from devmetrics.providers.models import Commit, ProjectSummary, Release, TagComparisonResult

pytestmark = pytest.mark.integration


class StubGitLab:
    def __init__(self, error=None):
        self.error = error
        self.calls = []

    def compare_tags(self, older_tag, newer_tag, *, project_ref=None):
        self.calls.append((older_tag, newer_tag, project_ref))
        if self.error:
            raise self.error
        return TagComparisonResult(
            older_tag=older_tag,
            newer_tag=newer_tag,
            commits=[Commit(id="abc12345", created_at="2024-03-01T00:00:00Z", title="Add feature")],
        )


class StubAggregator:
    """Aggregator double returning canned reports or raising a configured error."""

    def __init__(self, error=None, gitlab=None):
        self.error = error
        self.gitlab = gitlab or StubGitLab()
        self.calls = []

    def _record(self, name, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        if self.error:
            raise self.error

    def calculate_metrics(self, older_tag, newer_tag, project_id=None):
        self._record("calculate_metrics", older_tag, newer_tag, project_id)
        return ReleaseComparisonMetrics(total_commits=5, total_features=3, total_bugs=2, total_releases=4)

    def get_release_commits(self, older_tag, newer_tag):
        self._record("get_release_commits", older_tag, newer_tag)
        return [Commit(id="abc12345", created_at="2024-03-01T00:00:00Z", title="Fix", description="Details")]

    def get_dashboard_metrics(self):
        self._record("get_dashboard_metrics")
        return DashboardMetrics(
            release_metrics=ReleaseSummary(current_release="v1.1.0"),
            task_metrics=TaskMetrics(total_tasks=3),
            bug_metrics=BugMetrics(total_bugs=1),
        )

    def get_task_metrics(self, project_id):
        self._record("get_task_metrics", project_id)
        return TaskMetrics(project_id=project_id, project_name="Website", total_tasks=2, completed=1)

    def get_bug_metrics(self, project_id):
        self._record("get_bug_metrics", project_id)
        return BugMetrics(project_id=project_id, project_name="Website", total_bugs=1)

    def get_project_releases(self, project_id):
        self._record("get_project_releases", project_id)
        return []

    def list_releases(self, project_ref=None):
        self._record("list_releases", project_ref=project_ref)
        return [Release(id=1, name="v1.0.0", tag_name="v1.0.0", created_at="2024-01-01T00:00:00Z")]

    def search_projects(self, term):
        self._record("search_projects", term)
        return [ProjectSummary(id=1, name="Website")]


@pytest.fixture
def stub():
    aggregator = StubAggregator()
    app.dependency_overrides[dashboard.get_aggregator] = lambda: aggregator
    yield aggregator
    app.dependency_overrides.clear()


@pytest.fixture
def client():
    return TestClient(app)


def use_error(stub, error):
    stub.error = error
    stub.gitlab.error = error


def test_metrics_returns_release_comparison(stub, client):
    resp = client.get("/dashboard/metrics", params={"olderTag": "v1.0.0", "newerTag": "v1.1.0", "projectId": "3"})

    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["totalCommits"] == 5
    assert body["totalFeatures"] == 3
    assert body["totalBugs"] == 2
    assert stub.calls == [("calculate_metrics", ("v1.0.0", "v1.1.0", 3), {})]


def test_metrics_project_filter_is_optional(stub, client):
    resp = client.get("/dashboard/metrics", params={"olderTag": "v1.0.0", "newerTag": "v1.1.0"})

    assert resp.status_code == 200
    assert stub.calls[0][1][2] is None


def test_metrics_requires_tags(stub, client):
    resp = client.get("/dashboard/metrics", params={"newerTag": "v1.1.0"})

    assert resp.status_code == 400
    assert resp.json()["error"] == "olderTag is required"
    assert stub.calls == []


def test_release_metrics_lists_commits(stub, client):
    resp = client.get("/dashboard/release-metrics", params={"olderTag": "a", "newerTag": "b"})

    assert resp.status_code == 200
    assert resp.json() == {
        "commits": [
            {"id": "abc12345", "createdAt": "2024-03-01T00:00:00Z", "title": "Fix", "description": "Details"}
        ]
    }


def test_overview(stub, client):
    resp = client.get("/dashboard/overview")

    assert resp.status_code == 200
    body = resp.json()
    assert body["releaseMetrics"]["currentRelease"] == "v1.1.0"
    assert body["releaseMetrics"]["previousRelease"] == "No previous release"
    assert body["taskMetrics"]["totalTasks"] == 3
    assert body["bugMetrics"]["totalBugs"] == 1


@pytest.mark.parametrize("path", ["/dashboard/task-metrics", "/dashboard/bug-metrics", "/dashboard/project-releases"])
def test_project_endpoints_require_project_id(stub, client, path):
    resp = client.get(path)

    assert resp.status_code == 400
    assert resp.json() == {
        "error": "Project ID is required",
        "details": "Please provide a project ID in the query parameters",
    }


def test_project_id_must_be_integer(stub, client):
    resp = client.get("/dashboard/task-metrics", params={"projectId": "abc"})

    assert resp.status_code == 400
    assert resp.json()["error"] == "Project ID must be an integer"


def test_task_metrics(stub, client):
    resp = client.get("/dashboard/task-metrics", params={"projectId": "12"})

    assert resp.status_code == 200
    assert resp.json() == {
        "projectId": 12,
        "projectName": "Website",
        "totalTasks": 2,
        "inProgress": 0,
        "completed": 1,
        "overdue": 0,
        "averageCompletionTime": 0.0,
    }


def test_bug_metrics(stub, client):
    resp = client.get("/dashboard/bug-metrics", params={"projectId": "12"})

    assert resp.status_code == 200
    assert resp.json()["totalBugs"] == 1


def test_unknown_project_maps_to_500(stub, client):
    use_error(stub, NotFoundError("Project with ID 12 not found"))

    resp = client.get("/dashboard/bug-metrics", params={"projectId": "12"})

    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to get bug metrics", "details": "Project with ID 12 not found"}


def test_upstream_error_maps_to_500(stub, client):
    use_error(stub, UpstreamHttpError("flowlu", "Flowlu API request failed: Invalid API key", status_code=401))

    resp = client.get("/dashboard/overview")

    assert resp.status_code == 500
    assert resp.json() == {
        "error": "Failed to get dashboard metrics",
        "details": "Flowlu API request failed: Invalid API key",
    }


def test_domain_validation_error_maps_to_400(stub, client):
    use_error(stub, ValidationError("Both olderTag and newerTag are required", details="Tag names must not be empty"))

    resp = client.get("/dashboard/metrics", params={"olderTag": "v1", "newerTag": "v2"})

    assert resp.status_code == 400
    assert resp.json() == {"error": "Both olderTag and newerTag are required", "details": "Tag names must not be empty"}


def test_same_ref_comparison_maps_to_500(stub, client):
    use_error(stub, UpstreamHttpError("gitlab", "Cannot compare the same reference"))

    resp = client.get("/dashboard/metrics", params={"olderTag": "v1", "newerTag": "v1"})

    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to calculate metrics", "details": "Cannot compare the same reference"}


def test_unexpected_error_returns_error_body(stub):
    use_error(stub, RuntimeError("boom"))
    client = TestClient(app, raise_server_exceptions=False)

    resp = client.get("/dashboard/task-metrics", params={"projectId": "1"})

    assert resp.status_code == 500
    assert resp.json() == {"error": "Failed to get task metrics", "details": "boom"}


def test_unexpected_compare_error_returns_error_body(stub):
    use_error(stub, KeyError("commits"))
    client = TestClient(app, raise_server_exceptions=False)

    resp = client.post("/gitlab/compare-tags", json={"comparison": {"olderTag": "v1.0.0", "newerTag": "v2"}})

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "error": "Failed to compare tags", "details": "'commits'"}


def test_releases_use_source_control_project_ref(stub, client):
    resp = client.get("/dashboard/releases", params={"projectId": "group/app"})

    assert resp.status_code == 200
    assert resp.json()[0]["tagName"] == "v1.0.0"
    assert stub.calls == [("list_releases", (), {"project_ref": "group/app"})]


def test_releases_require_project_id(stub, client):
    resp = client.get("/dashboard/releases")

    assert resp.status_code == 400
    assert resp.json()["details"] == "Please provide a GitLab project ID in the query parameters"


def test_project_search(stub, client):
    resp = client.get("/dashboard/projects/search", params={"searchTerm": "web"})

    assert resp.status_code == 200
    assert resp.json() == [{"id": 1, "name": "Website"}]


def test_project_search_requires_term(stub, client):
    resp = client.get("/dashboard/projects/search")

    assert resp.status_code == 400


def test_compare_tags(stub, client):
    resp = client.post(
        "/gitlab/compare-tags",
        json={"comparison": {"olderTag": "v1.0.0", "newerTag": "v1.1.0"}, "projectRef": "group/app"},
    )

    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["success"] is True
    assert body["data"]["totalCommits"] == 1
    assert body["data"]["olderTag"] == "v1.0.0"
    assert stub.gitlab.calls == [("v1.0.0", "v1.1.0", "group/app")]


def test_compare_tags_invalid_body(stub, client):
    resp = client.post("/gitlab/compare-tags", json={"comparison": {"olderTag": "v1.0.0"}})

    assert resp.status_code == 400
    body = resp.json()
    assert body["error"] == "Invalid request"
    assert isinstance(body["details"], list)


def test_compare_tags_upstream_failure(stub, client):
    use_error(stub, UpstreamHttpError("gitlab", "Failed to retrieve tag data for v1.0.0: 404 Tag Not Found"))

    resp = client.post("/gitlab/compare-tags", json={"comparison": {"olderTag": "v1.0.0", "newerTag": "v2"}})

    assert resp.status_code == 500
    assert resp.json() == {
        "success": False,
        "error": "Failed to compare tags",
        "details": "Failed to retrieve tag data for v1.0.0: 404 Tag Not Found",
    }


def test_missing_configuration_is_reported(client):
    def broken():
        raise ConfigError("Missing required environment variable: GITLAB_URL")

    app.dependency_overrides[dashboard.get_aggregator] = broken
    try:
        resp = client.get("/dashboard/overview")
    finally:
        app.dependency_overrides.clear()

    assert resp.status_code == 500
    assert resp.json() == {
        "error": "Configuration error",
        "details": "Missing required environment variable: GITLAB_URL",
    }


def test_unhandled_dependency_error_returns_error_body():
    def broken():
        raise RuntimeError("aggregator unavailable")

    app.dependency_overrides[dashboard.get_aggregator] = broken
    try:
        resp = TestClient(app, raise_server_exceptions=False).get("/dashboard/overview")
    finally:
        app.dependency_overrides.clear()

    assert resp.status_code == 500
    assert resp.json() == {"error": "Internal server error", "details": "aggregator unavailable"}
