"""API tests for the monitoring log and health endpoints."""

import pytest
from fastapi.testclient import TestClient

from devmetrics.api.main import app
from devmetrics.monitoring import router as monitoring_router

pytestmark = pytest.mark.integration

API_KEY = "monitoring-secret"
AUTH = {"X-API-Key": API_KEY}


@pytest.fixture
def client(fake_firestore, monkeypatch):
    monkeypatch.setenv("MONITORING_API_KEY", API_KEY)
    app.dependency_overrides[monitoring_router.get_db] = lambda: fake_firestore
    yield TestClient(app)
    app.dependency_overrides.clear()


def post_transaction(client, **overrides):
    payload = {
        "method": "GET",
        "path": "/dashboard/metrics",
        "mainRoute": "/dashboard",
        "responseStatus": 200,
        "duration": 120,
        "timestamp": "2024-05-01T12:00:00Z",
    }
    payload.update(overrides)
    return client.post("/monitoring/transactions", json=payload)


def test_create_transaction(client, fake_firestore):
    resp = post_transaction(client)

    assert resp.status_code == 201, resp.text
    body = resp.json()
    assert body["status"] == "success"
    transaction = body["data"]["transaction"]
    assert transaction["id"]
    assert transaction["timestamp"] == "2024-05-01T12:00:00+00:00"
    assert len(fake_firestore.collection("test_api_transactions").docs) == 1


def test_create_transaction_validates_body(client):
    resp = client.post("/monitoring/transactions", json={"method": "GET"})

    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid request"


def test_list_transactions_requires_api_key(client):
    assert client.get("/monitoring/transactions").status_code == 401
    assert client.get("/monitoring/transactions", headers={"X-API-Key": "wrong"}).status_code == 401


def test_read_endpoints_reject_when_key_not_configured(client, monkeypatch):
    monkeypatch.delenv("MONITORING_API_KEY")

    resp = client.get("/monitoring/transactions/stats", headers=AUTH)

    assert resp.status_code == 401


def test_list_transactions(client):
    post_transaction(client, timestamp="2024-05-01T12:00:00Z", method="GET")
    post_transaction(client, timestamp="2024-05-01T12:05:00Z", method="POST", responseStatus=500)

    resp = client.get("/monitoring/transactions", headers=AUTH)

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert [item["method"] for item in data["transactions"]] == ["POST", "GET"]
    assert data["pagination"] == {"total": 2, "page": 1, "pages": 1}


def test_list_transactions_filters_and_lenient_paging(client):
    post_transaction(client, method="GET")
    post_transaction(client, method="POST", responseStatus=500)

    resp = client.get(
        "/monitoring/transactions",
        params={"method": "POST", "status": "500", "page": "zero", "limit": "-3"},
        headers=AUTH,
    )

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["pagination"] == {"total": 1, "page": 1, "pages": 1}


def test_transaction_stats(client):
    post_transaction(client, responseStatus=200, duration=100)
    post_transaction(client, responseStatus=404, duration=50)

    resp = client.get("/monitoring/transactions/stats", headers=AUTH)

    assert resp.status_code == 200
    stats = resp.json()["data"]
    assert stats["totalRequests"] == 2
    assert stats["averageDuration"] == 75
    assert stats["statusCodes"] == {"200": 1, "404": 1}
    assert stats["pathStats"][0]["clientErrorRate"] == 50.0


def test_frontend_error_uses_request_user_agent(client):
    resp = client.post(
        "/monitoring/frontend-errors",
        json={"errorName": "TypeError", "message": "x is undefined", "path": "/home", "componentName": "Chart"},
        headers={"User-Agent": "Mozilla/5.0 (Test)"},
    )

    assert resp.status_code == 201, resp.text
    error = resp.json()["data"]["error"]
    assert error["browserInfo"]["userAgent"] == "Mozilla/5.0 (Test)"


def test_frontend_error_stats(client):
    for _ in range(2):
        client.post(
            "/monitoring/frontend-errors",
            json={"errorName": "TypeError", "message": "boom", "path": "/home", "timestamp": "2024-05-01T08:00:00Z"},
        )

    resp = client.get("/monitoring/frontend-errors/stats", headers=AUTH)

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["totalErrors"] == 2
    assert data["errorsByType"][0]["errorName"] == "TypeError"
    assert data["errorsByComponent"][0]["componentName"] == "Unknown"
    assert data["errorsTrend"] == [{"date": "2024-05-01", "count": 2}]


def test_repository_failure_returns_error_body(client):
    class BrokenClient:
        def collection(self, name):
            raise RuntimeError("firestore unavailable")

    app.dependency_overrides[monitoring_router.get_db] = lambda: BrokenClient()

    resp = client.get("/monitoring/transactions/stats", headers=AUTH)

    assert resp.status_code == 500
    assert resp.json() == {"status": "error", "message": "Error fetching transaction statistics"}


def test_health_reports_firestore_project(fake_firestore):
    app.state.firestore_client = fake_firestore
    try:
        resp = TestClient(app).get("/health")
    finally:
        del app.state.firestore_client

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "service": "devmetrics", "firestoreProject": "test-project"}
