from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from livesync.config.models import AppConfig, GeneratorConfig, StorageConfig
from livesync.models.metrics import MetricPoint, format_timestamp, utc_now
from services.dashboard.app import create_app


@pytest.fixture
def app(tmp_path):
    config = AppConfig(
        storage=StorageConfig(database_path=str(tmp_path / "dashboard.db")),
        generator=GeneratorConfig(enabled=False, seed_on_empty=False),
    )
    return create_app(config)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def context(app, client):
    return app.state.context


def insert_points(context, count):
    now = utc_now()
    context.store.insert_batch(
        [
            MetricPoint(timestamp=now - timedelta(seconds=count - i), metric_type="line", value=i)
            for i in range(count)
        ]
    )


def test_dashboard_returns_snapshot(client, context):
    insert_points(context, 12)

    resp = client.get("/api/dashboard")

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["timestamp"].endswith("Z")
    assert len(body["data"]["lineChartData"]) == 10
    assert body["data"]["totalEvents"] == 12
    assert body["data"]["barChartData"] == []


def test_dashboard_store_failure_returns_500(client, context):
    context.store.close()

    resp = client.get("/api/dashboard")

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "error": "Failed to fetch dashboard data"}


def test_seed_default_hour(client):
    resp = client.post("/api/seed")

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["count"] == 69

    data = client.get("/api/dashboard").json()["data"]
    assert data["totalEvents"] == 69
    assert len(data["barChartData"]) == 4
    assert len(data["pieChartData"]) == 4


def test_seed_with_hours(client):
    resp = client.post("/api/seed", json={"hours": 2})
    assert resp.status_code == 200
    assert "2 hours" in resp.json()["message"]


@pytest.mark.parametrize("body", [{"hours": -1}, {"hours": 0}, {"hours": "abc"}])
def test_seed_rejects_bad_hours(client, context, body):
    resp = client.post("/api/seed", json=body)

    assert resp.status_code == 400
    payload = resp.json()
    assert payload["success"] is False
    assert "hours" in payload["error"]
    assert context.store.total_events() == 0


def test_cleanup_deletes_old_points(client, context):
    now = utc_now()
    context.store.insert_batch(
        [
            MetricPoint(timestamp=now - timedelta(hours=30), metric_type="line", value=1),
            MetricPoint(timestamp=now - timedelta(hours=1), metric_type="line", value=2),
        ]
    )

    resp = client.request("DELETE", "/api/cleanup", json={"hours": 24})

    assert resp.status_code == 200
    assert resp.json()["deleted"] == 1
    assert client.request("DELETE", "/api/cleanup").json()["deleted"] == 0


def test_cleanup_rejects_non_positive_hours(client):
    resp = client.request("DELETE", "/api/cleanup", json={"hours": 0})
    assert resp.status_code == 400
    assert resp.json()["success"] is False


def test_cleanup_rejects_out_of_range_hours(client, context, make_point):
    context.store.insert(make_point("line", 1))

    resp = client.request("DELETE", "/api/cleanup", json={"hours": 1e8})

    assert resp.status_code == 400
    payload = resp.json()
    assert payload["success"] is False
    assert "hours" in payload["error"]
    assert context.store.total_events() == 1


def test_ingest_metrics(client):
    ts = format_timestamp(utc_now())
    resp = client.post(
        "/api/metrics",
        json={
            "points": [
                {"timestamp": ts, "metricType": "line", "value": 10},
                {"timestamp": ts, "metricType": "bar", "category": "Category A", "value": 5},
            ]
        },
    )

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "count": 2}
    assert client.get("/api/dashboard").json()["data"]["totalEvents"] == 2


def test_ingest_rejects_invalid_point_atomically(client, context):
    ts = format_timestamp(utc_now())
    resp = client.post(
        "/api/metrics",
        json={
            "points": [
                {"timestamp": ts, "metricType": "line", "value": 10},
                {"timestamp": ts, "metricType": "pie", "value": 5},
            ]
        },
    )

    assert resp.status_code == 400
    assert resp.json()["success"] is False
    assert context.store.total_events() == 0


def test_stats(client, context):
    insert_points(context, 3)

    body = client.get("/api/stats").json()

    assert body["success"] is True
    assert body["stats"]["totalMetrics"] == 3
    assert body["stats"]["byType"] == {"line": 3}


def test_health(client, context):
    insert_points(context, 2)

    body = client.get("/health").json()

    assert body["status"] == "ok"
    assert body["clients"] == 0
    assert body["store"] == "connected"
    assert body["stats"]["totalMetrics"] == 2
    assert body["counters"]["broadcasts"] == 0


def test_health_answers_when_store_closed(client, context):
    context.store.close()

    body = client.get("/health").json()

    assert body["status"] == "ok"
    assert body["store"] == "disconnected"
    assert body["stats"] is None


def test_startup_seeds_empty_store(tmp_path):
    config = AppConfig(
        storage=StorageConfig(database_path=str(tmp_path / "seeded.db")),
        generator=GeneratorConfig(enabled=False, seed_on_empty=True),
    )
    with TestClient(create_app(config)) as c:
        data = c.get("/api/dashboard").json()["data"]
    assert data["totalEvents"] == 69
