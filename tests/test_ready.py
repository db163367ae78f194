"""
Tests for /health, /ready and the background drain task.
"""
from __future__ import annotations

from unittest.mock import patch


def test_ready_ok(app_client):
    """Test /ready returns ok when all services are healthy."""
    _app, client = app_client

    with patch("app.routes.core._ping_redis", return_value=True):
        res = client.get("/ready")
        assert res.status_code == 200

        body = res.get_json()
        assert body["status"] == "ok"
        assert body["checks"] == {"db": "ok", "redis": "ok"}


def test_ready_redis_down(app_client):
    """Test /ready returns degraded when Redis is down."""
    _app, client = app_client

    with patch("app.routes.core._ping_redis", return_value=False):
        res = client.get("/ready")
        assert res.status_code == 503
        body = res.get_json()
        assert body["status"] == "degraded"
        assert body["checks"]["redis"] == "error"


def test_health_reports_cache(app_client):
    _app, client = app_client
    body = client.get("/health").get_json()
    assert body["status"] == "ok"
    assert "hits" in body["cache"]


def test_response_headers(app_client):
    _app, client = app_client
    res = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert res.headers["X-Request-ID"] == "req-123"
    assert res.headers["X-Content-Type-Options"] == "nosniff"


def test_drain_task_runs_locally(app_client):
    _app, _client = app_client
    from app.tasks.sync_task import drain_pending_submissions

    with patch("app.tasks.sync_task.run_drain", return_value={"deliveredCount": 0, "failedCount": 0, "skipped": True}) as run:
        result = drain_pending_submissions.apply().get()
    run.assert_called_once()
    assert result["skipped"] is True


def test_drain_task_failure_is_not_retried(app_client):
    _app, _client = app_client
    from app.tasks.sync_task import drain_pending_submissions

    with patch("app.tasks.sync_task.run_drain", side_effect=RuntimeError("db down")) as run:
        result = drain_pending_submissions.apply()
    assert result.failed()
    assert run.call_count == 1
