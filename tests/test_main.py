from __future__ import annotations

from fastapi.testclient import TestClient

from app.main import app

client = TestClient(app)


def test_app_title() -> None:
    assert app.title == "progress-service"


def test_routers_are_mounted() -> None:
    paths = {route.path for route in app.routes}
    assert "/health" in paths
    assert "/metrics" in paths
    assert "/v1/progress/{user_id}/{course_id}" in paths
    assert "/v1/reports/records" in paths


def test_cors_preflight_allows_frontend_origin() -> None:
    resp = client.options(
        "/v1/reports/summary",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "GET",
        },
    )
    assert resp.status_code == 200
    assert resp.headers["access-control-allow-origin"] == "http://localhost:5173"


def test_lifespan_runs_without_redis() -> None:
    with TestClient(app) as c:
        assert c.get("/ready").status_code == 200
