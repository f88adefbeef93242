from fastapi.testclient import TestClient

from omnichat import main


def test_health_and_request_id(monkeypatch):
    monkeypatch.setattr(main, "_startup_tasks", lambda: None)

    with TestClient(main.app) as client:
        response = client.get("/health", headers={"X-Request-ID": "req-123"})
        root = client.get("/")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}
    assert response.headers["X-Request-ID"] == "req-123"
    assert root.json() == {"status": "ok"}
    assert root.headers["X-Request-ID"]


def test_core_routes_are_registered():
    paths = {route.path for route in main.app.routes}

    for path in (
        "/api/webhooks/meta",
        "/api/conversations/{conversation_id}/messages",
        "/api/support/{conversation_id}/pause",
        "/api/support/{conversation_id}/resume",
        "/api/orders",
        "/api/products",
        "/ws",
    ):
        assert path in paths


def test_protected_routes_require_session(monkeypatch):
    monkeypatch.setattr(main, "_startup_tasks", lambda: None)

    with TestClient(main.app) as client:
        response = client.get("/api/conversations")

    assert response.status_code == 401
    assert response.json() == {"message": "Not authenticated"}
