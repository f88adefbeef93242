import asyncio
import json

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from omnichat.core.database import get_db
from omnichat.routers import realtime as realtime_routes
from omnichat.routers.realtime import router as realtime_router
from omnichat.services import session_auth
from omnichat.services.realtime import RealtimeHub
from omnichat.services.session_auth import SESSION_COOKIE, create_session
from tests.factories import RecordingConnection, build_session_factory, seed_shop

SECRET = "realtime-test-secret"


class BrokenConnection:
    async def send_text(self, data: str) -> None:
        raise RuntimeError("socket closed")


def test_publish_reaches_only_the_tenant_connections():
    hub = RealtimeHub()
    shop_a, shop_a_second, shop_b = RecordingConnection(), RecordingConnection(), RecordingConnection()
    hub.register(1, shop_a)
    hub.register(1, shop_a_second)
    hub.register(2, shop_b)

    delivered = asyncio.run(hub.publish(1, "order:created", {"id": 5}))

    assert delivered == 2
    assert shop_b.sent == []
    event = json.loads(shop_a.sent[0])
    assert event["type"] == "order:created"
    assert event["data"] == {"id": 5}
    assert isinstance(event["timestamp"], int)


def test_failed_connection_is_dropped_without_affecting_others():
    hub = RealtimeHub()
    healthy = RecordingConnection()
    hub.register(1, healthy)
    hub.register(1, BrokenConnection())

    delivered = asyncio.run(hub.publish(1, "message:received", {}))

    assert delivered == 1
    assert hub.connection_count(1) == 1
    assert len(healthy.sent) == 1


def test_publish_without_subscribers_returns_zero():
    assert asyncio.run(RealtimeHub().publish(3, "order:updated")) == 0


def test_unregister_and_stats():
    hub = RealtimeHub()
    connection = RecordingConnection()
    hub.register(4, connection)
    assert hub.stats(4) == {"tenant_connections": 1, "total_connections": 1}
    assert hub.stats(5) == {"tenant_connections": 0, "total_connections": 1}

    hub.unregister(connection)
    hub.unregister(connection)

    assert hub.connection_count() == 0
    assert hub.stats(4) == {"tenant_connections": 0, "total_connections": 0}


class SessionTracker:
    def __init__(self, factory):
        self.factory = factory
        self.opened = 0
        self.closed = 0

    def __call__(self):
        session = self.factory()
        self.opened += 1
        close = session.close

        def tracked_close():
            self.closed += 1
            close()

        session.close = tracked_close
        return session

    @property
    def open_sessions(self):
        return self.opened - self.closed


def _build_client(monkeypatch):
    monkeypatch.setattr(session_auth, "SESSION_SECRET", SECRET)
    TestingSessionLocal = build_session_factory()
    db = TestingSessionLocal()
    seed_shop(db)
    db.close()
    tracker = SessionTracker(TestingSessionLocal)
    monkeypatch.setattr(realtime_routes, "SessionLocal", tracker)

    app = FastAPI()
    app.include_router(realtime_router)
    app.state.realtime = RealtimeHub()

    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app), app.state.realtime, tracker


def test_websocket_rejects_missing_session(monkeypatch):
    client, hub, _ = _build_client(monkeypatch)

    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/ws"):
            pass

    assert exc_info.value.code == 1008
    assert hub.connection_count() == 0


def test_websocket_connects_and_answers_ping(monkeypatch):
    client, hub, _ = _build_client(monkeypatch)
    token = create_session({"user_id": 7, "tenant_id": 1})

    with client.websocket_connect(f"/ws?token={token}") as websocket:
        welcome = websocket.receive_json()
        assert welcome["type"] == "connected"
        assert welcome["data"]["tenant_id"] == 1
        assert hub.connection_count(1) == 1

        websocket.send_text("not json")
        websocket.send_text(json.dumps({"type": "ping"}))
        assert websocket.receive_json()["type"] == "pong"

    assert hub.connection_count() == 0


def test_realtime_stats_for_owner_cookie(monkeypatch):
    client, hub, _ = _build_client(monkeypatch)
    hub.register(1, RecordingConnection())
    client.cookies.set(SESSION_COOKIE, create_session({"user_id": 7, "tenant_id": 1}))

    response = client.get("/api/realtime/stats")

    assert response.status_code == 200
    assert response.json() == {"tenant_connections": 1, "total_connections": 1}


def test_websocket_releases_its_session_before_serving(monkeypatch):
    client, hub, tracker = _build_client(monkeypatch)
    token = create_session({"user_id": 7, "tenant_id": 1})

    with client.websocket_connect(f"/ws?token={token}") as websocket:
        assert websocket.receive_json()["type"] == "connected"
        websocket.send_text(json.dumps({"type": "ping"}))
        assert websocket.receive_json()["type"] == "pong"

        assert tracker.opened == 1
        assert tracker.open_sessions == 0


def test_rejected_websocket_releases_its_session(monkeypatch):
    client, _, tracker = _build_client(monkeypatch)

    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/ws?token=forged"):
            pass

    assert tracker.opened == 1
    assert tracker.open_sessions == 0
