import json

from fastapi import FastAPI
from fastapi.testclient import TestClient

from omnichat.core import config
from omnichat.core.error_handlers import register_exception_handlers
from omnichat.models.message import ROLE_AGENT, ROLE_CUSTOMER, Message
from omnichat.routers.webhook import router as webhook_router
from omnichat.services.webhook_security import SIGNATURE_HEADER, compute_signature
from tests.factories import build_orchestrator, build_session_factory, seed_shop
from tests.fixtures_data import MESSENGER_WEBHOOK, WHATSAPP_WEBHOOK

APP_SECRET = "test-app-secret"


def _build_client(monkeypatch, *, app_secret=APP_SECRET, verify_token="verify-me"):
    monkeypatch.setattr(config, "META_APP_SECRET", app_secret)
    monkeypatch.setattr(config, "META_VERIFY_TOKEN", verify_token)

    SessionLocal = build_session_factory()
    db = SessionLocal()
    seed_shop(db)
    db.close()

    orchestrator, backend, adapter = build_orchestrator(SessionLocal)

    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(webhook_router)
    app.state.orchestrator = orchestrator
    return TestClient(app), SessionLocal, backend, adapter


def _signed(payload):
    body = json.dumps(payload).encode("utf-8")
    return body, {SIGNATURE_HEADER: compute_signature(body, APP_SECRET), "Content-Type": "application/json"}


def _count_messages(SessionLocal, role):
    db = SessionLocal()
    try:
        return db.query(Message).filter(Message.role == role).count()
    finally:
        db.close()


def test_verify_subscription_echoes_challenge(monkeypatch):
    client, *_ = _build_client(monkeypatch)

    response = client.get(
        "/api/webhooks/meta",
        params={"hub.mode": "subscribe", "hub.verify_token": "verify-me", "hub.challenge": "1158201444"},
    )

    assert response.status_code == 200
    assert response.text == "1158201444"


def test_verify_subscription_rejects_wrong_token(monkeypatch):
    client, *_ = _build_client(monkeypatch)

    response = client.get(
        "/api/webhooks/meta",
        params={"hub.mode": "subscribe", "hub.verify_token": "nope", "hub.challenge": "1"},
    )

    assert response.status_code == 403
    assert response.json() == {"message": "Invalid verify token"}


def test_verify_subscription_requires_configured_token(monkeypatch):
    client, *_ = _build_client(monkeypatch, verify_token="")

    response = client.get(
        "/api/webhooks/meta",
        params={"hub.mode": "subscribe", "hub.verify_token": "", "hub.challenge": "1"},
    )

    assert response.status_code == 500


def test_signed_whatsapp_message_is_processed_after_ack(monkeypatch):
    client, SessionLocal, backend, adapter = _build_client(monkeypatch)
    body, headers = _signed(WHATSAPP_WEBHOOK)

    response = client.post("/api/webhooks/meta", content=body, headers=headers)

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert backend.calls == 1
    assert _count_messages(SessionLocal, ROLE_CUSTOMER) == 1
    assert _count_messages(SessionLocal, ROLE_AGENT) == 1
    assert adapter.sent == [
        {"channel": "whatsapp", "recipient_id": "15551234567", "text": "Happy to help!"}
    ]


def test_tampered_body_is_rejected(monkeypatch):
    client, SessionLocal, backend, _ = _build_client(monkeypatch)
    body, headers = _signed(WHATSAPP_WEBHOOK)
    tampered = body.replace(b"Hello", b"Jello")

    response = client.post("/api/webhooks/meta", content=tampered, headers=headers)

    assert response.status_code == 403
    assert backend.calls == 0
    assert _count_messages(SessionLocal, ROLE_CUSTOMER) == 0


def test_missing_signature_is_rejected(monkeypatch):
    client, *_ = _build_client(monkeypatch)

    response = client.post("/api/webhooks/meta", json=WHATSAPP_WEBHOOK)

    assert response.status_code == 403
    assert response.json() == {"message": "Signature missing"}


def test_replayed_delivery_is_acknowledged_but_processed_once(monkeypatch):
    client, SessionLocal, backend, _ = _build_client(monkeypatch)
    body, headers = _signed(WHATSAPP_WEBHOOK)

    first = client.post("/api/webhooks/meta", content=body, headers=headers)
    second = client.post("/api/webhooks/meta", content=body, headers=headers)

    assert first.status_code == 200
    assert second.status_code == 200
    assert backend.calls == 1
    assert _count_messages(SessionLocal, ROLE_CUSTOMER) == 1


def test_invalid_json_with_valid_signature_returns_400(monkeypatch):
    client, *_ = _build_client(monkeypatch)
    body = b"{not json"
    headers = {SIGNATURE_HEADER: compute_signature(body, APP_SECRET)}

    response = client.post("/api/webhooks/meta", content=body, headers=headers)

    assert response.status_code == 400
    assert response.json() == {"message": "Invalid JSON body"}


def test_unsigned_delivery_accepted_when_no_secret_configured(monkeypatch):
    client, SessionLocal, backend, adapter = _build_client(monkeypatch, app_secret="")

    response = client.post("/api/webhooks/meta", json=MESSENGER_WEBHOOK)

    assert response.status_code == 200
    assert backend.calls == 1
    assert adapter.sent[0]["channel"] == "messenger"
    assert adapter.sent[0]["recipient_id"] == "psid-42"


def test_unsupported_object_is_acknowledged_and_ignored(monkeypatch):
    client, SessionLocal, backend, _ = _build_client(monkeypatch)
    body, headers = _signed({"object": "user", "entry": []})

    response = client.post("/api/webhooks/meta", content=body, headers=headers)

    assert response.status_code == 200
    assert backend.calls == 0
