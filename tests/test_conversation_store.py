from omnichat.models.message import ROLE_AGENT, ROLE_CUSTOMER
from omnichat.services import conversation_store
from tests.factories import build_session_factory, seed_shop


def _db():
    SessionLocal = build_session_factory()
    db = SessionLocal()
    seed_shop(db)
    return db


def test_get_or_create_reuses_latest_conversation_and_backfills_name():
    db = _db()

    first, created = conversation_store.get_or_create_conversation(
        db, tenant_id=1, customer_id="15551234567", channel="whatsapp"
    )
    again, created_again = conversation_store.get_or_create_conversation(
        db, tenant_id=1, customer_id="15551234567", channel="whatsapp", customer_name="Sara"
    )

    assert created is True
    assert created_again is False
    assert again.id == first.id
    assert again.customer_name == "Sara"

    other_tenant, created_other = conversation_store.get_or_create_conversation(
        db, tenant_id=2, customer_id="15551234567", channel="whatsapp"
    )
    assert created_other is True
    assert other_tenant.id != first.id


def test_add_message_updates_activity_and_recent_text():
    db = _db()
    conversation = conversation_store.create_conversation(db, tenant_id=1, customer_id="c-1", channel="chat")

    for index in range(4):
        conversation_store.add_message(db, conversation, role=ROLE_CUSTOMER, content=f"line {index}")
        conversation_store.add_message(db, conversation, role=ROLE_AGENT, content=f"reply {index}")

    assert conversation.last_message_at is not None
    assert len(conversation_store.list_messages(db, conversation.id)) == 8
    assert conversation_store.recent_customer_text(db, conversation.id) == "line 1 line 2 line 3"


def test_set_paused_moves_conversation_into_support_queue():
    db = _db()
    conversation = conversation_store.create_conversation(db, tenant_id=1, customer_id="c-1", channel="chat")

    conversation_store.set_paused(db, conversation, True)
    assert [row.id for row in conversation_store.list_paused_conversations(db, 1)] == [conversation.id]
    assert [row.id for row in conversation_store.list_conversations(db, 1, status="paused")] == [conversation.id]

    conversation_store.set_paused(db, conversation, False)
    assert conversation_store.list_paused_conversations(db, 1) == []
    assert conversation.status == "active"


def test_claim_provider_message_is_single_use():
    db = _db()

    assert conversation_store.claim_provider_message(db, "wamid.1", "whatsapp") is True
    assert conversation_store.claim_provider_message(db, "wamid.1", "whatsapp") is False
    assert conversation_store.claim_provider_message(db, "wamid.2") is True
