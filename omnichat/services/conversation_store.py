from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from omnichat.models._time import utcnow
from omnichat.models.conversation import (
    CONVERSATION_ACTIVE,
    CONVERSATION_PAUSED,
    Conversation,
)
from omnichat.models.message import ROLE_CUSTOMER, Message
from omnichat.models.processed_message import ProcessedMessage

logger = logging.getLogger(__name__)

RECENT_CUSTOMER_MESSAGES = 3


def get_current_conversation(db: Session, tenant_id: int, customer_id: str) -> Conversation | None:
    return (
        db.query(Conversation)
        .filter(Conversation.tenant_id == tenant_id, Conversation.customer_id == customer_id)
        .order_by(Conversation.created_at.desc(), Conversation.id.desc())
        .first()
    )


def get_conversation(db: Session, tenant_id: int, conversation_id: int) -> Conversation | None:
    return (
        db.query(Conversation)
        .filter(Conversation.tenant_id == tenant_id, Conversation.id == conversation_id)
        .first()
    )


def create_conversation(
    db: Session,
    *,
    tenant_id: int,
    customer_id: str,
    channel: str,
    customer_name: str | None = None,
) -> Conversation:
    conversation = Conversation(
        tenant_id=tenant_id,
        customer_id=customer_id,
        customer_name=customer_name,
        channel=channel,
        status=CONVERSATION_ACTIVE,
        paused_for_human=False,
    )
    db.add(conversation)
    db.commit()
    db.refresh(conversation)
    logger.info(
        "conversation created id=%s tenant_id=%s channel=%s",
        conversation.id,
        tenant_id,
        channel,
    )
    return conversation


def get_or_create_conversation(
    db: Session,
    *,
    tenant_id: int,
    customer_id: str,
    channel: str,
    customer_name: str | None = None,
) -> tuple[Conversation, bool]:
    conversation = get_current_conversation(db, tenant_id, customer_id)
    if conversation is not None:
        if customer_name and not conversation.customer_name:
            conversation.customer_name = customer_name
            db.commit()
        return conversation, False
    return (
        create_conversation(
            db,
            tenant_id=tenant_id,
            customer_id=customer_id,
            channel=channel,
            customer_name=customer_name,
        ),
        True,
    )


def list_conversations(db: Session, tenant_id: int, status: str | None = None) -> list[Conversation]:
    query = db.query(Conversation).filter(Conversation.tenant_id == tenant_id)
    if status:
        query = query.filter(Conversation.status == status)
    return query.order_by(Conversation.last_message_at.desc(), Conversation.id.desc()).all()


def list_paused_conversations(db: Session, tenant_id: int) -> list[Conversation]:
    return (
        db.query(Conversation)
        .filter(Conversation.tenant_id == tenant_id, Conversation.paused_for_human.is_(True))
        .order_by(Conversation.last_message_at.desc(), Conversation.id.desc())
        .all()
    )


def add_message(db: Session, conversation: Conversation, *, role: str, content: str) -> Message:
    now = utcnow()
    message = Message(conversation_id=conversation.id, role=role, content=content, created_at=now)
    conversation.last_message_at = now
    db.add(message)
    db.commit()
    db.refresh(message)
    return message


def list_messages(db: Session, conversation_id: int) -> list[Message]:
    return (
        db.query(Message)
        .filter(Message.conversation_id == conversation_id)
        .order_by(Message.created_at.asc(), Message.id.asc())
        .all()
    )


def recent_customer_text(db: Session, conversation_id: int, limit: int = RECENT_CUSTOMER_MESSAGES) -> str:
    rows = (
        db.query(Message)
        .filter(Message.conversation_id == conversation_id, Message.role == ROLE_CUSTOMER)
        .order_by(Message.created_at.desc(), Message.id.desc())
        .limit(limit)
        .all()
    )
    return " ".join(row.content for row in reversed(rows))


def set_paused(db: Session, conversation: Conversation, paused: bool) -> Conversation:
    conversation.paused_for_human = paused
    conversation.status = CONVERSATION_PAUSED if paused else CONVERSATION_ACTIVE
    conversation.last_message_at = utcnow()
    db.commit()
    db.refresh(conversation)
    return conversation


def claim_provider_message(db: Session, message_id: str, channel: str | None = None) -> bool:
    """Records a provider message id; returns False when it was already seen."""
    if db.query(ProcessedMessage).filter_by(message_id=message_id).first():
        return False
    db.add(ProcessedMessage(message_id=message_id, channel=channel))
    db.commit()
    return True
