from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from omnichat.core.database import get_db
from omnichat.deps import AuthContext, get_orchestrator, require_role
from omnichat.schemas.channel import CHANNEL_CHAT, CHANNELS
from omnichat.services import conversation_store
from omnichat.services.orchestrator import ConversationOrchestrator
from omnichat.services.serializers import serialize_conversation, serialize_message, serialize_order

router = APIRouter(prefix="/api/conversations", tags=["conversations"])
CONVERSATION_ROLES = ["owner", "order_manager"]


class ConversationCreate(BaseModel):
    customer_id: Optional[str] = None
    customer_name: Optional[str] = None
    channel: str = CHANNEL_CHAT


class MessageCreate(BaseModel):
    content: str = Field(..., max_length=4000)


def _require_conversation(db: Session, tenant_id: int, conversation_id: int):
    conversation = conversation_store.get_conversation(db, tenant_id, conversation_id)
    if not conversation:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Conversation not found")
    return conversation


@router.get("")
def list_conversations(
    status_filter: Optional[str] = Query(None, alias="status"),
    auth: AuthContext = Depends(require_role(CONVERSATION_ROLES)),
    db: Session = Depends(get_db),
):
    conversations = conversation_store.list_conversations(db, auth.tenant_id, status=status_filter)
    return [serialize_conversation(conversation) for conversation in conversations]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_conversation(
    payload: ConversationCreate,
    auth: AuthContext = Depends(require_role(CONVERSATION_ROLES)),
    db: Session = Depends(get_db),
):
    if payload.channel not in CHANNELS:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid channel")
    customer_id = (payload.customer_id or "").strip() or f"chat-{uuid.uuid4().hex[:12]}"
    conversation = conversation_store.create_conversation(
        db,
        tenant_id=auth.tenant_id,
        customer_id=customer_id,
        channel=payload.channel,
        customer_name=(payload.customer_name or "").strip() or None,
    )
    return serialize_conversation(conversation)


@router.get("/{conversation_id}")
def get_conversation(
    conversation_id: int,
    auth: AuthContext = Depends(require_role(CONVERSATION_ROLES)),
    db: Session = Depends(get_db),
):
    return serialize_conversation(_require_conversation(db, auth.tenant_id, conversation_id))


@router.get("/{conversation_id}/messages")
def list_messages(
    conversation_id: int,
    auth: AuthContext = Depends(require_role(CONVERSATION_ROLES)),
    db: Session = Depends(get_db),
):
    conversation = _require_conversation(db, auth.tenant_id, conversation_id)
    return [serialize_message(message) for message in conversation_store.list_messages(db, conversation.id)]


@router.post("/{conversation_id}/messages")
async def send_message(
    conversation_id: int,
    payload: MessageCreate,
    auth: AuthContext = Depends(require_role(CONVERSATION_ROLES)),
    db: Session = Depends(get_db),
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
):
    result = await orchestrator.send_dashboard_message(
        db,
        tenant_id=auth.tenant_id,
        conversation_id=conversation_id,
        text=payload.content,
    )
    return {
        "status": result.status,
        "conversation": serialize_conversation(result.conversation),
        "customer_message": serialize_message(result.customer_message),
        "reply": serialize_message(result.reply) if result.reply else None,
        "intent": result.intent.category if result.intent else None,
        "order": serialize_order(result.order) if result.order else None,
    }
