from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from omnichat.core.database import get_db
from omnichat.deps import AuthContext, get_orchestrator, require_role
from omnichat.routers.conversations import CONVERSATION_ROLES
from omnichat.services import conversation_store
from omnichat.services.orchestrator import ConversationOrchestrator
from omnichat.services.serializers import serialize_conversation, serialize_message

router = APIRouter(prefix="/api/support", tags=["support"])


class OperatorMessage(BaseModel):
    content: str = Field(..., max_length=4000)


@router.get("/queue")
def support_queue(
    auth: AuthContext = Depends(require_role(CONVERSATION_ROLES)),
    db: Session = Depends(get_db),
):
    return [
        serialize_conversation(conversation)
        for conversation in conversation_store.list_paused_conversations(db, auth.tenant_id)
    ]


@router.post("/{conversation_id}/pause")
async def pause_conversation(
    conversation_id: int,
    auth: AuthContext = Depends(require_role(CONVERSATION_ROLES)),
    db: Session = Depends(get_db),
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
):
    conversation = await orchestrator.pause_conversation(db, tenant_id=auth.tenant_id, conversation_id=conversation_id)
    return serialize_conversation(conversation)


@router.post("/{conversation_id}/resume")
async def resume_conversation(
    conversation_id: int,
    auth: AuthContext = Depends(require_role(CONVERSATION_ROLES)),
    db: Session = Depends(get_db),
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
):
    conversation = await orchestrator.resume_conversation(db, tenant_id=auth.tenant_id, conversation_id=conversation_id)
    return serialize_conversation(conversation)


@router.post("/{conversation_id}/send-message")
async def send_operator_message(
    conversation_id: int,
    payload: OperatorMessage,
    auth: AuthContext = Depends(require_role(CONVERSATION_ROLES)),
    db: Session = Depends(get_db),
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
):
    message = await orchestrator.send_operator_message(
        db,
        tenant_id=auth.tenant_id,
        conversation_id=conversation_id,
        text=payload.content,
    )
    return serialize_message(message)
