"""Conversation orchestration: one customer message in, one agent turn out.

State per conversation::

    (none) --first message--> active
    active --human request / operator pause--> paused
    paused --customer message--> paused      (stored, no AI reply)
    paused --operator resume--> active

Webhook turns run in the background with their own session and never raise.
Dashboard turns raise the errors in ``omnichat.services.errors`` before any
side effect so the router can answer with a structured error.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from sqlalchemy.orm import Session

from omnichat.ai.gateway import ResponseGenerator
from omnichat.ai.prompts import HUMAN_HANDOFF_MESSAGE
from omnichat.ai.schema import ChatContext, HistoryTurn, ProductFact, ServiceFact
from omnichat.channels.service import ChannelService
from omnichat.core.database import SessionLocal
from omnichat.core.request_context import conversation_scope
from omnichat.models.conversation import Conversation
from omnichat.models.message import ROLE_AGENT, ROLE_CUSTOMER, Message
from omnichat.models.order import Order
from omnichat.models.tenant import Tenant
from omnichat.schemas.channel import InboundEvent
from omnichat.schemas.realtime import EVENT_MESSAGE_RECEIVED, EVENT_ORDER_CREATED
from omnichat.services import catalog_store, conversation_store
from omnichat.services.errors import (
    ConversationNotFoundError,
    ConversationNotPausedError,
    ConversationPausedError,
    EmptyMessageError,
    TenantNotFoundError,
)
from omnichat.services.intent import INTENT_HUMAN_REQUEST, Intent, classify
from omnichat.services.order_extraction import maybe_extract_order
from omnichat.services.realtime import RealtimeHub
from omnichat.services.serializers import serialize_conversation, serialize_message, serialize_order
from omnichat.services.tenant_resolver import TenantResolver

logger = logging.getLogger(__name__)
ORCHESTRATOR_PREFIX = "[ORCHESTRATOR]"

DEFAULT_BUSINESS_NAME = "Our Business"
PAUSE_NOTICE = "I've connected you with our support team. A human agent will be with you shortly."
RESUME_NOTICE = (
    "Thank you for your patience. Our AI assistant is now ready to help you again. "
    "How can I assist you?"
)

TURN_IGNORED = "ignored"
TURN_PAUSED = "paused"
TURN_HANDOFF = "handoff"
TURN_REPLIED = "replied"


@dataclass
class TurnResult:
    status: str
    conversation: Conversation | None = None
    customer_message: Message | None = None
    reply: Message | None = None
    intent: Intent | None = None
    order: Order | None = None


class ConversationOrchestrator:
    def __init__(
        self,
        *,
        generator: ResponseGenerator,
        realtime: RealtimeHub,
        channels: ChannelService,
        tenant_resolver: TenantResolver | None = None,
        session_factory: Callable[[], Session] = SessionLocal,
    ) -> None:
        self.generator = generator
        self.realtime = realtime
        self.channels = channels
        self.tenant_resolver = tenant_resolver or TenantResolver()
        self.session_factory = session_factory

    # Customer-facing turns

    async def handle_inbound_message(
        self,
        db: Session,
        *,
        tenant_id: int,
        channel: str,
        customer_id: str,
        text: str | None,
        customer_name: str | None = None,
    ) -> TurnResult:
        text = (text or "").strip()
        if not text:
            return TurnResult(status=TURN_IGNORED)

        conversation, created = conversation_store.get_or_create_conversation(
            db,
            tenant_id=tenant_id,
            customer_id=customer_id,
            channel=channel,
            customer_name=customer_name,
        )
        if created:
            logger.info("%s new conversation id=%s channel=%s", ORCHESTRATOR_PREFIX, conversation.id, channel)
        return await self._run_turn(db, tenant_id=tenant_id, conversation=conversation, text=text)

    async def send_dashboard_message(
        self,
        db: Session,
        *,
        tenant_id: int,
        conversation_id: int,
        text: str | None,
    ) -> TurnResult:
        text = (text or "").strip()
        if not text:
            raise EmptyMessageError()
        conversation = self._require_conversation(db, tenant_id, conversation_id)
        if conversation.is_paused:
            raise ConversationPausedError(conversation_id)
        return await self._run_turn(db, tenant_id=tenant_id, conversation=conversation, text=text)

    async def process_inbound_event(self, event: InboundEvent) -> TurnResult | None:
        """Runs one webhook event to completion in its own session.

        Every failure is logged here; the webhook has already been acknowledged.
        """
        db = self.session_factory()
        try:
            tenant_id = event.tenant_id or self.tenant_resolver.resolve(event.business_id)
            if tenant_id is None:
                logger.error(
                    "%s unable to resolve tenant for source=%s channel=%s",
                    ORCHESTRATOR_PREFIX,
                    event.business_id,
                    event.channel,
                )
                return None
            if db.get(Tenant, tenant_id) is None:
                raise TenantNotFoundError(tenant_id)

            if event.message_id and not conversation_store.claim_provider_message(
                db, event.message_id, event.channel
            ):
                logger.info("%s duplicate provider message id=%s", ORCHESTRATOR_PREFIX, event.message_id)
                return None

            return await self.handle_inbound_message(
                db,
                tenant_id=tenant_id,
                channel=event.channel,
                customer_id=event.customer_id,
                text=event.text,
                customer_name=event.customer_name,
            )
        except Exception:
            db.rollback()
            logger.exception(
                "%s inbound processing failed channel=%s source=%s",
                ORCHESTRATOR_PREFIX,
                event.channel,
                event.business_id,
            )
            return None
        finally:
            db.close()

    # Operator actions

    async def pause_conversation(self, db: Session, *, tenant_id: int, conversation_id: int) -> Conversation:
        conversation = self._require_conversation(db, tenant_id, conversation_id)
        if conversation.is_paused:
            return conversation
        conversation_store.set_paused(db, conversation, True)
        logger.info("%s paused by operator conversation=%s", ORCHESTRATOR_PREFIX, conversation.id)
        await self._post_agent_message(db, tenant_id, conversation, PAUSE_NOTICE)
        return conversation

    async def resume_conversation(self, db: Session, *, tenant_id: int, conversation_id: int) -> Conversation:
        conversation = self._require_conversation(db, tenant_id, conversation_id)
        if not conversation.is_paused:
            return conversation
        conversation_store.set_paused(db, conversation, False)
        logger.info("%s resumed by operator conversation=%s", ORCHESTRATOR_PREFIX, conversation.id)
        await self._post_agent_message(db, tenant_id, conversation, RESUME_NOTICE)
        return conversation

    async def send_operator_message(
        self,
        db: Session,
        *,
        tenant_id: int,
        conversation_id: int,
        text: str | None,
    ) -> Message:
        text = (text or "").strip()
        if not text:
            raise EmptyMessageError()
        conversation = self._require_conversation(db, tenant_id, conversation_id)
        if not conversation.is_paused:
            raise ConversationNotPausedError(conversation_id)
        return await self._post_agent_message(db, tenant_id, conversation, text)

    # Internals

    def _require_conversation(self, db: Session, tenant_id: int, conversation_id: int) -> Conversation:
        conversation = conversation_store.get_conversation(db, tenant_id, conversation_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        return conversation

    async def _run_turn(self, db: Session, *, tenant_id: int, conversation: Conversation, text: str) -> TurnResult:
        with conversation_scope(tenant_id=tenant_id, conversation_id=conversation.id, channel=conversation.channel):
            return await self._turn(db, tenant_id=tenant_id, conversation=conversation, text=text)

    async def _turn(self, db: Session, *, tenant_id: int, conversation: Conversation, text: str) -> TurnResult:
        customer_message = conversation_store.add_message(db, conversation, role=ROLE_CUSTOMER, content=text)
        await self._publish_message(tenant_id, conversation, customer_message)

        intent = classify(text)
        result = TurnResult(
            status=TURN_PAUSED,
            conversation=conversation,
            customer_message=customer_message,
            intent=intent,
        )

        if conversation.is_paused:
            logger.info("%s conversation paused; no AI reply id=%s", ORCHESTRATOR_PREFIX, conversation.id)
            return result

        if intent.category == INTENT_HUMAN_REQUEST:
            reply = conversation_store.add_message(db, conversation, role=ROLE_AGENT, content=HUMAN_HANDOFF_MESSAGE)
            conversation_store.set_paused(db, conversation, True)
            logger.info("%s human hand-off conversation=%s", ORCHESTRATOR_PREFIX, conversation.id)
            result.status = TURN_HANDOFF
            result.reply = reply
            await self._publish_message(tenant_id, conversation, reply)
            await self._deliver(conversation, reply.content)
            return result

        tenant = db.get(Tenant, tenant_id)
        business_type = (tenant.business_type if tenant else None) or "product"
        products = catalog_store.list_products(db, tenant_id, active_only=True) if business_type == "product" else []
        services = catalog_store.list_services(db, tenant_id, active_only=True) if business_type == "service" else []
        history = [
            HistoryTurn(role=message.role, content=message.content)
            for message in conversation_store.list_messages(db, conversation.id)
            if message.id != customer_message.id
        ]
        context = ChatContext(
            conversation_id=str(conversation.id),
            business_name=(tenant.name if tenant else None) or DEFAULT_BUSINESS_NAME,
            business_type=business_type,
            products=[
                ProductFact(
                    name=product.name,
                    price=product.price,
                    stock=product.stock,
                    description=product.description,
                    active=product.active,
                )
                for product in products
            ],
            services=[
                ServiceFact(
                    name=service.name,
                    price=service.price,
                    duration=service.duration,
                    description=service.description,
                    active=service.active,
                )
                for service in services
            ],
            history=history,
        )

        reply_text = await self.generator.generate(text, context)
        reply = conversation_store.add_message(db, conversation, role=ROLE_AGENT, content=reply_text)
        result.status = TURN_REPLIED
        result.reply = reply

        result.order = maybe_extract_order(
            db,
            tenant_id=tenant_id,
            conversation=conversation,
            products=products,
            ai_reply=reply_text,
            intent=intent,
            recent_text=conversation_store.recent_customer_text(db, conversation.id),
        )

        await self._publish_message(tenant_id, conversation, reply)
        if result.order is not None:
            await self._publish(tenant_id, EVENT_ORDER_CREATED, serialize_order(result.order))

        await self._deliver(conversation, reply.content)
        return result

    async def _post_agent_message(self, db: Session, tenant_id: int, conversation: Conversation, text: str) -> Message:
        message = conversation_store.add_message(db, conversation, role=ROLE_AGENT, content=text)
        await self._publish_message(tenant_id, conversation, message)
        await self._deliver(conversation, text)
        return message

    async def _publish_message(self, tenant_id: int, conversation: Conversation, message: Message) -> None:
        await self._publish(
            tenant_id,
            EVENT_MESSAGE_RECEIVED,
            {
                "conversation_id": conversation.id,
                "message": serialize_message(message),
                "conversation": serialize_conversation(conversation),
            },
        )

    async def _publish(self, tenant_id: int, event_type: str, data: dict[str, Any]) -> None:
        try:
            await self.realtime.publish(tenant_id, event_type, data)
        except Exception:
            logger.exception("%s realtime publish failed type=%s", ORCHESTRATOR_PREFIX, event_type)

    async def _deliver(self, conversation: Conversation, text: str) -> None:
        try:
            await self.channels.deliver(channel=conversation.channel, recipient_id=conversation.customer_id, text=text)
        except Exception:
            logger.exception("%s delivery failed conversation=%s", ORCHESTRATOR_PREFIX, conversation.id)
