from __future__ import annotations

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from omnichat.channels.base import safe_json, sanitize_payload
from omnichat.schemas.channel import (
    CHANNEL_INSTAGRAM,
    CHANNEL_MESSENGER,
    CHANNEL_WHATSAPP,
    DeliveryResult,
    InboundEvent,
)

logger = logging.getLogger(__name__)
META_PREFIX = "[META_CHANNEL]"

SUPPORTED_OBJECTS = {"page", "instagram", "whatsapp_business_account"}


def _parse_changes(entry: dict[str, Any]) -> list[InboundEvent]:
    events: list[InboundEvent] = []
    business_id = str(entry.get("id") or "")
    for change in entry.get("changes", []) or []:
        value = change.get("value") or {}
        contacts = value.get("contacts") or []
        contact_name = None
        if contacts:
            contact_name = ((contacts[0].get("profile") or {}).get("name")) or None

        for msg in value.get("messages", []) or []:
            msg_type = msg.get("type") or "text"
            if msg_type != "text":
                logger.info("%s skipping whatsapp message type=%s", META_PREFIX, msg_type)
                continue
            text = msg.get("text")
            if isinstance(text, dict):
                text = text.get("body")
            customer_id = msg.get("from")
            if not business_id or not customer_id:
                continue
            events.append(
                InboundEvent(
                    channel=CHANNEL_WHATSAPP,
                    business_id=business_id,
                    customer_id=str(customer_id),
                    text=str(text or ""),
                    message_id=msg.get("id"),
                    customer_name=contact_name,
                )
            )
    return events


def _parse_messaging(entry: dict[str, Any], channel: str) -> list[InboundEvent]:
    events: list[InboundEvent] = []
    for event in entry.get("messaging", []) or []:
        message = event.get("message")
        if not message or message.get("is_echo"):
            continue
        customer_id = (event.get("sender") or {}).get("id")
        business_id = entry.get("id") or (event.get("recipient") or {}).get("id")
        if not customer_id or not business_id:
            continue
        events.append(
            InboundEvent(
                channel=channel,
                business_id=str(business_id),
                customer_id=str(customer_id),
                text=str(message.get("text") or ""),
                message_id=message.get("mid"),
            )
        )
    return events


def parse_meta_webhook(payload: dict[str, Any]) -> list[InboundEvent]:
    """Normalizes a Meta webhook envelope into inbound events.

    WhatsApp delivers ``entry[].changes[].value.messages[]``; Messenger and
    Instagram deliver ``entry[].messaging[]``. Entries that fail to parse are
    skipped and logged.
    """
    if not isinstance(payload, dict):
        return []
    webhook_object = payload.get("object")
    if webhook_object not in SUPPORTED_OBJECTS:
        logger.info("%s ignoring webhook object=%s", META_PREFIX, webhook_object)
        return []

    messaging_channel = CHANNEL_INSTAGRAM if webhook_object == "instagram" else CHANNEL_MESSENGER
    events: list[InboundEvent] = []
    for index, entry in enumerate(payload.get("entry", []) or []):
        try:
            if not isinstance(entry, dict):
                raise TypeError(f"entry is {type(entry).__name__}")
            events.extend(_parse_changes(entry))
            events.extend(_parse_messaging(entry, messaging_channel))
        except (AttributeError, TypeError, ValidationError) as exc:
            logger.error("%s malformed entry index=%s error=%s", META_PREFIX, index, exc)
    return events


class MetaChannelAdapter:
    """Outbound delivery through the Meta Graph ``messages`` endpoint."""

    name = "meta"

    def __init__(
        self,
        *,
        access_token: str,
        api_version: str = "v18.0",
        base_url: str = "https://graph.facebook.com",
        whatsapp_phone_number_id: str | None = None,
        timeout: float = 15.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.access_token = access_token
        self.api_version = api_version
        self.base_url = base_url.rstrip("/")
        self.whatsapp_phone_number_id = whatsapp_phone_number_id or None
        self.timeout = timeout
        self._transport = transport

    def build_request(self, *, channel: str, recipient_id: str, text: str) -> tuple[str, dict[str, Any]]:
        if channel == CHANNEL_WHATSAPP:
            sender = self.whatsapp_phone_number_id or "me"
            body = {
                "messaging_product": "whatsapp",
                "to": recipient_id,
                "type": "text",
                "text": {"body": text},
            }
        elif channel in (CHANNEL_MESSENGER, CHANNEL_INSTAGRAM):
            sender = "me"
            body = {"recipient": {"id": recipient_id}, "message": {"text": text}}
        else:
            raise ValueError(f"Unsupported channel: {channel}")
        return f"{self.base_url}/{self.api_version}/{sender}/messages", body

    async def send_text(self, *, channel: str, recipient_id: str, text: str) -> DeliveryResult:
        try:
            url, body = self.build_request(channel=channel, recipient_id=recipient_id, text=text)
        except ValueError as exc:
            return DeliveryResult(status="failed", channel=channel, recipient_id=recipient_id, error=str(exc))

        headers = {"Authorization": f"Bearer {self.access_token}", "Content-Type": "application/json"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, headers=headers, json=body)
        except httpx.HTTPError as exc:
            logger.error(
                "%s delivery error channel=%s to=%s error=%s",
                META_PREFIX,
                channel,
                recipient_id,
                type(exc).__name__,
            )
            return DeliveryResult(
                status="failed",
                channel=channel,
                recipient_id=recipient_id,
                error=type(exc).__name__,
            )

        if not 200 <= response.status_code < 300:
            error = f"Meta error {response.status_code}: {response.text[:300]}"
            logger.error(
                "%s delivery failed channel=%s to=%s payload=%s error=%s",
                META_PREFIX,
                channel,
                recipient_id,
                safe_json(sanitize_payload(body)),
                error,
            )
            return DeliveryResult(status="failed", channel=channel, recipient_id=recipient_id, error=error)

        provider_id = None
        try:
            data = response.json()
            provider_id = data.get("message_id") or ((data.get("messages") or [{}])[0].get("id"))
        except (ValueError, AttributeError, IndexError):
            provider_id = None

        return DeliveryResult(
            status="sent",
            channel=channel,
            recipient_id=recipient_id,
            provider_message_id=provider_id,
        )
