from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

CHANNEL_WHATSAPP = "whatsapp"
CHANNEL_INSTAGRAM = "instagram"
CHANNEL_MESSENGER = "messenger"
CHANNEL_CHAT = "chat"
CHANNELS = (CHANNEL_WHATSAPP, CHANNEL_INSTAGRAM, CHANNEL_MESSENGER, CHANNEL_CHAT)
EXTERNAL_CHANNELS = (CHANNEL_WHATSAPP, CHANNEL_INSTAGRAM, CHANNEL_MESSENGER)


class InboundEvent(BaseModel):
    """One customer message normalized from a provider webhook."""

    channel: str
    business_id: str = Field(..., min_length=1)
    customer_id: str = Field(..., min_length=1)
    text: str
    message_id: Optional[str] = None
    customer_name: Optional[str] = None
    tenant_id: Optional[int] = None


class DeliveryResult(BaseModel):
    status: str
    channel: str
    recipient_id: str
    provider_message_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "sent"
