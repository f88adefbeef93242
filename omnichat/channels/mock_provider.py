from __future__ import annotations

import logging
import uuid

from omnichat.schemas.channel import DeliveryResult

logger = logging.getLogger(__name__)


class MockChannelAdapter:
    """Records outbound messages instead of calling a provider."""

    name = "mock"

    def __init__(self) -> None:
        self.sent: list[dict[str, str]] = []

    async def send_text(self, *, channel: str, recipient_id: str, text: str) -> DeliveryResult:
        self.sent.append({"channel": channel, "recipient_id": recipient_id, "text": text})
        logger.info("[MOCK_CHANNEL] channel=%s to=%s chars=%s", channel, recipient_id, len(text))
        return DeliveryResult(
            status="sent",
            channel=channel,
            recipient_id=recipient_id,
            provider_message_id=f"mock-{uuid.uuid4().hex[:10]}",
        )
