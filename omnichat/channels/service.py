from __future__ import annotations

import logging

from omnichat.channels.base import ChannelAdapter
from omnichat.channels.meta import MetaChannelAdapter
from omnichat.channels.mock_provider import MockChannelAdapter
from omnichat.core.config import (
    CHANNEL_REQUEST_TIMEOUT_SECONDS,
    META_ACCESS_TOKEN,
    META_API_VERSION,
    META_GRAPH_BASE_URL,
    META_WA_PHONE_NUMBER_ID,
)
from omnichat.schemas.channel import EXTERNAL_CHANNELS, DeliveryResult

logger = logging.getLogger(__name__)


class ChannelService:
    """Delivers agent replies back to the customer's channel.

    The in-app chat has no provider, so nothing is sent for it. Failures are
    logged and reported in the result; they never raise.
    """

    def __init__(self, adapter: ChannelAdapter) -> None:
        self.adapter = adapter

    async def deliver(self, *, channel: str, recipient_id: str, text: str) -> DeliveryResult | None:
        if channel not in EXTERNAL_CHANNELS:
            return None
        try:
            result = await self.adapter.send_text(channel=channel, recipient_id=recipient_id, text=text)
        except Exception as exc:
            logger.exception("[CHANNEL_DELIVERY] adapter=%s channel=%s crashed", self.adapter.name, channel)
            return DeliveryResult(status="failed", channel=channel, recipient_id=recipient_id, error=str(exc))

        if not result.ok:
            logger.warning(
                "[CHANNEL_DELIVERY] failed adapter=%s channel=%s to=%s error=%s",
                self.adapter.name,
                channel,
                recipient_id,
                result.error,
            )
        return result


def build_channel_service() -> ChannelService:
    if not META_ACCESS_TOKEN:
        logger.warning("[CHANNEL_DELIVERY] META_ACCESS_TOKEN not configured; using mock adapter")
        return ChannelService(MockChannelAdapter())
    return ChannelService(
        MetaChannelAdapter(
            access_token=META_ACCESS_TOKEN,
            api_version=META_API_VERSION,
            base_url=META_GRAPH_BASE_URL,
            whatsapp_phone_number_id=META_WA_PHONE_NUMBER_ID,
            timeout=CHANNEL_REQUEST_TIMEOUT_SECONDS,
        )
    )
