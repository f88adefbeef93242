from __future__ import annotations

import time
from typing import Any

from pydantic import BaseModel, Field

EVENT_CONNECTED = "connected"
EVENT_PONG = "pong"
EVENT_MESSAGE_RECEIVED = "message:received"
EVENT_ORDER_CREATED = "order:created"
EVENT_ORDER_UPDATED = "order:updated"
EVENT_APPOINTMENT_CREATED = "appointment:created"
EVENT_APPOINTMENT_UPDATED = "appointment:updated"
EVENT_PAYMENT_COMPLETED = "payment:completed"
EVENT_SUBSCRIPTION_UPDATED = "subscription:updated"


def _now_ms() -> int:
    return int(time.time() * 1000)


class RealtimeEvent(BaseModel):
    type: str
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: int = Field(default_factory=_now_ms)
