from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from threading import Lock
from typing import Awaitable, Callable

DEFAULT_MIN_INTERVAL_SECONDS = 1.5
DEFAULT_CAPACITY = 1000
PRUNE_INTERVAL_MULTIPLIER = 10


@dataclass
class ThrottleDecision:
    key: str
    delay_seconds: float
    scheduled_at: float


class ConversationThrottle:
    """Spaces calls for the same conversation by a minimum interval.

    The last reserved slot per conversation lives in a bounded map. Once the map
    grows past ``capacity`` the entries older than ten intervals are evicted.
    Each instance keeps its own state; the gateway owns one.
    """

    def __init__(
        self,
        *,
        min_interval_seconds: float = DEFAULT_MIN_INTERVAL_SECONDS,
        capacity: int = DEFAULT_CAPACITY,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.min_interval_seconds = min_interval_seconds
        self.capacity = capacity
        self._clock = clock
        self._sleep = sleep
        self._last_call: dict[str, float] = {}
        self._lock = Lock()

    def __len__(self) -> int:
        return len(self._last_call)

    def reserve(self, key: str) -> ThrottleDecision:
        now = self._clock()
        with self._lock:
            last = self._last_call.get(key)
            scheduled_at = now if last is None else max(now, last + self.min_interval_seconds)
            self._last_call[key] = scheduled_at
            if len(self._last_call) > self.capacity:
                self._prune(now)
        return ThrottleDecision(key=key, delay_seconds=scheduled_at - now, scheduled_at=scheduled_at)

    async def wait(self, key: str) -> float:
        decision = self.reserve(key)
        if decision.delay_seconds > 0:
            await self._sleep(decision.delay_seconds)
        return decision.delay_seconds

    def _prune(self, now: float) -> None:
        cutoff = now - self.min_interval_seconds * PRUNE_INTERVAL_MULTIPLIER
        stale = [key for key, stamp in self._last_call.items() if stamp < cutoff]
        for key in stale:
            del self._last_call[key]
