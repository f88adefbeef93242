from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable

from omnichat.ai.base import CompletionBackend
from omnichat.ai.gemini_provider import GeminiBackend
from omnichat.ai.mock_provider import MockBackend
from omnichat.ai.prompts import EMPTY_REPLY_MESSAGE, TECHNICAL_DIFFICULTIES_MESSAGE, build_prompt
from omnichat.ai.schema import ChatContext
from omnichat.core.config import (
    AI_BACKOFF_BASE_MS,
    AI_MAX_ATTEMPTS,
    AI_MIN_INTERVAL_MS,
    AI_MODEL,
    AI_PROVIDER,
    AI_REQUEST_TIMEOUT_SECONDS,
    AI_THROTTLE_CACHE_SIZE,
    GEMINI_API_KEY,
)
from omnichat.core.rate_limiter import ConversationThrottle

logger = logging.getLogger(__name__)
GATEWAY_PREFIX = "[AI_GATEWAY]"
MAX_BACKOFF_SECONDS = 8.0


def _backoff_seconds(attempt: int, base_seconds: float) -> float:
    # 0.5s, 1s, 2s... (max 8s)
    sec = base_seconds * (2 ** max(0, attempt - 1))
    return min(sec, MAX_BACKOFF_SECONDS)


class ResponseGenerator:
    """Wraps a completion backend with throttling, retries and fixed fallbacks.

    ``generate`` always returns a non-empty string. Backend failures are retried
    with exponential backoff and end in the technical-difficulties apology once
    the attempts are exhausted.
    """

    def __init__(
        self,
        backend: CompletionBackend,
        *,
        throttle: ConversationThrottle | None = None,
        max_attempts: int = 3,
        backoff_base_seconds: float = 0.5,
        request_timeout_seconds: float = 20.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.backend = backend
        self.throttle = throttle if throttle is not None else ConversationThrottle()
        self.max_attempts = max(1, max_attempts)
        self.backoff_base_seconds = backoff_base_seconds
        self.request_timeout_seconds = request_timeout_seconds
        self._sleep = sleep

    async def generate(self, user_message: str, context: ChatContext) -> str:
        try:
            prompt = build_prompt(user_message, context)
            waited = await self.throttle.wait(context.conversation_id)
            if waited > 0:
                logger.info(
                    "%s throttled conversation=%s delay_ms=%s",
                    GATEWAY_PREFIX,
                    context.conversation_id,
                    round(waited * 1000),
                )
            return await self._complete_with_retry(prompt, context.conversation_id)
        except Exception:
            logger.exception("%s unexpected failure conversation=%s", GATEWAY_PREFIX, context.conversation_id)
            return TECHNICAL_DIFFICULTIES_MESSAGE

    async def _complete_with_retry(self, prompt: str, conversation_id: str) -> str:
        last_error: Exception | None = None

        for attempt in range(1, self.max_attempts + 1):
            start = time.perf_counter()
            try:
                text = await asyncio.wait_for(self.backend.complete(prompt), timeout=self.request_timeout_seconds)
            except Exception as exc:
                last_error = exc
                logger.warning(
                    "%s backend=%s attempt=%s/%s failed error=%s",
                    GATEWAY_PREFIX,
                    self.backend.name,
                    attempt,
                    self.max_attempts,
                    type(exc).__name__,
                )
                if attempt < self.max_attempts:
                    await self._sleep(_backoff_seconds(attempt, self.backoff_base_seconds))
                continue

            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            if not text or not text.strip():
                logger.warning(
                    "%s empty reply backend=%s conversation=%s",
                    GATEWAY_PREFIX,
                    self.backend.name,
                    conversation_id,
                    extra={"duration_ms": duration_ms},
                )
                return EMPTY_REPLY_MESSAGE
            logger.info(
                "%s reply generated backend=%s attempt=%s",
                GATEWAY_PREFIX,
                self.backend.name,
                attempt,
                extra={"duration_ms": duration_ms},
            )
            return text.strip()

        logger.error(
            "%s retries exhausted backend=%s conversation=%s last_error=%r",
            GATEWAY_PREFIX,
            self.backend.name,
            conversation_id,
            last_error,
        )
        return TECHNICAL_DIFFICULTIES_MESSAGE


def build_backend(provider: str | None = None) -> CompletionBackend:
    selected = (provider or AI_PROVIDER or "mock").strip().lower()
    if selected == "gemini":
        if not GEMINI_API_KEY:
            logger.warning("%s GEMINI_API_KEY missing; using mock backend", GATEWAY_PREFIX)
            return MockBackend()
        return GeminiBackend(api_key=GEMINI_API_KEY, model=AI_MODEL, timeout=AI_REQUEST_TIMEOUT_SECONDS)
    return MockBackend()


def build_response_generator(backend: CompletionBackend | None = None) -> ResponseGenerator:
    throttle = ConversationThrottle(
        min_interval_seconds=AI_MIN_INTERVAL_MS / 1000,
        capacity=AI_THROTTLE_CACHE_SIZE,
    )
    return ResponseGenerator(
        backend or build_backend(),
        throttle=throttle,
        max_attempts=AI_MAX_ATTEMPTS,
        backoff_base_seconds=AI_BACKOFF_BASE_MS / 1000,
        request_timeout_seconds=AI_REQUEST_TIMEOUT_SECONDS,
    )
