from __future__ import annotations

from typing import Protocol


class CompletionBackendError(RuntimeError):
    """Raised by a backend when the completion call did not produce a result."""


class CompletionBackend(Protocol):
    name: str

    async def complete(self, prompt: str) -> str:
        ...
