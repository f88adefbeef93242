from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator


_REQUEST_ID_CTX: ContextVar[str | None] = ContextVar("request_id", default=None)
_TENANT_ID_CTX: ContextVar[str | None] = ContextVar("tenant_id", default=None)
_CONVERSATION_ID_CTX: ContextVar[str | None] = ContextVar("conversation_id", default=None)
_CHANNEL_CTX: ContextVar[str | None] = ContextVar("channel", default=None)


def set_request_context(*, request_id: str | None = None, tenant_id: str | None = None) -> None:
    if request_id is not None:
        _REQUEST_ID_CTX.set(request_id)
    if tenant_id is not None:
        _TENANT_ID_CTX.set(str(tenant_id))


@contextmanager
def conversation_scope(*, tenant_id: int, conversation_id: int, channel: str | None = None) -> Iterator[None]:
    """Tag every log record emitted inside the block with the conversation.

    The previous values come back on exit, so a background turn never leaks its
    ids into the request that scheduled it.
    """
    tokens = [
        (_TENANT_ID_CTX, _TENANT_ID_CTX.set(str(tenant_id))),
        (_CONVERSATION_ID_CTX, _CONVERSATION_ID_CTX.set(str(conversation_id))),
        (_CHANNEL_CTX, _CHANNEL_CTX.set(channel)),
    ]
    try:
        yield
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


def get_request_id() -> str | None:
    return _REQUEST_ID_CTX.get()


def get_tenant_id() -> str | None:
    return _TENANT_ID_CTX.get()


def get_conversation_id() -> str | None:
    return _CONVERSATION_ID_CTX.get()


def get_channel() -> str | None:
    return _CHANNEL_CTX.get()


def clear_request_context() -> None:
    _REQUEST_ID_CTX.set(None)
    _TENANT_ID_CTX.set(None)
    _CONVERSATION_ID_CTX.set(None)
    _CHANNEL_CTX.set(None)
