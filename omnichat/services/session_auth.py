from __future__ import annotations

import time
from typing import Any, Dict, Optional

from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer

from omnichat.core.config import SESSION_MAX_AGE_SECONDS, SESSION_SECRET

SESSION_COOKIE = "omnichat_session"
SESSION_SALT = "dashboard-session"


def _serializer(secret: str | None = None) -> URLSafeTimedSerializer:
    resolved = secret or SESSION_SECRET
    if not resolved:
        raise RuntimeError("SESSION_SECRET is not configured.")
    return URLSafeTimedSerializer(resolved, salt=SESSION_SALT)


def create_session(payload: Dict[str, Any], *, secret: str | None = None) -> str:
    if "exp" not in payload:
        payload = {
            **payload,
            "exp": int(time.time()) + SESSION_MAX_AGE_SECONDS,
        }
    return _serializer(secret).dumps(payload)


def decode_session(token: str, *, secret: str | None = None) -> Optional[Dict[str, Any]]:
    try:
        payload = _serializer(secret).loads(token, max_age=SESSION_MAX_AGE_SECONDS)
    except (BadSignature, SignatureExpired, ValueError):
        return None
    if not isinstance(payload, dict):
        return None
    exp = payload.get("exp")
    if exp is not None:
        try:
            if int(exp) < int(time.time()):
                return None
        except (TypeError, ValueError):
            return None
    return payload
