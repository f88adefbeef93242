from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from omnichat.core.database import get_db
from omnichat.core.request_context import set_request_context
from omnichat.models.user import User
from omnichat.services.orchestrator import ConversationOrchestrator
from omnichat.services.realtime import RealtimeHub
from omnichat.services.session_auth import SESSION_COOKIE, decode_session

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthContext:
    """Authenticated dashboard identity, passed explicitly to handlers."""

    user_id: int
    tenant_id: int
    role: str


def _normalize_role(role: str | None) -> str:
    return (role or "").strip().lower()


def extract_session_token(request: Request) -> str | None:
    token = request.cookies.get(SESSION_COOKIE)
    if token:
        return token
    authorization = request.headers.get("Authorization") or ""
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials.strip():
        return credentials.strip()
    return None


def resolve_auth_context(db: Session, token: str | None) -> AuthContext | None:
    if not token:
        return None
    payload = decode_session(token)
    if not payload:
        return None
    user_id = payload.get("user_id")
    if not user_id:
        return None
    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        return None

    user = db.query(User).filter(User.id == user_id, User.active.is_(True)).first()
    if not user:
        return None

    tenant_id = payload.get("tenant_id")
    if tenant_id is not None and int(user.tenant_id) != int(tenant_id):
        return None

    return AuthContext(user_id=user.id, tenant_id=int(user.tenant_id), role=_normalize_role(user.role))


def get_auth_context(request: Request, db: Session = Depends(get_db)) -> AuthContext:
    token = extract_session_token(request)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")

    auth = resolve_auth_context(db, token)
    if auth is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Session expired or invalid")

    set_request_context(tenant_id=str(auth.tenant_id))
    return auth


def require_role(roles: Iterable[str]):
    allowed = {_normalize_role(role) for role in roles}
    allowed.add("owner")

    def _dependency(request: Request, auth: AuthContext = Depends(get_auth_context)) -> AuthContext:
        if auth.role not in allowed:
            logger.warning(
                "Access denied (role_denied): user_id=%s user_role=%s tenant_id=%s endpoint=%s",
                auth.user_id,
                auth.role,
                auth.tenant_id,
                f"{request.method} {request.url.path}",
            )
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return auth

    return _dependency


def get_orchestrator(request: Request) -> ConversationOrchestrator:
    return request.app.state.orchestrator


def get_realtime_hub(request: Request) -> RealtimeHub:
    return request.app.state.realtime
