from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status

from omnichat.core.database import SessionLocal
from omnichat.deps import AuthContext, get_realtime_hub, require_role, resolve_auth_context
from omnichat.schemas.realtime import EVENT_CONNECTED, EVENT_PONG, RealtimeEvent
from omnichat.services.realtime import RealtimeHub
from omnichat.services.session_auth import SESSION_COOKIE

router = APIRouter(tags=["realtime"])
logger = logging.getLogger(__name__)


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket):
    hub: RealtimeHub = websocket.app.state.realtime
    token = websocket.cookies.get(SESSION_COOKIE) or websocket.query_params.get("token")
    # the socket outlives any request; hold a connection only for the lookup
    db = SessionLocal()
    try:
        auth = resolve_auth_context(db, token)
    finally:
        db.close()
    if auth is None:
        logger.warning("[REALTIME] rejected unauthenticated websocket")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    hub.register(auth.tenant_id, websocket)
    try:
        await hub.send(
            websocket,
            RealtimeEvent(
                type=EVENT_CONNECTED,
                data={"tenant_id": auth.tenant_id, "user_id": auth.user_id, "message": "Connected to real-time updates"},
            ),
        )
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                continue
            if isinstance(message, dict) and message.get("type") == "ping":
                await hub.send(websocket, RealtimeEvent(type=EVENT_PONG))
    except WebSocketDisconnect:
        pass
    finally:
        hub.unregister(websocket)


@router.get("/api/realtime/stats")
def realtime_stats(
    auth: AuthContext = Depends(require_role(["owner"])),
    hub: RealtimeHub = Depends(get_realtime_hub),
):
    return hub.stats(auth.tenant_id)
