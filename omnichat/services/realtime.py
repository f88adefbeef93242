from __future__ import annotations

import logging
from typing import Any, Protocol

from omnichat.schemas.realtime import RealtimeEvent

logger = logging.getLogger(__name__)
REALTIME_PREFIX = "[REALTIME]"


class RealtimeConnection(Protocol):
    async def send_text(self, data: str) -> None:
        ...


class RealtimeHub:
    """Tenant-scoped registry of dashboard connections.

    One hub per application. Publishing never raises: a connection that fails
    to receive is dropped from the registry.
    """

    def __init__(self) -> None:
        self._connections: dict[int, set[RealtimeConnection]] = {}
        self._connection_to_tenant: dict[RealtimeConnection, int] = {}

    def register(self, tenant_id: int, connection: RealtimeConnection) -> None:
        self._connections.setdefault(tenant_id, set()).add(connection)
        self._connection_to_tenant[connection] = tenant_id
        logger.info("%s connected tenant_id=%s total=%s", REALTIME_PREFIX, tenant_id, self.connection_count())

    def unregister(self, connection: RealtimeConnection) -> None:
        tenant_id = self._connection_to_tenant.pop(connection, None)
        if tenant_id is None:
            return
        connections = self._connections.get(tenant_id)
        if connections is not None:
            connections.discard(connection)
            if not connections:
                del self._connections[tenant_id]
        logger.info("%s disconnected tenant_id=%s", REALTIME_PREFIX, tenant_id)

    async def send(self, connection: RealtimeConnection, event: RealtimeEvent) -> bool:
        try:
            await connection.send_text(event.model_dump_json())
        except Exception as exc:
            logger.warning("%s send failed error=%s", REALTIME_PREFIX, type(exc).__name__)
            self.unregister(connection)
            return False
        return True

    async def publish(self, tenant_id: int, event_type: str, data: dict[str, Any] | None = None) -> int:
        event = RealtimeEvent(type=event_type, data=data or {})
        connections = list(self._connections.get(tenant_id, ()))
        if not connections:
            logger.debug("%s no subscribers tenant_id=%s type=%s", REALTIME_PREFIX, tenant_id, event_type)
            return 0

        delivered = 0
        for connection in connections:
            if await self.send(connection, event):
                delivered += 1
        return delivered

    def connection_count(self, tenant_id: int | None = None) -> int:
        if tenant_id is not None:
            return len(self._connections.get(tenant_id, ()))
        return len(self._connection_to_tenant)

    def stats(self, tenant_id: int) -> dict[str, int]:
        return {
            "tenant_connections": self.connection_count(tenant_id),
            "total_connections": self.connection_count(),
        }
