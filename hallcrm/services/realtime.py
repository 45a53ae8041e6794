"""In-memory realtime fanout to connected dashboard clients."""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
import logging
from typing import Any, Awaitable, Callable, Dict

logger = logging.getLogger(__name__)

SendCallable = Callable[[dict], Awaitable[None]]

EVENT_NEW_LEAD = "new_lead"


@dataclass(slots=True)
class RealtimeConnection:
    """Connection wrapper for realtime subscribers."""

    connection_id: str
    send: SendCallable


class RealtimeHub:
    """Track connected clients and push events to all of them."""

    def __init__(self) -> None:
        self._connections: Dict[str, RealtimeConnection] = {}
        self._lock = asyncio.Lock()

    async def connect(self, connection: RealtimeConnection) -> int:
        """Register a connection and return the number of connected clients."""

        async with self._lock:
            self._connections[connection.connection_id] = connection
            return len(self._connections)

    async def disconnect(self, connection_id: str) -> None:
        async with self._lock:
            self._connections.pop(connection_id, None)

    async def broadcast(self, event: str, payload: dict[str, Any]) -> int:
        """Send ``{"event", "data"}`` to every client; returns how many were reached."""

        async with self._lock:
            connections = list(self._connections.values())

        if not connections:
            return 0

        message = {"event": event, "data": payload}
        results = await asyncio.gather(
            *(connection.send(message) for connection in connections),
            return_exceptions=True,
        )
        failed = [conn.connection_id for conn, result in zip(connections, results) if isinstance(result, BaseException)]
        if failed:
            logger.warning("Realtime push of %s failed for %d client(s)", event, len(failed))
        return len(connections) - len(failed)

    @property
    def connection_count(self) -> int:
        return len(self._connections)


hub = RealtimeHub()


def get_hub() -> RealtimeHub:
    """FastAPI dependency returning the process-wide hub."""

    return hub
