"""Realtime websocket for dashboard clients."""
from __future__ import annotations

from uuid import uuid4

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..services.realtime import RealtimeConnection, hub as realtime_hub

router = APIRouter()


@router.websocket("/realtime")
async def realtime_endpoint(websocket: WebSocket) -> None:
    """Push-only channel; clients refetch lists when an event arrives."""

    # server-issued; a client-supplied id is ignored
    connection_id = str(uuid4())
    await websocket.accept()

    connection = RealtimeConnection(connection_id=connection_id, send=websocket.send_json)
    await realtime_hub.connect(connection)
    await websocket.send_json({"event": "connected", "data": {"client_id": connection_id}})

    try:
        while True:
            # client messages are ignored; receiving keeps the disconnect observable
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await realtime_hub.disconnect(connection_id)
