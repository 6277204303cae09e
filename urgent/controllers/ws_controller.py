# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""Realtime channel: every connected dashboard receives every lifecycle event."""
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from urgent.core.dependencies import get_notifier
from urgent.services.notifier import Notifier

router = APIRouter(tags=["Realtime"])


@router.websocket("/ws")
async def urgent_events(websocket: WebSocket, notifier: Notifier = Depends(get_notifier)):
    connections = notifier.connections
    if not await connections.connect(websocket):
        return
    try:
        # Inbound frames are ignored; reading only detects the disconnect.
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        await connections.disconnect(websocket)
