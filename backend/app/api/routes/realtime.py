"""WebSocket endpoint for change notifications. Receive-only for clients."""
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.core.notifier import notifier

router = APIRouter()


@router.websocket("/ws")
async def changes(ws: WebSocket):
    await notifier.connect(ws)
    try:
        while True:
            # Client messages are ignored; this keeps the socket open
            await ws.receive_text()
    except WebSocketDisconnect:
        notifier.disconnect(ws)
