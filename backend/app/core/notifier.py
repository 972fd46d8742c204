"""
Realtime change notifications over WebSocket.

Clients connect to /ws and receive small "something changed, refetch" events.
Delivery is fire-and-forget: no acknowledgement, ordering or retry.
"""
import logging
from typing import Any, Dict, Set

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ChangeNotifier:

    def __init__(self):
        self.connections: Set[WebSocket] = set()

    async def connect(self, ws: WebSocket):
        await ws.accept()
        self.connections.add(ws)
        logger.info(f"Realtime client connected ({len(self.connections)} open)")

    def disconnect(self, ws: WebSocket):
        self.connections.discard(ws)
        logger.info(f"Realtime client disconnected ({len(self.connections)} open)")

    async def broadcast(self, event: str, payload: Dict[str, Any] | None = None):
        message = {"type": event, **(payload or {})}
        dead = []
        for ws in list(self.connections):
            try:
                await ws.send_json(message)
            except Exception as e:
                logger.debug(f"Dropping realtime client after send failure: {e}")
                dead.append(ws)
        for ws in dead:
            self.disconnect(ws)


notifier = ChangeNotifier()
