"""Connection registry for realtime WebSocket clients."""

import asyncio
import logging
import uuid
from typing import Any, Dict, List, Tuple

from fastapi import WebSocket

logger = logging.getLogger(__name__)

DEFAULT_SEND_TIMEOUT_SECONDS = 5.0


class ConnectionManager:
    """Tracks connected sessions and fans events out to them."""

    def __init__(self, send_timeout: float = DEFAULT_SEND_TIMEOUT_SECONDS):
        self.send_timeout = send_timeout
        self.connections: Dict[str, WebSocket] = {}  # session_id -> websocket
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self.connections)

    async def connect(self, websocket: WebSocket) -> str:
        """Accept the socket and register it under a fresh session id."""
        await websocket.accept()
        session_id = uuid.uuid4().hex
        async with self._lock:
            self.connections[session_id] = websocket
        logger.info("New browser client connected: %s", session_id)
        return session_id

    async def disconnect(self, session_id: str) -> None:
        async with self._lock:
            self.connections.pop(session_id, None)
        logger.info("Client disconnected: %s", session_id)

    async def snapshot(self) -> List[Tuple[str, WebSocket]]:
        """Copy of the current connection set, safe to iterate while clients come and go."""
        async with self._lock:
            return list(self.connections.items())

    async def send(self, session_id: str, websocket: WebSocket, event: str, data: Dict[str, Any]) -> bool:
        """
        Send one frame to one session, waiting at most `send_timeout` seconds.

        A session that fails or times out is dropped from the registry so the
        next fan-out does not wait on it again.
        """
        try:
            await asyncio.wait_for(
                websocket.send_json({"event": event, "data": data}), timeout=self.send_timeout
            )
            return True
        except asyncio.TimeoutError:
            logger.warning(
                "Timed out sending %s event to %s after %.1fs, dropping client", event, session_id, self.send_timeout
            )
        except Exception as e:
            logger.warning("Failed to send %s event to %s: %s", event, session_id, e)
        await self.disconnect(session_id)
        return False

    async def emit(self, event: str, data: Dict[str, Any]) -> int:
        """
        Send an event to every connected session. Returns how many sends succeeded.

        Sends run concurrently, so a slow client costs at most `send_timeout`.
        """
        connections = await self.snapshot()
        if not connections:
            return 0
        results = await asyncio.gather(
            *(self.send(session_id, websocket, event, data) for session_id, websocket in connections)
        )
        sent_count = sum(results)
        logger.debug("Emitted %s to %d/%d clients", event, sent_count, len(connections))
        return sent_count
