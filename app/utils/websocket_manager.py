from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Any
from uuid import uuid4

from fastapi import WebSocket

logger = logging.getLogger(__name__)


@dataclass
class ConnectionInfo:
    """Metadata describing a single WebSocket connection."""

    id: str
    websocket: WebSocket
    user_id: Optional[str] = None

    async def send_json(self, message: Dict[str, Any]) -> None:
        """Proxy to the underlying WebSocket send_json method."""
        await self.websocket.send_json(message)


class WebSocketManager:
    def __init__(self):
        # Key: session_id, Value: {connection_id: ConnectionInfo}
        self.active_connections: Dict[str, Dict[str, ConnectionInfo]] = {}

    async def connect(
        self,
        websocket: WebSocket,
        session_id: str,
        *,
        user_id: Optional[str] = None,
    ) -> str:
        """Add a new WebSocket connection for a session and return its id."""
        await websocket.accept()
        connection_id = str(uuid4())
        connection = ConnectionInfo(
            id=connection_id,
            websocket=websocket,
            user_id=user_id,
        )
        self.active_connections.setdefault(session_id, {})[connection_id] = connection
        logger.debug(
            "WebSocket connected: session_id=%s connection_id=%s user_id=%s",
            session_id,
            connection_id,
            user_id,
        )
        return connection_id

    def disconnect(self, session_id: str, connection_id: str) -> None:
        """Remove a WebSocket connection for a session."""
        session_connections = self.active_connections.get(session_id)
        if not session_connections:
            return

        if session_connections.pop(connection_id, None) is not None:
            logger.debug(
                "WebSocket disconnected: session_id=%s connection_id=%s",
                session_id,
                connection_id,
            )

        if not session_connections:
            self.active_connections.pop(session_id, None)

    async def broadcast(
        self,
        session_id: str,
        message: Dict[str, Any],
        *,
        skip_connection: Optional[str] = None,
    ) -> None:
        """Broadcast a message to all connected clients in a session."""
        session_connections = self.active_connections.get(session_id, {})
        disconnected: List[str] = []

        # Iterate over a snapshot; disconnect() may run from other handlers.
        for connection_id, connection in list(session_connections.items()):
            if skip_connection and connection_id == skip_connection:
                continue

            try:
                await connection.send_json(message)
            except Exception:  # pragma: no cover - depends on network
                logger.debug(
                    "Dropping dead WebSocket: session_id=%s connection_id=%s",
                    session_id,
                    connection_id,
                )
                disconnected.append(connection_id)

        for connection_id in disconnected:
            self.disconnect(session_id, connection_id)

    async def publish(
        self, session_id: str, event_type: str, payload: Dict[str, Any]
    ) -> None:
        """Broadcast a ``{"type", "payload"}`` event to a session."""
        await self.broadcast(session_id, {"type": event_type, "payload": payload})

    async def send_personal_message(
        self,
        session_id: str,
        connection_id: str,
        message: Dict[str, Any],
    ) -> None:
        """Send a message to a specific connection in a session."""
        connection = self.active_connections.get(session_id, {}).get(connection_id)
        if not connection:
            return
        try:
            await connection.send_json(message)
        except Exception:  # pragma: no cover - depends on network
            self.disconnect(session_id, connection_id)

    def active_users(self, session_id: str) -> Dict[str, ConnectionInfo]:
        """Return the active connection metadata for a session."""
        return self.active_connections.get(session_id, {}).copy()


# Create a singleton instance
websocket_manager = WebSocketManager()
