"""WebSocket connection registry for the command relay."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import uuid

from fastapi import WebSocket

from homelink_api.logging_service import get_logger, log_with_context


logger = get_logger(__name__)


@dataclass
class RelayConnection:
    """One accepted relay socket and the identity that opened it."""

    websocket: WebSocket
    user_id: Optional[str] = None
    connection_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    async def send(self, payload: Dict[str, Any]) -> None:
        await self.websocket.send_json(payload)


class ConnectionManager:
    """Manages relay WebSocket connections."""

    def __init__(self):
        self.active_connections: Dict[str, RelayConnection] = {}

    @property
    def count(self) -> int:
        return len(self.active_connections)

    async def connect(self, websocket: WebSocket, user_id: Optional[str] = None) -> RelayConnection:
        """Accept the socket and register it."""
        await websocket.accept()
        connection = RelayConnection(websocket=websocket, user_id=user_id)
        self.active_connections[connection.connection_id] = connection
        log_with_context(
            logger,
            "INFO",
            "Relay client connected",
            connection_id=connection.connection_id,
            user_id=user_id,
        )
        return connection

    def disconnect(self, connection: RelayConnection) -> None:
        if self.active_connections.pop(connection.connection_id, None) is None:
            return
        log_with_context(
            logger,
            "INFO",
            "Relay client disconnected",
            connection_id=connection.connection_id,
            user_id=connection.user_id,
        )


# Global connection manager instance
connection_manager = ConnectionManager()
