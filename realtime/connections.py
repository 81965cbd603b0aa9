import asyncio
import json
from typing import Dict, Set
from fastapi import WebSocket
from logging_config import get_logger

logger = get_logger(__name__)


def account_room(account_id: str) -> str:
    return f"user_{account_id}"


def stream_room(account_id: str) -> str:
    return f"stream_{account_id}"


class ConnectionManager:
    """Local WebSocket registry with named rooms.

    Tracks only this process's connections. Sends are best-effort: a missing
    or closed connection is reported as not delivered, never raised.
    """

    def __init__(self):
        # Format: {connection_id: websocket}
        self.connections: Dict[str, WebSocket] = {}
        # Format: {room: {connection_id, ...}}
        self.rooms: Dict[str, Set[str]] = {}

    def connect(self, connection_id: str, websocket: WebSocket):
        self.connections[connection_id] = websocket
        logger.debug(f"Registered connection {connection_id} (local connections: {len(self.connections)})")

    def disconnect(self, connection_id: str):
        self.connections.pop(connection_id, None)
        for room in list(self.rooms):
            members = self.rooms[room]
            members.discard(connection_id)
            if not members:
                del self.rooms[room]
        logger.debug(f"Unregistered connection {connection_id} (local connections: {len(self.connections)})")

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self.connections

    def join(self, connection_id: str, room: str):
        if connection_id not in self.connections:
            logger.debug(f"Connection {connection_id} is gone, not joining room {room}")
            return
        self.rooms.setdefault(room, set()).add(connection_id)
        logger.debug(f"Connection {connection_id} joined room {room}")

    def leave(self, connection_id: str, room: str):
        members = self.rooms.get(room)
        if not members:
            return
        members.discard(connection_id)
        if not members:
            del self.rooms[room]
        logger.debug(f"Connection {connection_id} left room {room}")

    def rooms_of(self, connection_id: str) -> Set[str]:
        return {room for room, members in self.rooms.items() if connection_id in members}

    def members(self, room: str) -> Set[str]:
        return set(self.rooms.get(room, ()))

    async def send(self, connection_id: str, message: dict) -> bool:
        websocket = self.connections.get(connection_id)
        if websocket is None:
            logger.debug(f"Dropping {message.get('type', 'unknown')} for unknown connection {connection_id}")
            return False
        try:
            await websocket.send_text(json.dumps(message))
            return True
        except Exception as e:
            logger.warning(f"Error sending to connection {connection_id}: {e}")
            return False

    async def broadcast(self, room: str, message: dict) -> int:
        """Send to every member of a room concurrently; returns how many got it."""
        members = self.members(room)
        if not members:
            logger.debug(f"No local members in room {room}, dropping {message.get('type', 'unknown')}")
            return 0
        results = await asyncio.gather(*(self.send(conn_id, message) for conn_id in members), return_exceptions=True)
        delivered = sum(1 for result in results if result is True)
        logger.debug(f"Broadcasted {message.get('type', 'unknown')} to {delivered}/{len(members)} connections in room {room}")
        return delivered
