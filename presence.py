"""
Online presence for connected WebSocket clients.

- PresenceTracker: user id -> connection id, one connection per user (last writer wins)
- BroadcastChannel: open connections keyed by connection id, best-effort fan-out
- PresenceHub: ties both together and announces membership changes

Snapshots are pushed as {"event": "getOnlineUsers", "data": [user ids]}.
Nothing is queued or replayed; a late joiner only sees the state from its own
connection onwards.
"""

import asyncio
import logging
import threading
import uuid
from typing import Any, Dict, List, Optional

from fastapi import WebSocket

logger = logging.getLogger(__name__)

ONLINE_USERS_EVENT = "getOnlineUsers"
NEW_MESSAGE_EVENT = "newMessage"


class PresenceTracker:
    """Thread-safe user id -> connection id map."""

    def __init__(self):
        self._connections: Dict[str, str] = {}
        self._lock = threading.Lock()

    def register(self, user_id: str, connection_id: str) -> None:
        with self._lock:
            self._connections[user_id] = connection_id

    def unregister(self, connection_id: str) -> Optional[str]:
        """Drop the entry still pointing at `connection_id`.

        Returns the user id that went offline, or None when the connection is
        unknown or its user has since re-registered elsewhere.
        """
        with self._lock:
            for user_id, current in self._connections.items():
                if current == connection_id:
                    del self._connections[user_id]
                    return user_id
        return None

    def lookup(self, user_id: str) -> Optional[str]:
        with self._lock:
            return self._connections.get(user_id)

    def snapshot(self) -> List[str]:
        with self._lock:
            return list(self._connections.keys())

    def __len__(self):
        with self._lock:
            return len(self._connections)


class BroadcastChannel:
    """Open WebSocket connections and fire-and-forget delivery to them."""

    def __init__(self):
        self.active_connections: Dict[str, WebSocket] = {}

    def attach(self, connection_id: str, websocket: WebSocket) -> None:
        self.active_connections[connection_id] = websocket

    def detach(self, connection_id: str) -> None:
        self.active_connections.pop(connection_id, None)

    async def _safe_send(self, connection_id: str, websocket: WebSocket, message: dict) -> bool:
        try:
            await websocket.send_json(message)
            return True
        except Exception as e:
            logger.debug(f"Failed to send to connection {connection_id}: {e}")
            return False

    async def send_to(self, connection_id: str, event: str, data: Any) -> bool:
        websocket = self.active_connections.get(connection_id)
        if websocket is None:
            return False
        return await self._safe_send(connection_id, websocket, {"event": event, "data": data})

    async def notify_all(self, online_user_ids: List[str]) -> None:
        """Send the online-user snapshot to every attached connection concurrently."""
        connections = list(self.active_connections.items())
        if not connections:
            return
        message = {"event": ONLINE_USERS_EVENT, "data": list(online_user_ids)}
        results = await asyncio.gather(
            *[self._safe_send(cid, ws, message) for cid, ws in connections],
            return_exceptions=True,
        )
        failed = sum(1 for r in results if r is not True)
        logger.debug(
            f"Broadcast {len(online_user_ids)} online users to {len(connections)} connections ({failed} failed)"
        )


class PresenceHub:
    def __init__(self, tracker: PresenceTracker = None, channel: BroadcastChannel = None):
        self.tracker = tracker or PresenceTracker()
        self.channel = channel or BroadcastChannel()

    async def connect(self, websocket: WebSocket, user_id: Optional[str]) -> str:
        await websocket.accept()
        connection_id = uuid.uuid4().hex
        self.channel.attach(connection_id, websocket)
        logger.info(f"Connection {connection_id} opened (user={user_id})")

        if user_id:
            self.tracker.register(user_id, connection_id)
            await self.channel.notify_all(self.tracker.snapshot())
        else:
            await self.channel.send_to(connection_id, ONLINE_USERS_EVENT, self.tracker.snapshot())
        return connection_id

    async def disconnect(self, connection_id: str) -> None:
        self.channel.detach(connection_id)
        user_id = self.tracker.unregister(connection_id)
        logger.info(f"Connection {connection_id} closed (user={user_id})")
        if user_id is not None:
            await self.channel.notify_all(self.tracker.snapshot())

    def online_users(self) -> List[str]:
        return self.tracker.snapshot()

    async def emit_to_user(self, user_id: str, event: str, data: Any) -> bool:
        connection_id = self.tracker.lookup(user_id)
        if connection_id is None:
            return False
        return await self.channel.send_to(connection_id, event, data)
