"""Realtime broadcaster - fans task mutation events out to connected clients.

Delivery is best-effort and at-most-once: each connection has a bounded
queue, and an event is dropped for a connection whose queue is full. There is
no acknowledgement and no replay on reconnect.
"""

import asyncio
import logging
import threading
import uuid
from typing import Any, Optional
from uuid import UUID

from fastapi import WebSocket

from app.core import settings

logger = logging.getLogger(__name__)

TASK_CREATED = "taskCreated"
TASK_UPDATED = "taskUpdated"
TASK_DELETED = "taskDeleted"


class RealtimeConnection:
    """A single client connection and its outbound event queue."""

    def __init__(
        self,
        websocket: WebSocket | None = None,
        user_id: UUID | None = None,
        token: str | None = None,
        queue_size: int | None = None,
    ):
        self.id = uuid.uuid4().hex[:12]
        self.websocket = websocket
        self.user_id = user_id
        self.token = token
        self.queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size or settings.realtime_queue_size)

    @property
    def authenticated(self) -> bool:
        return self.user_id is not None

    def accepts(self, owner_id: UUID, owner_scoped: bool) -> bool:
        """Whether an event for ``owner_id`` should be delivered to this connection."""
        if not owner_scoped:
            return True
        return self.user_id == owner_id


class TaskEventBroadcaster:
    """Registry of open connections plus fan-out of task events.

    By default every connection receives every event. With owner scoping
    enabled, only connections authenticated as the task owner receive it.
    """

    _instance: Optional["TaskEventBroadcaster"] = None
    _instance_lock: threading.Lock = threading.Lock()

    def __init__(self, owner_scoped: bool | None = None):
        self.owner_scoped = settings.realtime_owner_scoped if owner_scoped is None else owner_scoped
        self._connections: list[RealtimeConnection] = []
        self._lock = asyncio.Lock()

    @classmethod
    def get_instance(cls) -> "TaskEventBroadcaster":
        """Get or create singleton instance (thread-safe)."""
        if cls._instance is None:
            with cls._instance_lock:
                # Double-check locking pattern
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    async def register(self, conn: RealtimeConnection) -> int:
        """Add a connection. Returns the number of open connections."""
        async with self._lock:
            self._connections.append(conn)
            return len(self._connections)

    async def unregister(self, conn: RealtimeConnection) -> int:
        """Remove a connection. Returns the number of remaining connections."""
        async with self._lock:
            if conn in self._connections:
                self._connections.remove(conn)
            return len(self._connections)

    async def deauthenticate(self, token: str) -> int:
        """Drop the identity of every connection opened with ``token``.

        The connections stay open as anonymous listeners. Returns how many
        were affected.
        """
        affected = 0
        async with self._lock:
            for conn in self._connections:
                if conn.token == token and conn.user_id is not None:
                    conn.user_id = None
                    affected += 1
        if affected:
            logger.info(f"Deauthenticated {affected} realtime connection(s) after logout")
        return affected

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def publish(self, event: str, payload: dict[str, Any], owner_id: UUID) -> int:
        """Queue an event for every matching connection. Returns how many accepted it."""
        async with self._lock:
            connections_snapshot = self._connections[:]

        message = {"event": event, "data": payload}
        delivered = 0
        for conn in connections_snapshot:
            if not conn.accepts(owner_id, self.owner_scoped):
                continue
            try:
                conn.queue.put_nowait(message)
                delivered += 1
            except asyncio.QueueFull:
                # Slow consumer
                logger.warning(
                    f"Realtime queue full, dropping {event}",
                    extra={"connection_id": conn.id, "event": event},
                )

        logger.debug(f"Broadcast {event} to {delivered} connection(s)", extra={"event": event})
        return delivered


def get_broadcaster() -> TaskEventBroadcaster:
    """Get the process-wide broadcaster."""
    return TaskEventBroadcaster.get_instance()
