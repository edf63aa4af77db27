"""Connection registry — who is connected, and which project room they watch.

Learn: The registry is the single owner of a two-way index:

    room key   → set of connections   (who gets a project's events)
    connection → room key             (which room to prune on disconnect)

Both directions are updated together inside one synchronous method call.
Nothing here awaits, so on the asyncio event loop a register/join/leave
can never interleave with another one or with a broadcast. That is the
whole concurrency story: no locks needed.

Rooms are not persisted. A room exists exactly as long as it has members.
"""

import asyncio
import uuid
from typing import Any, Optional

import structlog
from starlette.websockets import WebSocketState

logger = structlog.get_logger()


class Connection:
    """One live websocket, as seen by the fan-out layer.

    Learn: Sends are fire-and-forget. deliver() drops the serialized event
    into a bounded outbox and returns immediately; a single writer task
    (pump) drains the outbox onto the socket in FIFO order. One writer per
    socket means per-connection ordering matches broadcast order.
    """

    def __init__(
        self,
        websocket: Any,
        user_id: Optional[str] = None,
        outbox_size: int = 256,
    ):
        self.id = uuid.uuid4().hex
        self.websocket = websocket
        self.user_id = user_id
        self.alive = True
        self.outbox: asyncio.Queue[str] = asyncio.Queue(maxsize=outbox_size)

    def __repr__(self) -> str:
        return f"<Connection {self.id[:8]} user={self.user_id} alive={self.alive}>"

    @property
    def ready(self) -> bool:
        """True while the socket is open in both directions."""
        return (
            self.alive
            and self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    def deliver(self, text: str) -> bool:
        """Queue one serialized message. Returns False if it was not queued."""
        if not self.ready:
            return False
        try:
            self.outbox.put_nowait(text)
        except asyncio.QueueFull:
            logger.warning(
                "realtime.outbox_full",
                connection_id=self.id,
                size=self.outbox.maxsize,
            )
            return False
        return True

    async def pump(self) -> None:
        """Writer loop: send queued messages until the socket fails or closes."""
        while self.alive:
            text = await self.outbox.get()
            await self.websocket.send_text(text)

    def close(self) -> None:
        """Mark dead and drop anything still queued."""
        self.alive = False
        while not self.outbox.empty():
            self.outbox.get_nowait()


class ConnectionRegistry:
    """Process-local index of live connections and project rooms."""

    def __init__(self):
        self._connections: set[Connection] = set()
        self._rooms: dict[str, set[Connection]] = {}
        self._room_of: dict[Connection, str] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection: object) -> bool:
        return connection in self._connections

    # ─── Mutations ───────────────────────────────────────

    def register(self, connection: Connection) -> None:
        """Track a freshly accepted connection. It starts in no room."""
        self._connections.add(connection)
        logger.info(
            "realtime.connection_registered",
            connection_id=connection.id,
            user_id=connection.user_id,
            total=len(self._connections),
        )

    def join(self, connection: Connection, room_key: str) -> bool:
        """Move a connection into a room, leaving its previous room first.

        Returns False (and changes nothing) for a connection that is not
        registered — e.g. one that already left. Joining the room the
        connection is already in is a no-op that returns True.
        """
        if connection not in self._connections:
            logger.warning(
                "realtime.join_unregistered",
                connection_id=connection.id,
                room=room_key,
            )
            return False

        current = self._room_of.get(connection)
        if current == room_key:
            return True
        if current is not None:
            self._discard_member(connection, current)

        self._rooms.setdefault(room_key, set()).add(connection)
        self._room_of[connection] = room_key
        logger.info(
            "realtime.room_joined",
            connection_id=connection.id,
            room=room_key,
            previous_room=current,
            members=len(self._rooms[room_key]),
        )
        return True

    def leave(self, connection: Connection) -> None:
        """Forget a connection entirely. Safe to call more than once."""
        room_key = self._room_of.pop(connection, None)
        if room_key is not None:
            self._discard_member(connection, room_key)

        if connection in self._connections:
            self._connections.discard(connection)
            logger.info(
                "realtime.connection_left",
                connection_id=connection.id,
                room=room_key,
                total=len(self._connections),
            )

    def _discard_member(self, connection: Connection, room_key: str) -> None:
        members = self._rooms.get(room_key)
        if members is None:
            return
        members.discard(connection)
        if not members:
            del self._rooms[room_key]

    # ─── Reads ───────────────────────────────────────────

    def members(self, room_key: str) -> frozenset[Connection]:
        """Snapshot of a room's members (safe to iterate while others mutate)."""
        return frozenset(self._rooms.get(room_key, ()))

    def room_of(self, connection: Connection) -> Optional[str]:
        return self._room_of.get(connection)

    def room_size(self, room_key: str) -> int:
        return len(self._rooms.get(room_key, ()))

    def rooms(self) -> list[str]:
        return list(self._rooms)

    def stats(self) -> dict[str, int]:
        return {"connections": len(self._connections), "rooms": len(self._rooms)}
