"""Room broadcaster — fan one event out to every socket in a project room.

Learn: Delivery is at-most-once and best-effort. If nobody is in the room
the event is simply gone. That's fine for live board updates: clients can
always re-fetch through the HTTP API to catch up.
"""

import structlog

from synergy.events.types import RealtimeEvent
from synergy.realtime.registry import ConnectionRegistry

logger = structlog.get_logger()


class RoomBroadcaster:
    """Deliver events to the current members of one room."""

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    def broadcast(self, room_key: str, event: RealtimeEvent) -> int:
        """Queue the event for every ready member. Returns how many got it.

        Never raises for a recipient problem: sockets that aren't open, full
        outboxes, and send errors are logged and skipped so one bad client
        can't stop the rest of the room from hearing about the change.
        """
        members = self.registry.members(room_key)
        if not members:
            return 0

        text = event.to_wire()
        delivered = 0
        for connection in members:
            try:
                if connection.deliver(text):
                    delivered += 1
                else:
                    logger.debug(
                        "realtime.recipient_skipped",
                        connection_id=connection.id,
                        room=room_key,
                    )
            except Exception as e:
                logger.warning(
                    "realtime.recipient_failed",
                    connection_id=connection.id,
                    room=room_key,
                    error=str(e),
                )

        logger.debug(
            "realtime.broadcast",
            room=room_key,
            event_type=event.type,
            members=len(members),
            delivered=delivered,
        )
        return delivered
