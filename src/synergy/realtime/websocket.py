"""WebSocket endpoint — live project events for browser clients.

Learn: Each client connects to /ws?token=JWT and then sends
{"type": "JOIN_PROJECT", "projectId": "..."} to pick the project room it
wants to watch. There is no ack; events for that project just start
arriving. Sending another JOIN_PROJECT moves the socket to the new room.

Two concurrent tasks run per socket:
1. Writer — drains the connection's outbox onto the socket
2. Reader — handles client messages (joins, pings)

When either side finishes (disconnect, send error), the other is cancelled
and the connection is removed from the registry before anything else.
"""

import asyncio
import json

import structlog
from fastapi import APIRouter, WebSocket
from pydantic import ValidationError
from starlette.websockets import WebSocketState

from synergy.config import settings
from synergy.events.types import JOIN_PROJECT, PING, PONG, JoinProject
from synergy.realtime.hub import RealtimeHub
from synergy.realtime.registry import Connection

logger = structlog.get_logger()
router = APIRouter()


async def handle_client_message(hub: RealtimeHub, connection: Connection, raw: str) -> None:
    """Apply one client message. Anything malformed is dropped."""
    try:
        msg = json.loads(raw)
    except json.JSONDecodeError:
        logger.debug("realtime.message_unparseable", connection_id=connection.id)
        return
    if not isinstance(msg, dict):
        return

    msg_type = msg.get("type")
    if msg_type == JOIN_PROJECT:
        try:
            join = JoinProject.model_validate(msg)
        except ValidationError:
            logger.debug("realtime.join_malformed", connection_id=connection.id)
            return
        await hub.join(connection, join.project_id)
    elif msg_type == PING:
        connection.deliver(json.dumps({"type": PONG}))
    else:
        logger.debug(
            "realtime.message_ignored",
            connection_id=connection.id,
            message_type=msg_type,
        )


@router.websocket("/ws")
async def project_websocket(websocket: WebSocket):
    """WebSocket endpoint for real-time project events.

    Authentication: JWT token as ?token= query param. Required outside
    development; in development unauthenticated sockets are accepted.
    """
    # ── Authentication ──────────────────────────────────────
    token = websocket.query_params.get("token")
    user_id = None

    if not token and not settings.is_development:
        await websocket.close(code=4001, reason="Authentication required")
        return

    if token:
        from synergy.auth.jwt import TokenError, verify_token

        try:
            user_id = verify_token(token)["sub"]
        except TokenError:
            await websocket.close(code=4001, reason="Invalid or expired token")
            return

    # ── Connection accepted ─────────────────────────────────
    await websocket.accept()

    hub: RealtimeHub = websocket.app.state.realtime
    connection = hub.open_connection(websocket, user_id=user_id)

    async def client_listener():
        """Read client frames until disconnect. Binary frames are decoded as UTF-8."""
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                return
            raw = message.get("text")
            if raw is None and message.get("bytes") is not None:
                raw = message["bytes"].decode("utf-8", errors="replace")
            if raw is not None:
                await handle_client_message(hub, connection, raw)

    writer_task = asyncio.create_task(connection.pump())
    reader_task = asyncio.create_task(client_listener())

    try:
        done, _ = await asyncio.wait(
            [writer_task, reader_task],
            return_when=asyncio.FIRST_COMPLETED,
        )
        for task in done:
            if not task.cancelled() and task.exception() is not None:
                logger.info(
                    "realtime.connection_error",
                    connection_id=connection.id,
                    error=str(task.exception()),
                )
    finally:
        hub.close_connection(connection)
        for task in (writer_task, reader_task):
            task.cancel()
        if (
            websocket.client_state == WebSocketState.CONNECTED
            and websocket.application_state == WebSocketState.CONNECTED
        ):
            await websocket.close()
