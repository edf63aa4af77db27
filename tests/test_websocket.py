"""WebSocket endpoint tests — joins, delivery, and teardown over a real socket.

Learn: Starlette's TestClient runs the app on a background event loop.
Publishing has to happen on that same loop (the outbox is an asyncio
queue), so tests go through tc.portal.call(). Every test syncs with a
ping/pong round trip before asserting on server state: the reader handles
messages in order, so once the pong arrives the earlier JOIN is done.
"""

import json
import uuid

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from synergy.auth.jwt import create_access_token, create_refresh_token
from synergy.config import settings
from synergy.main import app
from synergy.realtime.hub import RealtimeHub


def _join(ws, project_id):
    ws.send_json({"type": "JOIN_PROJECT", "projectId": project_id})


def _sync(ws):
    ws.send_json({"type": "ping"})
    assert ws.receive_json() == {"type": "pong"}


def test_join_then_receive_event(hub):
    with TestClient(app) as tc:
        with tc.websocket_connect("/ws") as ws:
            _join(ws, "proj-1")
            _sync(ws)
            assert hub.registry.room_size("proj-1") == 1

            tc.portal.call(hub.publisher.publish, "proj-1", "TASK_CREATED", {"id": "t1"})
            assert ws.receive_json() == {"type": "TASK_CREATED", "data": {"id": "t1"}}


def test_events_arrive_in_publish_order(hub):
    with TestClient(app) as tc:
        with tc.websocket_connect("/ws") as ws:
            _join(ws, "proj-1")
            _sync(ws)

            for kind in ("TASK_CREATED", "TASK_UPDATED", "TASK_DELETED"):
                tc.portal.call(hub.publisher.publish, "proj-1", kind, {"id": "t1"})

            assert [ws.receive_json()["type"] for _ in range(3)] == [
                "TASK_CREATED",
                "TASK_UPDATED",
                "TASK_DELETED",
            ]


def test_rooms_are_isolated(hub):
    with TestClient(app) as tc:
        with tc.websocket_connect("/ws") as a, tc.websocket_connect("/ws") as b:
            _join(a, "A")
            _join(b, "B")
            _sync(a)
            _sync(b)

            tc.portal.call(hub.publisher.publish, "A", "TASK_CREATED", {"id": "t1"})

            assert a.receive_json()["data"] == {"id": "t1"}
            # b's next message is the pong, not A's event
            _sync(b)


def test_second_join_moves_socket(hub):
    with TestClient(app) as tc:
        with tc.websocket_connect("/ws") as ws:
            _join(ws, "A")
            _join(ws, "B")
            _sync(ws)
            assert hub.registry.rooms() == ["B"]

            tc.portal.call(hub.publisher.publish, "A", "TASK_CREATED", {"id": "in-a"})
            tc.portal.call(hub.publisher.publish, "B", "TASK_CREATED", {"id": "in-b"})
            assert ws.receive_json()["data"] == {"id": "in-b"}


def test_unjoined_socket_gets_nothing(hub):
    with TestClient(app) as tc:
        with tc.websocket_connect("/ws") as ws:
            _sync(ws)
            assert len(hub.registry) == 1
            assert tc.portal.call(
                hub.publisher.publish, "proj-1", "TASK_CREATED", {"id": "t1"}
            ) == 0


def test_malformed_messages_keep_connection(hub):
    with TestClient(app) as tc:
        with tc.websocket_connect("/ws") as ws:
            ws.send_text("not json")
            ws.send_json([1, 2, 3])
            ws.send_json({"type": "JOIN_PROJECT"})
            ws.send_json({"type": "JOIN_PROJECT", "projectId": ""})
            ws.send_json({"type": "SOMETHING_ELSE"})
            _sync(ws)

            assert len(hub.registry) == 1
            assert hub.registry.rooms() == []


def test_binary_join_frame(hub):
    with TestClient(app) as tc:
        with tc.websocket_connect("/ws") as ws:
            ws.send_bytes(json.dumps({"type": "JOIN_PROJECT", "projectId": "proj-1"}).encode())
            _sync(ws)
            assert hub.registry.room_size("proj-1") == 1


def test_disconnect_prunes_registry(hub):
    with TestClient(app) as tc:
        with tc.websocket_connect("/ws") as ws:
            _join(ws, "proj-1")
            _sync(ws)

        assert len(hub.registry) == 0
        assert hub.registry.rooms() == []
        assert tc.portal.call(
            hub.publisher.publish, "proj-1", "TASK_CREATED", {"id": "t1"}
        ) == 0


# ═══════════════════════════════════════════════════════════
# Authentication and join authorization
# ═══════════════════════════════════════════════════════════


def test_token_required_outside_development(hub, monkeypatch):
    monkeypatch.setattr(settings, "environment", "production")
    with TestClient(app) as tc:
        with pytest.raises(WebSocketDisconnect) as exc:
            with tc.websocket_connect("/ws"):
                pass
    assert exc.value.code == 4001


def test_invalid_token_rejected(hub):
    with TestClient(app) as tc:
        with pytest.raises(WebSocketDisconnect) as exc:
            with tc.websocket_connect("/ws?token=garbage"):
                pass
    assert exc.value.code == 4001


def test_refresh_token_rejected(hub):
    token = create_refresh_token(str(uuid.uuid4()))
    with TestClient(app) as tc:
        with pytest.raises(WebSocketDisconnect) as exc:
            with tc.websocket_connect(f"/ws?token={token}"):
                pass
    assert exc.value.code == 4001


def test_authorizer_sees_token_user_and_can_refuse():
    seen = []

    async def only_public(user_id, project_id):
        seen.append((user_id, project_id))
        return project_id == "public"

    hub = RealtimeHub(authorizer=only_public)
    app.state.realtime = hub
    user_id = str(uuid.uuid4())

    with TestClient(app) as tc:
        with tc.websocket_connect(f"/ws?token={create_access_token(user_id)}") as ws:
            _join(ws, "secret")
            _sync(ws)
            assert hub.registry.rooms() == []

            _join(ws, "public")
            _sync(ws)
            assert hub.registry.room_size("public") == 1

    assert seen == [(user_id, "secret"), (user_id, "public")]


def test_authorizer_error_refuses_join():
    async def broken(user_id, project_id):
        raise RuntimeError("db down")

    hub = RealtimeHub(authorizer=broken)
    app.state.realtime = hub

    with TestClient(app) as tc:
        with tc.websocket_connect("/ws") as ws:
            _join(ws, "proj-1")
            _sync(ws)
            assert hub.registry.rooms() == []
            assert len(hub.registry) == 1
