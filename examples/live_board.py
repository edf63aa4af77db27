#!/usr/bin/env python3
"""
SynergySphere live board — watch a project while tasks move across it.

Creates a project, opens a websocket subscription to it, then creates,
moves, comments on and deletes a task. Every change is printed twice:
once from the HTTP response and once as it arrives over the socket.

Run with: python examples/live_board.py

Requires: pip install -e .
Backend must be running: http://localhost:8000
"""

import time

from _common import SERVER, create_client

from synergy.cli.main import format_event, ws_url_for
from synergy.realtime.client import ConnectionState, SubscriptionManager


def wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.05)
    return False


def main():
    client, token = create_client()

    # ── Project ───────────────────────────────────────────────────
    print("\n1. Creating project...")
    resp = client.post("/projects", json={"name": "Launch Website"})
    assert resp.status_code == 201, f"Failed: {resp.text}"
    project = resp.json()
    print(f"   Project: {project['name']} ({project['id'][:8]}...)")

    # ── Subscribe ─────────────────────────────────────────────────
    print("\n2. Watching the board...")
    received = []

    def on_event(event):
        received.append(event)
        print(f"   ⚡ {format_event(event)}")

    manager = SubscriptionManager(ws_url_for(SERVER), token=token, on_event=on_event)
    manager.view_project(project["id"])
    if not wait_for(lambda: manager.state == ConnectionState.OPEN):
        print("   Socket never opened")
        return
    # JOIN_PROJECT has no ack; give the server a beat to process it
    time.sleep(0.2)

    # ── Mutations ─────────────────────────────────────────────────
    print("\n3. Creating task...")
    resp = client.post(f"/projects/{project['id']}/tasks", json={"title": "Write spec"})
    assert resp.status_code == 201, f"Failed: {resp.text}"
    task = resp.json()

    print("\n4. Moving it through the board...")
    for status in ("in-progress", "done"):
        resp = client.patch(f"/tasks/{task['id']}", json={"status": status})
        assert resp.status_code == 200, f"Failed: {resp.text}"

    print("\n5. Commenting...")
    resp = client.post(f"/tasks/{task['id']}/comments", json={"content": "Shipped!"})
    assert resp.status_code == 201, f"Failed: {resp.text}"

    print("\n6. Deleting...")
    resp = client.delete(f"/tasks/{task['id']}")
    assert resp.status_code == 200, f"Failed: {resp.text}"

    wait_for(lambda: len(received) >= 5)
    manager.leave_project()
    client.close()

    print(f"\nDone. {len(received)} live events received.")


if __name__ == "__main__":
    main()
