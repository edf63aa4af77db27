"""SynergySphere CLI — browse projects and watch a board live.

Usage:
    synergy projects                      # Projects you own or belong to
    synergy tasks <project-id>            # A project's board
    synergy watch <project-id>            # Stream live board events
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
import time
from typing import Optional

import click
import httpx

from synergy import __version__
from synergy.events.types import RealtimeEvent
from synergy.realtime.client import ConnectionState, SubscriptionManager

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8000"


def _api_url() -> str:
    return os.environ.get("SYNERGY_API_URL", DEFAULT_API_URL).rstrip("/")


def _token() -> Optional[str]:
    return os.environ.get("SYNERGY_TOKEN") or None


def ws_url_for(api_url: str) -> str:
    """http://host:8000 → ws://host:8000/ws (https → wss)."""
    if api_url.startswith("https://"):
        return "wss://" + api_url[len("https://"):] + "/ws"
    if api_url.startswith("http://"):
        return "ws://" + api_url[len("http://"):] + "/ws"
    return api_url + "/ws"


def _client() -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the SynergySphere backend."""
    headers = {}
    token = _token()
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return httpx.AsyncClient(base_url=_api_url(), headers=headers, timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Offloads to a thread when an event loop is already running (e.g. when
    invoked through CliRunner inside async tests).
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """Print a simple ASCII table. columns: (header, dict_key, width)."""
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        line = "  ".join(str(row.get(k) or "-")[:w].ljust(w) for _, k, w in columns)
        click.echo(line)


def _status_color(status: str) -> str:
    return {
        "to-do": "white",
        "in-progress": "yellow",
        "done": "green",
        "active": "green",
        "on-hold": "yellow",
        "completed": "cyan",
    }.get(status, "white")


def format_event(event: RealtimeEvent) -> str:
    """One line per event for `synergy watch`."""
    data = event.data
    if event.type in ("TASK_CREATED", "TASK_UPDATED"):
        status = data.get("status", "")
        return (
            f"{event.type:<16} {data.get('title', '')} "
            f"[{click.style(status, fg=_status_color(status))}]"
        )
    if event.type == "TASK_DELETED":
        return f"{event.type:<16} {data.get('id')}"
    if event.type == "COMMENT_ADDED":
        comment = data.get("comment", {})
        return f"{event.type:<16} on {data.get('task_id')}: {comment.get('content', '')}"
    if event.type == "PROJECT_CREATED":
        return f"{event.type:<16} {data.get('name', '')}"
    return f"{event.type:<16} {json.dumps(data, default=str)}"


def _fail(resp: httpx.Response):
    click.secho(f"Error {resp.status_code}: {resp.text}", fg="red", err=True)
    sys.exit(1)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="synergy")
def cli():
    """SynergySphere — project boards with live updates."""


@cli.command()
def projects():
    """List projects you own or are a member of."""
    _run(_projects_impl())


async def _projects_impl():
    async with _client() as c:
        r = await c.get("/api/v1/projects")
        if r.status_code != 200:
            _fail(r)
        rows = r.json()

    if not rows:
        click.echo("No projects.")
        return
    for row in rows:
        row["progress"] = f"{row['completed_task_count']}/{row['task_count']}"
    _print_table(rows, [
        ("ID", "id", 36),
        ("NAME", "name", 28),
        ("STATUS", "status", 10),
        ("DONE", "progress", 7),
        ("MEMBERS", "member_count", 7),
    ])


@cli.command()
@click.argument("project_id")
@click.option("--status", "-s", type=click.Choice(["to-do", "in-progress", "done"]),
              help="Only show one board column")
def tasks(project_id: str, status: Optional[str]):
    """Show a project's board."""
    _run(_tasks_impl(project_id, status))


async def _tasks_impl(project_id: str, status: Optional[str]):
    params = {"status": status} if status else {}
    async with _client() as c:
        r = await c.get(f"/api/v1/projects/{project_id}/tasks", params=params)
        if r.status_code != 200:
            _fail(r)
        rows = r.json()

    if not rows:
        click.echo("No tasks.")
        return
    _print_table(rows, [
        ("ID", "id", 36),
        ("TITLE", "title", 36),
        ("STATUS", "status", 12),
        ("PRIORITY", "priority", 8),
        ("ASSIGNEE", "assignee_id", 36),
    ])


@cli.command()
@click.argument("project_id")
@click.option("--retry-delay", default=3.0, show_default=True,
              help="Seconds to wait before reconnecting after a drop")
def watch(project_id: str, retry_delay: float):
    """Stream live events for a project until Ctrl-C.

    The socket is re-opened after a drop for as long as you keep watching.
    Events raised while disconnected are not replayed; run `synergy tasks`
    to see the current board.
    """
    def on_state(state: ConnectionState):
        color = {"open": "green", "connecting": "yellow"}.get(state.value, "red")
        click.secho(f"-- {state.value}", fg=color, err=True)

    manager = SubscriptionManager(
        ws_url_for(_api_url()),
        token=_token(),
        on_event=lambda event: click.echo(format_event(event)),
        on_state_change=on_state,
    )
    manager.view_project(project_id)
    try:
        while True:
            time.sleep(0.5)
            if manager.state == ConnectionState.DISCONNECTED:
                time.sleep(retry_delay)
                manager.reconnect()
    except KeyboardInterrupt:
        pass
    finally:
        manager.close()


if __name__ == "__main__":
    cli()
