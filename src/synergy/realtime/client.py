"""Client subscription manager — one socket per viewed project.

Learn: The client side is an explicit state machine driven by two kinds of
input: what the consumer wants (view_project / leave_project / reconnect)
and what the transport reports (open / message / close).

    DISCONNECTED --view_project(P)--> CONNECTING --open/JOIN_PROJECT--> OPEN
         ^                                 |                              |
         +------------- close -------------+------------ close -----------+

There is no retry loop in here. When the socket drops, the manager sits in
DISCONNECTED until the consumer calls reconnect() because it still wants
project P. Events sent while disconnected are gone for good; the consumer
re-fetches over HTTP after reconnecting.
"""

import enum
import json
import threading
from typing import Callable, Optional, Protocol
from urllib.parse import urlencode

import structlog

from synergy.events.types import PONG, JoinProject, RealtimeEvent

logger = structlog.get_logger()


class ConnectionState(str, enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    OPEN = "open"


class Transport(Protocol):
    """The bidirectional socket primitive the manager drives."""

    def start(self) -> None: ...

    def send(self, text: str) -> None: ...

    def close(self) -> None: ...


# (url, on_open, on_message, on_close) -> Transport
TransportFactory = Callable[
    [str, Callable[[], None], Callable[[str], None], Callable[[], None]],
    Transport,
]


class WebSocketAppTransport:
    """websocket-client WebSocketApp running on a daemon thread."""

    def __init__(
        self,
        url: str,
        on_open: Callable[[], None],
        on_message: Callable[[str], None],
        on_close: Callable[[], None],
    ):
        from websocket import WebSocketApp

        self.url = url
        self._app = WebSocketApp(
            url,
            on_open=lambda ws: on_open(),
            on_message=lambda ws, msg: on_message(msg),
            on_error=lambda ws, err: logger.warning(
                "realtime.client_transport_error", url=url, error=str(err)
            ),
            on_close=lambda ws, code, msg: on_close(),
        )
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        self._thread = threading.Thread(
            target=self._app.run_forever,
            name="synergy-ws",
            daemon=True,
        )
        self._thread.start()

    def send(self, text: str) -> None:
        self._app.send(text)

    def close(self) -> None:
        self._app.close()


class SubscriptionManager:
    """Own the socket for the project currently on screen.

    Args:
        url: websocket endpoint, e.g. ws://localhost:8000/ws
        token: optional JWT access token, sent as ?token=
        on_event: called with each RealtimeEvent as it arrives
        on_state_change: called with the new ConnectionState
        transport_factory: builds the transport (defaults to websocket-client)
    """

    def __init__(
        self,
        url: str,
        token: Optional[str] = None,
        on_event: Optional[Callable[[RealtimeEvent], None]] = None,
        on_state_change: Optional[Callable[[ConnectionState], None]] = None,
        transport_factory: TransportFactory = WebSocketAppTransport,
    ):
        self.url = url
        self.token = token
        self.on_event = on_event
        self.on_state_change = on_state_change
        self.transport_factory = transport_factory

        self.state = ConnectionState.DISCONNECTED
        self.project_id: Optional[str] = None
        self.last_event: Optional[RealtimeEvent] = None

        self._transport: Optional[Transport] = None
        self._lock = threading.RLock()

    # ─── Consumer intents ────────────────────────────────

    def view_project(self, project_id: str) -> None:
        """Start (or switch) watching a project."""
        with self._lock:
            if project_id == self.project_id and self.state != ConnectionState.DISCONNECTED:
                return
            if self._transport is not None:
                self._teardown()
            self.project_id = project_id
            self._connect()

    def reconnect(self) -> bool:
        """Open a new socket if we still want a project and have none."""
        with self._lock:
            if self.project_id is None or self.state != ConnectionState.DISCONNECTED:
                return False
            self._connect()
            return True

    def leave_project(self) -> None:
        """Stop watching. Closes the socket deterministically."""
        with self._lock:
            self.project_id = None
            self._teardown()

    close = leave_project

    def send(self, message: str) -> bool:
        """Send a raw client message. Only works while OPEN."""
        with self._lock:
            if self.state != ConnectionState.OPEN or self._transport is None:
                return False
            self._transport.send(message)
            return True

    # ─── Internals ───────────────────────────────────────

    def _endpoint(self) -> str:
        if not self.token:
            return self.url
        sep = "&" if "?" in self.url else "?"
        return f"{self.url}{sep}{urlencode({'token': self.token})}"

    def _connect(self) -> None:
        transport: Optional[Transport] = None

        def on_open():
            self._handle_open(transport)

        def on_message(text: str):
            self._handle_message(transport, text)

        def on_close():
            self._handle_close(transport)

        transport = self.transport_factory(self._endpoint(), on_open, on_message, on_close)
        self._transport = transport
        self._set_state(ConnectionState.CONNECTING)
        logger.info("realtime.client_connecting", project_id=self.project_id)
        transport.start()

    def _teardown(self) -> None:
        transport, self._transport = self._transport, None
        self._set_state(ConnectionState.DISCONNECTED)
        if transport is not None:
            transport.close()

    def _set_state(self, state: ConnectionState) -> None:
        if state == self.state:
            return
        self.state = state
        if self.on_state_change is not None:
            self.on_state_change(state)

    # ─── Transport callbacks ─────────────────────────────

    def _handle_open(self, transport: Optional[Transport]) -> None:
        with self._lock:
            if transport is not self._transport or self.project_id is None:
                return
            transport.send(JoinProject(project_id=self.project_id).to_wire())
            self._set_state(ConnectionState.OPEN)
            logger.info("realtime.client_joined", project_id=self.project_id)

    def _handle_message(self, transport: Optional[Transport], text: str) -> None:
        with self._lock:
            if transport is not self._transport or self.state != ConnectionState.OPEN:
                return
            if _is_pong(text):
                logger.debug("realtime.client_pong", project_id=self.project_id)
                return
            try:
                event = RealtimeEvent.from_wire(text)
            except ValueError as e:
                logger.warning("realtime.client_bad_message", error=str(e))
                return
            self.last_event = event

        if self.on_event is not None:
            self.on_event(event)

    def _handle_close(self, transport: Optional[Transport]) -> None:
        with self._lock:
            if transport is not self._transport:
                return
            self._transport = None
            self._set_state(ConnectionState.DISCONNECTED)
            logger.info("realtime.client_disconnected", project_id=self.project_id)


def _is_pong(text: str) -> bool:
    """Keepalive replies share the socket but aren't RealtimeEvents."""
    try:
        return json.loads(text).get("type") == PONG
    except (ValueError, AttributeError):
        return False
