"""Test fixtures — a fresh in-memory database and realtime hub per test.

Learn: Testing pattern for async SQLAlchemy + FastAPI:

1. Each test gets its own SQLite in-memory engine (StaticPool keeps the
   single connection alive, so the schema survives between sessions).
2. get_db and get_current_user are overridden on the app, so routes run
   for real against the test database as a known user.
3. A new RealtimeHub is installed on app.state for every test, so rooms
   never leak from one test into the next.

Realtime assertions use FakeSocket connections registered straight into
the hub: whatever a route publishes lands in that connection's outbox.
"""

import json

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool
from starlette.websockets import WebSocketState

from synergy.auth.dependencies import CurrentIdentity, get_current_user
from synergy.auth.password import hash_password
from synergy.db.engine import get_db
from synergy.db.models import Base, User
from synergy.main import app, build_hub
from synergy.realtime.registry import Connection

TEST_DB_URL = "sqlite+aiosqlite://"


class FakeSocket:
    """Just enough of starlette's WebSocket for the fan-out layer."""

    def __init__(self):
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.sent: list[str] = []

    async def send_text(self, text: str) -> None:
        self.sent.append(text)

    def drop(self) -> None:
        """Simulate the peer going away without the server noticing yet."""
        self.client_state = WebSocketState.DISCONNECTED


class FakeTransport:
    """In-memory stand-in for the client websocket; callbacks fired by hand."""

    def __init__(self, url, on_open, on_message, on_close):
        self.url = url
        self.on_open = on_open
        self.on_message = on_message
        self.on_close = on_close
        self.started = False
        self.closed = False
        self.sent: list[str] = []

    def start(self):
        self.started = True

    def send(self, text):
        self.sent.append(text)

    def close(self):
        self.closed = True

    def fire_open(self):
        self.on_open()

    def fire_message(self, payload):
        self.on_message(payload if isinstance(payload, str) else json.dumps(payload))

    def fire_close(self):
        self.on_close()


# ═══════════════════════════════════════════════════════════
# Realtime
# ═══════════════════════════════════════════════════════════


@pytest.fixture()
def hub():
    """Fresh hub installed on the app for this test."""
    fresh = build_hub()
    app.state.realtime = fresh
    return fresh


@pytest.fixture()
def fake_socket():
    """Factory for unregistered FakeSockets."""
    return FakeSocket


@pytest.fixture()
def connect(hub):
    """Factory: register a FakeSocket connection, optionally joined to a room."""

    def _connect(room: str | None = None, user_id: str | None = None) -> Connection:
        connection = hub.open_connection(FakeSocket(), user_id=user_id)
        if room is not None:
            hub.registry.join(connection, room)
        return connection

    return _connect


@pytest.fixture()
def inbox():
    """Drain a connection's outbox into a list of decoded messages."""

    def _inbox(connection: Connection) -> list[dict]:
        messages = []
        while not connection.outbox.empty():
            messages.append(json.loads(connection.outbox.get_nowait()))
        return messages

    return _inbox


@pytest.fixture()
def transports():
    """Every FakeTransport built by `transport_factory`, in creation order."""
    return []


@pytest.fixture()
def transport_factory(transports):
    def _factory(url, on_open, on_message, on_close):
        transport = FakeTransport(url, on_open, on_message, on_close)
        transports.append(transport)
        return transport

    return _factory


# ═══════════════════════════════════════════════════════════
# Database + HTTP
# ═══════════════════════════════════════════════════════════


@pytest_asyncio.fixture()
async def db_session():
    """Per-test session on a throwaway in-memory database."""
    engine = create_async_engine(
        TEST_DB_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session = AsyncSession(bind=engine, expire_on_commit=False)
    try:
        yield session
    finally:
        await session.close()
        await engine.dispose()


@pytest_asyncio.fixture()
async def user(db_session):
    """The user every `client` request is authenticated as."""
    u = User(
        email="alice@example.com",
        username="alice",
        full_name="Alice Adams",
        password_hash=hash_password("correct-horse"),
    )
    db_session.add(u)
    await db_session.commit()
    return u


@pytest_asyncio.fixture()
async def other_user(db_session):
    u = User(
        email="bob@example.com",
        username="bob",
        full_name="Bob Brown",
        password_hash=hash_password("battery-staple"),
    )
    db_session.add(u)
    await db_session.commit()
    return u


@pytest_asyncio.fixture()
async def client(db_session, user, hub):
    """HTTP client with get_db and auth overridden for testing.

    Learn: We override get_current_user to return `user` so protected
    routes work without real JWT tokens.
    """

    async def override_get_db():
        yield db_session

    def override_get_current_user():
        return CurrentIdentity(user_id=str(user.id))

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_get_current_user

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def unauthenticated_client(db_session, hub):
    """HTTP client WITHOUT auth override — for testing real JWT flows."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def project(client):
    """A project owned by `user`."""
    resp = await client.post("/api/v1/projects", json={"name": "Launch Website"})
    assert resp.status_code == 201
    return resp.json()
