"""Realtime hub — the one object that owns a process's fan-out state.

Learn: Instead of a module-level dict of sockets, create_app() builds a
RealtimeHub and parks it on app.state. Handlers reach it through
dependencies (get_publisher) or websocket.app.state, and tests can swap
in a fresh hub per test case.
"""

import uuid
from typing import Awaitable, Callable, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from synergy.realtime.broadcaster import RoomBroadcaster
from synergy.realtime.publisher import EventPublisher
from synergy.realtime.registry import Connection, ConnectionRegistry

logger = structlog.get_logger()

# (user_id, project_id) -> may this user watch that project?
JoinAuthorizer = Callable[[Optional[str], str], Awaitable[bool]]


class RealtimeHub:
    def __init__(
        self,
        outbox_size: int = 256,
        authorizer: Optional[JoinAuthorizer] = None,
    ):
        self.registry = ConnectionRegistry()
        self.broadcaster = RoomBroadcaster(self.registry)
        self.publisher = EventPublisher(self.broadcaster)
        self.outbox_size = outbox_size
        self.authorizer = authorizer

    def open_connection(self, websocket, user_id: Optional[str] = None) -> Connection:
        connection = Connection(websocket, user_id=user_id, outbox_size=self.outbox_size)
        self.registry.register(connection)
        return connection

    async def join(self, connection: Connection, project_id: str) -> bool:
        """Join a project room, consulting the authorizer if one is set."""
        if self.authorizer is not None:
            try:
                allowed = await self.authorizer(connection.user_id, project_id)
            except Exception as e:
                logger.warning(
                    "realtime.join_check_failed",
                    connection_id=connection.id,
                    project_id=project_id,
                    error=str(e),
                )
                allowed = False
            if not allowed:
                logger.info(
                    "realtime.join_refused",
                    connection_id=connection.id,
                    user_id=connection.user_id,
                    project_id=project_id,
                )
                return False
        return self.registry.join(connection, project_id)

    def close_connection(self, connection: Connection) -> None:
        self.registry.leave(connection)
        connection.close()


class ProjectMembershipAuthorizer:
    """Only let owners and members of a project into its room."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def __call__(self, user_id: Optional[str], project_id: str) -> bool:
        if not user_id:
            return False
        try:
            project_uuid = uuid.UUID(project_id)
            user_uuid = uuid.UUID(user_id)
        except ValueError:
            return False

        from synergy.services.project_service import ProjectService

        async with self.session_factory() as db:
            return await ProjectService(db).is_member(project_uuid, user_uuid)
