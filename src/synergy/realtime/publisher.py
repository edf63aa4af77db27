"""Event publisher — turns committed mutations into room broadcasts.

Learn: Route handlers call the publisher after the service has committed
and before they return. The call is synchronous and cheap (it only queues
text on each socket's outbox), and it can never fail the HTTP response:
every error is logged and swallowed here.
"""

import uuid
from typing import Any, Optional

import structlog
from fastapi import Request
from pydantic import BaseModel

from synergy.events.types import (
    COMMENT_ADDED,
    PROJECT_CREATED,
    TASK_CREATED,
    TASK_DELETED,
    TASK_UPDATED,
    RealtimeEvent,
)
from synergy.realtime.broadcaster import RoomBroadcaster

logger = structlog.get_logger()


def _payload(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(mode="json")


class EventPublisher:
    """Build typed events and broadcast them to the owning project's room."""

    def __init__(self, broadcaster: RoomBroadcaster):
        self.broadcaster = broadcaster

    def publish(
        self,
        project_id: uuid.UUID | str,
        kind: str,
        data: Optional[dict[str, Any]] = None,
    ) -> int:
        """Broadcast one event to room str(project_id). Returns recipients queued."""
        try:
            event = RealtimeEvent(type=kind, data=data or {})
            return self.broadcaster.broadcast(str(project_id), event)
        except Exception as e:
            logger.error(
                "realtime.publish_failed",
                project_id=str(project_id),
                event_type=kind,
                error=str(e),
            )
            return 0

    # ─── One helper per mutating endpoint ────────────────

    def project_created(self, project: BaseModel) -> int:
        return self.publish(project.id, PROJECT_CREATED, _payload(project))

    def task_created(self, task: BaseModel) -> int:
        return self.publish(task.project_id, TASK_CREATED, _payload(task))

    def task_updated(self, task: BaseModel) -> int:
        return self.publish(task.project_id, TASK_UPDATED, _payload(task))

    def task_deleted(self, project_id: uuid.UUID | str, task_id: uuid.UUID | str) -> int:
        return self.publish(project_id, TASK_DELETED, {"id": str(task_id)})

    def comment_added(self, project_id: uuid.UUID | str, comment: BaseModel) -> int:
        return self.publish(
            project_id,
            COMMENT_ADDED,
            {"task_id": str(comment.task_id), "comment": _payload(comment)},
        )


def get_publisher(request: Request) -> EventPublisher:
    """FastAPI dependency — the publisher owned by this app's realtime hub."""
    return request.app.state.realtime.publisher
