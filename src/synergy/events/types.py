"""Realtime event kinds and wire records.

Learn: Centralizing event kinds as constants prevents typos and makes it
easy to discover everything a client can receive. The wire format is a
JSON object in both directions:

    server → client   {"type": "TASK_CREATED", "data": {...}}
    client → server   {"type": "JOIN_PROJECT", "projectId": "..."}
"""

import json
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

# ─── Server → client ─────────────────────────────────────

PROJECT_CREATED = "PROJECT_CREATED"
TASK_CREATED = "TASK_CREATED"
TASK_UPDATED = "TASK_UPDATED"
TASK_DELETED = "TASK_DELETED"
COMMENT_ADDED = "COMMENT_ADDED"

EVENT_KINDS = frozenset({
    PROJECT_CREATED,
    TASK_CREATED,
    TASK_UPDATED,
    TASK_DELETED,
    COMMENT_ADDED,
})

EventKind = Literal[
    "PROJECT_CREATED",
    "TASK_CREATED",
    "TASK_UPDATED",
    "TASK_DELETED",
    "COMMENT_ADDED",
]

# ─── Client → server ─────────────────────────────────────

JOIN_PROJECT = "JOIN_PROJECT"
PING = "ping"
PONG = "pong"


class RealtimeEvent(BaseModel):
    """An immutable notification of one committed mutation."""

    model_config = ConfigDict(frozen=True)

    type: EventKind
    data: dict[str, Any] = Field(default_factory=dict)

    def to_wire(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_wire(cls, raw: str | bytes) -> "RealtimeEvent":
        """Parse a server message. Raises ValueError on anything malformed."""
        return cls.model_validate_json(raw)


class JoinProject(BaseModel):
    """Client request to subscribe the socket to one project room."""

    type: Literal["JOIN_PROJECT"] = JOIN_PROJECT
    project_id: str = Field(..., alias="projectId", min_length=1)

    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> str:
        return json.dumps({"type": self.type, "projectId": self.project_id})
