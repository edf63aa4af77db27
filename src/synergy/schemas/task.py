"""Pydantic schemas for tasks and comments.

Learn: Separate schemas for create/update/read keeps the API clean.
- TaskCreate: what you POST to create a task
- TaskUpdate: what you PATCH to modify a task (all optional)
- TaskRead: what the API returns, and the TASK_CREATED / TASK_UPDATED payload
"""

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

STATUS_PATTERN = r"^(to-do|in-progress|done)$"
PRIORITY_PATTERN = r"^(low|medium|high)$"


# ─── Tasks ───────────────────────────────────────────────

class TaskCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    status: str = Field(default="to-do", pattern=STATUS_PATTERN)
    priority: str = Field(default="medium", pattern=PRIORITY_PATTERN)
    assignee_id: Optional[uuid.UUID] = None
    tags: list[str] = Field(default_factory=list)
    due_date: Optional[date] = None


class TaskUpdate(BaseModel):
    """Partial update — only fields present in the request body are applied.

    Unlike a None-means-unchanged scheme, an explicit null clears nullable
    fields (e.g. unassigning a task).
    """
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    status: Optional[str] = Field(None, pattern=STATUS_PATTERN)
    priority: Optional[str] = Field(None, pattern=PRIORITY_PATTERN)
    assignee_id: Optional[uuid.UUID] = None
    tags: Optional[list[str]] = None
    due_date: Optional[date] = None


class TaskRead(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    title: str
    description: Optional[str]
    status: str
    priority: str
    assignee_id: Optional[uuid.UUID]
    tags: list[str]
    due_date: Optional[date]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


# ─── Comments ────────────────────────────────────────────

class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1)


class CommentRead(BaseModel):
    id: uuid.UUID
    task_id: uuid.UUID
    user_id: uuid.UUID
    content: str
    created_at: datetime

    model_config = {"from_attributes": True}
