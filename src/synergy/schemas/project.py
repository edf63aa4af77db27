"""Pydantic schemas for projects and project membership.

Learn: ProjectRead is also the payload of the PROJECT_CREATED realtime
event, so what the creator gets back over HTTP and what watchers get over
the socket are the same shape.
"""

import uuid
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, Field

from synergy.schemas.user import UserRead


class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    icon: str = Field(default="fas fa-folder", max_length=100)
    status: str = Field(default="active", pattern=r"^(active|on-hold|completed)$")
    start_date: Optional[date] = None
    due_date: Optional[date] = None


class ProjectRead(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str]
    owner_id: uuid.UUID
    icon: str
    status: str
    start_date: Optional[date]
    due_date: Optional[date]
    created_at: datetime

    model_config = {"from_attributes": True}


class ProjectSummary(ProjectRead):
    """Project card on the dashboard, with board counters."""
    member_count: int = 0
    task_count: int = 0
    completed_task_count: int = 0


class MemberAdd(BaseModel):
    user_id: uuid.UUID
    role: str = Field(default="member", pattern=r"^(owner|member)$")


class MemberRead(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    user_id: uuid.UUID
    role: str
    joined_at: datetime
    user: UserRead
