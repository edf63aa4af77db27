"""Task and comment API routes.

Learn: These routes are the producers of the board's live updates. Each
mutation publishes exactly one realtime event to the task's project room
after the service has committed and before the response goes out:

    POST   /projects/:id/tasks    → TASK_CREATED
    PATCH  /tasks/:id             → TASK_UPDATED
    DELETE /tasks/:id             → TASK_DELETED   ({"id": ...} only)
    POST   /tasks/:id/comments    → COMMENT_ADDED
"""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from synergy.auth.dependencies import CurrentIdentity, get_current_user
from synergy.db.engine import get_db
from synergy.realtime.publisher import EventPublisher, get_publisher
from synergy.schemas.task import (
    STATUS_PATTERN,
    CommentCreate,
    CommentRead,
    TaskCreate,
    TaskRead,
    TaskUpdate,
)
from synergy.services.project_service import ProjectService
from synergy.services.task_service import TaskService

router = APIRouter()


def _task_svc(db: AsyncSession = Depends(get_db)) -> TaskService:
    return TaskService(db)


# ═══════════════════════════════════════════════════════════
# Tasks
# ═══════════════════════════════════════════════════════════


@router.get("/projects/{project_id}/tasks", response_model=list[TaskRead])
async def list_tasks(
    project_id: uuid.UUID,
    status: Optional[str] = Query(None, pattern=STATUS_PATTERN, description="Filter by board column"),
    svc: TaskService = Depends(_task_svc),
):
    return await svc.list_tasks(project_id, status=status)


@router.post("/projects/{project_id}/tasks", response_model=TaskRead, status_code=201)
async def create_task(
    project_id: uuid.UUID,
    body: TaskCreate,
    svc: TaskService = Depends(_task_svc),
    publisher: EventPublisher = Depends(get_publisher),
):
    """Create a task on a project's board."""
    if not await ProjectService(svc.db).get_project(project_id):
        raise HTTPException(status_code=404, detail="Project not found")

    task = await svc.create_task(project_id=project_id, **body.model_dump())
    result = TaskRead.model_validate(task)
    publisher.task_created(result)
    return result


@router.get("/tasks/{task_id}", response_model=TaskRead)
async def get_task(
    task_id: uuid.UUID,
    svc: TaskService = Depends(_task_svc),
):
    task = await svc.get_task(task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    return task


@router.patch("/tasks/{task_id}", response_model=TaskRead)
async def update_task(
    task_id: uuid.UUID,
    body: TaskUpdate,
    svc: TaskService = Depends(_task_svc),
    publisher: EventPublisher = Depends(get_publisher),
):
    """Partially update a task — moving columns, reassigning, editing."""
    task = await svc.update_task(task_id, body.model_dump(exclude_unset=True))
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")

    result = TaskRead.model_validate(task)
    publisher.task_updated(result)
    return result


@router.delete("/tasks/{task_id}")
async def delete_task(
    task_id: uuid.UUID,
    svc: TaskService = Depends(_task_svc),
    publisher: EventPublisher = Depends(get_publisher),
):
    task = await svc.delete_task(task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")

    publisher.task_deleted(task.project_id, task_id)
    return {"id": str(task_id), "deleted": True}


# ═══════════════════════════════════════════════════════════
# Comments
# ═══════════════════════════════════════════════════════════


@router.get("/tasks/{task_id}/comments", response_model=list[CommentRead])
async def list_comments(
    task_id: uuid.UUID,
    svc: TaskService = Depends(_task_svc),
):
    return await svc.list_comments(task_id)


@router.post("/tasks/{task_id}/comments", response_model=CommentRead, status_code=201)
async def add_comment(
    task_id: uuid.UUID,
    body: CommentCreate,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: TaskService = Depends(_task_svc),
    publisher: EventPublisher = Depends(get_publisher),
):
    """Post a comment on a task as the caller."""
    added = await svc.add_comment(task_id, identity.user_uuid, body.content)
    if not added:
        raise HTTPException(status_code=404, detail="Task not found")

    task, comment = added
    result = CommentRead.model_validate(comment)
    publisher.comment_added(task.project_id, result)
    return result
