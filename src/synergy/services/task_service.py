"""Task service — board cards and their comments.

Learn: The board has three columns (to-do, in-progress, done) and any
move between them is allowed. Every mutating method commits before it
returns, so by the time a route publishes the realtime event the change
is durable and a client re-fetching on that event sees it.
"""

import uuid
from datetime import date
from typing import Any, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from synergy.db.models import Task, TaskComment, utcnow

# Fields a PATCH may touch
UPDATABLE_FIELDS = frozenset({
    "title",
    "description",
    "status",
    "priority",
    "assignee_id",
    "tags",
    "due_date",
})


class TaskService:
    """Business logic for task CRUD and comments."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Create ──────────────────────────────────────────

    async def create_task(
        self,
        project_id: uuid.UUID,
        title: str,
        description: Optional[str] = None,
        status: str = "to-do",
        priority: str = "medium",
        assignee_id: Optional[uuid.UUID] = None,
        tags: Optional[list[str]] = None,
        due_date: Optional[date] = None,
    ) -> Task:
        task = Task(
            project_id=project_id,
            title=title,
            description=description,
            status=status,
            priority=priority,
            assignee_id=assignee_id,
            tags=tags or [],
            due_date=due_date,
        )
        self.db.add(task)
        await self.db.commit()
        return task

    # ─── Read ────────────────────────────────────────────

    async def get_task(self, task_id: uuid.UUID) -> Optional[Task]:
        return await self.db.get(Task, task_id)

    async def list_tasks(
        self,
        project_id: uuid.UUID,
        status: Optional[str] = None,
    ) -> list[Task]:
        query = (
            select(Task)
            .where(Task.project_id == project_id)
            .order_by(Task.created_at)
        )
        if status:
            query = query.where(Task.status == status)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def list_assigned(self, user_id: uuid.UUID) -> list[Task]:
        """Tasks assigned to a user across all projects."""
        result = await self.db.execute(
            select(Task)
            .where(Task.assignee_id == user_id)
            .order_by(Task.due_date.is_(None), Task.due_date, Task.created_at)
        )
        return list(result.scalars().all())

    # ─── Update ──────────────────────────────────────────

    async def update_task(
        self, task_id: uuid.UUID, changes: dict[str, Any]
    ) -> Optional[Task]:
        """Apply a partial update. Unknown keys are ignored."""
        task = await self.get_task(task_id)
        if not task:
            return None

        for field, value in changes.items():
            if field not in UPDATABLE_FIELDS:
                continue
            if field == "tags" and value is None:
                value = []
            if field in ("title", "status", "priority") and value is None:
                continue
            setattr(task, field, value)
        task.updated_at = utcnow()

        await self.db.commit()
        return task

    # ─── Delete ──────────────────────────────────────────

    async def delete_task(self, task_id: uuid.UUID) -> Optional[Task]:
        """Delete a task and its comments. Returns the deleted task, or None."""
        task = await self.get_task(task_id)
        if not task:
            return None

        await self.db.execute(delete(TaskComment).where(TaskComment.task_id == task_id))
        await self.db.delete(task)
        await self.db.commit()
        return task

    # ─── Comments ────────────────────────────────────────

    async def add_comment(
        self, task_id: uuid.UUID, user_id: uuid.UUID, content: str
    ) -> Optional[tuple[Task, TaskComment]]:
        """Post a comment. Returns (task, comment), or None if the task is gone."""
        task = await self.get_task(task_id)
        if not task:
            return None

        comment = TaskComment(task_id=task_id, user_id=user_id, content=content)
        self.db.add(comment)
        await self.db.commit()
        return task, comment

    async def list_comments(self, task_id: uuid.UUID) -> list[TaskComment]:
        result = await self.db.execute(
            select(TaskComment)
            .where(TaskComment.task_id == task_id)
            .order_by(TaskComment.created_at)
        )
        return list(result.scalars().all())
