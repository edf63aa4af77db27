"""Project service — projects, membership, and dashboard counters.

Learn: Service layer separates business logic from HTTP routing.
API routes call services, services call the database. Routes then hand
the committed result to the realtime publisher.
"""

import uuid
from datetime import date
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from synergy.db.models import Project, ProjectMember, Task, User


class DuplicateMemberError(Exception):
    """Raised when a user is already a member of the project."""


class ProjectService:
    """Business logic for projects and their members."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ─── Create ──────────────────────────────────────────

    async def create_project(
        self,
        owner_id: uuid.UUID,
        name: str,
        description: Optional[str] = None,
        icon: str = "fas fa-folder",
        status: str = "active",
        start_date: Optional[date] = None,
        due_date: Optional[date] = None,
    ) -> Project:
        """Create a project. The owner is added as its first member."""
        project = Project(
            owner_id=owner_id,
            name=name,
            description=description,
            icon=icon,
            status=status,
            start_date=start_date,
            due_date=due_date,
        )
        self.db.add(project)
        await self.db.flush()

        self.db.add(ProjectMember(project_id=project.id, user_id=owner_id, role="owner"))
        await self.db.commit()
        return project

    # ─── Read ────────────────────────────────────────────

    def _visible_to(self, user_id: uuid.UUID):
        member_of = select(ProjectMember.project_id).where(ProjectMember.user_id == user_id)
        return or_(Project.owner_id == user_id, Project.id.in_(member_of))

    async def get_project(self, project_id: uuid.UUID) -> Optional[Project]:
        return await self.db.get(Project, project_id)

    async def get_visible_project(
        self, project_id: uuid.UUID, user_id: uuid.UUID
    ) -> Optional[Project]:
        result = await self.db.execute(
            select(Project).where(Project.id == project_id, self._visible_to(user_id))
        )
        return result.scalars().first()

    async def is_member(self, project_id: uuid.UUID, user_id: uuid.UUID) -> bool:
        return await self.get_visible_project(project_id, user_id) is not None

    async def list_projects(self, user_id: uuid.UUID) -> list[dict]:
        """Projects the user owns or belongs to, newest first, with counters."""
        result = await self.db.execute(
            select(Project)
            .where(self._visible_to(user_id))
            .order_by(Project.created_at.desc())
        )
        projects = list(result.scalars().all())
        if not projects:
            return []

        ids = [p.id for p in projects]
        members = await self._count_by_project(
            select(ProjectMember.project_id, func.count())
            .where(ProjectMember.project_id.in_(ids))
            .group_by(ProjectMember.project_id)
        )
        tasks = await self._count_by_project(
            select(Task.project_id, func.count())
            .where(Task.project_id.in_(ids))
            .group_by(Task.project_id)
        )
        done = await self._count_by_project(
            select(Task.project_id, func.count())
            .where(Task.project_id.in_(ids), Task.status == "done")
            .group_by(Task.project_id)
        )

        return [
            {
                "project": p,
                "member_count": members.get(p.id, 0),
                "task_count": tasks.get(p.id, 0),
                "completed_task_count": done.get(p.id, 0),
            }
            for p in projects
        ]

    async def _count_by_project(self, query) -> dict[uuid.UUID, int]:
        result = await self.db.execute(query)
        return {project_id: count for project_id, count in result.all()}

    # ─── Members ─────────────────────────────────────────

    async def add_member(
        self, project_id: uuid.UUID, user_id: uuid.UUID, role: str = "member"
    ) -> Optional[ProjectMember]:
        """Add a user to a project. Returns None if project or user is missing."""
        if not await self.db.get(Project, project_id) or not await self.db.get(User, user_id):
            return None

        existing = await self.db.execute(
            select(ProjectMember).where(
                ProjectMember.project_id == project_id,
                ProjectMember.user_id == user_id,
            )
        )
        if existing.scalars().first():
            raise DuplicateMemberError("User is already a member of this project")

        member = ProjectMember(project_id=project_id, user_id=user_id, role=role)
        self.db.add(member)
        await self.db.commit()
        return member

    async def list_members(self, project_id: uuid.UUID) -> list[tuple[ProjectMember, User]]:
        result = await self.db.execute(
            select(ProjectMember, User)
            .join(User, User.id == ProjectMember.user_id)
            .where(ProjectMember.project_id == project_id)
            .order_by(ProjectMember.joined_at)
        )
        return [(member, user) for member, user in result.all()]
