"""Project and membership API routes.

Learn: Routes translate HTTP to service calls and handle error responses.
Mutating routes follow one pattern: service commits → build the read
model → hand it to the realtime publisher → return it. The publisher
never raises, so the response is the same whether or not anyone is
watching the project.
"""

import uuid

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from synergy.auth.dependencies import CurrentIdentity, get_current_user
from synergy.db.engine import get_db
from synergy.db.models import User
from synergy.realtime.publisher import EventPublisher, get_publisher
from synergy.schemas.project import (
    MemberAdd,
    MemberRead,
    ProjectCreate,
    ProjectRead,
    ProjectSummary,
)
from synergy.schemas.user import UserRead
from synergy.services.project_service import DuplicateMemberError, ProjectService

router = APIRouter()


def _svc(db: AsyncSession = Depends(get_db)) -> ProjectService:
    return ProjectService(db)


def _member_read(member, user) -> MemberRead:
    return MemberRead(
        id=member.id,
        project_id=member.project_id,
        user_id=member.user_id,
        role=member.role,
        joined_at=member.joined_at,
        user=UserRead.model_validate(user),
    )


# ─── Projects ───────────────────────────────────────────

@router.get("/projects", response_model=list[ProjectSummary])
async def list_projects(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: ProjectService = Depends(_svc),
):
    """Projects the caller owns or is a member of, with board counters."""
    rows = await svc.list_projects(identity.user_uuid)
    return [
        ProjectSummary(
            **ProjectRead.model_validate(row["project"]).model_dump(),
            member_count=row["member_count"],
            task_count=row["task_count"],
            completed_task_count=row["completed_task_count"],
        )
        for row in rows
    ]


@router.post("/projects", response_model=ProjectRead, status_code=201)
async def create_project(
    body: ProjectCreate,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: ProjectService = Depends(_svc),
    publisher: EventPublisher = Depends(get_publisher),
):
    """Create a project owned by the caller."""
    project = await svc.create_project(owner_id=identity.user_uuid, **body.model_dump())
    result = ProjectRead.model_validate(project)
    publisher.project_created(result)
    return result


@router.get("/projects/{project_id}", response_model=ProjectRead)
async def get_project(
    project_id: uuid.UUID,
    identity: CurrentIdentity = Depends(get_current_user),
    svc: ProjectService = Depends(_svc),
):
    project = await svc.get_visible_project(project_id, identity.user_uuid)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


# ─── Members ────────────────────────────────────────────

@router.get("/projects/{project_id}/members", response_model=list[MemberRead])
async def list_members(
    project_id: uuid.UUID,
    svc: ProjectService = Depends(_svc),
):
    if not await svc.get_project(project_id):
        raise HTTPException(status_code=404, detail="Project not found")
    return [_member_read(m, u) for m, u in await svc.list_members(project_id)]


@router.post("/projects/{project_id}/members", response_model=MemberRead, status_code=201)
async def add_member(
    project_id: uuid.UUID,
    body: MemberAdd,
    svc: ProjectService = Depends(_svc),
):
    """Invite a user into a project."""
    try:
        member = await svc.add_member(project_id, body.user_id, body.role)
    except DuplicateMemberError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if not member:
        raise HTTPException(status_code=404, detail="Project or user not found")

    user = await svc.db.get(User, body.user_id)
    return _member_read(member, user)
