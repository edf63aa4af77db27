"""User directory routes — team page and the invite-member search."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from synergy.auth.dependencies import CurrentIdentity, get_current_user
from synergy.db.engine import get_db
from synergy.schemas.task import TaskRead
from synergy.schemas.user import UserRead
from synergy.services.task_service import TaskService
from synergy.services.user_service import UserService

router = APIRouter()


def _svc(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


@router.get("/users", response_model=list[UserRead])
async def list_users(svc: UserService = Depends(_svc)):
    return await svc.list_users()


@router.get("/users/search", response_model=list[UserRead])
async def search_users(
    q: str = Query("", description="Username, name, or email fragment"),
    svc: UserService = Depends(_svc),
):
    if not q.strip():
        raise HTTPException(status_code=400, detail="Search query required")
    return await svc.search_users(q.strip())


@router.get("/users/me/tasks", response_model=list[TaskRead])
async def my_tasks(
    identity: CurrentIdentity = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Tasks assigned to the caller across all projects."""
    return await TaskService(db).list_assigned(identity.user_uuid)
