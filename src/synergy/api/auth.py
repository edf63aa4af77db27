"""Auth API — registration, login, token refresh, current user.

- POST /auth/register → create a new user account
- POST /auth/login → email/password → JWT tokens
- POST /auth/refresh → refresh token → new token pair
- GET /auth/me → current user info
"""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from synergy.auth.dependencies import CurrentIdentity, get_current_user
from synergy.auth.jwt import (
    REFRESH,
    TokenError,
    create_access_token,
    create_refresh_token,
    verify_token,
)
from synergy.db.engine import get_db
from synergy.schemas.user import (
    LoginRequest,
    RefreshRequest,
    RegisterRequest,
    TokenResponse,
    UserRead,
)
from synergy.services.user_service import DuplicateUserError, UserService

router = APIRouter(prefix="/auth")


def _svc(db: AsyncSession = Depends(get_db)) -> UserService:
    return UserService(db)


def _tokens(user_id: str) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(user_id),
        refresh_token=create_refresh_token(user_id),
    )


@router.post("/register", response_model=UserRead, status_code=201)
async def register(body: RegisterRequest, svc: UserService = Depends(_svc)):
    """Create a new user account."""
    try:
        return await svc.create_user(
            email=body.email,
            username=body.username,
            full_name=body.full_name,
            password=body.password,
        )
    except DuplicateUserError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/login", response_model=TokenResponse)
async def login(body: LoginRequest, svc: UserService = Depends(_svc)):
    """Login with email and password → JWT tokens."""
    user = await svc.authenticate(body.email, body.password)
    if not user:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return _tokens(str(user.id))


@router.post("/refresh", response_model=TokenResponse)
async def refresh(body: RefreshRequest):
    """Exchange a refresh token for a new token pair."""
    try:
        payload = verify_token(body.refresh_token, expected_type=REFRESH)
    except TokenError as e:
        raise HTTPException(status_code=401, detail=str(e))
    return _tokens(payload["sub"])


@router.get("/me", response_model=UserRead)
async def get_me(
    identity: CurrentIdentity = Depends(get_current_user),
    svc: UserService = Depends(_svc),
):
    """Get the current authenticated user's info."""
    user = await svc.get_user(identity.user_uuid)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user
