"""FastAPI auth dependencies.

Learn: These are used as Depends() in route handlers to extract and
validate the current user from the Authorization: Bearer <JWT> header.
Handlers never see a request without an identity once get_current_user
has run.
"""

import uuid
from typing import Optional

from fastapi import Depends, Header, HTTPException

from synergy.auth.jwt import TokenError, verify_token


class CurrentIdentity:
    """The authenticated user making the request."""

    def __init__(self, user_id: str):
        self.user_id = user_id

    @property
    def user_uuid(self) -> uuid.UUID:
        return uuid.UUID(self.user_id)


async def get_current_user_optional(
    authorization: Optional[str] = Header(None),
) -> Optional[CurrentIdentity]:
    """Soft auth — None when no Bearer token is present."""
    if not authorization or not authorization.startswith("Bearer "):
        return None

    token = authorization[7:]
    try:
        payload = verify_token(token)
        uuid.UUID(str(payload.get("sub")))
    except (TokenError, ValueError) as e:
        raise HTTPException(
            status_code=401,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
    return CurrentIdentity(user_id=payload["sub"])


async def get_current_user(
    identity: Optional[CurrentIdentity] = Depends(get_current_user_optional),
) -> CurrentIdentity:
    """Hard auth — 401 when the request isn't authenticated."""
    if not identity:
        raise HTTPException(
            status_code=401,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return identity
