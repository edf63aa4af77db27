"""JWT token creation and verification.

Learn: JWT (JSON Web Token) provides stateless authentication.
- Access token: short-lived (60min), used for API calls and the websocket
- Refresh token: long-lived (30 days), used to get new access tokens
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from synergy.config import settings

ACCESS = "access"
REFRESH = "refresh"


class TokenError(Exception):
    """Raised when token verification fails."""


def _encode(user_id: str, token_type: str, lifetime: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "type": token_type,
        "exp": now + lifetime,
        "iat": now,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def create_access_token(user_id: str, expires_minutes: Optional[int] = None) -> str:
    minutes = expires_minutes or settings.access_token_expire_minutes
    return _encode(user_id, ACCESS, timedelta(minutes=minutes))


def create_refresh_token(user_id: str, expires_days: Optional[int] = None) -> str:
    days = expires_days or settings.refresh_token_expire_days
    return _encode(user_id, REFRESH, timedelta(days=days))


def verify_token(token: str, expected_type: str = ACCESS) -> dict:
    """Decode a token and check its type. Raises TokenError on failure."""
    try:
        payload = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid token: {e}")

    if payload.get("type") != expected_type:
        raise TokenError(f"Expected a {expected_type} token")
    return payload
