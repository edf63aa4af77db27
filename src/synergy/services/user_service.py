"""User service — accounts, lookup, and search for the invite dialog."""

import uuid
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from synergy.auth.password import hash_password, verify_password
from synergy.db.models import User


class DuplicateUserError(Exception):
    """Raised when the email or username is already taken."""


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_user(
        self, email: str, username: str, full_name: str, password: str
    ) -> User:
        existing = await self.db.execute(
            select(User).where(or_(User.email == email, User.username == username))
        )
        if existing.scalars().first():
            raise DuplicateUserError("Email or username already registered")

        user = User(
            email=email,
            username=username,
            full_name=full_name,
            password_hash=hash_password(password),
        )
        self.db.add(user)
        await self.db.commit()
        return user

    async def authenticate(self, email: str, password: str) -> Optional[User]:
        """Return the user if the credentials match, else None."""
        result = await self.db.execute(select(User).where(User.email == email))
        user = result.scalars().first()
        if not user or not verify_password(password, user.password_hash):
            return None
        return user

    async def get_user(self, user_id: uuid.UUID) -> Optional[User]:
        return await self.db.get(User, user_id)

    async def list_users(self) -> list[User]:
        result = await self.db.execute(select(User).order_by(User.full_name))
        return list(result.scalars().all())

    async def search_users(self, query: str, limit: int = 20) -> list[User]:
        """Case-insensitive match on username, full name, or email."""
        pattern = f"%{query}%"
        result = await self.db.execute(
            select(User)
            .where(
                or_(
                    User.username.ilike(pattern),
                    User.full_name.ilike(pattern),
                    User.email.ilike(pattern),
                )
            )
            .order_by(User.username)
            .limit(limit)
        )
        return list(result.scalars().all())
