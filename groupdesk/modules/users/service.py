"""User administration: list, create, enable/disable, reset password, delete."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from groupdesk.exceptions import ConflictException, NotFoundException
from groupdesk.models.enums import UserRole
from groupdesk.models.user import User
from groupdesk.modules.auth.passwords import hash_password

logger = logging.getLogger(__name__)


class UserService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user(self, user_id: uuid.UUID) -> User:
        result = await self.db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundException(f"User {user_id} not found")
        return user

    async def list_users(self, role: UserRole | None = None) -> list[User]:
        query = select(User)
        if role is not None:
            query = query.where(User.role == role)
        result = await self.db.execute(query.order_by(User.username))
        return list(result.scalars().all())

    async def create_user(
        self,
        username: str,
        password: str,
        role: UserRole,
        email: str | None = None,
        enabled: bool = True,
    ) -> User:
        existing = await self.db.execute(select(User).where(User.username == username))
        if existing.scalar_one_or_none() is not None:
            raise ConflictException(f"Username {username} is already taken")

        user = User(
            username=username,
            password_hash=hash_password(password),
            role=role,
            email=email,
            enabled=enabled,
        )
        self.db.add(user)
        await self.db.flush()
        logger.info("Created user %s with role %s", username, role.value)
        return user

    async def set_enabled(self, user_id: uuid.UUID, enabled: bool) -> User:
        user = await self.get_user(user_id)
        user.enabled = enabled
        await self.db.flush()
        logger.info("User %s %s", user.username, "enabled" if enabled else "disabled")
        return user

    async def reset_password(self, user_id: uuid.UUID, password: str) -> User:
        user = await self.get_user(user_id)
        user.password_hash = hash_password(password)
        await self.db.flush()
        logger.info("Password reset for user %s", user.username)
        return user

    async def delete_user(self, user_id: uuid.UUID, acting_user_id: uuid.UUID) -> None:
        if user_id == acting_user_id:
            raise ConflictException("Administrators cannot delete their own account")
        user = await self.get_user(user_id)
        await self.db.delete(user)
        await self.db.flush()
        logger.info("Deleted user %s", user.username)
