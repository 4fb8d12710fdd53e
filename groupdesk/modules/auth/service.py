"""Login against stored password hashes and issue access tokens."""

from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from groupdesk.clock import Clock
from groupdesk.exceptions import UnauthorizedException
from groupdesk.models.user import User
from groupdesk.modules.auth.auth import create_access_token
from groupdesk.modules.auth.passwords import verify_password
from groupdesk.modules.auth.schemas import LoginResponse

logger = logging.getLogger(__name__)


class AuthService:
    def __init__(self, db: AsyncSession, clock: Clock | None = None):
        self.db = db
        self.clock = clock or Clock()

    async def login(self, username: str, password: str) -> LoginResponse:
        result = await self.db.execute(select(User).where(User.username == username))
        user = result.scalar_one_or_none()

        # Same message for unknown user, wrong password and disabled account
        if user is None or not user.enabled or not verify_password(password, user.password_hash):
            logger.warning("Failed login for %s", username)
            raise UnauthorizedException("Invalid username or password")

        user.last_login_at = self.clock.now()
        await self.db.flush()

        logger.info("User %s logged in as %s", user.username, user.role.value)
        return LoginResponse(
            token=create_access_token(user.id, user.username, user.role),
            role=user.role,
            username=user.username,
        )
