"""Route-controller assignment resolution."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from groupdesk.exceptions import UnknownAssigneeException
from groupdesk.models.enums import UserRole
from groupdesk.models.user import User


class AssignmentResolver:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def resolve_route_controller(self, username: str | None) -> User:
        """Return the enabled ROUTE_CONTROLLER named ``username``.

        Raises UnknownAssigneeException for blank, unknown, disabled or
        non-RC usernames alike.
        """
        username = (username or "").strip()
        if not username:
            raise UnknownAssigneeException("A route controller username is required")

        result = await self.db.execute(
            select(User).where(
                User.username == username,
                User.role == UserRole.ROUTE_CONTROLLER,
                User.enabled.is_(True),
            )
        )
        user = result.scalar_one_or_none()
        if user is None:
            raise UnknownAssigneeException(
                f"{username} is not an enabled route controller",
                details=[{"field": "assignedRc", "message": username}],
            )
        return user
