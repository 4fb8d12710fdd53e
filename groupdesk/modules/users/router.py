"""Admin user management API router."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from groupdesk.database.session import get_db
from groupdesk.models.enums import UserRole
from groupdesk.modules.auth.auth import AuthenticatedUser, get_current_user, require_role
from groupdesk.modules.booking.constants import ROLE_GATES
from groupdesk.modules.users.schemas import PasswordReset, UserCreate, UserResponse
from groupdesk.modules.users.service import UserService

router = APIRouter(prefix="/admin/users", tags=["admin-users"])


def _require_admin(user: AuthenticatedUser) -> None:
    require_role(user, ROLE_GATES["manage_users"], "manage_users")


@router.get("", response_model=list[UserResponse])
async def list_users(
    role: UserRole | None = Query(None),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List users, optionally filtered by role (feeds the route-controller picker)."""
    _require_admin(user)
    return await UserService(db).list_users(role)


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(
    body: UserCreate,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    _require_admin(user)
    return await UserService(db).create_user(
        username=body.username,
        password=body.password,
        role=body.role,
        email=body.email,
        enabled=body.enabled,
    )


@router.delete("/{user_id}", status_code=204)
async def delete_user(
    user_id: uuid.UUID,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    _require_admin(user)
    await UserService(db).delete_user(user_id, acting_user_id=user.id)
    return Response(status_code=204)


@router.patch("/{user_id}/enabled", response_model=UserResponse)
async def set_enabled(
    user_id: uuid.UUID,
    value: bool = Query(...),
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    _require_admin(user)
    return await UserService(db).set_enabled(user_id, value)


@router.patch("/{user_id}/password", response_model=UserResponse)
async def reset_password(
    user_id: uuid.UUID,
    body: PasswordReset,
    user: AuthenticatedUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    _require_admin(user)
    return await UserService(db).reset_password(user_id, body.password)
