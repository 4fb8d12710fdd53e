"""Auth API router: login and current-user lookup."""

from fastapi import APIRouter, Depends, Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.ext.asyncio import AsyncSession

from groupdesk.database.session import get_db
from groupdesk.modules.auth.auth import AuthenticatedUser, get_current_user
from groupdesk.modules.auth.schemas import CurrentUserResponse, LoginRequest, LoginResponse
from groupdesk.modules.auth.service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])

limiter = Limiter(key_func=get_remote_address)


@router.post("/login", response_model=LoginResponse)
@limiter.limit("20/minute")
async def login(
    request: Request,
    body: LoginRequest,
    db: AsyncSession = Depends(get_db),
):
    """Exchange username and password for a bearer token."""
    return await AuthService(db).login(body.username, body.password)


@router.get("/me", response_model=CurrentUserResponse)
async def me(user: AuthenticatedUser = Depends(get_current_user)):
    return CurrentUserResponse(id=str(user.id), username=user.username, role=user.role)
