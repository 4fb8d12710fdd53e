"""JWT authentication dependency for FastAPI.

Validates Bearer tokens from the Authorization header and turns their claims
into an ``AuthenticatedUser`` that is passed explicitly to every service call.
"""

import logging
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from groupdesk.config import settings
from groupdesk.exceptions import ForbiddenException, UnauthorizedException
from groupdesk.models.enums import UserRole

logger = logging.getLogger(__name__)

# FastAPI security scheme: extracts Bearer token from Authorization header
_bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class AuthenticatedUser:
    """Represents the authenticated caller extracted from a JWT token."""

    id: uuid.UUID
    username: str
    role: UserRole


def create_access_token(user_id: uuid.UUID, username: str, role: UserRole) -> str:
    expires = datetime.now(UTC) + timedelta(minutes=settings.jwt_expiry_minutes)
    claims = {
        "sub": str(user_id),
        "username": username,
        "role": role.value,
        "exp": expires,
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def _decode_token(token: str) -> dict:
    """Decode and validate a JWT token. Raises UnauthorizedException on failure."""
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
        return payload
    except JWTError as exc:
        logger.warning("JWT validation failed: %s", exc)
        raise UnauthorizedException("Invalid or expired token") from exc


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> AuthenticatedUser:
    """FastAPI dependency that extracts and validates the current user from JWT."""
    if credentials is None:
        raise UnauthorizedException("Authentication required")

    payload = _decode_token(credentials.credentials)

    try:
        user = AuthenticatedUser(
            id=uuid.UUID(payload["sub"]),
            username=payload["username"],
            role=UserRole(payload["role"]),
        )
    except (KeyError, ValueError) as exc:
        raise UnauthorizedException("Token is missing required claims") from exc

    request.state.user = user
    return user


def require_role(user: AuthenticatedUser, allowed: Iterable[UserRole], action: str) -> None:
    """Raise ForbiddenException unless the caller's role is in ``allowed``."""
    if user.role not in set(allowed):
        raise ForbiddenException(
            f"Role {user.role.value} may not {action.replace('_', ' ')}",
            details=[{"field": "role", "message": f"allowed: {sorted(r.value for r in allowed)}"}],
        )
