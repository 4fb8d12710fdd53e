from pydantic import BaseModel, Field

from groupdesk.models.enums import UserRole


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    token: str
    role: UserRole
    username: str


class CurrentUserResponse(BaseModel):
    id: str
    username: str
    role: UserRole
