"""Request/response schemas for user records and admin user management."""

from datetime import datetime

from pydantic import BaseModel, Field

from app.core.roles import Role
from app.schemas.base import ApiModel


class PostCount(BaseModel):
    posts: int = 0


class UserRead(ApiModel):
    """User as exposed by the API (never includes the password credential)."""

    id: str
    email: str
    name: str
    role: Role
    created_at: datetime
    updated_at: datetime
    count: PostCount | None = Field(default=None, alias="_count")


class UsersListResponse(BaseModel):
    """Response for GET /users (admin only)."""

    users: list[UserRead]


class RoleUpdateRequest(BaseModel):
    role: Role = Field(..., description="New role: READER, WRITER or ADMIN")


class RoleUpdateResponse(BaseModel):
    message: str
    user: UserRead
