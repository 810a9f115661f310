"""Pydantic request/response schemas."""

from app.schemas.auth import AuthResponse, LoginRequest, RegisterRequest
from app.schemas.base import ErrorResponse, MessageResponse
from app.schemas.health import HealthResponse
from app.schemas.post import (
    PostAuthor,
    PostCreateRequest,
    PostListResponse,
    PostMutationResponse,
    PostRead,
    PostResponse,
    PostUpdateRequest,
)
from app.schemas.user import (
    PostCount,
    RoleUpdateRequest,
    RoleUpdateResponse,
    UserRead,
    UsersListResponse,
)

__all__ = [
    "AuthResponse",
    "ErrorResponse",
    "HealthResponse",
    "LoginRequest",
    "MessageResponse",
    "PostAuthor",
    "PostCount",
    "PostCreateRequest",
    "PostListResponse",
    "PostMutationResponse",
    "PostRead",
    "PostResponse",
    "PostUpdateRequest",
    "RegisterRequest",
    "RoleUpdateRequest",
    "RoleUpdateResponse",
    "UserRead",
    "UsersListResponse",
]
