"""Request/response schemas for auth endpoints."""

from pydantic import BaseModel, EmailStr, Field

from app.core.security import NAME_MIN_LEN, PASSWORD_MAX_LEN, PASSWORD_MIN_LEN
from app.schemas.user import UserRead


class RegisterRequest(BaseModel):
    """Self-registration; new accounts always start as READER."""

    email: EmailStr = Field(..., description="Email address (unique)")
    password: str = Field(
        ...,
        min_length=PASSWORD_MIN_LEN,
        max_length=PASSWORD_MAX_LEN,
        description="Password (at least 6 characters)",
    )
    name: str = Field(..., min_length=NAME_MIN_LEN, max_length=255, description="Display name")


class LoginRequest(BaseModel):
    """Credentials for login."""

    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN, description="Password")


class AuthResponse(BaseModel):
    """User plus JWT returned after registration or login."""

    message: str
    user: UserRead
    token: str = Field(..., description="JWT access token; send as 'Authorization: Bearer <token>'")
