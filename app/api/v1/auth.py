"""Registration and login; both return the user and a JWT."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from app.api.deps import get_context, get_stores
from app.core.context import AppContext
from app.schemas.auth import AuthResponse, LoginRequest, RegisterRequest
from app.schemas.base import ErrorResponse
from app.services import auth as auth_service
from app.stores.base import Stores

router = APIRouter()


@router.post(
    "/register",
    response_model=AuthResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
)
def register(
    body: RegisterRequest,
    stores: Annotated[Stores, Depends(get_stores)],
    context: Annotated[AppContext, Depends(get_context)],
) -> AuthResponse:
    """
    Register a new user. New accounts always get the READER role; an admin
    promotes them with PATCH /users/{id}/role.
    """
    user, token = auth_service.register(stores.users, body, context.settings)
    return AuthResponse(message="User registered successfully", user=user, token=token)


@router.post(
    "/login",
    response_model=AuthResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
def login(
    body: LoginRequest,
    stores: Annotated[Stores, Depends(get_stores)],
    context: Annotated[AppContext, Depends(get_context)],
) -> AuthResponse:
    """
    Authenticate with email and password; returns a JWT valid for 7 days.
    Include the token in the Authorization header as: Bearer <token>
    """
    user, token = auth_service.login(stores.users, body, context.settings)
    return AuthResponse(message="Login successful", user=user, token=token)
