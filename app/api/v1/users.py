"""Admin-only user management."""

from typing import Annotated

from fastapi import APIRouter, Depends

from app.api.deps import get_stores, require_action
from app.core.roles import Caller
from app.schemas.base import ErrorResponse
from app.schemas.user import RoleUpdateRequest, RoleUpdateResponse, UsersListResponse
from app.services import users as user_service
from app.services.policy import Action
from app.stores.base import Stores

router = APIRouter()

AUTH_ERRORS = {401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}}


@router.get("", response_model=UsersListResponse, responses=AUTH_ERRORS)
def list_users(
    stores: Annotated[Stores, Depends(get_stores)],
    caller: Annotated[Caller, Depends(require_action(Action.LIST_USERS))],
) -> UsersListResponse:
    """List all users with their post counts (ADMIN only)."""
    return UsersListResponse(users=user_service.list_users(stores.users, caller))


@router.patch(
    "/{user_id}/role",
    response_model=RoleUpdateResponse,
    response_model_exclude_none=True,
    responses={**AUTH_ERRORS, 404: {"model": ErrorResponse}},
)
def update_user_role(
    user_id: str,
    body: RoleUpdateRequest,
    stores: Annotated[Stores, Depends(get_stores)],
    caller: Annotated[Caller, Depends(require_action(Action.UPDATE_USER_ROLE))],
) -> RoleUpdateResponse:
    """Set a user's role to READER, WRITER or ADMIN (ADMIN only)."""
    user = user_service.update_user_role(stores.users, user_id, body.role, caller)
    return RoleUpdateResponse(message="User role updated successfully", user=user)
