"""Posts: public reads filtered by role, writes gated by role."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from app.api.deps import get_optional_caller, get_stores, require_action
from app.core.roles import Caller
from app.schemas.base import ErrorResponse, MessageResponse
from app.schemas.post import (
    PostCreateRequest,
    PostListResponse,
    PostMutationResponse,
    PostResponse,
    PostUpdateRequest,
)
from app.services import posts as post_service
from app.services.policy import Action
from app.stores.base import Stores

router = APIRouter()

AUTH_ERRORS = {401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}}
NOT_FOUND = {404: {"model": ErrorResponse}}


@router.get("", response_model=PostListResponse, response_model_exclude_none=True)
def list_posts(
    stores: Annotated[Stores, Depends(get_stores)],
    caller: Annotated[Caller | None, Depends(get_optional_caller)],
) -> PostListResponse:
    """
    List posts, newest first. Anonymous callers, READERs and WRITERs see
    published posts only; ADMINs see all posts. A bad token is treated as
    anonymous rather than rejected.
    """
    return PostListResponse(posts=post_service.list_posts(stores.posts, caller))


@router.get(
    "/{post_id}",
    response_model=PostResponse,
    response_model_exclude_none=True,
    responses=NOT_FOUND,
)
def get_post(
    post_id: str,
    stores: Annotated[Stores, Depends(get_stores)],
    caller: Annotated[Caller | None, Depends(get_optional_caller)],
) -> PostResponse:
    """Get one post. Unpublished posts return 404 unless the caller is an ADMIN."""
    return PostResponse(post=post_service.get_post(stores.posts, post_id, caller))


@router.post(
    "",
    response_model=PostMutationResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    responses=AUTH_ERRORS,
)
def create_post(
    body: PostCreateRequest,
    stores: Annotated[Stores, Depends(get_stores)],
    caller: Annotated[Caller, Depends(require_action(Action.CREATE_POST))],
) -> PostMutationResponse:
    """Create a post authored by the caller (WRITER or ADMIN). published defaults to false."""
    post = post_service.create_post(stores.posts, body, caller)
    return PostMutationResponse(message="Post created successfully", post=post)


@router.patch(
    "/{post_id}",
    response_model=PostMutationResponse,
    response_model_exclude_none=True,
    responses={**AUTH_ERRORS, **NOT_FOUND},
)
def update_post(
    post_id: str,
    body: PostUpdateRequest,
    stores: Annotated[Stores, Depends(get_stores)],
    caller: Annotated[Caller, Depends(require_action(Action.UPDATE_POST))],
) -> PostMutationResponse:
    """Partially update title, content or published (ADMIN only)."""
    post = post_service.update_post(stores.posts, post_id, body, caller)
    return PostMutationResponse(message="Post updated successfully", post=post)


@router.delete(
    "/{post_id}",
    response_model=MessageResponse,
    responses={**AUTH_ERRORS, **NOT_FOUND},
)
def delete_post(
    post_id: str,
    stores: Annotated[Stores, Depends(get_stores)],
    caller: Annotated[Caller, Depends(require_action(Action.DELETE_POST))],
) -> MessageResponse:
    """Delete a post (ADMIN only)."""
    post_service.delete_post(stores.posts, post_id, caller)
    return MessageResponse(message="Post deleted successfully")
