"""Post operations with the visibility rules applied."""

import logging

from app.core.errors import NotFound
from app.core.roles import Caller
from app.schemas.post import PostCreateRequest, PostRead, PostUpdateRequest
from app.services.policy import Action, PostScope, authorize, can_view_post, post_scope
from app.stores.base import PostStore

logger = logging.getLogger(__name__)


def list_posts(posts: PostStore, caller: Caller | None) -> list[PostRead]:
    """Posts visible to caller; the published filter is pushed down into the store query."""
    authorize(caller, Action.LIST_POSTS)
    return posts.list_posts(published_only=post_scope(caller) is PostScope.PUBLISHED)


def get_post(posts: PostStore, post_id: str, caller: Caller | None) -> PostRead:
    """
    Single post. A post the caller may not see raises the same NotFound as a
    missing one, so unpublished posts are indistinguishable from absent ids.
    """
    authorize(caller, Action.GET_POST)
    post = posts.find(post_id)
    if post is None or not can_view_post(caller, post.published):
        raise NotFound("Post not found")
    return post


def create_post(posts: PostStore, body: PostCreateRequest, caller: Caller | None) -> PostRead:
    author = authorize(caller, Action.CREATE_POST)
    post = posts.create(
        title=body.title,
        content=body.content,
        published=body.published,
        author_id=author.user_id,
    )
    logger.info("Post id=%s created by user id=%s", post.id, author.user_id)
    return post


def update_post(
    posts: PostStore, post_id: str, body: PostUpdateRequest, caller: Caller | None
) -> PostRead:
    editor = authorize(caller, Action.UPDATE_POST)
    post = posts.update(post_id, body.changes())
    logger.info("Post id=%s updated by user id=%s", post_id, editor.user_id)
    return post


def delete_post(posts: PostStore, post_id: str, caller: Caller | None) -> None:
    editor = authorize(caller, Action.DELETE_POST)
    posts.delete(post_id)
    logger.info("Post id=%s deleted by user id=%s", post_id, editor.user_id)
