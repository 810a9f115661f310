"""
Authorization policy for posts and users.

Pure decision logic: given a caller (None when anonymous) and an action,
decide whether it is permitted and which posts the caller may see.

    Action          anonymous/READER   WRITER            ADMIN
    list posts      published only     published only    all
    get post        published only     published only    all
    create post     denied             allowed (self)    allowed (self)
    update post     denied             denied            allowed
    delete post     denied             denied            allowed
    list users      denied             denied            allowed
    update role     denied             denied            allowed

WRITER sees exactly what an anonymous caller sees and may not edit or
delete its own posts. Tests pin this behaviour.
"""

from enum import Enum

from app.core.errors import Forbidden, Unauthorized
from app.core.roles import Caller, Role


class Action(str, Enum):
    LIST_POSTS = "list_posts"
    GET_POST = "get_post"
    CREATE_POST = "create_post"
    UPDATE_POST = "update_post"
    DELETE_POST = "delete_post"
    LIST_USERS = "list_users"
    UPDATE_USER_ROLE = "update_user_role"


class PostScope(str, Enum):
    """Which posts a caller may observe."""

    PUBLISHED = "published"
    ALL = "all"


ALL_ROLES = frozenset(Role)

# Actions an anonymous caller may perform (visibility still restricted).
ANONYMOUS_ACTIONS = frozenset({Action.LIST_POSTS, Action.GET_POST})

ALLOWED_ROLES: dict[Action, frozenset[Role]] = {
    Action.LIST_POSTS: ALL_ROLES,
    Action.GET_POST: ALL_ROLES,
    Action.CREATE_POST: frozenset({Role.WRITER, Role.ADMIN}),
    Action.UPDATE_POST: frozenset({Role.ADMIN}),
    Action.DELETE_POST: frozenset({Role.ADMIN}),
    Action.LIST_USERS: frozenset({Role.ADMIN}),
    Action.UPDATE_USER_ROLE: frozenset({Role.ADMIN}),
}

# Roles that see unpublished posts.
FULL_VISIBILITY_ROLES = frozenset({Role.ADMIN})


def is_allowed(caller: Caller | None, action: Action) -> bool:
    if caller is None:
        return action in ANONYMOUS_ACTIONS
    return caller.role in ALLOWED_ROLES[action]


def authorize(caller: Caller | None, action: Action) -> Caller | None:
    """
    Gate an action. Returns the caller unchanged when allowed.

    Raises Unauthorized when the action needs authentication and there is no
    caller, Forbidden when the caller's role is not allowed.
    """
    if caller is None:
        if action in ANONYMOUS_ACTIONS:
            return None
        raise Unauthorized("Authentication required")
    if caller.role not in ALLOWED_ROLES[action]:
        raise Forbidden()
    return caller


def post_scope(caller: Caller | None) -> PostScope:
    if caller is not None and caller.role in FULL_VISIBILITY_ROLES:
        return PostScope.ALL
    return PostScope.PUBLISHED


def can_view_post(caller: Caller | None, published: bool) -> bool:
    return published or post_scope(caller) is PostScope.ALL
