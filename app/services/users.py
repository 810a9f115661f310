"""Admin user management."""

import logging

from app.core.roles import Caller, Role
from app.schemas.user import UserRead
from app.services.policy import Action, authorize
from app.stores.base import UserStore

logger = logging.getLogger(__name__)


def list_users(users: UserStore, caller: Caller | None) -> list[UserRead]:
    authorize(caller, Action.LIST_USERS)
    return users.list_with_post_counts()


def update_user_role(users: UserStore, user_id: str, role: Role, caller: Caller | None) -> UserRead:
    """Change a user's role. Raises NotFound if user_id does not exist."""
    admin = authorize(caller, Action.UPDATE_USER_ROLE)
    user = users.update_role(user_id, role)
    logger.info("User id=%s role set to %s by user id=%s", user_id, role.value, admin.user_id)
    return user
