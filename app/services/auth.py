"""Registration, login and bearer-token caller resolution."""

import logging
from typing import TYPE_CHECKING

from app.core.errors import InvalidToken, Unauthorized
from app.core.roles import Caller, Role
from app.core.security import create_access_token, read_access_token, verify_access_token
from app.schemas.auth import LoginRequest, RegisterRequest
from app.schemas.user import UserRead
from app.stores.base import UserStore

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)


def issue_token(user: UserRead, settings: "Settings") -> str:
    return create_access_token(user.id, user.email, user.role, settings)


def register(users: UserStore, body: RegisterRequest, settings: "Settings") -> tuple[UserRead, str]:
    """Create a READER account and return it with a fresh token. Raises Conflict on duplicate email."""
    user = users.create(
        email=str(body.email),
        password=body.password,
        name=body.name,
        role=Role.READER,
    )
    logger.info("Registered user id=%s", user.id)
    return user, issue_token(user, settings)


def login(users: UserStore, body: LoginRequest, settings: "Settings") -> tuple[UserRead, str]:
    """Check credentials and return the user with a fresh token. Raises Unauthorized on mismatch."""
    user = users.authenticate(str(body.email), body.password)
    if user is None:
        logger.info("Failed login attempt")
        raise Unauthorized("Invalid credentials")
    return user, issue_token(user, settings)


def _current_identity(claims: Caller, users: UserStore) -> Caller | None:
    """Re-read the user so role changes apply to tokens issued before them."""
    user = users.find(claims.user_id)
    if user is None:
        return None
    return Caller(user_id=user.id, email=user.email, role=user.role)


def resolve_caller(token: str | None, users: UserStore, settings: "Settings") -> Caller | None:
    """
    Caller for anonymous-tolerant routes: None when the token is missing,
    invalid, expired or names a user that no longer exists.
    """
    if not token:
        return None
    claims = read_access_token(token, settings)
    if claims is None:
        return None
    return _current_identity(claims, users)


def authenticate_caller(token: str | None, users: UserStore, settings: "Settings") -> Caller:
    """Caller for protected routes. Raises MissingToken or InvalidToken (both 401)."""
    claims = verify_access_token(token, settings)
    caller = _current_identity(claims, users)
    if caller is None:
        raise InvalidToken("User not found")
    return caller
