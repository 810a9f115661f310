"""Password hashing and JWT creation/verification for authentication."""

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import bcrypt
import jwt

from app.core.errors import InvalidToken, MissingToken
from app.core.roles import Caller, Role

if TYPE_CHECKING:
    from app.core.config import Settings

# Bcrypt cost (rounds); 12 is a good default for security vs speed.
BCRYPT_ROUNDS = 12

# Request schemas enforce these; hashing itself accepts any length.
PASSWORD_MIN_LEN = 6
PASSWORD_MAX_LEN = 128
NAME_MIN_LEN = 2


def hash_password(plain_password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    """Hash a plain-text password for storage. Do not store plain passwords."""
    # bcrypt has a 72-byte limit; truncate to avoid errors (validation already limits length).
    pw_bytes = plain_password.encode("utf-8")[:72]
    return bcrypt.hashpw(pw_bytes, bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(plain_password: str, hashed: str) -> bool:
    """Verify a plain password against a stored hash."""
    pw_bytes = plain_password.encode("utf-8")[:72]
    try:
        return bcrypt.checkpw(pw_bytes, hashed.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def create_access_token(
    user_id: str,
    email: str,
    role: Role | str,
    settings: "Settings",
) -> str:
    """Create a JWT access token with sub (user id), email, role, iat and exp."""
    now = datetime.now(UTC)
    expire = now + timedelta(minutes=settings.JWT_EXPIRE_MINUTES)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "email": email,
        "role": Role(role).value,
        "exp": expire,
        "iat": now,
    }
    return jwt.encode(
        payload,
        settings.JWT_SECRET.get_secret_value(),
        algorithm=settings.JWT_ALGORITHM,
    )


def decode_access_token(token: str, settings: "Settings") -> dict[str, Any]:
    """
    Decode and validate JWT; return payload (sub, email, role, exp, iat).
    Raises jwt.PyJWTError on invalid or expired token.
    """
    return jwt.decode(
        token,
        settings.JWT_SECRET.get_secret_value(),
        algorithms=[settings.JWT_ALGORITHM],
        options={"require": ["sub", "exp"]},
    )


def read_access_token(token: str, settings: "Settings") -> Caller | None:
    """Return the caller asserted by token, or None if it is invalid, expired or malformed."""
    try:
        payload = decode_access_token(token, settings)
    except jwt.PyJWTError:
        return None
    sub = payload.get("sub")
    email = payload.get("email")
    if not sub or not isinstance(email, str):
        return None
    try:
        role = Role(payload.get("role"))
    except ValueError:
        return None
    return Caller(user_id=str(sub), email=email, role=role)


def verify_access_token(token: str | None, settings: "Settings") -> Caller:
    """Like read_access_token, but raises MissingToken / InvalidToken instead of returning None."""
    if not token:
        raise MissingToken()
    caller = read_access_token(token, settings)
    if caller is None:
        raise InvalidToken()
    return caller
