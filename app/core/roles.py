"""User roles and the authenticated caller identity."""

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    READER = "READER"
    WRITER = "WRITER"
    ADMIN = "ADMIN"


@dataclass(frozen=True)
class Caller:
    """Identity asserted by a verified bearer token. Anonymous callers are None."""

    user_id: str
    email: str
    role: Role
