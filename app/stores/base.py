"""
Store interfaces shared by the SQL and PocketBase backends.

Stores return API schemas (UserRead, PostRead) and raise domain errors from
app.core.errors; they make no authorization decisions.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from app.core.errors import NotFound
from app.core.roles import Role
from app.schemas.post import PostRead
from app.schemas.user import UserRead


class UserStore(ABC):
    """User directory: registration, lookup, credential check and role changes."""

    @abstractmethod
    def create(self, email: str, password: str, name: str, role: Role = Role.READER) -> UserRead:
        """Create a user. Raises Conflict if the email is already registered."""

    @abstractmethod
    def find(self, user_id: str) -> UserRead | None:
        """Return the user or None if absent."""

    def get(self, user_id: str) -> UserRead:
        user = self.find(user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    @abstractmethod
    def find_by_email(self, email: str) -> UserRead | None:
        pass

    @abstractmethod
    def authenticate(self, email: str, password: str) -> UserRead | None:
        """Return the user if email and password match, else None."""

    @abstractmethod
    def list_with_post_counts(self) -> list[UserRead]:
        """All users, newest first, each with _count.posts filled in."""

    @abstractmethod
    def update_role(self, user_id: str, role: Role) -> UserRead:
        """Change a user's role. Raises NotFound if the user does not exist."""


class PostStore(ABC):
    """Post storage with server-side visibility filtering."""

    @abstractmethod
    def list_posts(self, published_only: bool) -> list[PostRead]:
        """
        Posts newest first. When published_only is True the filter is part of
        the backend query, so unpublished rows are never loaded.
        """

    @abstractmethod
    def find(self, post_id: str) -> PostRead | None:
        pass

    def get(self, post_id: str) -> PostRead:
        post = self.find(post_id)
        if post is None:
            raise NotFound("Post not found")
        return post

    @abstractmethod
    def create(self, title: str, content: str, published: bool, author_id: str) -> PostRead:
        """Create a post. Raises NotFound if author_id does not reference a user."""

    @abstractmethod
    def update(self, post_id: str, changes: dict[str, Any]) -> PostRead:
        """Apply a partial update. Existence is checked first; raises NotFound."""

    @abstractmethod
    def delete(self, post_id: str) -> None:
        """Delete a post. Existence is checked first; raises NotFound."""


@dataclass
class Stores:
    """Stores for one unit of work (one request or one script run)."""

    users: UserStore
    posts: PostStore


class StorageBackend(ABC):
    """Owns the process-wide persistence resources (engine or HTTP client)."""

    name: str = "storage"

    def startup(self) -> None:
        """Called once before serving requests."""

    def shutdown(self) -> None:
        """Release pooled connections or clients."""

    @abstractmethod
    def is_connected(self) -> bool:
        pass

    @abstractmethod
    @contextmanager
    def open_stores(self) -> Iterator[Stores]:
        """Yield stores bound to a fresh unit of work, closing it afterwards."""
