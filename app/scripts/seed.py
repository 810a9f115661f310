"""
Seed demo data: one user per role and a handful of posts (one unpublished). Run from project root:
  python -m app.scripts.seed

Existing users are reused; previously seeded posts are left in place and duplicates are skipped by title.
All seeded accounts use the password 'password123'.
"""
import logging
import sys

from app.core.config import get_settings
from app.core.context import AppContext
from app.core.logging_config import configure_logging
from app.core.roles import Role
from app.schemas.user import UserRead
from app.stores.base import Stores

logger = logging.getLogger(__name__)

SEED_PASSWORD = "password123"

SEED_USERS: list[tuple[str, str, Role]] = [
    ("admin@example.com", "Admin User", Role.ADMIN),
    ("writer@example.com", "Writer User", Role.WRITER),
    ("reader@example.com", "Reader User", Role.READER),
]

# (title, content, published, author email)
SEED_POSTS: list[tuple[str, str, bool, str]] = [
    (
        "Getting Started with Python Type Hints",
        "Type hints document what a function expects and returns. Tools such as mypy "
        "and pydantic use them to catch mistakes before the code runs.",
        True,
        "writer@example.com",
    ),
    (
        "Understanding FastAPI",
        "FastAPI builds on Starlette and pydantic to turn annotated Python functions "
        "into validated, self-documenting HTTP endpoints.",
        True,
        "admin@example.com",
    ),
    (
        "Introduction to SQLAlchemy",
        "SQLAlchemy maps Python classes to database tables and composes queries from "
        "Python expressions, with Alembic handling schema migrations.",
        True,
        "writer@example.com",
    ),
    (
        "Building RESTful APIs",
        "REST is an architectural style for networked applications. RESTful APIs use "
        "HTTP methods to create, read, update and delete resources.",
        False,
        "writer@example.com",
    ),
    (
        "Role-Based Access Control",
        "RBAC regulates access to resources based on the roles of individual users. "
        "It keeps permission rules small and easy to audit.",
        True,
        "admin@example.com",
    ),
]


def _ensure_user(stores: Stores, email: str, name: str, role: Role) -> UserRead:
    user = stores.users.find_by_email(email)
    if user is None:
        return stores.users.create(email=email, password=SEED_PASSWORD, name=name, role=role)
    if user.role != role:
        return stores.users.update_role(user.id, role)
    return user


def seed(stores: Stores) -> tuple[int, int]:
    """Create seed users and posts. Returns (users_ensured, posts_created)."""
    users = {email: _ensure_user(stores, email, name, role) for email, name, role in SEED_USERS}
    existing_titles = {p.title for p in stores.posts.list_posts(published_only=False)}
    created = 0
    for title, content, published, author_email in SEED_POSTS:
        if title in existing_titles:
            continue
        stores.posts.create(
            title=title,
            content=content,
            published=published,
            author_id=users[author_email].id,
        )
        created += 1
    return len(users), created


def main(context: AppContext | None = None) -> int:
    owns_context = context is None
    if context is None:
        settings = get_settings()
        configure_logging(settings)
        context = AppContext(settings)
    try:
        if owns_context:
            context.startup()
        with context.open_stores() as stores:
            users_count, posts_created = seed(stores)
        logger.info("Seed completed: users=%s posts_created=%s", users_count, posts_created)
        print(f"Seeded {users_count} users and {posts_created} posts (password: {SEED_PASSWORD}).")
        return 0
    except Exception as e:
        logger.exception("Seeding failed: %s", e)
        return 1
    finally:
        if owns_context:
            context.shutdown()


if __name__ == "__main__":
    sys.exit(main())
