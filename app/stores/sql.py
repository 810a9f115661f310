"""SQLAlchemy-backed user and post stores (PostgreSQL in production, SQLite for local runs and tests)."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload
from sqlalchemy.orm.exc import StaleDataError

from app.core.database import build_engine, build_session_factory, check_db_connected
from app.core.errors import Conflict, NotFound
from app.core.roles import Role
from app.core.security import BCRYPT_ROUNDS, hash_password, verify_password
from app.models import Base, Post, User
from app.schemas.post import PostAuthor, PostRead
from app.schemas.user import PostCount, UserRead
from app.stores.base import PostStore, StorageBackend, Stores, UserStore

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

UPDATABLE_POST_FIELDS = frozenset({"title", "content", "published"})


def as_utc(value: datetime) -> datetime:
    """SQLite returns naive datetimes even for timezone-aware columns; values are stored in UTC."""
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


def user_to_read(user: User, post_count: int | None = None) -> UserRead:
    return UserRead(
        id=user.id,
        email=user.email,
        name=user.name,
        role=Role(user.role),
        created_at=as_utc(user.created_at),
        updated_at=as_utc(user.updated_at),
        count=PostCount(posts=post_count) if post_count is not None else None,
    )


def post_to_read(post: Post) -> PostRead:
    author = post.author
    return PostRead(
        id=post.id,
        title=post.title,
        content=post.content,
        published=post.published,
        author_id=post.author_id,
        created_at=as_utc(post.created_at),
        updated_at=as_utc(post.updated_at),
        author=(
            PostAuthor(id=author.id, name=author.name, email=author.email)
            if author is not None
            else None
        ),
    )


class SqlUserStore(UserStore):
    def __init__(self, db: Session, bcrypt_rounds: int = BCRYPT_ROUNDS) -> None:
        self.db = db
        self.bcrypt_rounds = bcrypt_rounds

    def create(self, email: str, password: str, name: str, role: Role = Role.READER) -> UserRead:
        if self.db.query(User).filter(User.email == email).first() is not None:
            raise Conflict("User with this email already exists")
        user = User(
            email=email,
            password_hash=hash_password(password, rounds=self.bcrypt_rounds),
            name=name,
            role=Role(role).value,
        )
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as e:
            # Lost a race with a concurrent registration for the same email
            self.db.rollback()
            raise Conflict("User with this email already exists", cause=e) from e
        self.db.refresh(user)
        return user_to_read(user)

    def find(self, user_id: str) -> UserRead | None:
        user = self.db.get(User, user_id)
        return user_to_read(user) if user is not None else None

    def find_by_email(self, email: str) -> UserRead | None:
        user = self.db.query(User).filter(User.email == email).first()
        return user_to_read(user) if user is not None else None

    def authenticate(self, email: str, password: str) -> UserRead | None:
        user = self.db.query(User).filter(User.email == email).first()
        if user is None or not verify_password(password, user.password_hash):
            return None
        return user_to_read(user)

    def list_with_post_counts(self) -> list[UserRead]:
        rows = (
            self.db.query(User, func.count(Post.id))
            .outerjoin(Post, Post.author_id == User.id)
            .group_by(User.id)
            .order_by(User.created_at.desc(), User.id)
            .all()
        )
        return [user_to_read(user, post_count=count) for user, count in rows]

    def update_role(self, user_id: str, role: Role) -> UserRead:
        user = self.db.get(User, user_id)
        if user is None:
            raise NotFound("User not found")
        user.role = Role(role).value
        try:
            self.db.commit()
        except StaleDataError as e:
            self.db.rollback()
            raise NotFound("User not found", cause=e) from e
        self.db.refresh(user)
        return user_to_read(user)


class SqlPostStore(PostStore):
    def __init__(self, db: Session) -> None:
        self.db = db

    def _query(self):
        return self.db.query(Post).options(joinedload(Post.author))

    def list_posts(self, published_only: bool) -> list[PostRead]:
        query = self._query()
        if published_only:
            query = query.filter(Post.published.is_(True))
        posts = query.order_by(Post.created_at.desc(), Post.id).all()
        return [post_to_read(p) for p in posts]

    def find(self, post_id: str) -> PostRead | None:
        post = self._query().filter(Post.id == post_id).first()
        return post_to_read(post) if post is not None else None

    def create(self, title: str, content: str, published: bool, author_id: str) -> PostRead:
        if self.db.get(User, author_id) is None:
            raise NotFound("Author not found")
        post = Post(
            title=title,
            content=content,
            published=published,
            author_id=author_id,
        )
        self.db.add(post)
        self.db.commit()
        self.db.refresh(post)
        return post_to_read(post)

    def update(self, post_id: str, changes: dict[str, Any]) -> PostRead:
        post = self.db.get(Post, post_id)
        if post is None:
            raise NotFound("Post not found")
        for field, value in changes.items():
            if field not in UPDATABLE_POST_FIELDS:
                raise ValueError(f"Unsupported post field: {field!r}")
            setattr(post, field, value)
        try:
            self.db.commit()
        except StaleDataError as e:
            # Deleted between the existence check and the update
            self.db.rollback()
            raise NotFound("Post not found", cause=e) from e
        self.db.refresh(post)
        return post_to_read(post)

    def delete(self, post_id: str) -> None:
        if self.db.get(Post, post_id) is None:
            raise NotFound("Post not found")
        deleted = (
            self.db.query(Post)
            .filter(Post.id == post_id)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        if deleted == 0:
            raise NotFound("Post not found")


class SqlBackend(StorageBackend):
    """Engine and session factory for one process; one session per unit of work."""

    name = "sql"

    def __init__(self, settings: "Settings") -> None:
        self.settings = settings
        self.engine = build_engine(settings)
        self.session_factory = build_session_factory(self.engine)

    def startup(self) -> None:
        if self.settings.DB_CREATE_TABLES:
            Base.metadata.create_all(bind=self.engine)
            logger.info("Created database tables (DB_CREATE_TABLES=true)")

    def shutdown(self) -> None:
        self.engine.dispose()

    def is_connected(self) -> bool:
        db = self.session_factory()
        try:
            return check_db_connected(db)
        finally:
            db.close()

    @contextmanager
    def open_stores(self) -> Iterator[Stores]:
        db = self.session_factory()
        try:
            yield Stores(
                users=SqlUserStore(db, bcrypt_rounds=self.settings.BCRYPT_ROUNDS),
                posts=SqlPostStore(db),
            )
        finally:
            db.close()
