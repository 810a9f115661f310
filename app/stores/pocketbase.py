"""
PocketBase-backed user and post stores.

Talks to the PocketBase REST API with httpx, authenticated as a superuser.
Users live in the `users` auth collection (PocketBase hashes and checks
passwords itself); posts live in `posts` with an `author` relation.
"""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from app.core.errors import Conflict, NotFound, StorageError
from app.core.roles import Role
from app.schemas.post import PostAuthor, PostRead
from app.schemas.user import PostCount, UserRead
from app.stores.base import PostStore, StorageBackend, Stores, UserStore

if TYPE_CHECKING:
    from app.core.config import Settings

logger = logging.getLogger(__name__)

USERS_COLLECTION = "users"
POSTS_COLLECTION = "posts"
SUPERUSERS_COLLECTION = "_superusers"
FULL_LIST_BATCH_SIZE = 500


class PocketBaseError(StorageError):
    """Non-2xx response from PocketBase; keeps status and field errors for callers to inspect."""

    def __init__(self, message: str, status: int, data: dict[str, Any] | None = None) -> None:
        self.status = status
        self.data = data or {}
        super().__init__(message)

    @property
    def field_errors(self) -> dict[str, Any]:
        errors = self.data.get("data")
        return errors if isinstance(errors, dict) else {}


def quote_filter_value(value: str) -> str:
    """Quote a string for use inside a PocketBase filter expression."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def record_path(collection: str, record_id: str | None = None) -> str:
    """Records endpoint for collection, or for one record; the id is percent-escaped."""
    path = f"/api/collections/{collection}/records"
    if record_id is None:
        return path
    return f"{path}/{quote(record_id, safe='')}"


def parse_pb_datetime(value: str) -> datetime:
    """Parse PocketBase timestamps such as '2024-05-01 10:20:30.123Z'."""
    return datetime.fromisoformat(value.strip().replace(" ", "T", 1).replace("Z", "+00:00"))


def record_to_user(record: dict[str, Any], post_count: int | None = None) -> UserRead:
    return UserRead(
        id=record["id"],
        email=record.get("email", ""),
        name=record.get("name", ""),
        role=Role(record.get("role") or Role.READER.value),
        created_at=parse_pb_datetime(record["created"]),
        updated_at=parse_pb_datetime(record["updated"]),
        count=PostCount(posts=post_count) if post_count is not None else None,
    )


def record_to_post(record: dict[str, Any]) -> PostRead:
    author = (record.get("expand") or {}).get("author")
    return PostRead(
        id=record["id"],
        title=record["title"],
        content=record["content"],
        published=bool(record.get("published")),
        author_id=record["author"],
        created_at=parse_pb_datetime(record["created"]),
        updated_at=parse_pb_datetime(record["updated"]),
        author=(
            PostAuthor(id=author["id"], name=author.get("name", ""), email=author.get("email", ""))
            if author
            else None
        ),
    )


class PocketBaseClient:
    """Minimal synchronous PocketBase records client."""

    def __init__(
        self,
        base_url: str,
        admin_email: str,
        admin_password: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._admin_email = admin_email
        self._admin_password = admin_password
        self._http = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)
        self._auth_lock = threading.Lock()

    def close(self) -> None:
        self._http.close()

    def authenticate_superuser(self) -> None:
        """
        Authenticate as superuser and use the returned token for every later request.
        The previous token stays in place until the new one arrives, so requests
        from other threads are never sent without credentials.
        """
        body = self._send(
            "POST",
            f"/api/collections/{SUPERUSERS_COLLECTION}/auth-with-password",
            json={"identity": self._admin_email, "password": self._admin_password},
            reauthenticate=False,
        ).json()
        self._http.headers["Authorization"] = body["token"]
        logger.info("Authenticated with PocketBase as superuser")

    def reauthenticate(self, rejected_token: str | None) -> None:
        """Log in again after a 401, unless another thread already replaced rejected_token."""
        with self._auth_lock:
            if self._http.headers.get("Authorization") != rejected_token:
                return
            self.authenticate_superuser()

    def _send(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: dict[str, Any] | None = None,
        reauthenticate: bool = True,
    ) -> httpx.Response:
        try:
            response = self._http.request(method, path, params=params, json=json)
            # Superuser token expired: log in again once and resend
            if response.status_code == 401 and reauthenticate:
                self.reauthenticate(response.request.headers.get("Authorization"))
                response = self._http.request(method, path, params=params, json=json)
        except httpx.TimeoutException as e:
            logger.warning("PocketBase request timed out: %s %s", method, path)
            raise StorageError("PocketBase request timed out", cause=e) from e
        except httpx.RequestError as e:
            logger.warning("PocketBase unreachable: %s %s: %s", method, path, e)
            raise StorageError("PocketBase unreachable", cause=e) from e

        if response.is_success:
            return response
        try:
            data = response.json()
        except ValueError:
            data = {}
        message = data.get("message") if isinstance(data, dict) else None
        raise PocketBaseError(
            message or f"PocketBase returned status {response.status_code}",
            status=response.status_code,
            data=data if isinstance(data, dict) else None,
        )

    def get_list(
        self,
        collection: str,
        *,
        page: int = 1,
        per_page: int = 30,
        filter: str | None = None,
        sort: str | None = None,
        expand: str | None = None,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"page": page, "perPage": per_page}
        if filter:
            params["filter"] = filter
        if sort:
            params["sort"] = sort
        if expand:
            params["expand"] = expand
        return self._send("GET", record_path(collection), params=params).json()

    def get_full_list(
        self,
        collection: str,
        *,
        filter: str | None = None,
        sort: str | None = None,
        expand: str | None = None,
    ) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        page = 1
        while True:
            body = self.get_list(
                collection,
                page=page,
                per_page=FULL_LIST_BATCH_SIZE,
                filter=filter,
                sort=sort,
                expand=expand,
            )
            batch = body.get("items", [])
            items.extend(batch)
            if len(batch) < FULL_LIST_BATCH_SIZE:
                return items
            page += 1

    def count(self, collection: str, *, filter: str | None = None) -> int:
        return int(self.get_list(collection, per_page=1, filter=filter).get("totalItems", 0))

    def get_one(self, collection: str, record_id: str, *, expand: str | None = None) -> dict[str, Any]:
        params = {"expand": expand} if expand else None
        return self._send(
            "GET", record_path(collection, record_id), params=params
        ).json()

    def create(
        self, collection: str, body: dict[str, Any], *, expand: str | None = None
    ) -> dict[str, Any]:
        params = {"expand": expand} if expand else None
        return self._send(
            "POST", record_path(collection), params=params, json=body
        ).json()

    def update(
        self,
        collection: str,
        record_id: str,
        body: dict[str, Any],
        *,
        expand: str | None = None,
    ) -> dict[str, Any]:
        params = {"expand": expand} if expand else None
        return self._send(
            "PATCH", record_path(collection, record_id), params=params, json=body
        ).json()

    def delete(self, collection: str, record_id: str) -> None:
        self._send("DELETE", record_path(collection, record_id))

    def auth_with_password(self, collection: str, identity: str, password: str) -> dict[str, Any]:
        return self._send(
            "POST",
            f"/api/collections/{collection}/auth-with-password",
            json={"identity": identity, "password": password},
            reauthenticate=False,
        ).json()

    def health(self) -> bool:
        try:
            return self._http.get("/api/health").is_success
        except httpx.HTTPError:
            return False


def _find_record(
    client: PocketBaseClient, collection: str, record_id: str, expand: str | None = None
) -> dict[str, Any] | None:
    try:
        return client.get_one(collection, record_id, expand=expand)
    except PocketBaseError as e:
        if e.status == 404:
            return None
        raise


class PocketBaseUserStore(UserStore):
    def __init__(self, client: PocketBaseClient) -> None:
        self.client = client

    def create(self, email: str, password: str, name: str, role: Role = Role.READER) -> UserRead:
        try:
            record = self.client.create(
                USERS_COLLECTION,
                {
                    "email": email,
                    "emailVisibility": True,
                    "password": password,
                    "passwordConfirm": password,
                    "name": name,
                    "role": Role(role).value,
                },
            )
        except PocketBaseError as e:
            if e.status == 400 and "email" in e.field_errors:
                raise Conflict("User with this email already exists", cause=e) from e
            raise
        # Auth collections may hide email from the create response
        if not record.get("email"):
            record = self.client.get_one(USERS_COLLECTION, record["id"])
        return record_to_user(record)

    def find(self, user_id: str) -> UserRead | None:
        record = _find_record(self.client, USERS_COLLECTION, user_id)
        return record_to_user(record) if record is not None else None

    def find_by_email(self, email: str) -> UserRead | None:
        body = self.client.get_list(
            USERS_COLLECTION, per_page=1, filter=f"email = {quote_filter_value(email)}"
        )
        items = body.get("items", [])
        return record_to_user(items[0]) if items else None

    def authenticate(self, email: str, password: str) -> UserRead | None:
        try:
            body = self.client.auth_with_password(USERS_COLLECTION, email, password)
        except PocketBaseError as e:
            # PocketBase answers 400 for wrong identity or password
            if e.status in (400, 401, 404):
                return None
            raise
        record = body.get("record")
        return record_to_user(record) if record else None

    def list_with_post_counts(self) -> list[UserRead]:
        records = self.client.get_full_list(USERS_COLLECTION, sort="-created")
        return [
            record_to_user(
                r,
                post_count=self.client.count(
                    POSTS_COLLECTION, filter=f"author = {quote_filter_value(r['id'])}"
                ),
            )
            for r in records
        ]

    def update_role(self, user_id: str, role: Role) -> UserRead:
        if _find_record(self.client, USERS_COLLECTION, user_id) is None:
            raise NotFound("User not found")
        try:
            record = self.client.update(USERS_COLLECTION, user_id, {"role": Role(role).value})
        except PocketBaseError as e:
            if e.status == 404:
                raise NotFound("User not found", cause=e) from e
            raise
        return record_to_user(record)


class PocketBasePostStore(PostStore):
    def __init__(self, client: PocketBaseClient) -> None:
        self.client = client

    def list_posts(self, published_only: bool) -> list[PostRead]:
        records = self.client.get_full_list(
            POSTS_COLLECTION,
            filter="published = true" if published_only else None,
            sort="-created",
            expand="author",
        )
        return [record_to_post(r) for r in records]

    def find(self, post_id: str) -> PostRead | None:
        record = _find_record(self.client, POSTS_COLLECTION, post_id, expand="author")
        return record_to_post(record) if record is not None else None

    def create(self, title: str, content: str, published: bool, author_id: str) -> PostRead:
        if _find_record(self.client, USERS_COLLECTION, author_id) is None:
            raise NotFound("Author not found")
        record = self.client.create(
            POSTS_COLLECTION,
            {
                "title": title,
                "content": content,
                "published": published,
                "author": author_id,
            },
            expand="author",
        )
        return record_to_post(record)

    def update(self, post_id: str, changes: dict[str, Any]) -> PostRead:
        if _find_record(self.client, POSTS_COLLECTION, post_id) is None:
            raise NotFound("Post not found")
        try:
            record = self.client.update(POSTS_COLLECTION, post_id, changes, expand="author")
        except PocketBaseError as e:
            if e.status == 404:
                raise NotFound("Post not found", cause=e) from e
            raise
        return record_to_post(record)

    def delete(self, post_id: str) -> None:
        if _find_record(self.client, POSTS_COLLECTION, post_id) is None:
            raise NotFound("Post not found")
        try:
            self.client.delete(POSTS_COLLECTION, post_id)
        except PocketBaseError as e:
            if e.status == 404:
                raise NotFound("Post not found", cause=e) from e
            raise


class PocketBaseBackend(StorageBackend):
    """One shared PocketBase client per process."""

    name = "pocketbase"

    def __init__(
        self, settings: "Settings", transport: httpx.BaseTransport | None = None
    ) -> None:
        password = settings.POCKETBASE_ADMIN_PASSWORD
        self.client = PocketBaseClient(
            base_url=settings.POCKETBASE_URL or "",
            admin_email=settings.POCKETBASE_ADMIN_EMAIL or "",
            admin_password=password.get_secret_value() if password is not None else "",
            timeout=settings.POCKETBASE_REQUEST_TIMEOUT_SEC,
            transport=transport,
        )

    def startup(self) -> None:
        self.client.authenticate_superuser()

    def shutdown(self) -> None:
        self.client.close()

    def is_connected(self) -> bool:
        return self.client.health()

    @contextmanager
    def open_stores(self) -> Iterator[Stores]:
        yield Stores(
            users=PocketBaseUserStore(self.client),
            posts=PocketBasePostStore(self.client),
        )
