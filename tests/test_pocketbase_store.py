"""Tests for app.stores.pocketbase using httpx.MockTransport as a fake PocketBase server."""

import itertools
import json
import re
import unittest
from collections.abc import Callable
from datetime import UTC, datetime

import httpx

from app.core.config import Settings
from app.core.errors import Conflict, NotFound, StorageError
from app.core.roles import Role
from app.stores.pocketbase import (
    PocketBaseBackend,
    parse_pb_datetime,
    quote_filter_value,
)

RECORD_PATH = re.compile(r"^/api/collections/(\w+)/records(?:/(\w+))?$")
FILTER_EQ = re.compile(r'^(\w+) = "(.*)"$')


def _settings() -> Settings:
    return Settings(
        _env_file=None,
        STORAGE_BACKEND="pocketbase",
        POCKETBASE_URL="http://pb.test",
        POCKETBASE_ADMIN_EMAIL="root@example.com",
        POCKETBASE_ADMIN_PASSWORD="root-pass",
        JWT_SECRET="test-secret",
    )


class FakePocketBase:
    """In-memory stand-in for the handful of PocketBase endpoints the store uses."""

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, dict]] = {"users": {}, "posts": {}}
        self.passwords: dict[str, str] = {}
        self.requests: list[httpx.Request] = []
        self.valid_tokens = {"su-token-1"}
        self._tokens = (f"su-token-{i}" for i in itertools.count(1))
        self._ids = (f"rec{i:012d}" for i in itertools.count(1))
        self._clock = itertools.count(0)
        # Non-auth requests still to be answered with 401, as if the superuser token expired
        self.reject_next = 0
        self.on_superuser_login: Callable[[], None] | None = None

    def _now(self) -> str:
        return f"2025-03-01 10:00:{next(self._clock):02d}.000Z"

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        body = json.loads(request.content) if request.content else {}

        if path == "/api/health":
            return httpx.Response(200, json={"code": 200, "message": "API is healthy."})
        if path == "/api/collections/_superusers/auth-with-password":
            if body == {"identity": "root@example.com", "password": "root-pass"}:
                if self.on_superuser_login is not None:
                    self.on_superuser_login()
                token = next(self._tokens)
                self.valid_tokens.add(token)
                return httpx.Response(200, json={"token": token, "record": {"id": "su"}})
            return httpx.Response(400, json={"message": "Failed to authenticate."})
        if path == "/api/collections/users/auth-with-password":
            user = self._by_email(body.get("identity", ""))
            if user is None or self.passwords.get(user["id"]) != body.get("password"):
                return httpx.Response(400, json={"message": "Failed to authenticate.", "data": {}})
            return httpx.Response(200, json={"token": "user-token", "record": user})

        if self.reject_next:
            self.reject_next -= 1
            return httpx.Response(401, json={"message": "The request requires valid authorization."})
        if request.headers.get("Authorization") not in self.valid_tokens:
            return httpx.Response(401, json={"message": "The request requires valid authorization."})

        match = RECORD_PATH.match(path)
        if match is None:
            return httpx.Response(404, json={"message": "Not found."})
        collection, record_id = match.groups()
        records = self.collections[collection]

        if record_id is None and request.method == "GET":
            return self._list(collection, request.url.params)
        if record_id is None and request.method == "POST":
            return self._create(collection, body, request.url.params)
        if record_id not in records:
            return httpx.Response(404, json={"message": "The requested resource wasn't found."})
        if request.method == "GET":
            return httpx.Response(200, json=self._expand(records[record_id], request.url.params))
        if request.method == "PATCH":
            records[record_id].update(body)
            records[record_id]["updated"] = self._now()
            return httpx.Response(200, json=self._expand(records[record_id], request.url.params))
        if request.method == "DELETE":
            del records[record_id]
            return httpx.Response(204)
        return httpx.Response(405)

    def _by_email(self, email: str) -> dict | None:
        for user in self.collections["users"].values():
            if user["email"] == email:
                return user
        return None

    def _expand(self, record: dict, params: httpx.QueryParams) -> dict:
        record = dict(record)
        if params.get("expand") == "author" and record.get("author") in self.collections["users"]:
            record["expand"] = {"author": self.collections["users"][record["author"]]}
        return record

    def _list(self, collection: str, params: httpx.QueryParams) -> httpx.Response:
        items = list(self.collections[collection].values())
        flt = params.get("filter")
        if flt == "published = true":
            items = [r for r in items if r.get("published")]
        elif flt:
            field, value = FILTER_EQ.match(flt).groups()
            items = [r for r in items if r.get(field) == value]
        if params.get("sort") == "-created":
            items.sort(key=lambda r: r["created"], reverse=True)
        page, per_page = int(params.get("page", 1)), int(params.get("perPage", 30))
        window = items[(page - 1) * per_page : page * per_page]
        return httpx.Response(
            200,
            json={
                "page": page,
                "perPage": per_page,
                "totalItems": len(items),
                "items": [self._expand(r, params) for r in window],
            },
        )

    def _create(self, collection: str, body: dict, params: httpx.QueryParams) -> httpx.Response:
        if collection == "users" and self._by_email(body["email"]) is not None:
            return httpx.Response(
                400,
                json={
                    "message": "Failed to create record.",
                    "data": {"email": {"code": "validation_not_unique", "message": "Value must be unique."}},
                },
            )
        now = self._now()
        record = {"id": next(self._ids), "created": now, "updated": now}
        if collection == "users":
            self.passwords[record["id"]] = body.pop("password")
            body.pop("passwordConfirm", None)
            body.pop("emailVisibility", None)
        record.update(body)
        self.collections[collection][record["id"]] = record
        return httpx.Response(200, json=self._expand(record, params))


class PocketBaseTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.fake = FakePocketBase()
        self.backend = PocketBaseBackend(_settings(), transport=httpx.MockTransport(self.fake.handler))
        self.backend.startup()
        self.addCleanup(self.backend.shutdown)
        stores_cm = self.backend.open_stores()
        self.stores = stores_cm.__enter__()
        self.addCleanup(stores_cm.__exit__, None, None, None)
        self.users = self.stores.users
        self.posts = self.stores.posts


class TestPocketBaseUsers(PocketBaseTestCase):
    def test_startup_authenticates_superuser(self) -> None:
        self.users.find("missing")
        self.assertEqual(self.fake.requests[-1].headers["Authorization"], "su-token-1")

    def test_create_and_conflict(self) -> None:
        user = self.users.create(email="a@x.com", password="pw123456", name="Alice")
        self.assertEqual(user.role, Role.READER)
        self.assertEqual(user.created_at, datetime(2025, 3, 1, 10, 0, 0, tzinfo=UTC))
        with self.assertRaises(Conflict):
            self.users.create(email="a@x.com", password="other-pass", name="Mallory")
        self.assertEqual(self.users.get(user.id).name, "Alice")

    def test_authenticate(self) -> None:
        self.users.create(email="a@x.com", password="pw123456", name="Alice")
        self.assertEqual(self.users.authenticate("a@x.com", "pw123456").email, "a@x.com")
        self.assertIsNone(self.users.authenticate("a@x.com", "wrong-pass"))
        self.assertIsNone(self.users.authenticate("nobody@x.com", "pw123456"))

    def test_find_by_email_quotes_value(self) -> None:
        self.users.create(email="a@x.com", password="pw123456", name="Alice")
        self.assertIsNotNone(self.users.find_by_email("a@x.com"))
        self.assertEqual(self.fake.requests[-1].url.params["filter"], 'email = "a@x.com"')

    def test_missing_user(self) -> None:
        self.assertIsNone(self.users.find("missing"))
        with self.assertRaises(NotFound):
            self.users.get("missing")

    def test_update_role_checks_existence_first(self) -> None:
        with self.assertRaises(NotFound):
            self.users.update_role("missing", Role.ADMIN)
        self.assertNotIn("PATCH", [r.method for r in self.fake.requests])

        user = self.users.create(email="a@x.com", password="pw123456", name="Alice")
        self.assertEqual(self.users.update_role(user.id, Role.WRITER).role, Role.WRITER)

    def test_list_with_post_counts(self) -> None:
        writer = self.users.create(email="w@x.com", password="pw123456", name="Writer", role=Role.WRITER)
        reader = self.users.create(email="r@x.com", password="pw123456", name="Reader")
        self.posts.create("One", "Body", True, writer.id)
        self.posts.create("Two", "Body", False, writer.id)
        listed = self.users.list_with_post_counts()
        self.assertEqual([u.id for u in listed], [reader.id, writer.id])
        self.assertEqual({u.id: u.count.posts for u in listed}, {writer.id: 2, reader.id: 0})


class TestPocketBasePosts(PocketBaseTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.writer = self.users.create(
            email="w@x.com", password="pw123456", name="Writer", role=Role.WRITER
        )

    def test_create_expands_author(self) -> None:
        post = self.posts.create("Title", "Content", False, self.writer.id)
        self.assertEqual(post.author_id, self.writer.id)
        self.assertEqual(post.author.name, "Writer")
        self.assertFalse(post.published)

    def test_create_with_missing_author(self) -> None:
        with self.assertRaises(NotFound):
            self.posts.create("Title", "Content", False, "missing")

    def test_published_filter_sent_to_server(self) -> None:
        self.posts.create("Public", "Content", True, self.writer.id)
        self.posts.create("Draft", "Content", False, self.writer.id)
        public = self.posts.list_posts(published_only=True)
        self.assertEqual([p.title for p in public], ["Public"])
        self.assertEqual(self.fake.requests[-1].url.params["filter"], "published = true")
        everything = self.posts.list_posts(published_only=False)
        self.assertEqual([p.title for p in everything], ["Draft", "Public"])
        self.assertNotIn("filter", self.fake.requests[-1].url.params)

    def test_update_and_delete(self) -> None:
        post = self.posts.create("Title", "Content", False, self.writer.id)
        updated = self.posts.update(post.id, {"published": True})
        self.assertTrue(updated.published)
        self.assertEqual(updated.title, "Title")
        self.posts.delete(post.id)
        self.assertIsNone(self.posts.find(post.id))

    def test_record_id_is_escaped_in_path(self) -> None:
        self.assertIsNone(self.posts.find("a?b#c"))
        request = self.fake.requests[-1]
        self.assertTrue(
            request.url.raw_path.startswith(b"/api/collections/posts/records/a%3Fb%23c?"),
            request.url.raw_path,
        )
        self.assertEqual(dict(request.url.params), {"expand": "author"})
        with self.assertRaises(NotFound):
            self.posts.delete("../users/x")
        self.assertIn(b"..%2Fusers%2Fx", self.fake.requests[-1].url.raw_path)

    def test_update_and_delete_missing(self) -> None:
        with self.assertRaises(NotFound):
            self.posts.update("missing", {"title": "New"})
        with self.assertRaises(NotFound):
            self.posts.delete("missing")


class TestPocketBaseClient(PocketBaseTestCase):
    def test_reauthenticates_once_on_expired_token(self) -> None:
        self.fake.valid_tokens.discard("su-token-1")
        self.assertIsNone(self.users.find("missing"))
        self.assertEqual(self.fake.requests[-1].headers["Authorization"], "su-token-2")

    def test_requests_during_reauthentication_keep_credentials(self) -> None:
        writer = self.users.create(email="w@x.com", password="pw123456", name="Writer", role=Role.WRITER)
        self.posts.create("Public", "Content", True, writer.id)
        concurrent: list[tuple[str | None, list[str]]] = []

        def list_posts_while_logging_in() -> None:
            self.fake.on_superuser_login = None
            titles = [p.title for p in self.posts.list_posts(published_only=True)]
            concurrent.append((self.fake.requests[-1].headers.get("Authorization"), titles))

        self.fake.on_superuser_login = list_posts_while_logging_in
        self.fake.reject_next = 1
        self.assertIsNotNone(self.users.find(writer.id))
        self.assertEqual(concurrent, [("su-token-1", ["Public"])])
        self.assertEqual(self.fake.requests[-1].headers["Authorization"], "su-token-2")

    def test_token_replaced_by_another_thread_is_not_refreshed_again(self) -> None:
        client = self.backend.client
        client.reauthenticate("su-token-1")
        client.reauthenticate("su-token-1")
        logins = [
            r for r in self.fake.requests if r.url.path.endswith("/_superusers/auth-with-password")
        ]
        # One login at startup, one for the rejected token
        self.assertEqual(len(logins), 2)
        self.assertIsNone(self.users.find("missing"))
        self.assertEqual(self.fake.requests[-1].headers["Authorization"], "su-token-2")

    def test_health(self) -> None:
        self.assertTrue(self.backend.is_connected())


class TestPocketBaseUnreachable(unittest.TestCase):
    def test_connection_error_becomes_storage_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        backend = PocketBaseBackend(_settings(), transport=httpx.MockTransport(handler))
        try:
            with self.assertRaises(StorageError):
                backend.startup()
            self.assertFalse(backend.is_connected())
        finally:
            backend.shutdown()


class TestHelpers(unittest.TestCase):
    def test_parse_pb_datetime(self) -> None:
        self.assertEqual(
            parse_pb_datetime("2024-05-01 10:20:30.123Z"),
            datetime(2024, 5, 1, 10, 20, 30, 123000, tzinfo=UTC),
        )

    def test_quote_filter_value(self) -> None:
        self.assertEqual(quote_filter_value('a"b\\c'), '"a\\"b\\\\c"')


if __name__ == "__main__":
    unittest.main()
