"""Unit tests for app.core.security: bcrypt hashing and JWT issue/verify."""

import unittest
from datetime import UTC, datetime, timedelta

import jwt

from app.core.config import Settings
from app.core.errors import InvalidToken, MissingToken, Unauthorized
from app.core.roles import Caller, Role
from app.core.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    read_access_token,
    verify_access_token,
    verify_password,
)


def _settings(**overrides: object) -> Settings:
    values: dict[str, object] = {"JWT_SECRET": "test-secret", "DATABASE_URL": "sqlite://"}
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestPasswordHashing(unittest.TestCase):
    def test_hash_is_not_plaintext_and_verifies(self) -> None:
        hashed = hash_password("pw123456", rounds=4)
        self.assertNotEqual(hashed, "pw123456")
        self.assertTrue(hashed.startswith("$2"))
        self.assertTrue(verify_password("pw123456", hashed))

    def test_wrong_password_fails(self) -> None:
        hashed = hash_password("pw123456", rounds=4)
        self.assertFalse(verify_password("pw1234567", hashed))

    def test_salted(self) -> None:
        self.assertNotEqual(hash_password("same-pass", rounds=4), hash_password("same-pass", rounds=4))

    def test_malformed_hash_returns_false(self) -> None:
        self.assertFalse(verify_password("pw123456", "not-a-bcrypt-hash"))


class TestAccessToken(unittest.TestCase):
    def setUp(self) -> None:
        self.settings = _settings()

    def test_claims_round_trip(self) -> None:
        token = create_access_token("abc123", "a@x.com", Role.WRITER, self.settings)
        caller = read_access_token(token, self.settings)
        self.assertEqual(caller, Caller(user_id="abc123", email="a@x.com", role=Role.WRITER))

    def test_expiry_is_seven_days_by_default(self) -> None:
        token = create_access_token("abc123", "a@x.com", "READER", self.settings)
        payload = decode_access_token(token, self.settings)
        self.assertEqual(payload["exp"] - payload["iat"], 7 * 24 * 60 * 60)

    def test_expired_token_is_rejected(self) -> None:
        past = datetime.now(UTC) - timedelta(minutes=5)
        token = jwt.encode(
            {"sub": "abc123", "email": "a@x.com", "role": "ADMIN", "exp": past, "iat": past},
            "test-secret",
            algorithm="HS256",
        )
        self.assertIsNone(read_access_token(token, self.settings))
        with self.assertRaises(InvalidToken):
            verify_access_token(token, self.settings)

    def test_wrong_secret_is_rejected(self) -> None:
        token = create_access_token("abc123", "a@x.com", Role.ADMIN, _settings(JWT_SECRET="other"))
        self.assertIsNone(read_access_token(token, self.settings))

    def test_unknown_role_is_rejected(self) -> None:
        token = jwt.encode(
            {
                "sub": "abc123",
                "email": "a@x.com",
                "role": "SUPERUSER",
                "exp": datetime.now(UTC) + timedelta(minutes=5),
            },
            "test-secret",
            algorithm="HS256",
        )
        self.assertIsNone(read_access_token(token, self.settings))

    def test_garbage_token(self) -> None:
        self.assertIsNone(read_access_token("not.a.jwt", self.settings))

    def test_missing_token(self) -> None:
        for token in (None, ""):
            with self.subTest(token=token):
                with self.assertRaises(MissingToken) as ctx:
                    verify_access_token(token, self.settings)
                self.assertIsInstance(ctx.exception, Unauthorized)
                self.assertEqual(ctx.exception.status_code, 401)


if __name__ == "__main__":
    unittest.main()
