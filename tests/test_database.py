"""Tests for app.core.database engine construction."""

import unittest

from app.core.config import Settings
from app.core.database import build_engine, normalize_database_url


class TestNormalizeDatabaseUrl(unittest.TestCase):
    def test_postgres_schemes_pinned_to_psycopg2(self) -> None:
        for url in (
            "postgres://u:p@db:5432/blog",
            "postgresql://u:p@db:5432/blog",
            "postgres+psycopg2://u:p@db:5432/blog",
            "postgresql+psycopg2://u:p@db:5432/blog",
        ):
            with self.subTest(url=url):
                self.assertEqual(
                    normalize_database_url(url), "postgresql+psycopg2://u:p@db:5432/blog"
                )

    def test_sqlite_unchanged(self) -> None:
        self.assertEqual(normalize_database_url("sqlite:///./blog.db"), "sqlite:///./blog.db")


class TestBuildEngine(unittest.TestCase):
    def test_default_url_uses_psycopg2(self) -> None:
        engine = build_engine(Settings(_env_file=None))
        self.addCleanup(engine.dispose)
        self.assertEqual(engine.url.drivername, "postgresql+psycopg2")

    def test_in_memory_sqlite(self) -> None:
        engine = build_engine(Settings(_env_file=None, DATABASE_URL="sqlite://"))
        self.addCleanup(engine.dispose)
        self.assertEqual(engine.url.drivername, "sqlite")


if __name__ == "__main__":
    unittest.main()
