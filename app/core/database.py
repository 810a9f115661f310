"""SQLAlchemy engine and session factory construction."""

from typing import TYPE_CHECKING

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

if TYPE_CHECKING:
    from app.core.config import Settings

IN_MEMORY_SQLITE_URLS = frozenset({"sqlite://", "sqlite:///:memory:"})

# Driverless PostgreSQL schemes are pinned to psycopg2, the installed driver
POSTGRES_SCHEME_ALIASES = ("postgres://", "postgresql://", "postgres+psycopg2://")
POSTGRES_SCHEME = "postgresql+psycopg2://"


def normalize_database_url(url: str) -> str:
    for alias in POSTGRES_SCHEME_ALIASES:
        if url.startswith(alias):
            return POSTGRES_SCHEME + url[len(alias):]
    return url


def build_engine(settings: "Settings") -> Engine:
    """Create the engine for DATABASE_URL. Does not connect."""
    url = normalize_database_url(settings.DATABASE_URL)

    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        # One shared connection, otherwise every pooled connection gets its own empty database
        if url in IN_MEMORY_SQLITE_URLS:
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=settings.DEBUG, **kwargs)

    return create_engine(
        url,
        pool_pre_ping=True,
        echo=settings.DEBUG,
    )


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def check_db_connected(db: Session) -> bool:
    """Run a trivial query to verify the database is reachable."""
    try:
        db.execute(text("SELECT 1"))
        return True
    except Exception:
        return False
