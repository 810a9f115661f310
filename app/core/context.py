"""Application context: settings plus the storage backend, created once per process."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from app.core.config import Settings
from app.stores.base import StorageBackend, Stores

logger = logging.getLogger(__name__)


def build_backend(settings: Settings) -> StorageBackend:
    """Instantiate the backend named by STORAGE_BACKEND. Does no I/O."""
    if settings.STORAGE_BACKEND == "pocketbase":
        from app.stores.pocketbase import PocketBaseBackend

        return PocketBaseBackend(settings)
    from app.stores.sql import SqlBackend

    return SqlBackend(settings)


class AppContext:
    """
    Explicitly constructed replacement for process-wide globals.

    Created by create_app() (or a CLI script), started and stopped around the
    server lifespan, and handed to request handlers through app.state.
    """

    def __init__(self, settings: Settings, backend: StorageBackend | None = None) -> None:
        self.settings = settings
        self.backend = backend if backend is not None else build_backend(settings)
        self.started = False

    def startup(self) -> None:
        if self.started:
            return
        logger.info(
            "Starting with %s storage backend (env=%s)",
            self.backend.name,
            self.settings.APP_ENV,
        )
        self.backend.startup()
        self.started = True

    def shutdown(self) -> None:
        if not self.started:
            return
        self.backend.shutdown()
        self.started = False
        logger.info("Storage backend %s shut down", self.backend.name)

    @contextmanager
    def open_stores(self) -> Iterator[Stores]:
        with self.backend.open_stores() as stores:
            yield stores

    def is_storage_connected(self) -> bool:
        return self.backend.is_connected()
