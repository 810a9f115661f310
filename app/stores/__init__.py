"""Persistence backends for users and posts (SQLAlchemy or PocketBase)."""

from app.stores.base import PostStore, StorageBackend, Stores, UserStore

__all__ = ["PostStore", "StorageBackend", "Stores", "UserStore"]
