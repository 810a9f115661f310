"""Core app configuration, errors and security."""

from app.core.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]
