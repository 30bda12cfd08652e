"""Core app configuration, database, sessions, and security primitives."""

from contractdesk.core.config import get_settings, settings
from contractdesk.core.database import get_db

__all__ = ["get_settings", "settings", "get_db"]
