"""Core app configuration, database, errors and credentials."""

from switchyard.core.config import get_settings, settings
from switchyard.core.database import get_db

__all__ = ["get_settings", "settings", "get_db"]
