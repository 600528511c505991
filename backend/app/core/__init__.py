"""Core application configuration and utilities."""

from app.core.config import Settings, settings
from app.core.database import Base, close_db, get_engine, get_session_factory, init_db

__all__ = [
    # Config
    "Settings",
    "settings",
    # Database
    "Base",
    "close_db",
    "get_engine",
    "get_session_factory",
    "init_db",
]
