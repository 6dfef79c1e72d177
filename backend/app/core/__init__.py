# Taskboard Core Module
from .config import get_settings, settings
from .database import (
    Base,
    async_session_maker,
    check_db_connection,
    create_tables,
    engine,
    get_db,
    get_session_factory,
)
from .logging import setup_logging

__all__ = [
    "settings",
    "get_settings",
    "setup_logging",
    "Base",
    "engine",
    "async_session_maker",
    "get_db",
    "get_session_factory",
    "create_tables",
    "check_db_connection",
]
