"""Database package for connection and session management."""

from staffdir.database.database import (
    DatabaseConfig,
    atomic,
    dispose_engine,
    get_db,
    get_db_context,
    get_engine,
    get_session_factory,
    init_db,
)

__all__ = [
    "DatabaseConfig",
    "atomic",
    "dispose_engine",
    "get_db",
    "get_db_context",
    "get_engine",
    "get_session_factory",
    "init_db",
]
