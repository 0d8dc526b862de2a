"""Database module."""

from assistant_bridge.db.database import close_database, get_db, init_database
from assistant_bridge.db.session_store import SessionStore, SqliteSessionStore

__all__ = [
    "get_db",
    "init_database",
    "close_database",
    "SessionStore",
    "SqliteSessionStore",
]
