"""Session store mapping chat keys to backend thread ids.

Entries can carry a TTL. Expired entries read as absent and are removed
by ``cleanup_expired``, which the application runs periodically.
"""

import logging
from datetime import UTC, datetime, timedelta
from typing import Protocol

import aiosqlite

from assistant_bridge.db.database import get_db

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    """Key-value store interface used by the thread manager."""

    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl: float | None = None) -> None: ...

    async def delete(self, key: str) -> None: ...


class SqliteSessionStore:
    """SessionStore backed by the ``sessions`` table.

    Each statement runs on the shared aiosqlite connection, so individual
    get/set/delete calls are atomic. No cross-key transactions are needed.
    """

    def __init__(self, db: aiosqlite.Connection | None = None):
        """Initialize the store.

        Args:
            db: Connection to use. Defaults to the global connection.
        """
        self._db = db

    async def _conn(self) -> aiosqlite.Connection:
        if self._db is not None:
            return self._db
        return await get_db()

    async def get(self, key: str) -> str | None:
        """Return the value for ``key``, or None if missing or expired."""
        db = await self._conn()
        cursor = await db.execute(
            """
            SELECT value FROM sessions
            WHERE key = ? AND (expires_at IS NULL OR expires_at > ?)
            """,
            [key, _now_iso()],
        )
        row = await cursor.fetchone()
        return row["value"] if row else None

    async def set(self, key: str, value: str, ttl: float | None = None) -> None:
        """Store ``value`` under ``key``, replacing any existing entry.

        Args:
            key: The entry key.
            value: The value to store.
            ttl: Optional lifetime in seconds.
        """
        expires_at = None
        if ttl is not None:
            expires_at = (datetime.now(UTC) + timedelta(seconds=ttl)).isoformat()

        db = await self._conn()
        await db.execute(
            """
            INSERT INTO sessions (key, value, created_at, expires_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                created_at = excluded.created_at,
                expires_at = excluded.expires_at
            """,
            [key, value, _now_iso(), expires_at],
        )
        await db.commit()

    async def delete(self, key: str) -> None:
        """Remove ``key``. Missing keys are ignored."""
        db = await self._conn()
        await db.execute("DELETE FROM sessions WHERE key = ?", [key])
        await db.commit()

    async def count(self) -> int:
        """Number of live (unexpired) entries."""
        db = await self._conn()
        cursor = await db.execute(
            "SELECT COUNT(*) FROM sessions WHERE expires_at IS NULL OR expires_at > ?",
            [_now_iso()],
        )
        row = await cursor.fetchone()
        return row[0] if row else 0

    async def cleanup_expired(self) -> int:
        """Delete expired entries.

        Returns:
            The number of entries deleted.
        """
        db = await self._conn()
        cursor = await db.execute(
            "DELETE FROM sessions WHERE expires_at IS NOT NULL AND expires_at <= ?",
            [_now_iso()],
        )
        await db.commit()
        deleted = cursor.rowcount or 0

        if deleted > 0:
            logger.info(f"Cleaned up {deleted} expired session(s)")

        return deleted


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()
