"""
feedcache — SQLite Durable Tier

File-backed key/value table surviving process restarts.
Zero external dependencies (sqlite3 is built into Python).
"""

import logging
import sqlite3
import time
from pathlib import Path

from ...errors import StorageUnavailableError
from ..interface import DurableStorage

logger = logging.getLogger(__name__)


class SQLiteStorage(DurableStorage):
    """
    SQLite-based durable tier.

    Notes:
    - One connection per storage instance, opened lazily
    - Rows carry an optional expiry hint used only by purge_expired()
    - Every sqlite3 error is re-raised as StorageUnavailableError
    """

    name = "sqlite"

    def __init__(self, db_path: str = "./data/feedcache.db"):
        """
        Initialize the SQLite durable tier.

        Args:
            db_path: Path to SQLite database file (":memory:" for a private in-memory db)
        """
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def _ensure_db_directory(self) -> None:
        """Ensure database directory exists."""
        if self.db_path == ":memory:":
            return
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

    def _get_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self._ensure_db_directory()
            conn = sqlite3.connect(self.db_path)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS cache_entries (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    expires_at REAL
                )
            """)
            conn.commit()
            self._conn = conn
        return self._conn

    def get_item(self, key: str) -> str | None:
        try:
            row = self._get_connection().execute("SELECT value FROM cache_entries WHERE key = ?", (key,)).fetchone()
        except (sqlite3.Error, OSError) as e:
            raise StorageUnavailableError(self.name, "get", {"key": key, "error": str(e)}) from e
        return row[0] if row else None

    def set_item(self, key: str, value: str, ttl: float | None = None) -> None:
        expires_at = time.time() + ttl if ttl else None
        try:
            conn = self._get_connection()
            with conn:
                conn.execute(
                    "INSERT OR REPLACE INTO cache_entries (key, value, expires_at) VALUES (?, ?, ?)",
                    (key, value, expires_at),
                )
        except (sqlite3.Error, OSError) as e:
            raise StorageUnavailableError(self.name, "set", {"key": key, "error": str(e)}) from e

    def remove_item(self, key: str) -> None:
        try:
            conn = self._get_connection()
            with conn:
                conn.execute("DELETE FROM cache_entries WHERE key = ?", (key,))
        except (sqlite3.Error, OSError) as e:
            raise StorageUnavailableError(self.name, "delete", {"key": key, "error": str(e)}) from e

    def keys(self, prefix: str) -> list[str]:
        try:
            rows = (
                self._get_connection()
                .execute(
                    "SELECT key FROM cache_entries WHERE substr(key, 1, ?) = ?",
                    (len(prefix), prefix),
                )
                .fetchall()
            )
        except (sqlite3.Error, OSError) as e:
            raise StorageUnavailableError(self.name, "keys", {"prefix": prefix, "error": str(e)}) from e
        return [row[0] for row in rows]

    def remove_prefix(self, prefix: str) -> int:
        try:
            conn = self._get_connection()
            with conn:
                cursor = conn.execute(
                    "DELETE FROM cache_entries WHERE substr(key, 1, ?) = ?",
                    (len(prefix), prefix),
                )
        except (sqlite3.Error, OSError) as e:
            raise StorageUnavailableError(self.name, "clear", {"prefix": prefix, "error": str(e)}) from e
        return cursor.rowcount

    def purge_expired(self, now: float | None = None) -> int:
        """Delete rows whose expiry hint has passed. Returns rows removed."""
        now = time.time() if now is None else now
        try:
            conn = self._get_connection()
            with conn:
                cursor = conn.execute(
                    "DELETE FROM cache_entries WHERE expires_at IS NOT NULL AND expires_at < ?",
                    (now,),
                )
        except (sqlite3.Error, OSError) as e:
            raise StorageUnavailableError(self.name, "purge", {"error": str(e)}) from e
        if cursor.rowcount:
            logger.info(f"Purged {cursor.rowcount} expired row(s) from {self.db_path}")
        return cursor.rowcount

    def close(self) -> None:
        if self._conn is not None:
            try:
                self._conn.close()
            except sqlite3.Error as e:
                logger.warning(f"Error closing SQLite durable tier: {e}", extra={"error": str(e)})
            finally:
                self._conn = None
            logger.debug(f"SQLite durable tier closed ({self.db_path})")
