"""
Key/value record store using SQLite.

The durable medium behind the wallet: one row per named record
(fragments, tag names, tag colors, theme), each holding a JSON string.
Records are independent, so a damaged row never affects the others.
"""

import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .errors import PersistenceError


class KeyValueStore:
    """
    SQLite-backed store for named text records.

    No business logic lives here: values are opaque strings. Every
    sqlite3 failure is re-raised as PersistenceError.
    """

    def __init__(self, db_path: Path):
        """
        Args:
            db_path: Path to SQLite database file
        """
        self._db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None
        self._init_db()

    def _init_db(self) -> None:
        """Initialize the SQLite database."""
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(str(self._db_path))
            self._conn.execute("""
                CREATE TABLE IF NOT EXISTS records (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            self._conn.commit()
        except (OSError, sqlite3.Error) as e:
            raise PersistenceError(f"Cannot open {self._db_path}: {e}") from e

    def _now(self) -> str:
        """Current timestamp in ISO format."""
        return datetime.now(timezone.utc).isoformat()

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise PersistenceError(f"Store is closed: {self._db_path}")
        return self._conn

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def get(self, key: str) -> Optional[str]:
        """
        Get a record by key.

        Returns:
            The stored string, or None if no record has this key
        """
        try:
            row = self._connection().execute(
                "SELECT value FROM records WHERE key = ?", (key,)
            ).fetchone()
        except sqlite3.Error as e:
            raise PersistenceError(f"Read of {key!r} failed: {e}") from e
        return row[0] if row is not None else None

    def set(self, key: str, value: str) -> None:
        """Insert or replace a record."""
        conn = self._connection()
        try:
            conn.execute("""
                INSERT OR REPLACE INTO records (key, value, updated_at)
                VALUES (?, ?, ?)
            """, (key, value, self._now()))
            conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError(f"Write of {key!r} failed: {e}") from e

    def delete(self, key: str) -> bool:
        """
        Delete a record.

        Returns:
            True if the record existed and was deleted
        """
        conn = self._connection()
        try:
            cursor = conn.execute("DELETE FROM records WHERE key = ?", (key,))
            conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError(f"Delete of {key!r} failed: {e}") from e
        return cursor.rowcount > 0

    def keys(self) -> list[str]:
        """List all record keys, sorted."""
        try:
            cursor = self._connection().execute("SELECT key FROM records ORDER BY key")
        except sqlite3.Error as e:
            raise PersistenceError(f"Listing records failed: {e}") from e
        return [row[0] for row in cursor]

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __del__(self):
        self.close()
