"""
Persistent key-value store adapters for weightvault.

A store exposes named tables of bytes values. Every call is its own atomic
unit: there are no multi-key transactions, so higher layers order their
writes (chunks first, metadata last) to get crash safety.
"""

import logging
import re
import sqlite3
import threading
from pathlib import Path
from typing import Dict, List, Optional

from weightvault.core.errors import StoreUnavailable, WriteFailed

logger = logging.getLogger(__name__)

_TABLE_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def validate_table_name(table: str) -> str:
    """Reject table names that cannot be used as SQL identifiers."""
    if not _TABLE_NAME_RE.match(table):
        raise ValueError(f"Invalid table name: {table!r}")
    return table


class KeyValueStore:
    """Abstract table-oriented key-value store."""

    def get(self, table: str, key: str) -> Optional[bytes]:
        """Return the value stored under key, or None if absent."""
        raise NotImplementedError

    def put(self, table: str, key: str, value: bytes) -> None:
        """Store value under key, replacing any previous value."""
        raise NotImplementedError

    def delete(self, table: str, key: str) -> None:
        """Delete key. Deleting an absent key is not an error."""
        raise NotImplementedError

    def list_keys(self, table: str) -> List[str]:
        """Return all keys of a table in sorted order."""
        raise NotImplementedError

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class MemoryStore(KeyValueStore):
    """In-process store backed by dictionaries."""

    def __init__(self):
        self.tables: Dict[str, Dict[str, bytes]] = {}
        self._lock = threading.Lock()

    def get(self, table: str, key: str) -> Optional[bytes]:
        with self._lock:
            return self.tables.get(table, {}).get(key)

    def put(self, table: str, key: str, value: bytes) -> None:
        with self._lock:
            self.tables.setdefault(validate_table_name(table), {})[key] = bytes(value)

    def delete(self, table: str, key: str) -> None:
        with self._lock:
            self.tables.get(table, {}).pop(key, None)

    def list_keys(self, table: str) -> List[str]:
        with self._lock:
            return sorted(self.tables.get(table, {}))


class SqliteStore(KeyValueStore):
    """
    Store backed by a SQLite database file.

    Layout:
    - one SQL table per logical table, created on first write
    - columns: key TEXT PRIMARY KEY, value BLOB

    The connection is shared between threads and serialized with a lock.
    """

    def __init__(self, path):
        """
        Open (or create) the database.

        Args:
            path: Database file path, or ":memory:"

        Raises:
            StoreUnavailable: If the database cannot be opened
        """
        self.path = str(path)
        self._lock = threading.Lock()
        self._known_tables = set()
        try:
            if self.path != ":memory:":
                Path(self.path).parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.path, check_same_thread=False)
            self._conn.execute("PRAGMA journal_mode=WAL")
        except (OSError, sqlite3.Error) as e:
            raise StoreUnavailable(f"Cannot open store at {self.path}: {e}") from e

    def _ensure_table(self, table: str) -> None:
        if table in self._known_tables:
            return
        validate_table_name(table)
        with self._conn:
            self._conn.execute(
                f"CREATE TABLE IF NOT EXISTS {table} (key TEXT PRIMARY KEY, value BLOB NOT NULL)"
            )
        self._known_tables.add(table)

    def _table_exists(self, table: str) -> bool:
        if table in self._known_tables:
            return True
        row = self._conn.execute(
            "SELECT 1 FROM sqlite_master WHERE type = 'table' AND name = ?", (table,)
        ).fetchone()
        if row is not None:
            self._known_tables.add(table)
        return row is not None

    def get(self, table: str, key: str) -> Optional[bytes]:
        validate_table_name(table)
        with self._lock:
            if not self._table_exists(table):
                return None
            row = self._conn.execute(
                f"SELECT value FROM {table} WHERE key = ?", (key,)
            ).fetchone()
        return bytes(row[0]) if row is not None else None

    def put(self, table: str, key: str, value: bytes) -> None:
        with self._lock:
            try:
                self._ensure_table(table)
                with self._conn:
                    self._conn.execute(
                        f"INSERT OR REPLACE INTO {table} (key, value) VALUES (?, ?)",
                        (key, sqlite3.Binary(value)),
                    )
            except sqlite3.Error as e:
                raise WriteFailed(table, key, str(e)) from e

    def delete(self, table: str, key: str) -> None:
        validate_table_name(table)
        with self._lock:
            try:
                if not self._table_exists(table):
                    return
                with self._conn:
                    self._conn.execute(f"DELETE FROM {table} WHERE key = ?", (key,))
            except sqlite3.Error as e:
                raise WriteFailed(table, key, str(e)) from e

    def list_keys(self, table: str) -> List[str]:
        validate_table_name(table)
        with self._lock:
            if not self._table_exists(table):
                return []
            rows = self._conn.execute(f"SELECT key FROM {table} ORDER BY key").fetchall()
        return [row[0] for row in rows]

    def close(self) -> None:
        with self._lock:
            self._conn.close()
        logger.debug("Closed store %s", self.path)
