"""SQLite database shared by the local stores.

This module provides:
- LocalDatabase: Thread-safe SQLite connection owning the local schema
- StoreError: Raised when a local read or write fails

Architecture:
    One connection in autocommit mode guarded by an RLock. The sync queue,
    the library repository and the charter repository all go through the
    same LocalDatabase so their writes are serialized.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

SCHEMA = """
    -- Persisted operation log
    CREATE TABLE IF NOT EXISTS sync_queue (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        content_id TEXT NOT NULL,
        operation TEXT NOT NULL,
        visibility_state TEXT NOT NULL,
        payload TEXT,
        created_at REAL NOT NULL,
        retry_count INTEGER NOT NULL DEFAULT 0,
        last_error TEXT,
        synced_at REAL,
        failed_at REAL,
        cancelled_at REAL
    );

    CREATE INDEX IF NOT EXISTS idx_sync_queue_content
        ON sync_queue (content_id, operation);

    -- Library content metadata
    CREATE TABLE IF NOT EXISTS library_items (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        description TEXT,
        content_type TEXT NOT NULL,
        content TEXT NOT NULL,
        tags TEXT NOT NULL,
        language TEXT NOT NULL,
        visibility TEXT NOT NULL,
        sync_status TEXT NOT NULL,
        public_id TEXT,
        published_at REAL,
        public_metadata TEXT,
        forked_from_id TEXT,
        created_at REAL NOT NULL,
        updated_at REAL NOT NULL
    );

    -- Charters
    CREATE TABLE IF NOT EXISTS charters (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        boat_name TEXT,
        location TEXT,
        start_date TEXT NOT NULL,
        end_date TEXT NOT NULL,
        visibility TEXT NOT NULL,
        server_id TEXT,
        needs_sync INTEGER NOT NULL DEFAULT 1,
        created_at REAL NOT NULL,
        updated_at REAL NOT NULL
    );
"""


class StoreError(Exception):
    """A local persistence operation failed."""


class LocalDatabase:
    """SQLite database for local sync state."""

    def __init__(self, db_path: Path | str) -> None:
        """Open (and create if needed) the local database.

        Args:
            db_path: Path to SQLite database file, or ":memory:".
        """
        self._lock = threading.RLock()

        if str(db_path) != ":memory:":
            db_path = Path(db_path)
            db_path.parent.mkdir(parents=True, exist_ok=True)
        self._db_path = db_path

        self._conn = sqlite3.connect(
            str(db_path),
            check_same_thread=False,
            isolation_level=None,  # Autocommit mode
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(SCHEMA)
        logger.debug("Opened local database at %s", db_path)

    @property
    def path(self) -> Path | str:
        """Get the database location."""
        return self._db_path

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            self._conn.close()

    def __enter__(self) -> LocalDatabase:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        """Run a single statement.

        Raises:
            StoreError: If SQLite reports an error.
        """
        with self._lock:
            try:
                return self._conn.execute(sql, params)
            except sqlite3.Error as e:
                raise StoreError(str(e)) from e

    def fetchone(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Row | None:
        """Run a query and return its first row."""
        with self._lock:
            return self.execute(sql, params).fetchone()

    def fetchall(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        """Run a query and return all rows."""
        with self._lock:
            return self.execute(sql, params).fetchall()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Group several statements into one atomic write."""
        with self._lock:
            self.execute("BEGIN IMMEDIATE")
            try:
                yield
            except BaseException:
                self._conn.rollback()
                raise
            else:
                self.execute("COMMIT")
