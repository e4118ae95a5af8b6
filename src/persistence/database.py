"""SQLite connection shared by the location and audit stores.

One connection per process, used from the brand worker threads under a
lock. Every write goes through ``transaction()``, which commits on success,
rolls back on error and re-raises sqlite errors as PersistenceError.
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Union

__all__ = [
    'Database',
    'PersistenceError',
    'SCHEMA',
    'format_timestamp',
    'utc_now',
]

SCHEMA = """
CREATE TABLE IF NOT EXISTS store_locations (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    brand_id INTEGER NOT NULL,
    location_key TEXT NOT NULL,
    name TEXT NOT NULL,
    address_line1 TEXT,
    city TEXT,
    state TEXT,
    zip TEXT,
    country TEXT NOT NULL DEFAULT 'US',
    latitude REAL,
    longitude REAL,
    phone TEXT,
    external_id TEXT,
    locator_source TEXT,
    raw_payload TEXT,
    first_seen_at TEXT NOT NULL,
    last_seen_at TEXT NOT NULL,
    is_active INTEGER NOT NULL DEFAULT 1,
    UNIQUE (brand_id, location_key)
);

CREATE INDEX IF NOT EXISTS idx_store_locations_active
    ON store_locations (brand_id, is_active);

CREATE TABLE IF NOT EXISTS collection_runs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    run_type TEXT NOT NULL,
    trigger_source TEXT NOT NULL,
    status TEXT NOT NULL,
    created_at TEXT NOT NULL,
    started_at TEXT,
    completed_at TEXT,
    records_processed INTEGER,
    error_message TEXT
);

CREATE TABLE IF NOT EXISTS collection_run_brands (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    run_id INTEGER NOT NULL,
    brand_id INTEGER NOT NULL,
    status TEXT NOT NULL,
    records_processed INTEGER NOT NULL DEFAULT 0,
    note TEXT,
    error_message TEXT,
    updated_at TEXT NOT NULL,
    UNIQUE (run_id, brand_id),
    FOREIGN KEY (run_id) REFERENCES collection_runs(id) ON DELETE CASCADE
);
"""


class PersistenceError(Exception):
    """A store operation failed; wraps the underlying sqlite3 error."""


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Fixed-width UTC ISO timestamp, so stored values sort as text."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%fZ')


class Database:
    """Thread-safe wrapper around one sqlite3 connection.

    Args:
        path: Database file, or ``":memory:"`` for tests
    """

    def __init__(self, path: Union[str, Path] = ":memory:") -> None:
        self.path = str(path)
        if self.path != ":memory:":
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        try:
            self._conn = sqlite3.connect(self.path, check_same_thread=False)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON;")
            self._conn.executescript(SCHEMA)
            self._conn.commit()
        except sqlite3.Error as e:
            raise PersistenceError(f"Failed to open database {self.path}: {e}") from e
        logging.debug(f"Opened location database at {self.path}")

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Cursor]:
        """Cursor inside one committed-or-rolled-back transaction."""
        with self._lock:
            try:
                cursor = self._conn.cursor()
            except sqlite3.Error as e:
                raise PersistenceError(str(e)) from e
            try:
                yield cursor
                self._conn.commit()
            except sqlite3.Error as e:
                self._conn.rollback()
                raise PersistenceError(str(e)) from e
            except Exception:
                self._conn.rollback()
                raise
            finally:
                cursor.close()

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self) -> 'Database':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
