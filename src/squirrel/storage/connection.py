"""SQLite connection wrapper for the tab store."""

from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator, Sequence

from squirrel.storage.errors import (
    StoreUnavailableError,
    TeardownError,
    VersionReadError,
)


class StoreConnection:
    """A single open SQLite connection shared across threads.

    Statements are serialized through a reentrant lock so a transaction
    opened by one thread is never interleaved with statements from another.
    ``schema_version`` caches the last version read from or written to the
    store.
    """

    def __init__(self, conn: sqlite3.Connection, path: str) -> None:
        self._conn = conn
        self._path = path
        self._lock = threading.RLock()
        self._closed = False
        self.schema_version: int | None = None

    @property
    def path(self) -> str:
        return self._path

    @property
    def closed(self) -> bool:
        return self._closed

    def execute(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        with self._lock:
            return self._conn.execute(sql, params)

    def get_schema_version(self) -> int:
        """Read ``PRAGMA user_version``. Raises VersionReadError on failure."""
        try:
            row = self.execute("PRAGMA user_version").fetchone()
        except sqlite3.Error as exc:
            raise VersionReadError(self._path, exc) from exc
        self.schema_version = int(row[0])
        return self.schema_version

    def set_schema_version(self, version: int) -> None:
        # PRAGMA does not accept bound parameters.
        self.execute(f"PRAGMA user_version = {int(version)}")
        self.schema_version = int(version)

    @contextmanager
    def transaction(self) -> Generator[StoreConnection, None, None]:
        """Run a block inside BEGIN/COMMIT, rolling back on any exception.

        DDL and ``PRAGMA user_version`` are transactional in SQLite, so a
        rolled-back block leaves neither objects nor a version stamp behind.
        """
        with self._lock:
            version_before = self.schema_version
            self._conn.execute("BEGIN")
            try:
                yield self
                self._conn.execute("COMMIT")
            except BaseException:
                self._conn.execute("ROLLBACK")
                self.schema_version = version_before
                raise

    def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            try:
                self._conn.close()
            except sqlite3.Error as exc:
                raise TeardownError(self._path, exc) from exc


def open_store(database_path: str, *, shared_cache: bool = False) -> StoreConnection:
    """Open (creating if needed) the store file in autocommit mode.

    WAL journaling and foreign keys are enabled, rows come back as
    ``sqlite3.Row``. Any failure is raised as StoreUnavailableError; the
    parent directory must already exist.
    """
    cache = "shared" if shared_cache else "private"
    uri = f"{Path(database_path).resolve().as_uri()}?cache={cache}"
    try:
        conn = sqlite3.connect(
            uri,
            uri=True,
            isolation_level=None,
            check_same_thread=False,
        )
    except sqlite3.Error as exc:
        raise StoreUnavailableError(database_path, exc) from exc

    try:
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")
    except sqlite3.Error as exc:
        conn.close()
        raise StoreUnavailableError(database_path, exc) from exc

    conn.row_factory = sqlite3.Row
    return StoreConnection(conn, database_path)
