"""Tests for squirrel.storage — connection, catalog, and schema creation."""

from __future__ import annotations

import sqlite3

import pytest

from squirrel.storage.catalog import INDICES, SCHEMA_VERSION, TABLES, Index
from squirrel.storage.connection import open_store
from squirrel.storage.errors import (
    CreateError,
    StoreUnavailableError,
    VersionReadError,
)
from squirrel.storage.schema import create_schema, init_schema

EXPECTED_TABLES = {"squirrel_tabs", "squirrel_sessions", "squirrel_sessions_tabs"}

EXPECTED_INDEXES = {
    "squirrel_tabs_timestamp_index",
    "squirrel_sessions_timestamp_index",
    "squirrel_sessions_tabs_tab_index",
    "squirrel_sessions_tabs_session_index",
}


@pytest.fixture()
def db_path(tmp_path):
    """Return a database path inside a temporary directory."""
    return str(tmp_path / "interests.sqlite")


@pytest.fixture()
def store(db_path):
    conn = open_store(db_path)
    yield conn
    conn.close()


def _names(conn, kind: str) -> set[str]:
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type = ? AND name LIKE 'squirrel_%'",
        (kind,),
    ).fetchall()
    return {row["name"] for row in rows}


# --- Catalog ---


def test_catalog_describes_all_objects():
    assert {table.name for table in TABLES} == EXPECTED_TABLES
    assert {index.name for index in INDICES} == EXPECTED_INDEXES
    assert SCHEMA_VERSION == 1


def test_table_ddl_marks_primary_key_and_not_null():
    tabs = next(table for table in TABLES if table.name == "squirrel_tabs")
    sql = tabs.create_sql()
    assert sql.startswith("CREATE TABLE IF NOT EXISTS squirrel_tabs (")
    assert "id INTEGER PRIMARY KEY" in sql
    assert "url TEXT NOT NULL" in sql


def test_index_ddl_is_idempotent_form():
    index = Index("i", "t", ("a", "b"))
    assert index.create_sql() == "CREATE INDEX IF NOT EXISTS i ON t(a, b)"


# --- Connection ---


def test_open_store_creates_file_at_version_zero(db_path, store):
    assert store.path == db_path
    assert store.get_schema_version() == 0
    assert store.schema_version == 0


def test_open_store_enables_wal_and_foreign_keys(store):
    assert store.execute("PRAGMA journal_mode").fetchone()[0] == "wal"
    assert store.execute("PRAGMA foreign_keys").fetchone()[0] == 1


def test_open_store_missing_directory_raises(tmp_path):
    path = str(tmp_path / "nonexistent" / "interests.sqlite")
    with pytest.raises(StoreUnavailableError) as exc_info:
        open_store(path)
    assert exc_info.value.path == path
    assert isinstance(exc_info.value.cause, sqlite3.Error)


def test_set_schema_version_persists(db_path, store):
    store.set_schema_version(7)
    store.close()

    reopened = open_store(db_path)
    try:
        assert reopened.get_schema_version() == 7
    finally:
        reopened.close()


def test_transaction_rolls_back_ddl_and_version(store):
    with pytest.raises(RuntimeError):
        with store.transaction():
            store.execute("CREATE TABLE scratch (x INTEGER)")
            store.set_schema_version(3)
            raise RuntimeError("force rollback")

    assert store.get_schema_version() == 0
    assert store.execute(
        "SELECT name FROM sqlite_master WHERE name = 'scratch'"
    ).fetchone() is None


def test_close_is_idempotent(store):
    store.close()
    store.close()
    assert store.closed


def test_version_read_on_closed_connection_raises(store):
    store.close()
    with pytest.raises(VersionReadError):
        store.get_schema_version()


# --- Schema creation ---


def test_create_schema_creates_tables_indexes_and_stamps(store):
    create_schema(store)

    assert _names(store, "table") == EXPECTED_TABLES
    assert _names(store, "index") == EXPECTED_INDEXES
    assert store.get_schema_version() == SCHEMA_VERSION


def test_create_schema_failure_leaves_fresh_store(store):
    broken = INDICES + (Index("squirrel_broken_index", "missing_table", ("x",)),)

    with pytest.raises(CreateError) as exc_info:
        create_schema(store, tables=TABLES, indices=broken)

    assert exc_info.value.failed_object == "squirrel_broken_index"
    assert _names(store, "table") == set()
    assert _names(store, "index") == set()
    assert store.get_schema_version() == 0


def test_create_schema_retry_after_failure_succeeds(store):
    broken = (Index("squirrel_broken_index", "missing_table", ("x",)),)
    with pytest.raises(CreateError):
        create_schema(store, indices=broken)

    create_schema(store)
    assert _names(store, "table") == EXPECTED_TABLES
    assert store.get_schema_version() == SCHEMA_VERSION


def test_create_schema_tolerates_stray_table(store):
    store.execute("CREATE TABLE squirrel_sessions (id INTEGER PRIMARY KEY, timestamp INTEGER NOT NULL)")
    create_schema(store)
    assert _names(store, "table") == EXPECTED_TABLES


def test_created_tables_enforce_not_null(store):
    create_schema(store)
    with pytest.raises(sqlite3.IntegrityError):
        store.execute("INSERT INTO squirrel_sessions (id, timestamp) VALUES (1, NULL)")


# --- Initialization dispatch ---


def test_init_schema_on_fresh_store_creates(store):
    assert init_schema(store) is True
    assert _names(store, "table") == EXPECTED_TABLES
    assert store.get_schema_version() == SCHEMA_VERSION


def test_init_schema_on_current_store_is_noop(store):
    init_schema(store)
    assert init_schema(store) is False
    assert store.get_schema_version() == SCHEMA_VERSION


def test_init_schema_intermediate_version_migrates(store):
    applied = []
    migrations = {
        1: lambda conn: applied.append(1),
        2: lambda conn: applied.append(2),
    }
    store.set_schema_version(1)

    assert init_schema(store, target_version=3, migrations=migrations) is True
    assert applied == [1, 2]
    assert store.get_schema_version() == 3
