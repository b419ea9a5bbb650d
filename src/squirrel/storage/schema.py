"""Schema creation and version dispatch."""

from __future__ import annotations

import logging
import sqlite3
from typing import Mapping

from squirrel.storage.catalog import INDICES, SCHEMA_VERSION, TABLES, Index, Table
from squirrel.storage.connection import StoreConnection
from squirrel.storage.errors import CreateError
from squirrel.storage.migrations import MigrationStep, migrate_schema

logger = logging.getLogger(__name__)


def _execute_ddl(conn: StoreConnection, object_name: str, statement: str) -> None:
    try:
        conn.execute(statement)
    except sqlite3.Error as exc:
        raise CreateError(object_name, exc) from exc


def create_schema(
    conn: StoreConnection,
    target_version: int = SCHEMA_VERSION,
    tables: tuple[Table, ...] = TABLES,
    indices: tuple[Index, ...] = INDICES,
) -> None:
    """Create all tables and indexes on a fresh store and stamp the version.

    Everything runs in a single transaction. On failure the store is left
    at version 0 with none of the objects, so creation can simply be retried.
    """
    try:
        with conn.transaction():
            for table in tables:
                _execute_ddl(conn, table.name, table.create_sql())
            for index in indices:
                _execute_ddl(conn, index.name, index.create_sql())
            try:
                conn.set_schema_version(target_version)
            except sqlite3.Error as exc:
                raise CreateError("user_version", exc) from exc
    except sqlite3.Error as exc:
        # BEGIN or COMMIT failed
        raise CreateError("transaction", exc) from exc

    logger.info(
        "Created store schema at version %d (%d tables, %d indexes)",
        target_version,
        len(tables),
        len(indices),
    )


def init_schema(
    conn: StoreConnection,
    target_version: int = SCHEMA_VERSION,
    migrations: Mapping[int, MigrationStep] | None = None,
) -> bool:
    """Bring the store to ``target_version``.

    Returns True if the schema was created or migrated, False if it was
    already current. Raises a SchemaError subclass on failure.
    """
    version = conn.get_schema_version()
    if version == 0:
        create_schema(conn, target_version)
        return True
    if version == target_version:
        logger.debug("Store schema already at version %d", version)
        return False
    migrate_schema(conn, version, target_version, migrations)
    return True
