"""Ordered schema upgrade steps.

Each step brings the store from ``from_version`` to ``from_version + 1``.
To add a schema generation, bump ``SCHEMA_VERSION`` in the catalog, update
the catalog so fresh stores are created at the new shape, and register one
step for the previous version. Existing steps are never edited.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import Callable, Mapping

from squirrel.storage.catalog import SCHEMA_VERSION
from squirrel.storage.connection import StoreConnection
from squirrel.storage.errors import MigrateError

logger = logging.getLogger(__name__)

MigrationStep = Callable[[StoreConnection], None]

# Keyed by the version a step upgrades from. Empty for the first generation.
_MIGRATIONS: dict[int, MigrationStep] = {}


def register_migration(from_version: int, step: MigrationStep) -> None:
    """Register the step that upgrades ``from_version`` to ``from_version + 1``."""
    if from_version < 1:
        raise ValueError(f"Migration source version must be >= 1, got {from_version}")
    if from_version in _MIGRATIONS:
        raise ValueError(f"A migration from version {from_version} is already registered")
    _MIGRATIONS[from_version] = step


def migration_plan(
    from_version: int,
    to_version: int,
    migrations: Mapping[int, MigrationStep] | None = None,
) -> list[tuple[int, MigrationStep]]:
    """Return the steps covering ``from_version .. to_version - 1`` in order.

    Raises MigrateError when the store is newer than ``to_version`` or a
    step is missing, before anything has been applied.
    """
    steps = _MIGRATIONS if migrations is None else migrations
    if from_version < 1 or from_version > to_version:
        raise MigrateError(from_version, to_version)

    plan = []
    for version in range(from_version, to_version):
        step = steps.get(version)
        if step is None:
            raise MigrateError(
                from_version,
                to_version,
                LookupError(f"no migration step from version {version}"),
            )
        plan.append((version, step))
    return plan


def migrate_schema(
    conn: StoreConnection,
    from_version: int,
    target_version: int = SCHEMA_VERSION,
    migrations: Mapping[int, MigrationStep] | None = None,
) -> None:
    """Apply every step from ``from_version`` to ``target_version``, then stamp.

    Steps and the stamp share one transaction: if any step fails, nothing is
    kept and the stored version is unchanged.
    """
    plan = migration_plan(from_version, target_version, migrations)

    try:
        with conn.transaction():
            for version, step in plan:
                logger.info("Migrating store from version %d to %d", version, version + 1)
                try:
                    step(conn)
                except Exception as exc:
                    raise MigrateError(version, version + 1, exc) from exc
            conn.set_schema_version(target_version)
    except sqlite3.Error as exc:
        # BEGIN, the stamp or COMMIT failed
        raise MigrateError(from_version, target_version, exc) from exc

    logger.info(
        "Store migrated from version %d to %d (%d step(s))",
        from_version,
        target_version,
        len(plan),
    )
