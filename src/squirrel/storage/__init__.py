"""Storage layer — SQLite connection lifecycle and schema management."""

from squirrel.storage.connection import StoreConnection, open_store
from squirrel.storage.manager import AcquisitionState, ConnectionManager
from squirrel.storage.schema import create_schema, init_schema

__all__ = [
    "AcquisitionState",
    "ConnectionManager",
    "StoreConnection",
    "create_schema",
    "init_schema",
    "open_store",
]
