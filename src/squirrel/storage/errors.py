"""Exception hierarchy for the tab store."""

from __future__ import annotations


class StoreError(Exception):
    """Base class for every error raised by the storage layer."""


# --- Acquisition failures (surfaced to callers of ConnectionManager.acquire) ---


class OpenError(StoreError):
    """The store could not be handed out as a ready connection."""


class StoreUnavailableError(OpenError):
    """The underlying SQLite file could not be opened."""

    def __init__(self, path: str, cause: BaseException) -> None:
        super().__init__(f"Cannot open store at {path}: {cause}")
        self.path = path
        self.cause = cause


class SchemaInitError(OpenError):
    """The store opened but initialization failed before it became ready."""

    def __init__(self, path: str, cause: BaseException) -> None:
        super().__init__(f"Schema initialization failed for {path}: {cause}")
        self.path = path
        self.cause = cause


class StoreClosedError(OpenError):
    """The store was torn down and will not be reopened in this process."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Store at {path} has been closed")
        self.path = path


# --- Schema layer ---


class SchemaError(StoreError):
    """Base class for failures while reading or changing the schema."""


class VersionReadError(SchemaError):
    def __init__(self, path: str, cause: BaseException) -> None:
        super().__init__(f"Cannot read schema version of {path}: {cause}")
        self.path = path
        self.cause = cause


class CreateError(SchemaError):
    """A table, index or the version stamp failed during first-time creation."""

    def __init__(self, failed_object: str, cause: BaseException) -> None:
        super().__init__(f"Failed to create {failed_object}: {cause}")
        self.failed_object = failed_object
        self.cause = cause


class MigrateError(SchemaError):
    """A migration step failed, or no migration path exists."""

    def __init__(
        self,
        from_version: int,
        to_version: int,
        cause: BaseException | None = None,
    ) -> None:
        message = f"Migration from version {from_version} to {to_version} failed"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.from_version = from_version
        self.to_version = to_version
        self.cause = cause


# --- Teardown ---


class TeardownError(StoreError):
    """Closing the connection failed. Logged by the manager, never propagated."""

    def __init__(self, path: str, cause: BaseException) -> None:
        super().__init__(f"Failed to close store at {path}: {cause}")
        self.path = path
        self.cause = cause
